"""Import configurations API endpoints."""

import json

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.enums import ImportConfigurationAction
from app.core.exceptions import AppError, InternalServerError, InvalidActionError, ValidationError
from app.core.logging import get_logger
from app.middleware.auth import get_current_shop
from app.models.import_configuration import ImportConfigurationData
from app.services.import_configuration_service import import_configuration_service

logger = get_logger(__name__)

router = APIRouter(prefix="/app/api/import-configurations", tags=["import-configurations"])


def _parse_data(raw) -> ImportConfigurationData:
    if not isinstance(raw, str):
        raise ValidationError(message="Missing data")
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError(message="Missing data")
    try:
        return ImportConfigurationData.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            message="Invalid import configuration data",
            details={"errors": e.errors(include_url=False)},
        )


def _required_id(form) -> str:
    configuration_id = form.get("id")
    if not isinstance(configuration_id, str) or not configuration_id:
        raise ValidationError(message="Missing id")
    return configuration_id


@router.get("")
async def list_import_configurations(
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Active import configurations of the calling shop, newest first."""
    try:
        configurations = await import_configuration_service.list_configurations(db, shop)
    except AppError:
        raise
    except Exception:
        logger.exception("Failed to list import configurations")
        raise InternalServerError()

    return {
        "success": True,
        "configurations": [configuration.to_dict() for configuration in configurations],
    }


@router.post("")
async def import_configuration_action(
    request: Request,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """
    Form actions: ``create`` (JSON in ``data``), ``update`` (``id`` and
    ``data``) and ``delete`` (``id``, soft delete).
    """
    try:
        form = await request.form()
        action = form.get("action")

        if action == ImportConfigurationAction.CREATE.value:
            data = _parse_data(form.get("data"))
            configuration = await import_configuration_service.create_configuration(db, shop, data)
            return {"success": True, "configuration": configuration.to_dict()}

        if action == ImportConfigurationAction.UPDATE.value:
            configuration_id = _required_id(form)
            data = _parse_data(form.get("data"))
            configuration = await import_configuration_service.update_configuration(
                db, shop, configuration_id, data
            )
            return {"success": True, "configuration": configuration.to_dict()}

        if action == ImportConfigurationAction.DELETE.value:
            await import_configuration_service.deactivate_configuration(db, shop, _required_id(form))
            return {"success": True}

        raise InvalidActionError(action if isinstance(action, str) else None)
    except AppError:
        raise
    except Exception:
        logger.exception("Import configuration action failed")
        raise InternalServerError()
