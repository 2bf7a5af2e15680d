"""Connections API endpoints."""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.enums import ConnectionAction
from app.core.exceptions import AppError, InternalServerError, InvalidActionError, ValidationError
from app.core.logging import get_logger
from app.middleware.auth import get_current_shop
from app.models.connection import ConnectionCreate, ConnectionDelete, ConnectionUpdate
from app.services.connection_service import connection_service

logger = get_logger(__name__)

router = APIRouter(prefix="/app/api/connections", tags=["connections"])


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError(message="Request body must be JSON")
    if not isinstance(body, dict):
        raise ValidationError(message="Request body must be a JSON object")
    return body


def _invalid(e: PydanticValidationError) -> ValidationError:
    return ValidationError(
        message="Invalid connection data",
        details={"errors": e.errors(include_url=False)},
    )


@router.get("")
async def list_connections(
    type: Optional[str] = Query(None),
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Active connections of the calling shop, optionally filtered by type."""
    try:
        connections = await connection_service.list_connections(db, shop, connection_type=type)
    except AppError:
        raise
    except Exception:
        logger.exception("Failed to list connections")
        raise InternalServerError()

    return {
        "success": True,
        "connections": [connection.to_dict() for connection in connections],
        "totalImportedProducts": connection_service.total_imported_products(connections),
    }


@router.post("")
async def connection_action(
    request: Request,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """
    Form actions: ``create`` (JSON in ``data``), ``delete`` (``id``, soft
    delete) and ``cleanupDuplicates``.
    """
    try:
        form = await request.form()
        action = form.get("action")

        if action == ConnectionAction.CREATE.value:
            raw = form.get("data")
            if not isinstance(raw, str):
                raise ValidationError(message="Missing data")
            try:
                data = json.loads(raw)
            except ValueError:
                raise ValidationError(message="Missing data")
            try:
                payload = ConnectionCreate.model_validate(data)
            except PydanticValidationError as e:
                raise _invalid(e)
            connection = await connection_service.create_connection(db, shop, payload)
            return {"success": True, "connection": connection.to_dict()}

        if action == ConnectionAction.DELETE.value:
            connection_id = form.get("id")
            if not isinstance(connection_id, str) or not connection_id:
                raise ValidationError(message="Missing id")
            await connection_service.deactivate_connection(db, shop, connection_id)
            return {"success": True}

        if action == ConnectionAction.CLEANUP_DUPLICATES.value:
            removed = await connection_service.cleanup_duplicates(db, shop)
            return {
                "success": True,
                "message": f"Removed {removed} duplicate connections",
                "removedCount": removed,
            }

        raise InvalidActionError(action if isinstance(action, str) else None)
    except AppError:
        raise
    except Exception:
        logger.exception("Connection action failed")
        raise InternalServerError()


@router.put("")
async def update_connection(
    request: Request,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Update a connection and, when schedule fields are sent, its schedule."""
    body = await _json_body(request)
    try:
        update = ConnectionUpdate.model_validate(body)
    except PydanticValidationError as e:
        raise _invalid(e)

    try:
        connection = await connection_service.update_connection(db, shop, update)
    except AppError:
        raise
    except Exception:
        logger.exception("Failed to update connection")
        raise InternalServerError()

    return {"success": True, "connection": connection.to_dict()}


@router.delete("")
async def delete_connection(
    request: Request,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a connection."""
    body = await _json_body(request)
    try:
        delete = ConnectionDelete.model_validate(body)
    except PydanticValidationError as e:
        raise _invalid(e)

    try:
        await connection_service.delete_connection(db, shop, delete.connection_id)
    except AppError:
        raise
    except Exception:
        logger.exception("Failed to delete connection")
        raise InternalServerError()

    return {"success": True, "message": "Connection deleted successfully"}
