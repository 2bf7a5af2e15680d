"""Temp data API endpoint."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.enums import TempDataAction
from app.core.exceptions import AppError, InternalServerError, InvalidActionError, ValidationError
from app.core.logging import get_logger
from app.middleware.auth import get_current_shop
from app.services.temp_data_service import temp_data_service

logger = get_logger(__name__)

router = APIRouter(prefix="/app/api/temp-data", tags=["temp-data"])


@router.post("")
async def temp_data_action(
    request: Request,
    shop: str = Depends(get_current_shop),
    db: AsyncSession = Depends(get_db),
):
    """Form actions: ``saveTempData`` (JSON in ``data``) and ``loadTempData``."""
    try:
        form = await request.form()
        action = form.get("action")

        if action == TempDataAction.SAVE.value:
            raw = form.get("data")
            if not isinstance(raw, str) or not raw:
                raise ValidationError(message="Invalid data")
            try:
                await temp_data_service.save(db, shop, raw)
            except ValueError:
                raise ValidationError(message="Invalid data")
            return {"success": True}

        if action == TempDataAction.LOAD.value:
            return {"success": True, "data": await temp_data_service.load(db, shop)}

        raise InvalidActionError(action if isinstance(action, str) else None)
    except AppError:
        raise
    except Exception:
        logger.exception("Temp data action failed")
        raise InternalServerError()
