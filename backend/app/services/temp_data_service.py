"""Short-lived per-shop storage for import wizard progress."""

import json
import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import TempDataType
from app.core.exceptions import DatabaseError
from app.models.database import TempData, utcnow

logger = logging.getLogger(__name__)


class TempDataService:
    """
    Service for saving and loading temp data.

    Every save adds a row that expires after ``temp_data_ttl_hours``; a load
    returns the newest row that has not expired yet. Expired rows of the
    shop are removed on the next save.
    """

    @staticmethod
    async def save(
        db: AsyncSession,
        shop: str,
        raw: str,
        data_type: TempDataType = TempDataType.IMPORT_PROGRESS,
    ) -> TempData:
        """
        Store a JSON document.

        Args:
            raw: JSON text as sent by the admin UI

        Raises:
            ValueError: If raw is not valid JSON
        """
        json.loads(raw)

        now = utcnow()
        await db.execute(
            delete(TempData).where(TempData.shop == shop, TempData.expires_at <= now)
        )
        entry = TempData(
            shop=shop,
            data_type=data_type.value,
            data=raw,
            expires_at=now + timedelta(hours=settings.temp_data_ttl_hours),
        )
        db.add(entry)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Temp data save failed: {type(e).__name__}")
            raise DatabaseError(operation="save_temp_data")

        logger.debug(f"Temp data saved for {shop} ({data_type.value})")
        return entry

    @staticmethod
    async def load(
        db: AsyncSession,
        shop: str,
        data_type: TempDataType = TempDataType.IMPORT_PROGRESS,
    ) -> Optional[Any]:
        """Newest unexpired document of the shop, decoded, or None."""
        result = await db.execute(
            select(TempData)
            .where(
                TempData.shop == shop,
                TempData.data_type == data_type.value,
                TempData.expires_at > utcnow(),
            )
            .order_by(TempData.created_at.desc())
            .limit(1)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            return None
        return json.loads(entry.data)


# Global service instance
temp_data_service = TempDataService()
