"""Persistence for saved import configurations, always scoped to one shop."""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError, ImportConfigurationNotFoundError
from app.models.database import ImportConfiguration, utcnow
from app.models.import_configuration import ImportConfigurationData

logger = logging.getLogger(__name__)


class ImportConfigurationService:
    """Service for reading and changing a shop's import configurations."""

    @staticmethod
    async def _commit(db: AsyncSession, operation: str) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Import configuration {operation} failed: {type(e).__name__}")
            raise DatabaseError(operation=operation)

    @staticmethod
    async def _get_owned(db: AsyncSession, shop: str, configuration_id: str) -> ImportConfiguration:
        result = await db.execute(
            select(ImportConfiguration).where(
                ImportConfiguration.id == configuration_id,
                ImportConfiguration.shop == shop,
            )
        )
        configuration = result.scalar_one_or_none()
        if configuration is None:
            raise ImportConfigurationNotFoundError(configuration_id)
        return configuration

    @staticmethod
    async def list_configurations(db: AsyncSession, shop: str) -> List[ImportConfiguration]:
        """Active configurations of the shop, newest first."""
        result = await db.execute(
            select(ImportConfiguration)
            .where(
                ImportConfiguration.shop == shop,
                ImportConfiguration.is_active.is_(True),
            )
            .order_by(ImportConfiguration.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_configuration(
        db: AsyncSession,
        shop: str,
        data: ImportConfigurationData,
    ) -> ImportConfiguration:
        configuration = ImportConfiguration(shop=shop, **data.column_values())
        db.add(configuration)
        await ImportConfigurationService._commit(db, "create")
        await db.refresh(configuration)

        logger.info(f"Import configuration created: {configuration.id} for {shop}")
        return configuration

    @staticmethod
    async def update_configuration(
        db: AsyncSession,
        shop: str,
        configuration_id: str,
        data: ImportConfigurationData,
    ) -> ImportConfiguration:
        """Replace every stored field with the sent payload."""
        configuration = await ImportConfigurationService._get_owned(db, shop, configuration_id)
        for column, value in data.column_values().items():
            setattr(configuration, column, value)
        configuration.updated_at = utcnow()

        await ImportConfigurationService._commit(db, "update")
        await db.refresh(configuration)

        logger.info(f"Import configuration updated: {configuration_id}")
        return configuration

    @staticmethod
    async def deactivate_configuration(db: AsyncSession, shop: str, configuration_id: str) -> None:
        """Soft delete: hide the configuration but keep its row."""
        configuration = await ImportConfigurationService._get_owned(db, shop, configuration_id)
        configuration.is_active = False
        await ImportConfigurationService._commit(db, "deactivate")
        logger.info(f"Import configuration deactivated: {configuration_id}")


# Global service instance
import_configuration_service = ImportConfigurationService()
