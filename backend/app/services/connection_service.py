"""Persistence for supplier connections, always scoped to one shop."""

import logging
from collections import defaultdict
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ConnectionStatus
from app.core.exceptions import ConnectionNotFoundError, DatabaseError, ValidationError
from app.core.security import mask_secret
from app.models.connection import ConnectionCreate, ConnectionUpdate
from app.models.database import Connection, utcnow

logger = logging.getLogger(__name__)


class ConnectionService:
    """Service for reading and changing a shop's connections."""

    @staticmethod
    async def _commit(db: AsyncSession, operation: str) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Connection {operation} failed: {type(e).__name__}")
            raise DatabaseError(operation=operation)

    @staticmethod
    async def _get_owned(db: AsyncSession, shop: str, connection_id: str) -> Connection:
        result = await db.execute(
            select(Connection).where(
                Connection.id == connection_id,
                Connection.shop == shop,
            )
        )
        connection = result.scalar_one_or_none()
        if connection is None:
            raise ConnectionNotFoundError(connection_id)
        return connection

    @staticmethod
    async def list_connections(
        db: AsyncSession,
        shop: str,
        connection_type: Optional[str] = None,
    ) -> List[Connection]:
        """Active connections of the shop, newest first."""
        query = select(Connection).where(
            Connection.shop == shop,
            Connection.is_active.is_(True),
        )
        if connection_type:
            query = query.where(Connection.type == connection_type)
        result = await db.execute(query.order_by(Connection.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def create_connection(
        db: AsyncSession,
        shop: str,
        payload: ConnectionCreate,
    ) -> Connection:
        """Create a connection from the admin UI's create payload."""
        connection = Connection(
            shop=shop,
            type=payload.type,
            name=payload.name or "API Connection",
            api_url=payload.api_url,
            access_token=payload.access_token,
            csv_file_name=payload.csv_file_name,
            supplier_name=payload.supplier_name,
            supplier_email=payload.supplier_email,
            status=payload.status or ConnectionStatus.CONNECTED.value,
            schedule=payload.schedule(),
            product_count=payload.product_count,
        )
        db.add(connection)
        await ConnectionService._commit(db, "create")
        await db.refresh(connection)

        logger.info(
            f"Connection created: {connection.id} ({connection.type}) "
            f"token={mask_secret(connection.access_token or '')}"
        )
        return connection

    @staticmethod
    async def update_connection(
        db: AsyncSession,
        shop: str,
        update: ConnectionUpdate,
    ) -> Connection:
        """
        Apply a PUT from the admin UI.

        Blank fields keep the stored value. When any schedule field is sent,
        the whole schedule is rebuilt from the sent fields plus defaults.
        """
        if not update.connection_id:
            raise ValidationError(message="Connection ID is required")

        connection = await ConnectionService._get_owned(db, shop, update.connection_id)

        connection.name = update.name or connection.name
        connection.api_url = update.api_url or connection.api_url
        connection.access_token = update.access_token or connection.access_token
        connection.supplier_name = update.supplier_name or connection.supplier_name
        connection.supplier_email = update.supplier_email or connection.supplier_email

        schedule_update = update.schedule_update()
        if not schedule_update.is_empty():
            try:
                connection.schedule = schedule_update.to_config()
            except PydanticValidationError as e:
                raise ValidationError(
                    message="Invalid schedule configuration",
                    details={"errors": e.errors(include_url=False)},
                )

        connection.updated_at = utcnow()
        await ConnectionService._commit(db, "update")
        await db.refresh(connection)

        logger.info(f"Connection updated: {connection.id}")
        return connection

    @staticmethod
    async def deactivate_connection(db: AsyncSession, shop: str, connection_id: str) -> None:
        """Soft delete: hide the connection but keep its row."""
        connection = await ConnectionService._get_owned(db, shop, connection_id)
        connection.is_active = False
        await ConnectionService._commit(db, "deactivate")
        logger.info(f"Connection deactivated: {connection_id}")

    @staticmethod
    async def delete_connection(db: AsyncSession, shop: str, connection_id: Optional[str]) -> None:
        """Remove the connection row."""
        if not connection_id:
            raise ValidationError(message="Connection ID is required")

        connection = await ConnectionService._get_owned(db, shop, connection_id)
        await db.delete(connection)
        await ConnectionService._commit(db, "delete")
        logger.info(f"Connection deleted: {connection_id}")

    @staticmethod
    async def cleanup_duplicates(db: AsyncSession, shop: str) -> int:
        """
        Deactivate all but the newest connection per supplier source.

        Returns:
            Number of connections deactivated
        """
        groups = defaultdict(list)
        for connection in await ConnectionService.list_connections(db, shop):
            groups[connection.duplicate_key()].append(connection)

        removed = 0
        for connections in groups.values():
            # list_connections is newest first
            for stale in connections[1:]:
                stale.is_active = False
                removed += 1

        if removed:
            await ConnectionService._commit(db, "cleanup_duplicates")
        logger.info(f"Removed {removed} duplicate connections for {shop}")
        return removed

    @staticmethod
    def total_imported_products(connections: List[Connection]) -> int:
        return sum(connection.product_count or 0 for connection in connections)


# Global service instance
connection_service = ConnectionService()
