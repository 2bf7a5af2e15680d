"""Database models for supplier connections and import state."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from app.core.security import generate_db_id
from app.models.schedule import ScheduleConfig

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp with microseconds, so rows created together still order."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ScheduleConfigType(TypeDecorator):
    """Text column holding a ScheduleConfig, decoded on load."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = ScheduleConfig.from_stored(value)
            if value is None:
                return None
        return value.to_stored()

    def process_result_value(self, value, dialect):
        return ScheduleConfig.from_stored(value)


class Connection(Base):
    """A supplier (API or CSV) linked to a shop."""

    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=generate_db_id)
    shop = Column(String(255), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # 'api' or 'csv'
    name = Column(String(255), nullable=False, default="API Connection")
    api_url = Column(Text, nullable=True)
    access_token = Column(Text, nullable=True)
    csv_file_name = Column(String(255), nullable=True)
    supplier_name = Column(String(255), nullable=True)
    supplier_email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="connected")
    last_sync = Column(DateTime, nullable=True)
    # Stored under its legacy column name
    schedule = Column("scheduled_time", ScheduleConfigType, nullable=True)
    product_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_connection_shop_active", "shop", "is_active"),
    )

    def duplicate_key(self) -> tuple:
        """Connections sharing this key point at the same supplier source."""
        return (self.supplier_name or self.name, self.api_url or self.csv_file_name)

    def to_dict(self):
        """Convert connection to the camelCase shape the admin UI reads."""
        return {
            "id": self.id,
            "shop": self.shop,
            "type": self.type,
            "name": self.name,
            "apiUrl": self.api_url,
            "accessToken": self.access_token,
            "csvFileName": self.csv_file_name,
            "supplierName": self.supplier_name,
            "supplierEmail": self.supplier_email,
            "status": self.status,
            "lastSync": self.last_sync.isoformat() if self.last_sync else None,
            "schedule": self.schedule.model_dump(by_alias=True, mode="json") if self.schedule else None,
            "markupRule": self.schedule.markup_rule() if self.schedule else None,
            "productCount": self.product_count,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class ImportConfiguration(Base):
    """A saved import setup: source, key mappings, filters and markup."""

    __tablename__ = "import_configurations"

    id = Column(String(36), primary_key=True, default=generate_db_id)
    shop = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="Import Configuration")
    data_source = Column(String(20), nullable=True)  # 'api' or 'csv'
    api_url = Column(Text, nullable=True)
    access_token = Column(Text, nullable=True)
    csv_file_name = Column(String(255), nullable=True)
    csv_data = Column(JSON, nullable=True)
    key_mappings = Column(JSON, nullable=True)
    import_type = Column(String(50), nullable=True)
    import_filters = Column(JSON, nullable=True)
    markup_config = Column(JSON, nullable=True)
    import_config = Column(String(50), nullable=True)
    scheduled_time = Column(String(255), nullable=True)
    product_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_import_configuration_shop_active", "shop", "is_active"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "shop": self.shop,
            "name": self.name,
            "dataSource": self.data_source,
            "apiUrl": self.api_url,
            "accessToken": self.access_token,
            "csvFileName": self.csv_file_name,
            "csvData": self.csv_data,
            "keyMappings": self.key_mappings,
            "importType": self.import_type,
            "importFilters": self.import_filters,
            "markupConfig": self.markup_config,
            "importConfig": self.import_config,
            "scheduledTime": self.scheduled_time,
            "productCount": self.product_count,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class TempData(Base):
    """Short-lived per-shop blobs, such as import wizard progress."""

    __tablename__ = "temp_data"

    id = Column(String(36), primary_key=True, default=generate_db_id)
    shop = Column(String(255), nullable=False)
    data_type = Column(String(50), nullable=False)
    data = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_temp_data_lookup", "shop", "data_type", "expires_at"),
    )
