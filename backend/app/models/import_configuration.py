"""Request models for the import configurations endpoint."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.enums import ConnectionType, Limits


class ImportConfigurationData(BaseModel):
    """
    Payload of the ``create`` and ``update`` actions, sent JSON-encoded in
    the ``data`` form field.

    Mappings, filters and markup are stored as the admin UI sends them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    name: Optional[str] = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    data_source: Optional[ConnectionType] = None
    api_url: Optional[str] = None
    access_token: Optional[str] = None
    csv_file_name: Optional[str] = None
    csv_data: Optional[Any] = None
    key_mappings: Optional[Any] = None
    import_type: Optional[str] = None
    import_filters: Optional[Any] = None
    markup_config: Optional[Any] = None
    import_config: Optional[str] = None
    scheduled_time: Optional[str] = None
    product_count: int = 0

    def column_values(self) -> dict:
        """Column name to value, with the default name filled in."""
        values = self.model_dump()
        values["name"] = self.name or "Import Configuration"
        return values
