"""Request models for the connections endpoint."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.enums import ConnectionStatus, ConnectionType, Limits
from app.models.schedule import ScheduleConfig, ScheduleUpdate


class ConnectionCreate(BaseModel):
    """Payload of the ``create`` action (sent JSON-encoded in the ``data`` field)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    type: ConnectionType
    name: Optional[str] = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    api_url: Optional[str] = None
    access_token: Optional[str] = None
    csv_file_name: Optional[str] = None
    supplier_name: Optional[str] = None
    supplier_email: Optional[str] = None
    status: Optional[ConnectionStatus] = None
    # Either a structured schedule or the legacy string form
    scheduled_time: Optional[Union[ScheduleConfig, str]] = None
    product_count: int = 0

    def schedule(self) -> Optional[ScheduleConfig]:
        if isinstance(self.scheduled_time, str):
            return ScheduleConfig.from_stored(self.scheduled_time)
        return self.scheduled_time


class ConnectionUpdate(ScheduleUpdate):
    """Body of a PUT; empty values keep what is stored."""

    connection_id: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    api_url: Optional[str] = None
    access_token: Optional[str] = None
    supplier_name: Optional[str] = None
    supplier_email: Optional[str] = None

    def schedule_update(self) -> ScheduleUpdate:
        """Just the schedule fields of this update."""
        return ScheduleUpdate.model_validate(
            self.model_dump(include=set(ScheduleUpdate.model_fields))
        )


class ConnectionDelete(BaseModel):
    """Body of a DELETE."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connection_id: Optional[str] = None
