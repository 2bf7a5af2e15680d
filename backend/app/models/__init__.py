"""Data models."""

# Export supplier API response models
from app.models.external import (
    FieldSet,
    Pagination,
    ProbeResult,
    SampleFetchResult,
)

# Export connection models
from app.models.schedule import ScheduleConfig, ScheduleUpdate
from app.models.connection import ConnectionCreate, ConnectionDelete, ConnectionUpdate

# Export import configuration models
from app.models.import_configuration import ImportConfigurationData
