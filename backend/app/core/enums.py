"""
Enums and constants for the supplier import backend.

Replaces magic strings with type-safe enums throughout the codebase.
"""

from enum import Enum
from typing import Optional, Set


class ExternalAction(str, Enum):
    """Actions accepted by the supplier API endpoint."""

    VALIDATE_CONNECTION = "validateConnection"
    FETCH_SAMPLE_DATA = "fetchSampleData"
    FETCH_SAMPLE_FIELDS = "fetchSampleFields"

    @classmethod
    def values(cls) -> Set[str]:
        return {member.value for member in cls}

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ExternalAction"]:
        """Return the matching action, or None for unknown/missing values."""
        if value in cls.values():
            return cls(value)
        return None


class ConnectionAction(str, Enum):
    """Form actions accepted by the connections endpoint."""

    CREATE = "create"
    DELETE = "delete"
    CLEANUP_DUPLICATES = "cleanupDuplicates"


class ImportConfigurationAction(str, Enum):
    """Form actions accepted by the import configurations endpoint."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class TempDataAction(str, Enum):
    """Form actions accepted by the temp data endpoint."""

    SAVE = "saveTempData"
    LOAD = "loadTempData"


class TempDataType(str, Enum):
    """Kinds of short-lived data kept per shop."""

    IMPORT_PROGRESS = "import_progress"


class ConnectionType(str, Enum):
    """How a supplier's products reach the store."""

    API = "api"
    CSV = "csv"


class ConnectionStatus(str, Enum):
    """Lifecycle status of a connection."""

    CONNECTED = "connected"
    SYNCING = "syncing"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class ScheduleFrequency(str, Enum):
    """How often a scheduled sync runs."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    TEST = "test"


class MarkupType(str, Enum):
    """Markup applied to supplier prices."""

    PERCENTAGE = "percentage"
    PERCENT = "percent"
    FIXED = "fixed"


class ConditionOperator(str, Enum):
    """Operators a markup condition can use."""

    EQ = "eq"
    NEQ = "neq"
    STARTS = "starts"
    ENDS = "ends"
    CONTAINS = "contains"
    NCONTAINS = "ncontains"
    GT = "gt"
    LT = "lt"
    BETWEEN = "between"


class Limits:
    """System limits and constraints."""

    DEFAULT_PER_PAGE = 100
    SCHEDULE_CONFIG_VERSION = 1
    MAX_NAME_LENGTH = 255
