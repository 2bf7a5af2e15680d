"""Structured schedule configuration stored on a connection."""

import json
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from app.core.enums import ConditionOperator, Limits, MarkupType, ScheduleFrequency

logger = logging.getLogger(__name__)


class ScheduleConfig(BaseModel):
    """
    Sync schedule plus the price markup applied during scheduled syncs.

    Older rows hold either a camelCase JSON object or just a bare time
    string such as ``"09:00"``; both decode here, and everything is written
    back as versioned JSON.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    version: int = Limits.SCHEDULE_CONFIG_VERSION
    enabled: bool = False
    frequency: ScheduleFrequency = ScheduleFrequency.DAILY
    time: str = "09:00"
    markup_enabled: bool = False
    markup_type: MarkupType = MarkupType.PERCENTAGE
    markup_value: float = 0
    price_from: float = 0
    price_to: float = 0
    condition_operator: ConditionOperator = ConditionOperator.BETWEEN

    @classmethod
    def from_stored(cls, raw: Optional[str]) -> Optional["ScheduleConfig"]:
        """
        Decode the persisted column value.

        Returns None when nothing is stored or the stored JSON object can't
        be validated.
        """
        if raw is None or not raw.strip():
            return None

        try:
            data = json.loads(raw)
        except ValueError:
            # Legacy rows stored only the time of day
            return cls(enabled=True, time=raw.strip())

        if not isinstance(data, dict):
            logger.warning(f"Discarding non-object schedule config: {type(data).__name__}")
            return None

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable schedule config: {e.error_count()} errors")
            return None

    def to_stored(self) -> str:
        """Encode for persistence."""
        return json.dumps(self.model_dump(by_alias=True, mode="json"))

    def markup_rule(self) -> Optional[Dict[str, Any]]:
        """Markup rules applied by scheduled syncs, or None when markup is off."""
        if not self.markup_enabled:
            return None
        return {
            "conditions": [
                {
                    "field": "price",
                    "operator": self.condition_operator,
                    "value": f"{self.price_from:g}-{self.price_to:g}",
                    "priority": 1,
                    "markupType": self.markup_type,
                    "markupValue": self.markup_value,
                }
            ],
            "conditionsType": "all",
        }


class ScheduleUpdate(BaseModel):
    """Schedule fields as they arrive on a connection update."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schedule_enabled: Optional[bool] = None
    schedule_frequency: Optional[str] = None
    schedule_time: Optional[str] = None
    markup_enabled: Optional[bool] = None
    markup_type: Optional[str] = None
    markup_value: Optional[float] = None
    price_from: Optional[float] = None
    price_to: Optional[float] = None
    condition_operator: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def to_config(self) -> ScheduleConfig:
        """Build a full config, filling anything falsy with the defaults."""
        return ScheduleConfig(
            enabled=bool(self.schedule_enabled),
            frequency=self.schedule_frequency or ScheduleFrequency.DAILY,
            time=self.schedule_time or "09:00",
            markup_enabled=bool(self.markup_enabled),
            markup_type=self.markup_type or MarkupType.PERCENTAGE,
            markup_value=self.markup_value or 0,
            price_from=self.price_from or 0,
            price_to=self.price_to or 0,
            condition_operator=self.condition_operator or ConditionOperator.BETWEEN,
        )
