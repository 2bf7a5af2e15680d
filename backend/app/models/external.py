"""Response models for the supplier API endpoint."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Record = Dict[str, Any]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProbeResult(_CamelModel):
    """Outcome of a successful connection check."""

    success: bool = True
    status: int


class Pagination(_CamelModel):
    """
    Pagination metadata normalized from whatever the supplier returned.

    ``total`` and ``has_next_page`` come from independent upstream fields and
    are not reconciled.
    """

    current_page: int
    per_page: int
    total: int
    next_page_url: Optional[str] = None
    prev_page_url: Optional[str] = None
    has_next_page: bool
    has_prev_page: bool


class SampleFetchResult(_CamelModel):
    """
    One page of supplier records.

    Only the first element is known to be a mapping; the rest are passed
    through untouched.
    """

    success: bool = True
    items: List[Any] = Field(default_factory=list)
    pagination: Pagination


class FieldSet(_CamelModel):
    """Dotted field paths discovered from the first supplier record."""

    success: bool = True
    fields: List[str] = Field(default_factory=list)
    sample: Optional[Record] = None
