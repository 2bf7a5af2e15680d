"""
Shape-sniffing for arbitrary supplier JSON.

Suppliers wrap their product lists in whatever envelope they like
(``{"data": [...]}``, ``{"products": [...], "meta": {...}}``, a bare array).
These helpers find the records, normalize pagination hints and pull a
readable message out of error bodies. All of them are pure functions.
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from app.core.enums import Limits
from app.models.external import Pagination, Record

DEFAULT_ERROR_MESSAGE = "External API returned an error"
ERROR_MESSAGE_KEYS = ("message", "error", "detail")


def is_record_array(value: Any) -> bool:
    """True for a non-empty list whose first element is a mapping."""
    return isinstance(value, list) and len(value) > 0 and isinstance(value[0], dict)


def locate_record_array(body: Any) -> Optional[List[Any]]:
    """
    Find the list of records inside a supplier payload.

    A top-level record array is returned as-is. Otherwise the top-level keys
    of a mapping are scanned in document order and the first record array
    wins. Nested envelopes are not searched.

    Returns:
        The records, or None when the payload holds no record array
    """
    if is_record_array(body):
        return body
    if isinstance(body, dict):
        for value in body.values():
            if is_record_array(value):
                return value
    return None


def flatten_field_paths(record: Record) -> List[str]:
    """
    Collect dotted paths to every leaf of a record, sorted.

    Nested mappings are walked; scalars, nulls and lists are leaves, so list
    contents are never inspected.
    """
    fields = set()

    def walk(obj: Dict[str, Any], prefix: str = "") -> None:
        for key, value in obj.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, dict):
                walk(value, path)
            else:
                fields.add(path)

    walk(record)
    return sorted(fields)


def _as_int_or_default(value: Any, default: int) -> int:
    # Upstream sends ints, numeric strings, or nothing at all
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number else default


def _as_url(value: Any) -> Optional[str]:
    return str(value) if value else None


def normalize_pagination(body: Any, page: int, item_count: int) -> Pagination:
    """
    Map the supplier's pagination fields (Laravel style) onto one shape.

    ``per_page`` falls back to 100 and ``total`` to the number of records
    found on this page. Next/previous flags only reflect whether the
    corresponding URL was sent.
    """
    meta = body if isinstance(body, dict) else {}
    next_page_url = _as_url(meta.get("next_page_url"))
    prev_page_url = _as_url(meta.get("prev_page_url"))
    return Pagination(
        current_page=page,
        per_page=_as_int_or_default(meta.get("per_page"), Limits.DEFAULT_PER_PAGE),
        total=_as_int_or_default(meta.get("total"), item_count),
        next_page_url=next_page_url,
        prev_page_url=prev_page_url,
        has_next_page=next_page_url is not None,
        has_prev_page=prev_page_url is not None,
    )


def with_page_param(url: str, page: int) -> str:
    """Set ``page`` on the URL for pages after the first, keeping other params."""
    if page <= 1:
        return url
    return str(httpx.URL(url).copy_set_param("page", str(page)))


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def extract_error_message(body: Any, max_length: int = 500) -> str:
    """
    Pick the most useful message out of a supplier error body.

    Mappings are searched for ``message``, ``error`` then ``detail``; failing
    that the whole body is serialized. Text bodies are used verbatim. The
    result is cut to ``max_length`` characters.
    """
    if body is None or body == "":
        return DEFAULT_ERROR_MESSAGE

    if isinstance(body, str):
        message = body
    elif isinstance(body, dict):
        found = next((body[key] for key in ERROR_MESSAGE_KEYS if body.get(key)), None)
        if found is None:
            message = _compact_json(body)
        elif isinstance(found, str):
            message = found
        else:
            message = _compact_json(found)
    else:
        message = _compact_json(body)

    return message[:max_length]


def is_json_content_type(content_type: Optional[str]) -> bool:
    """Whether a Content-Type header declares JSON."""
    return "application/json" in (content_type or "").lower()
