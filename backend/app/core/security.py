"""Security utilities for credentials and ID generation."""

import re
import uuid

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


def normalize_bearer_token(token: str) -> str:
    """
    Strip a leading ``Bearer `` prefix (any case) from a stored token.

    Tokens reach us both raw and already prefixed depending on how the
    merchant pasted them, so the outbound header is always rebuilt from the
    bare value.

    Args:
        token: Token as submitted or stored

    Returns:
        The bare token
    """
    return _BEARER_PREFIX.sub("", token, count=1)


def bearer_header(token: str) -> str:
    """Build an ``Authorization`` header value from a raw or prefixed token."""
    return f"Bearer {normalize_bearer_token(token)}"


def mask_secret(value: str, visible: int = 4) -> str:
    """
    Mask a secret for logging, keeping only the last few characters.

    Args:
        value: Secret to mask
        visible: Number of trailing characters to keep

    Returns:
        Masked representation, e.g. ``***abcd``
    """
    if not value:
        return ""
    if len(value) <= visible * 2:
        return "***"
    return f"***{value[-visible:]}"


def generate_db_id() -> str:
    """Generate a UUID for database primary keys."""
    return str(uuid.uuid4())
