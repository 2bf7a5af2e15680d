"""Authentication dependencies.

The embedded admin UI sends its Shopify session token (a short-lived HS256
JWT signed with the app's API secret) as a bearer token. Verifying it is the
only authentication this backend does; installing the app and issuing the
tokens is Shopify's job.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import ConfigurationError, TokenInvalidError, TokenMissingError
from app.core.logging import security_logger, shop_var

logger = logging.getLogger(__name__)

SESSION_TOKEN_ALGORITHM = "HS256"

# HTTP Bearer token scheme (for Authorization header)
security = HTTPBearer(auto_error=False)


def _host(url: Any) -> Optional[str]:
    if not isinstance(url, str) or not url:
        return None
    return urlparse(url).hostname


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Verify a Shopify session token and return its claims.

    Raises:
        TokenInvalidError: Bad signature, wrong audience, expired, or no shop
        ConfigurationError: The app key or secret is not set
    """
    missing = [
        name
        for name, value in (
            ("SHOPIFY_API_KEY", settings.shopify_api_key),
            ("SHOPIFY_API_SECRET", settings.shopify_api_secret),
        )
        if not value
    ]
    if missing:
        logger.error(f"{', '.join(missing)} not configured; rejecting session token")
        raise ConfigurationError(
            "Session token verification is not configured",
            details={"missing": missing},
        )

    try:
        claims = jwt.decode(
            token,
            settings.shopify_api_secret,
            algorithms=[SESSION_TOKEN_ALGORITHM],
            audience=settings.shopify_api_key,
            options={
                "verify_aud": True,
                "leeway": settings.session_token_leeway_seconds,
            },
        )
    except JWTError as e:
        security_logger.log_auth_failure("invalid_token", {"error": str(e)})
        raise TokenInvalidError(details={"reason": str(e)})

    shop = _host(claims.get("dest"))
    issuer_host = _host(claims.get("iss"))
    if not shop or (issuer_host and issuer_host != shop):
        security_logger.log_auth_failure("shop_mismatch")
        raise TokenInvalidError(details={"reason": "shop_mismatch"})

    claims["shop"] = shop
    return claims


async def get_current_shop(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Resolve the shop domain of the calling admin session.

    Usage:
        @router.post("/endpoint")
        async def endpoint(shop: str = Depends(get_current_shop)):
            ...
    """
    if credentials is None or not credentials.credentials:
        security_logger.log_auth_failure("missing_token")
        raise TokenMissingError()

    claims = decode_session_token(credentials.credentials)
    shop = claims["shop"]
    shop_var.set(shop)
    security_logger.log_auth_success(shop)
    return shop
