"""
Security headers middleware.

The admin UI runs inside Shopify's admin iframe, so framing can't be denied
outright; instead ``frame-ancestors`` allows only Shopify admin origins.
Other headers:
- X-Content-Type-Options: Prevents MIME type sniffing
- Referrer-Policy: Controls referrer information
- Strict-Transport-Security: Enforces HTTPS (production only)
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.config import settings

FRAME_ANCESTORS = "frame-ancestors https://admin.shopify.com https://*.myshopify.com"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Content-Security-Policy"] = FRAME_ANCESTORS
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        # API responses carry supplier data and tokens
        if request.url.path.startswith("/app/api/"):
            response.headers["Cache-Control"] = "no-store"

        return response
