"""
Custom exception hierarchy for the supplier import backend.

Provides structured error handling with error codes, user-friendly messages,
and proper HTTP status code mapping. Every error renders to the same
``{"success": false, "error": ...}`` envelope the admin UI expects.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Authentication errors (401)
    AUTH_TOKEN_MISSING = "AUTH_TOKEN_MISSING"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ACTION = "INVALID_ACTION"
    INVALID_REQUEST = "INVALID_REQUEST"
    NON_JSON_RESPONSE = "NON_JSON_RESPONSE"

    # Resource errors (404)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONNECTION_NOT_FOUND = "CONNECTION_NOT_FOUND"
    IMPORT_CONFIGURATION_NOT_FOUND = "IMPORT_CONFIGURATION_NOT_FOUND"

    # Concurrency (429)
    CONCURRENCY_LIMIT = "CONCURRENCY_LIMIT"

    # External service errors (502 or upstream status)
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    SUPPLIER_UNREACHABLE = "SUPPLIER_UNREACHABLE"
    SUPPLIER_TIMEOUT = "SUPPLIER_TIMEOUT"
    UPSTREAM_HTTP_ERROR = "UPSTREAM_HTTP_ERROR"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class AppError(Exception):
    """
    Base application error with structured error information.

    All application-specific exceptions should inherit from this class.

    Attributes:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        details: Additional context (not exposed to users in production)
        http_status: HTTP status code for API responses
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: int = 500,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.http_status = http_status
        super().__init__(message)

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "success": False,
            "error": self.message,
        }
        if include_details and self.details:
            result["details"] = self.details
        return result


# ============ Authentication Errors ============


class AuthenticationError(AppError):
    """Base class for authentication errors."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.AUTH_TOKEN_INVALID,
        message: str = "Unauthorized",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code=code, message=message, details=details, http_status=401)


class TokenMissingError(AuthenticationError):
    """Raised when no session token is provided."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.AUTH_TOKEN_MISSING,
            message="Unauthorized",
            details=details,
        )


class TokenInvalidError(AuthenticationError):
    """Raised when the session token is malformed, expired or not for this app."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.AUTH_TOKEN_INVALID,
            message="Unauthorized",
            details=details,
        )


# ============ Validation Errors ============


class ValidationError(AppError):
    """Base class for validation errors."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code=code, message=message, details=details, http_status=400)


class InvalidActionError(ValidationError):
    """Raised when the ``action`` form field names no known handler."""

    def __init__(self, action: Optional[str] = None):
        super().__init__(
            code=ErrorCode.INVALID_ACTION,
            message="Invalid action",
            details={"action": action} if action else None,
        )


class NonJSONResponseError(ValidationError):
    """Raised when a supplier answers with something other than JSON."""

    def __init__(self, content_type: str = ""):
        super().__init__(
            code=ErrorCode.NON_JSON_RESPONSE,
            message="Non-JSON response from API",
            details={"content_type": content_type} if content_type else None,
        )


# ============ Resource Not Found Errors ============


class ResourceNotFoundError(AppError):
    """Base class for resource not found errors."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code=code, message=message, details=details, http_status=404)


class ConnectionNotFoundError(ResourceNotFoundError):
    """Raised when a connection doesn't exist for the requesting shop."""

    def __init__(self, connection_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.CONNECTION_NOT_FOUND,
            message="Connection not found",
            details={**(details or {}), "connection_id": connection_id},
        )


class ImportConfigurationNotFoundError(ResourceNotFoundError):
    """Raised when an import configuration doesn't exist for the requesting shop."""

    def __init__(self, configuration_id: str):
        super().__init__(
            code=ErrorCode.IMPORT_CONFIGURATION_NOT_FOUND,
            message="Import configuration not found",
            details={"configuration_id": configuration_id},
        )


# ============ Concurrency Errors ============


class ConcurrencyLimitError(AppError):
    """Raised when too many calls to one supplier host are already in flight."""

    def __init__(self, host: str, limit: int):
        super().__init__(
            code=ErrorCode.CONCURRENCY_LIMIT,
            message=f"Too many concurrent requests to {host}, try again shortly",
            details={"host": host, "limit": limit},
            http_status=429,
        )


# ============ External Service Errors ============


class ExternalServiceError(AppError):
    """Base class for external service errors."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        message: str = "Failed to reach external API",
        details: Optional[Dict[str, Any]] = None,
        http_status: int = 502,
    ):
        super().__init__(code=code, message=message, details=details, http_status=http_status)


class SupplierUnreachableError(ExternalServiceError):
    """Raised when the transport to a supplier fails (DNS, refused, reset...)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.SUPPLIER_UNREACHABLE,
            message=message,
            details=details,
        )


class SupplierTimeoutError(ExternalServiceError):
    """Raised when a supplier call exceeds the request timeout."""

    def __init__(self, timeout_seconds: float, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.SUPPLIER_TIMEOUT,
            message=f"API request timed out ({timeout_seconds:g} seconds)",
            details={**(details or {}), "timeout_seconds": timeout_seconds},
        )


class UpstreamHTTPError(ExternalServiceError):
    """
    Raised when a supplier answers with a non-2xx status.

    The upstream status is reused as the response status and echoed in the
    body so the UI can tell a 401 from the supplier apart from our own.
    """

    def __init__(self, status: int, message: str, details: Optional[Dict[str, Any]] = None):
        self.upstream_status = status
        super().__init__(
            code=ErrorCode.UPSTREAM_HTTP_ERROR,
            message=message,
            details=details,
            http_status=status,
        )

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        result = super().to_dict(include_details=include_details)
        result["status"] = self.upstream_status
        return result


# ============ Internal Errors ============


class InternalServerError(AppError):
    """Raised in place of an unexpected exception; the cause stays in the logs."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.INTERNAL_ERROR,
            message="Internal server error",
            details=details,
            http_status=500,
        )


class DatabaseError(AppError):
    """Raised when database operations fail."""

    def __init__(self, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.DATABASE_ERROR,
            message="Internal server error",
            details={**(details or {}), "operation": operation},
            http_status=500,
        )


class ConfigurationError(AppError):
    """Raised when there's a configuration issue."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.CONFIGURATION_ERROR,
            message=message,
            details=details,
            http_status=500,
        )
