"""
Structured logging configuration for the supplier import backend.

Provides JSON-formatted logs with context propagation so every line emitted
while serving a request carries the request id and the calling shop.
"""

import asyncio
import logging
import json
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional, Callable

# Context variables for request tracing
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
shop_var: ContextVar[str] = ContextVar("shop", default="")
supplier_host_var: ContextVar[str] = ContextVar("supplier_host", default="")


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())[:8]


def set_request_context(
    request_id: Optional[str] = None,
    shop: Optional[str] = None,
    supplier_host: Optional[str] = None,
) -> str:
    """Set request context variables for logging."""
    req_id = request_id or generate_request_id()
    request_id_var.set(req_id)
    if shop:
        shop_var.set(shop)
    if supplier_host:
        supplier_host_var.set(supplier_host)
    return req_id


def clear_request_context() -> None:
    """Clear request context after request completes."""
    request_id_var.set("")
    shop_var.set("")
    supplier_host_var.set("")


def _context_fields() -> Dict[str, str]:
    fields = {}
    if request_id := request_id_var.get():
        fields["request_id"] = request_id
    if shop := shop_var.get():
        fields["shop"] = shop
    if supplier_host := supplier_host_var.get():
        fields["supplier_host"] = supplier_host
    return fields


class StructuredLogFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format suitable for log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        log_data.update(_context_fields())

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable, colourised formatter for local development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    SHORT_NAMES = {"request_id": "req", "shop": "shop", "supplier_host": "host"}

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        context_parts = [
            f"{self.SHORT_NAMES[key]}={value}" for key, value in _context_fields().items()
        ]
        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        log_line = (
            f"{color}{timestamp} {record.levelname:8}{reset}"
            f"{context_str} "
            f"{record.name}: {record.getMessage()}"
        )

        if hasattr(record, "extra_fields") and record.extra_fields:
            extras = " | ".join(f"{k}={v}" for k, v in record.extra_fields.items())
            log_line += f" | {extras}"

        if record.exc_info:
            log_line += f"\n{self.formatException(record.exc_info)}"

        return log_line


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that routes ``extra`` into a field both formatters render.

    Usage:
        logger = get_logger(__name__)
        logger.info("Supplier responded", extra={"status": 200, "duration_ms": 150})
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        if extra:
            kwargs["extra"] = {"extra_fields": extra}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a configured logger with context support."""
    logger = logging.getLogger(name)
    return ContextLogger(logger, {})


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
) -> None:
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format for production, readable format for development
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))

    if json_format:
        formatter = StructuredLogFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def log_execution_time(
    logger: Optional[ContextLogger] = None,
    operation: str = "operation",
) -> Callable:
    """
    Decorator to log how long an async operation took.

    Usage:
        @log_execution_time(operation="fetch_sample")
        async def fetch_sample(...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        func_logger = logger or get_logger(func.__module__)

        if not asyncio.iscoroutinefunction(func):
            raise TypeError("log_execution_time only wraps coroutine functions")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start) * 1000
                func_logger.warning(
                    f"{operation} failed",
                    extra={
                        "duration_ms": round(duration_ms, 2),
                        "status": "error",
                        "error_type": type(e).__name__,
                    },
                )
                raise
            duration_ms = (time.perf_counter() - start) * 1000
            func_logger.info(
                f"{operation} completed",
                extra={"duration_ms": round(duration_ms, 2), "status": "success"},
            )
            return result

        return wrapper

    return decorator


# ============ Specialized Loggers ============


class SecurityLogger:
    """Logger specialized for security events."""

    def __init__(self, name: str = "security"):
        self.logger = get_logger(name)

    def log_auth_success(self, shop: str) -> None:
        """Log an accepted session token."""
        self.logger.debug("Session token accepted", extra={"shop": shop})

    def log_auth_failure(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log a rejected request."""
        self.logger.warning(
            "Authentication failed",
            extra={"reason": reason, **(details or {})},
        )


class SupplierCallLogger:
    """Logger specialized for outbound supplier calls."""

    def __init__(self, name: str = "supplier"):
        self.logger = get_logger(name)

    def log_call(
        self,
        method: str,
        host: str,
        status: Optional[int],
        duration_ms: float,
        outcome: str,
    ) -> None:
        """Log one outbound call; never includes credentials or bodies."""
        self.logger.info(
            f"Supplier {method} {outcome}",
            extra={
                "host": host,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "outcome": outcome,
            },
        )


# Global logger instances
security_logger = SecurityLogger()
supplier_logger = SupplierCallLogger()
