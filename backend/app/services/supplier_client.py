"""
Outbound calls to supplier APIs.

Every call is a single bounded GET: no retries, no caching, nothing kept
between calls. The HTTP client is opened per call and closed before
returning, so a cancelled or timed-out request never leaves a socket behind.
"""

import asyncio
import errno
import socket
import time
from typing import Any, Iterator, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import (
    ExternalServiceError,
    NonJSONResponseError,
    SupplierTimeoutError,
    SupplierUnreachableError,
    UpstreamHTTPError,
    ValidationError,
)
from app.core.logging import get_logger, log_execution_time, supplier_host_var, supplier_logger
from app.core.security import bearer_header
from app.models.external import FieldSet, ProbeResult, SampleFetchResult
from app.services.host_limiter import HostConcurrencyLimiter, host_limiter
from app.services.payload_inspection import (
    extract_error_message,
    flatten_field_paths,
    is_json_content_type,
    locate_record_array,
    normalize_pagination,
    with_page_param,
)

logger = get_logger(__name__)

UNREACHABLE_MESSAGE = "Failed to reach external API"
DNS_FAILURE_MESSAGE = "Could not resolve API hostname"
CONNECTION_REFUSED_MESSAGE = "API connection refused"

_DNS_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and everything it wraps, including exception group members."""
    seen = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(getattr(current, "exceptions", ()) or ())
        stack.append(current.__cause__)
        stack.append(current.__context__)


def classify_transport_error(exc: BaseException) -> str:
    """
    Turn a transport failure into the message shown to the merchant.

    DNS failures and refused connections get fixed messages; anything else
    surfaces the underlying error text.
    """
    for cause in _exception_chain(exc):
        if isinstance(cause, socket.gaierror):
            return DNS_FAILURE_MESSAGE
        if isinstance(cause, ConnectionRefusedError):
            return CONNECTION_REFUSED_MESSAGE
        if isinstance(cause, OSError) and cause.errno == errno.ECONNREFUSED:
            return CONNECTION_REFUSED_MESSAGE

    text = str(exc)
    lowered = text.lower()
    if any(hint in lowered for hint in _DNS_HINTS):
        return DNS_FAILURE_MESSAGE
    if "connection refused" in lowered:
        return CONNECTION_REFUSED_MESSAGE
    return text or UNREACHABLE_MESSAGE


class SupplierClient:
    """
    Client for probing supplier APIs and sampling their product data.

    Args:
        timeout: Hard bound in seconds for one call, connect to last byte
        user_agent: User-Agent sent to suppliers
        error_max_length: Cap on error messages relayed from suppliers
        limiter: Per-host concurrency limiter
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        error_max_length: Optional[int] = None,
        limiter: Optional[HostConcurrencyLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout or settings.supplier_request_timeout_seconds
        self.user_agent = user_agent or settings.supplier_user_agent
        self.error_max_length = error_max_length or settings.supplier_error_max_length
        self.limiter = limiter or host_limiter
        self._transport = transport

    def build_headers(self, access_token: str) -> dict:
        """Request headers for a supplier call; the token may carry a Bearer prefix."""
        return {
            "Authorization": bearer_header(access_token),
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    @staticmethod
    def _parse_url(api_url: str) -> httpx.URL:
        try:
            url = httpx.URL(api_url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ValidationError(message="Invalid apiUrl", details={"reason": str(e)})
        if url.scheme not in ("http", "https") or not url.host:
            raise ValidationError(message="Invalid apiUrl", details={"scheme": url.scheme})
        return url

    async def _get(self, api_url: str, access_token: str) -> httpx.Response:
        """
        Perform one bounded GET against a supplier.

        Raises:
            ValidationError: The URL is not an absolute http(s) URL
            ConcurrencyLimitError: Too many calls to this host in flight
            SupplierTimeoutError: No complete response within the timeout
            SupplierUnreachableError: DNS, refused connection or other transport failure
        """
        url = self._parse_url(api_url)
        host = url.host
        supplier_host_var.set(host)
        start = time.perf_counter()
        deadline = start + self.timeout

        # Waiting for a slot spends the same budget as the request itself
        async with self.limiter.slot(host, timeout=self.timeout):
            remaining = deadline - time.perf_counter()
            async with httpx.AsyncClient(
                timeout=max(remaining, 0.001),
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                try:
                    if remaining <= 0:
                        raise asyncio.TimeoutError()
                    # wait_for bounds the whole exchange, httpx only bounds each phase
                    response = await asyncio.wait_for(
                        client.get(url, headers=self.build_headers(access_token)),
                        timeout=remaining,
                    )
                except (asyncio.TimeoutError, httpx.TimeoutException):
                    supplier_logger.log_call(
                        "GET", host, None, (time.perf_counter() - start) * 1000, "timeout"
                    )
                    raise SupplierTimeoutError(self.timeout, details={"host": host})
                except httpx.TransportError as e:
                    message = classify_transport_error(e)
                    supplier_logger.log_call(
                        "GET", host, None, (time.perf_counter() - start) * 1000, "unreachable"
                    )
                    raise SupplierUnreachableError(
                        message, details={"host": host, "error_type": type(e).__name__}
                    )

        supplier_logger.log_call(
            "GET",
            host,
            response.status_code,
            (time.perf_counter() - start) * 1000,
            "ok" if response.is_success else "http_error",
        )
        return response

    async def _get_json(self, api_url: str, access_token: str) -> Any:
        """GET and decode a JSON body; anything not declared as JSON is rejected."""
        response = await self._get(api_url, access_token)
        content_type = response.headers.get("content-type", "")
        if not is_json_content_type(content_type):
            raise NonJSONResponseError(content_type)
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                message="Invalid JSON in API response",
                details={"reason": str(e)},
            )

    def _error_body(self, response: httpx.Response) -> Any:
        if is_json_content_type(response.headers.get("content-type")):
            try:
                return response.json()
            except ValueError:
                logger.debug("Supplier error body declared JSON but did not parse")
                return None
        return response.text

    @log_execution_time(operation="validate_connection")
    async def probe(self, api_url: str, access_token: str) -> ProbeResult:
        """
        Check that a supplier API is reachable with the given credential.

        Raises:
            UpstreamHTTPError: The supplier answered with a non-2xx status
        """
        response = await self._get(api_url, access_token)
        if response.is_success:
            return ProbeResult(status=response.status_code)

        message = extract_error_message(self._error_body(response), self.error_max_length)
        raise UpstreamHTTPError(response.status_code, message)

    @log_execution_time(operation="fetch_sample")
    async def fetch_sample(self, api_url: str, access_token: str, page: int = 1) -> SampleFetchResult:
        """
        Fetch one page of supplier records with normalized pagination.

        A payload without any record array is an empty page, not an error.
        """
        page = max(page, 1)
        body = await self._get_json(with_page_param(api_url, page), access_token)
        items = locate_record_array(body) or []
        return SampleFetchResult(
            items=items,
            pagination=normalize_pagination(body, page, len(items)),
        )

    @log_execution_time(operation="fetch_sample_fields")
    async def discover_fields(self, api_url: str, access_token: str) -> FieldSet:
        """Infer importable field paths from the first record on page one."""
        body = await self._get_json(api_url, access_token)
        items = locate_record_array(body)
        if not items:
            return FieldSet(fields=[])

        sample = items[0]
        return FieldSet(fields=flatten_field_paths(sample), sample=sample)


# Global service instance
supplier_client = SupplierClient()


def get_supplier_client() -> SupplierClient:
    """FastAPI dependency returning the shared client."""
    return supplier_client
