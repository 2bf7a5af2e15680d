"""
Unit tests for the supplier API client.

All supplier traffic goes through ``httpx.MockTransport``.
"""

import asyncio
import socket
import time

import httpx
import pytest

from app.core.exceptions import (
    ConcurrencyLimitError,
    ErrorCode,
    ExternalServiceError,
    NonJSONResponseError,
    SupplierTimeoutError,
    SupplierUnreachableError,
    UpstreamHTTPError,
    ValidationError,
)
from app.services.host_limiter import HostConcurrencyLimiter
from app.services.supplier_client import (
    CONNECTION_REFUSED_MESSAGE,
    DNS_FAILURE_MESSAGE,
    SupplierClient,
    classify_transport_error,
)

SUPPLIER_URL = "https://supplier.example.com/api/products"


def _dns_failure(request):
    raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)


def _refused(request):
    try:
        raise ConnectionRefusedError(111, "Connection refused")
    except ConnectionRefusedError as e:
        raise httpx.ConnectError("All connection attempts failed", request=request) from e


def _read_timeout(request):
    raise httpx.ReadTimeout("timed out", request=request)


class TestRequestHeaders:
    """Tests for outbound request headers."""

    def test_prefixed_and_bare_tokens_send_same_header(self, supplier_client):
        assert supplier_client.build_headers("tok") == supplier_client.build_headers("Bearer tok")

    def test_header_values(self, supplier_client):
        headers = supplier_client.build_headers("bearer tok")
        assert headers == {
            "Authorization": "Bearer tok",
            "Accept": "application/json",
            "User-Agent": "Shopify-Product-Import/1.0",
        }

    @pytest.mark.asyncio
    async def test_headers_reach_supplier(self, supplier, supplier_client):
        supplier.respond_json({"ok": True})

        await supplier_client.probe(SUPPLIER_URL, "Bearer secret-token")

        request = supplier.last_request
        assert request.method == "GET"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["User-Agent"] == "Shopify-Product-Import/1.0"


class TestProbe:
    """Tests for connection validation."""

    @pytest.mark.asyncio
    async def test_success(self, supplier, supplier_client):
        supplier.respond_json([], status_code=200)

        result = await supplier_client.probe(SUPPLIER_URL, "tok")

        assert result.model_dump(by_alias=True) == {"success": True, "status": 200}

    @pytest.mark.asyncio
    async def test_success_does_not_need_json(self, supplier, supplier_client):
        supplier.handler = lambda request: httpx.Response(204)

        result = await supplier_client.probe(SUPPLIER_URL, "tok")

        assert result.status == 204

    @pytest.mark.asyncio
    async def test_upstream_status_and_message(self, supplier, supplier_client):
        supplier.respond_json({"message": "Invalid API key"}, status_code=401)

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await supplier_client.probe(SUPPLIER_URL, "tok")

        error = exc_info.value
        assert error.http_status == 401
        assert error.to_dict() == {"success": False, "error": "Invalid API key", "status": 401}

    @pytest.mark.asyncio
    async def test_text_error_body_truncated(self, supplier, supplier_client):
        supplier.handler = lambda request: httpx.Response(503, text="down " * 300)

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await supplier_client.probe(SUPPLIER_URL, "tok")

        assert exc_info.value.http_status == 503
        assert len(exc_info.value.message) == 500

    @pytest.mark.asyncio
    async def test_empty_error_body(self, supplier, supplier_client):
        supplier.handler = lambda request: httpx.Response(500)

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await supplier_client.probe(SUPPLIER_URL, "tok")

        assert exc_info.value.message == "External API returned an error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("api_url", ["ftp://supplier.example.com", "not a url", "/relative"])
    async def test_rejects_non_http_urls(self, supplier, supplier_client, api_url):
        with pytest.raises(ValidationError) as exc_info:
            await supplier_client.probe(api_url, "tok")

        assert exc_info.value.message == "Invalid apiUrl"
        assert supplier.requests == []


class TestTransportFailures:
    """Tests for timeout and transport error classification."""

    @pytest.mark.asyncio
    async def test_dns_failure(self, supplier, supplier_client):
        supplier.handler = _dns_failure

        with pytest.raises(SupplierUnreachableError) as exc_info:
            await supplier_client.probe(SUPPLIER_URL, "tok")

        assert exc_info.value.message == DNS_FAILURE_MESSAGE
        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_connection_refused(self, supplier, supplier_client):
        supplier.handler = _refused

        with pytest.raises(SupplierUnreachableError) as exc_info:
            await supplier_client.fetch_sample(SUPPLIER_URL, "tok")

        assert exc_info.value.message == CONNECTION_REFUSED_MESSAGE

    @pytest.mark.asyncio
    async def test_httpx_timeout(self, supplier, supplier_client):
        supplier.handler = _read_timeout

        with pytest.raises(SupplierTimeoutError) as exc_info:
            await supplier_client.discover_fields(SUPPLIER_URL, "tok")

        assert exc_info.value.code == ErrorCode.SUPPLIER_TIMEOUT
        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_slow_supplier_is_cut_off(self, supplier):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=[])

        supplier.handler = slow
        client = SupplierClient(
            timeout=0.05,
            limiter=HostConcurrencyLimiter(0, 1),
            transport=httpx.MockTransport(supplier),
        )

        with pytest.raises(SupplierTimeoutError) as exc_info:
            await client.probe(SUPPLIER_URL, "tok")

        assert exc_info.value.message == "API request timed out (0.05 seconds)"

    def test_default_timeout_message(self):
        assert SupplierTimeoutError(10.0).message == "API request timed out (10 seconds)"

    def test_classify_gaierror_in_chain(self):
        try:
            try:
                raise socket.gaierror(-2, "Name or service not known")
            except socket.gaierror as e:
                raise httpx.ConnectError("connect failed") from e
        except httpx.ConnectError as error:
            assert classify_transport_error(error) == DNS_FAILURE_MESSAGE

    def test_classify_other_errors_use_text(self):
        assert classify_transport_error(httpx.RemoteProtocolError("peer closed")) == "peer closed"
        assert classify_transport_error(httpx.ConnectError("")) == "Failed to reach external API"


class TestFetchSample:
    """Tests for sample page fetching."""

    @pytest.mark.asyncio
    async def test_paginated_payload(self, supplier, supplier_client, paginated_payload):
        supplier.respond_json(paginated_payload)

        result = await supplier_client.fetch_sample(SUPPLIER_URL, "tok")

        assert len(result.items) == 2
        assert result.pagination.total == 40
        assert result.pagination.has_next_page is True
        assert "page" not in supplier.last_request.url.params

    @pytest.mark.asyncio
    async def test_page_param_is_set(self, supplier, supplier_client):
        supplier.respond_json([{"id": 5}])

        result = await supplier_client.fetch_sample(f"{SUPPLIER_URL}?limit=5", "tok", page=3)

        params = supplier.last_request.url.params
        assert params["page"] == "3"
        assert params["limit"] == "5"
        assert result.pagination.current_page == 3
        assert result.pagination.total == 1

    @pytest.mark.asyncio
    async def test_payload_without_records_is_empty_page(self, supplier, supplier_client):
        supplier.respond_json({"status": "ok"})

        result = await supplier_client.fetch_sample(SUPPLIER_URL, "tok")

        assert result.items == []
        assert result.pagination.total == 0
        assert result.pagination.per_page == 100

    @pytest.mark.asyncio
    async def test_non_json_response(self, supplier, supplier_client):
        supplier.handler = lambda request: httpx.Response(
            200, text="<html></html>", headers={"Content-Type": "text/html"}
        )

        with pytest.raises(NonJSONResponseError) as exc_info:
            await supplier_client.fetch_sample(SUPPLIER_URL, "tok")

        assert exc_info.value.http_status == 400
        assert exc_info.value.message == "Non-JSON response from API"

    @pytest.mark.asyncio
    async def test_invalid_json(self, supplier, supplier_client):
        supplier.handler = lambda request: httpx.Response(
            200, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await supplier_client.fetch_sample(SUPPLIER_URL, "tok")

        assert exc_info.value.message == "Invalid JSON in API response"

    @pytest.mark.asyncio
    async def test_mixed_record_array_passes_through(self, supplier, supplier_client):
        supplier.respond_json({"data": [{"a": 1}, None, 2]})

        result = await supplier_client.fetch_sample(SUPPLIER_URL, "tok")

        assert result.items == [{"a": 1}, None, 2]
        assert result.pagination.total == 3


class TestDiscoverFields:
    """Tests for field discovery."""

    @pytest.mark.asyncio
    async def test_fields_from_first_record(self, supplier, supplier_client, sample_products):
        supplier.respond_json({"products": sample_products})

        result = await supplier_client.discover_fields(SUPPLIER_URL, "tok")

        assert "dimensions.depth.unit" in result.fields
        assert "tags" in result.fields
        assert result.sample == sample_products[0]

    @pytest.mark.asyncio
    async def test_no_records(self, supplier, supplier_client):
        supplier.respond_json({"data": []})

        result = await supplier_client.discover_fields(SUPPLIER_URL, "tok")

        assert result.fields == []
        assert result.model_dump(by_alias=True, exclude_none=True) == {"success": True, "fields": []}


class TestHostConcurrencyLimiter:
    """Tests for the per-host concurrency cap."""

    @pytest.mark.asyncio
    async def test_disabled_limiter_never_blocks(self):
        limiter = HostConcurrencyLimiter(max_per_host=0, acquire_timeout=0.01)
        async with limiter.slot("a.example.com"):
            async with limiter.slot("a.example.com"):
                assert limiter.in_flight("a.example.com") == 0

    @pytest.mark.asyncio
    async def test_limit_per_host(self):
        limiter = HostConcurrencyLimiter(max_per_host=1, acquire_timeout=0.05)

        async with limiter.slot("A.example.com"):
            assert limiter.in_flight("a.example.com") == 1

            with pytest.raises(ConcurrencyLimitError) as exc_info:
                async with limiter.slot("a.example.com"):
                    pass
            assert exc_info.value.http_status == 429

            # Other hosts are unaffected
            async with limiter.slot("b.example.com"):
                assert limiter.in_flight("b.example.com") == 1

        assert limiter.in_flight("a.example.com") == 0

    @pytest.mark.asyncio
    async def test_slot_released_after_error(self):
        limiter = HostConcurrencyLimiter(max_per_host=1, acquire_timeout=0.05)

        with pytest.raises(RuntimeError):
            async with limiter.slot("a.example.com"):
                raise RuntimeError("boom")

        async with limiter.slot("a.example.com"):
            assert limiter.in_flight("a.example.com") == 1

    @pytest.mark.asyncio
    async def test_waiter_gets_slot_when_released(self):
        limiter = HostConcurrencyLimiter(max_per_host=1, acquire_timeout=1)
        order = []

        async def worker(name, hold):
            async with limiter.slot("a.example.com"):
                order.append(name)
                await asyncio.sleep(hold)

        await asyncio.gather(worker("first", 0.05), worker("second", 0))

        assert order == ["first", "second"]

    @pytest.mark.asyncio
    async def test_semaphores_are_dropped_when_idle(self):
        limiter = HostConcurrencyLimiter(max_per_host=2, acquire_timeout=0.05)

        for i in range(50):
            async with limiter.slot(f"host-{i}.example.com"):
                assert limiter.tracked_hosts == 1

        assert limiter.tracked_hosts == 0

    @pytest.mark.asyncio
    async def test_semaphore_kept_while_someone_waits(self):
        limiter = HostConcurrencyLimiter(max_per_host=1, acquire_timeout=1)
        release = asyncio.Event()

        async def holder():
            async with limiter.slot("a.example.com"):
                await release.wait()

        async def waiter():
            async with limiter.slot("a.example.com"):
                return limiter.in_flight("a.example.com")

        holding = asyncio.create_task(holder())
        await asyncio.sleep(0.01)
        waiting = asyncio.create_task(waiter())
        await asyncio.sleep(0.01)
        release.set()

        await holding
        assert await waiting == 1
        assert limiter.tracked_hosts == 0

    @pytest.mark.asyncio
    async def test_timed_out_waiter_is_forgotten(self):
        limiter = HostConcurrencyLimiter(max_per_host=1, acquire_timeout=0.02)

        async with limiter.slot("a.example.com"):
            with pytest.raises(ConcurrencyLimitError):
                async with limiter.slot("a.example.com"):
                    pass
            assert limiter.tracked_hosts == 1

        assert limiter.tracked_hosts == 0


class TestQueuedCallDeadline:
    """A call queued behind a busy host still finishes within the timeout."""

    @pytest.mark.asyncio
    async def test_slot_wait_counts_against_timeout(self, supplier):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=[])

        supplier.handler = slow
        timeout = 0.3
        client = SupplierClient(
            timeout=timeout,
            limiter=HostConcurrencyLimiter(max_per_host=1, acquire_timeout=timeout),
            transport=httpx.MockTransport(supplier),
        )

        async def timed_probe(delay):
            await asyncio.sleep(delay)
            start = time.perf_counter()
            with pytest.raises((SupplierTimeoutError, ConcurrencyLimitError)):
                await client.probe(SUPPLIER_URL, "tok")
            return time.perf_counter() - start

        first, second = await asyncio.gather(timed_probe(0), timed_probe(0.1))

        assert first < timeout + 0.1
        assert second < timeout + 0.1
