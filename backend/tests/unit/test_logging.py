"""
Unit tests for structured logging helpers.
"""

import json
import logging

import pytest

from app.core.logging import (
    DevelopmentFormatter,
    StructuredLogFormatter,
    clear_request_context,
    get_logger,
    log_execution_time,
    set_request_context,
)


def _record(message="Supplier GET ok", **extra_fields):
    record = logging.LogRecord("supplier", logging.INFO, __file__, 10, message, None, None)
    if extra_fields:
        record.extra_fields = extra_fields
    return record


class TestRequestContext:
    """Tests for context propagation into log lines."""

    def teardown_method(self):
        clear_request_context()

    def test_json_lines_carry_context(self):
        set_request_context(request_id="abc123", shop="test-shop.myshopify.com")

        line = json.loads(StructuredLogFormatter().format(_record(status=200)))

        assert line["request_id"] == "abc123"
        assert line["shop"] == "test-shop.myshopify.com"
        assert line["status"] == 200
        assert line["message"] == "Supplier GET ok"

    def test_cleared_context_is_omitted(self):
        set_request_context(request_id="abc123")
        clear_request_context()

        line = json.loads(StructuredLogFormatter().format(_record()))

        assert "request_id" not in line
        assert "shop" not in line

    def test_generated_request_id(self):
        request_id = set_request_context()
        assert len(request_id) == 8

    def test_development_format(self):
        set_request_context(request_id="abc123", supplier_host="supplier.example.com")

        line = DevelopmentFormatter().format(_record(duration_ms=12.5))

        assert "req=abc123" in line
        assert "host=supplier.example.com" in line
        assert "duration_ms=12.5" in line


class TestLogExecutionTime:
    """Tests for the timing decorator."""

    @pytest.mark.asyncio
    async def test_result_is_returned(self):
        @log_execution_time(operation="probe")
        async def probe():
            return 42

        assert await probe() == 42

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        @log_execution_time(operation="probe")
        async def probe():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await probe()

    def test_rejects_sync_functions(self):
        with pytest.raises(TypeError):

            @log_execution_time()
            def not_async():
                return None

    def test_extra_is_nested(self):
        logger = get_logger("test")
        msg, kwargs = logger.process("hello", {"extra": {"status": 200}})
        assert kwargs["extra"] == {"extra_fields": {"status": 200}}
