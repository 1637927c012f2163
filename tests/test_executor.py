"""Tests for the single-request executor."""

import asyncio
from datetime import timezone

import aiohttp
import pytest
from crawlpace.errors import TransportError
from crawlpace.models.request import OutcomeKind
from crawlpace.processing.executor import RequestExecutor


class TestRequestExecutorSuccess:
    """Successful requests."""

    @pytest.mark.asyncio
    async def test_buffers_full_body(self, transport, make_context):
        """The body is read completely and returned with status and headers."""
        transport.route(
            "https://example.com/",
            status=203,
            chunks=[b"<html>", b"hello", b"</html>"],
            headers={"Content-Type": "text/html", "ETag": '"abc"'},
        )
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context())

        assert outcome.kind == OutcomeKind.SUCCESS
        result = outcome.result
        assert result.status_code == 203
        assert result.content == b"<html>hello</html>"
        assert result.headers["ETag"] == '"abc"'
        assert result.error is None
        assert result.is_success is True
        assert result.started_at.tzinfo == timezone.utc

    @pytest.mark.asyncio
    async def test_elapsed_excludes_start_delay(self, transport, make_context):
        """The timer starts after the start delay has passed."""
        transport.route("https://example.com/", latency=0.05)
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context(start_delay=0.2))

        result = outcome.result
        assert result.start_delay == 0.2
        assert 0.04 <= result.elapsed < 0.15

    @pytest.mark.asyncio
    async def test_start_delay_postpones_request(self, transport, make_context):
        """Nothing is sent to the transport before the delay passes."""
        executor = RequestExecutor(transport)
        loop = asyncio.get_running_loop()
        before = loop.time()

        await executor.execute(make_context(start_delay=0.1))

        assert transport.started_at["https://example.com/"] - before >= 0.09


class TestRequestExecutorSoftFailures:
    """Transport errors and timeouts are returned as data."""

    @pytest.mark.asyncio
    async def test_timeout(self, transport, make_context):
        """A request slower than its timeout becomes a soft failure."""
        transport.route("https://example.com/", latency=0.5)
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context(request_timeout=0.1))

        assert outcome.kind == OutcomeKind.SOFT_FAILURE
        result = outcome.result
        assert result.is_timeout is True
        assert result.status_code is None
        assert result.content is None
        assert 0.09 <= result.elapsed < 0.4

    @pytest.mark.asyncio
    async def test_transport_error(self, transport, make_context):
        """TransportError is carried on the result unchanged."""
        error = TransportError("connection reset")
        transport.route("https://example.com/", error=error)
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context())

        assert outcome.kind == OutcomeKind.SOFT_FAILURE
        assert outcome.result.error is error
        assert outcome.result.is_success is False

    @pytest.mark.asyncio
    async def test_aiohttp_client_error(self, transport, make_context):
        """aiohttp client errors are soft failures."""
        transport.route("https://example.com/", error=aiohttp.ClientPayloadError("truncated"))
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context())

        assert outcome.kind == OutcomeKind.SOFT_FAILURE
        assert isinstance(outcome.result.error, aiohttp.ClientError)

    @pytest.mark.asyncio
    async def test_connection_error(self, transport, make_context):
        """OS-level connection errors are soft failures."""
        transport.route("https://example.com/", error=ConnectionRefusedError("refused"))
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context())

        assert outcome.kind == OutcomeKind.SOFT_FAILURE


class TestRequestExecutorFatal:
    """Unexpected failures are tagged as fatal."""

    @pytest.mark.asyncio
    async def test_unexpected_error_is_fatal(self, transport, make_context):
        """Non-transport exceptions are returned as FATAL with the original error."""
        error = KeyError("bug")
        transport.route("https://example.com/", error=error)
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context())

        assert outcome.kind == OutcomeKind.FATAL
        assert outcome.error is error
        assert outcome.result is None
        assert outcome.is_deliverable is False


class TestRequestExecutorCancellation:
    """Run-wide cancellation."""

    @pytest.mark.asyncio
    async def test_cancelled_during_delay_skips_request(self, transport, make_context):
        """Cancellation during the start delay prevents the network call."""
        cancellation = asyncio.Event()
        executor = RequestExecutor(transport)
        asyncio.get_running_loop().call_later(0.05, cancellation.set)

        outcome = await executor.execute(make_context(start_delay=5.0, cancellation=cancellation))

        assert outcome.kind == OutcomeKind.CANCELLED
        assert outcome.result is None
        assert transport.requested == []

    @pytest.mark.asyncio
    async def test_cancelled_during_request(self, transport, make_context):
        """Cancellation beats a slow request and the request is dropped."""
        transport.route("https://example.com/", latency=5.0)
        cancellation = asyncio.Event()
        executor = RequestExecutor(transport)
        asyncio.get_running_loop().call_later(0.05, cancellation.set)

        outcome = await asyncio.wait_for(
            executor.execute(make_context(cancellation=cancellation)),
            timeout=1.0,
        )

        assert outcome.kind == OutcomeKind.CANCELLED
        assert transport.active == 0

    @pytest.mark.asyncio
    async def test_already_cancelled(self, transport, make_context):
        """A request whose run is already cancelled is never delivered."""
        cancellation = asyncio.Event()
        cancellation.set()
        executor = RequestExecutor(transport)

        outcome = await executor.execute(make_context(cancellation=cancellation))

        assert outcome.kind == OutcomeKind.CANCELLED
