"""Tests for RetryDispatcher."""

import io
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from http_cli import (
    ClientFactory,
    ComposedRequest,
    HttpxTransport,
    NetworkError,
    RequestTimeout,
    RetryDispatcher,
)
from http_cli._debug import DebugOutput

from .conftest import RecordingHandler


@pytest.fixture
def request_() -> ComposedRequest:
    return ComposedRequest(
        method="POST",
        url="http://example.test/items",
        headers=(("Content-Type", "application/json"),),
        content=b'{"id":1}',
    )


@pytest.fixture
def mock_transport() -> MagicMock:
    """Mock transport for testing without network."""
    transport = MagicMock(spec=HttpxTransport)
    transport.send.return_value = httpx.Response(200, text="OK")
    transport.send_async = AsyncMock(return_value=httpx.Response(200, text="OK"))
    return transport


class TestRetryDispatcher:
    """Tests for sequential dispatch."""

    def test_success_first_attempt(self, mock_transport, request_):
        """Test a successful first attempt returns immediately."""
        outcome = RetryDispatcher(mock_transport).send(request_, max_attempts=3)

        assert outcome.ok
        assert outcome.attempts == 1
        assert mock_transport.send.call_count == 1

    @pytest.mark.parametrize("max_attempts", [1, 2, 5])
    def test_always_failing_makes_exactly_n_attempts(self, mock_transport, request_, max_attempts):
        """Test the attempt bound with a transport that always fails."""
        mock_transport.send.side_effect = NetworkError("connection refused")

        outcome = RetryDispatcher(mock_transport).send(request_, max_attempts=max_attempts)

        assert not outcome.ok
        assert outcome.attempts == max_attempts
        assert isinstance(outcome.error, NetworkError)
        assert mock_transport.send.call_count == max_attempts

    def test_zero_attempts_sends_once(self, mock_transport, request_):
        """Test a budget of 0 still sends exactly once."""
        mock_transport.send.side_effect = NetworkError("connection refused")

        outcome = RetryDispatcher(mock_transport).send(request_, max_attempts=0)

        assert outcome.attempts == 1
        assert mock_transport.send.call_count == 1

    @pytest.mark.parametrize("k", [1, 2, 4])
    def test_success_after_failures_stops(self, mock_transport, request_, k):
        """Test success on attempt k makes no further attempts."""
        ok = httpx.Response(200, text="OK")
        mock_transport.send.side_effect = [NetworkError("reset")] * (k - 1) + [ok]

        outcome = RetryDispatcher(mock_transport).send(request_, max_attempts=4)

        assert outcome.ok
        assert outcome.response is ok
        assert outcome.attempts == k
        assert mock_transport.send.call_count == k

    def test_timeout_counts_as_attempt(self, mock_transport, request_):
        """Test timeouts are retried like any other failure."""
        mock_transport.send.side_effect = [RequestTimeout(1.0), RequestTimeout(1.0)]

        outcome = RetryDispatcher(mock_transport).send(request_, max_attempts=2)

        assert outcome.attempts == 2
        assert isinstance(outcome.error, RequestTimeout)
        assert "timed out after 1 seconds" in outcome.describe_failure()

    def test_same_request_every_attempt(self, mock_transport, request_):
        """Test every attempt sends the identical composed request."""
        mock_transport.send.side_effect = NetworkError("reset")

        RetryDispatcher(mock_transport).send(request_, max_attempts=3)

        sent = [call.args[0] for call in mock_transport.send.call_args_list]
        assert sent == [request_, request_, request_]

    def test_http_error_status_not_retried(self, mock_transport, request_):
        """Test a 5xx response is a complete exchange, not a failure."""
        mock_transport.send.return_value = httpx.Response(503, text="busy")

        outcome = RetryDispatcher(mock_transport).send(request_, max_attempts=3)

        assert outcome.ok
        assert outcome.status_code == 503
        assert mock_transport.send.call_count == 1

    def test_verbose_diagnostics(self, mock_transport, request_):
        """Test each retried failure is reported with its attempt number."""
        mock_transport.send.side_effect = NetworkError("connection refused")
        stream = io.StringIO()
        debug = DebugOutput(enabled=True, output=stream)

        RetryDispatcher(mock_transport, debug).send(request_, max_attempts=3)

        output = stream.getvalue()
        assert "attempt 1/3 failed: connection refused" in output
        assert "attempt 2/3 failed: connection refused" in output
        assert "attempt 3/3" not in output

    def test_quiet_without_verbose(self, mock_transport, request_):
        """Test no diagnostics are written when verbose is off."""
        mock_transport.send.side_effect = NetworkError("connection refused")
        stream = io.StringIO()

        RetryDispatcher(mock_transport, DebugOutput(output=stream)).send(request_, max_attempts=3)

        assert stream.getvalue() == ""

    def test_fresh_wire_request_per_attempt(self, request_):
        """Test retries resend identical bytes through a real httpx client."""
        handler = RecordingHandler(
            httpx.ConnectError("refused"),
            httpx.ConnectError("refused"),
            httpx.Response(201, text="created"),
        )
        transport = ClientFactory(mount=httpx.MockTransport(handler)).build()

        outcome = RetryDispatcher(transport).send(request_, max_attempts=3)

        assert outcome.status_code == 201
        assert outcome.read_body() == b"created"
        assert handler.call_count == 3
        assert len({id(r) for r in handler.requests}) == 3
        assert {r.content for r in handler.requests} == {b'{"id":1}'}
        transport.close_sync()


class TestRetryDispatcherAsync:
    """Tests for async dispatch."""

    @pytest.mark.asyncio
    async def test_async_retry_bound(self, mock_transport, request_):
        """Test the async path honours the same attempt bound."""
        mock_transport.send_async.side_effect = NetworkError("connection refused")

        outcome = await RetryDispatcher(mock_transport).send_async(request_, max_attempts=3)

        assert outcome.attempts == 3
        assert mock_transport.send_async.await_count == 3

    @pytest.mark.asyncio
    async def test_async_success_after_failure(self, mock_transport, request_):
        """Test async success on the second attempt."""
        ok = httpx.Response(200, text="OK")
        mock_transport.send_async.side_effect = [NetworkError("reset"), ok]

        outcome = await RetryDispatcher(mock_transport).send_async(request_, max_attempts=5)

        assert outcome.response is ok
        assert outcome.attempts == 2
