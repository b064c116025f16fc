"""Sequential dispatch with immediate retries."""

from __future__ import annotations

from .._debug import DebugOutput
from ..models import ComposedRequest, NetworkError, RequestOutcome
from ..transport import HttpxTransport


class RetryDispatcher:
    """Sends a composed request, retrying transport failures.

    Retries are immediate (no backoff). Every attempt builds a fresh
    ``httpx.Request`` from the immutable ComposedRequest. HTTP error
    statuses are complete exchanges and are never retried. A timed-out
    attempt counts as a failed attempt.
    """

    def __init__(self, transport: HttpxTransport, debug: DebugOutput | None = None):
        """Initialize dispatcher.

        Args:
            transport: Shared transport.
            debug: Verbose output; per-attempt diagnostics go here when enabled.
        """
        self._transport = transport
        self._debug = debug or DebugOutput()

    @property
    def transport(self) -> HttpxTransport:
        """Transport used for every attempt."""
        return self._transport

    @property
    def debug(self) -> DebugOutput:
        """Verbose output shared with callers that log requests."""
        return self._debug

    @staticmethod
    def attempt_budget(max_attempts: int) -> int:
        """Attempts actually made for a budget; 0 still sends once."""
        return max(1, max_attempts)

    def send(
        self,
        request: ComposedRequest,
        max_attempts: int = 1,
        stream: bool = True,
    ) -> RequestOutcome:
        """Send with up to ``max_attempts`` attempts on the calling thread.

        Args:
            request: Request to send.
            max_attempts: Attempt budget; 0 means a single attempt.
            stream: Leave the body unread for incremental consumption.

        Returns:
            Success with the first response, or the last failure with the
            number of attempts made.
        """
        budget = self.attempt_budget(max_attempts)
        last_error: NetworkError | None = None

        for attempt in range(1, budget + 1):
            try:
                response = self._transport.send(request, stream=stream)
                return RequestOutcome(url=request.url, response=response, attempts=attempt)
            except NetworkError as e:
                last_error = e
                if attempt < budget:
                    self._debug.log_attempt_failure(
                        attempt, budget, e, url=request.url, method=request.method
                    )

        return RequestOutcome(url=request.url, error=last_error, attempts=budget)

    async def send_async(
        self,
        request: ComposedRequest,
        max_attempts: int = 1,
        stream: bool = False,
    ) -> RequestOutcome:
        """Async counterpart of ``send``.

        The body is read before returning unless ``stream`` is set; a
        streamed body that breaks later is not retried here.
        """
        budget = self.attempt_budget(max_attempts)
        last_error: NetworkError | None = None

        for attempt in range(1, budget + 1):
            try:
                response = await self._transport.send_async(request, stream=stream)
                return RequestOutcome(url=request.url, response=response, attempts=attempt)
            except NetworkError as e:
                last_error = e
                if attempt < budget:
                    self._debug.log_attempt_failure(
                        attempt, budget, e, url=request.url, method=request.method
                    )

        return RequestOutcome(url=request.url, error=last_error, attempts=budget)
