"""Verbose diagnostics for outgoing requests and retry attempts."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, TextIO

from .models import ComposedRequest


@dataclass
class DebugInfo:
    """Diagnostic event passed to the optional callback.

    Attributes:
        timestamp: When the event happened.
        kind: ``"request"`` or ``"retry"``.
        method: HTTP method.
        url: Request URL.
        request_headers: Headers in send order.
        proxy_used: Proxy URL, if any.
        attempt: Attempt number for retry events.
        max_attempts: Attempt budget for retry events.
        error: Failure message for retry events.
    """

    timestamp: datetime
    kind: str
    method: str
    url: str
    request_headers: list[tuple[str, str]] = field(default_factory=list)
    proxy_used: str | None = None
    attempt: int = 0
    max_attempts: int = 0
    error: str | None = None


class DebugOutput:
    """Handles verbose output formatting and dispatch."""

    def __init__(
        self,
        enabled: bool = False,
        output: TextIO | None = None,
        callback: Callable[[DebugInfo], None] | None = None,
    ):
        """Initialize debug output handler.

        Args:
            enabled: Whether verbose output is enabled.
            output: Output stream (defaults to stderr).
            callback: Optional callback for programmatic capture.
        """
        self.enabled = enabled
        self.output = output or sys.stderr
        self.callback = callback

    def log_request(self, request: ComposedRequest, proxy: str | None = None) -> None:
        """Write the outgoing request line, headers and proxy."""
        if not self.enabled:
            return

        info = DebugInfo(
            timestamp=datetime.now(),
            kind="request",
            method=request.method,
            url=request.url,
            request_headers=list(request.headers),
            proxy_used=proxy,
        )
        if self.callback:
            self.callback(info)

        out = self.output
        out.write(f"> {info.method} {info.url}\n")
        for name, value in info.request_headers:
            # Truncate long values
            if len(value) > 80:
                value = value[:77] + "..."
            out.write(f"> {name}: {value}\n")
        if request.is_multipart:
            out.write(f"> [multipart body, {len(request.parts)} part(s)]\n")
        elif request.content is not None:
            out.write(f"> [body, {len(request.content):,} bytes]\n")
        if info.proxy_used:
            out.write(f"* Proxy: {self._mask_proxy_password(info.proxy_used)}\n")
        out.flush()

    def log_attempt_failure(
        self,
        attempt: int,
        max_attempts: int,
        error: Exception,
        url: str = "",
        method: str = "",
    ) -> None:
        """Write a diagnostic for a failed attempt that will be retried."""
        if not self.enabled:
            return

        info = DebugInfo(
            timestamp=datetime.now(),
            kind="retry",
            method=method,
            url=url,
            attempt=attempt,
            max_attempts=max_attempts,
            error=str(error),
        )
        if self.callback:
            self.callback(info)

        self.output.write(
            f"* [{info.timestamp.strftime('%H:%M:%S')}] attempt "
            f"{attempt}/{max_attempts} failed: {info.error}; retrying\n"
        )
        self.output.flush()

    def _mask_proxy_password(self, proxy_url: str) -> str:
        """Mask password in proxy URL for display.

        Args:
            proxy_url: Proxy URL that may contain credentials.

        Returns:
            URL with password masked.
        """
        if "@" not in proxy_url:
            return proxy_url

        if "://" in proxy_url:
            protocol, rest = proxy_url.split("://", 1)
        else:
            protocol, rest = "", proxy_url

        creds, host = rest.rsplit("@", 1)
        if ":" in creds:
            user, _ = creds.split(":", 1)
            creds = f"{user}:****"
        rest = f"{creds}@{host}"

        if protocol:
            return f"{protocol}://{rest}"
        return rest
