"""Composed request, outcome dataclasses and the exception hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx


class HTTPCLIError(Exception):
    """Base exception for request tool errors."""
    pass


class ConfigError(HTTPCLIError, ValueError):
    """Invalid request configuration. Raised before any network I/O."""
    pass


class UnsupportedMethod(ConfigError):
    """HTTP method outside GET/POST/PUT/PATCH/DELETE."""

    def __init__(self, method: str):
        super().__init__(f"unsupported HTTP method: {method!r}")
        self.method = method


class InvalidHeader(ConfigError):
    """Header name or value that cannot be sent."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"invalid header {name!r}: {reason}")
        self.name = name


class NetworkError(HTTPCLIError):
    """Error while exchanging a request (connect, read, reset, DNS)."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class RequestTimeout(NetworkError):
    """A single attempt exceeded the configured timeout."""

    def __init__(self, timeout: float | None, original_error: Exception | None = None):
        if timeout is None:
            message = "request timed out"
        else:
            message = f"request timed out after {timeout:g} seconds"
        super().__init__(message, original_error=original_error)
        self.timeout = timeout


class TransportError(NetworkError):
    """Transport-level failure (redirect cap, protocol error, bad scheme)."""
    pass


class OutputError(HTTPCLIError):
    """File create/write failure, or a body stream that broke mid-download."""

    def __init__(self, message: str, path: str, original_error: Exception | None = None):
        super().__init__(message)
        self.path = path
        self.original_error = original_error


@dataclass(frozen=True)
class FormPart:
    """One multipart field.

    Attributes:
        name: Field name.
        value: Field content. Text for plain parts, file bytes for file parts.
        filename: Basename of the uploaded file, None for plain text parts.
    """

    name: str
    value: bytes
    filename: str | None = None

    @property
    def is_file(self) -> bool:
        """Whether this part uploads a file."""
        return self.filename is not None


@dataclass(frozen=True)
class ComposedRequest:
    """Transport-ready request.

    Immutable, so the same value can be turned into a fresh ``httpx.Request``
    for every attempt.

    Attributes:
        method: HTTP method.
        url: Request URL.
        headers: Header name/value pairs in send order.
        content: Raw body, None when there is no raw body.
        parts: Multipart fields, empty when the body is not multipart.
    """

    method: str
    url: str
    headers: tuple[tuple[str, str], ...] = ()
    content: bytes | None = None
    parts: tuple[FormPart, ...] = ()

    @property
    def is_multipart(self) -> bool:
        """Whether the body is sent as multipart/form-data."""
        return bool(self.parts)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def build(self, client: httpx.Client | httpx.AsyncClient) -> httpx.Request:
        """Build a fresh ``httpx.Request`` for one attempt."""
        kwargs: dict[str, Any] = {"headers": list(self.headers)}
        if self.parts:
            # Plain parts carry no filename; files keep their basename.
            kwargs["files"] = [
                (part.name, (part.filename, part.value)) for part in self.parts
            ]
        elif self.content is not None:
            kwargs["content"] = self.content
        return client.build_request(self.method, self.url, **kwargs)


@dataclass
class RequestOutcome:
    """Terminal result of sending one composed request.

    Holds either a response or an error, with the number of attempts made.
    The response body is read at most once; see ``read_body``.

    Attributes:
        url: Target URL.
        response: Response on success.
        error: Failure on error.
        attempts: Attempts made before this outcome.
        bytes_written: Body bytes streamed to disk while the request was
            in flight, None when the body was not downloaded.
        download_error: Failure of that in-flight download.
    """

    url: str
    response: httpx.Response | None = None
    error: HTTPCLIError | None = None
    attempts: int = 1
    bytes_written: int | None = None
    download_error: HTTPCLIError | None = None
    _body: bytes | None = field(default=None, init=False, repr=False)

    @property
    def ok(self) -> bool:
        """Whether a response was received."""
        return self.response is not None and self.error is None

    @property
    def status_code(self) -> int | None:
        """Response status code, None on failure."""
        return self.response.status_code if self.response is not None else None

    @property
    def streamed(self) -> bool:
        """Whether the body was already streamed to disk (or tried to be)."""
        return self.bytes_written is not None or self.download_error is not None

    def read_body(self) -> bytes:
        """Read the response body once and cache it.

        Raises:
            HTTPCLIError: The stored error, when the outcome is a failure.
            NetworkError: If the body stream breaks while reading.
        """
        self.raise_for_error()
        if self._body is None:
            try:
                self._body = self.response.read()
            except httpx.HTTPError as e:
                raise NetworkError(f"failed to read response body: {e}", original_error=e) from e
            finally:
                if not self.response.is_closed:
                    self.response.close()
        return self._body

    def raise_for_error(self) -> None:
        """Re-raise the stored error if this outcome is a failure."""
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise HTTPCLIError(f"no response for {self.url}")

    def describe_failure(self) -> str:
        """Human-readable failure line including the attempt count."""
        noun = "attempt" if self.attempts == 1 else "attempts"
        return f"{self.url}: {self.error} ({self.attempts} {noun})"
