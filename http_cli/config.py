"""Configuration dataclasses and enums for a single request invocation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .models import ConfigError

DEFAULT_TIMEOUT = 10.0
MAX_REDIRECTS = 10
CHUNK_SIZE = 8192
PROGRESS_BAR_WIDTH = 50


class Method(str, Enum):
    """Supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True)
class BasicAuth:
    """Username/password pair for the Authorization header."""

    username: str
    password: str = ""

    @classmethod
    def parse(cls, credentials: str) -> "BasicAuth":
        """Parse ``user:pass``. A missing colon means an empty password."""
        username, _, password = credentials.partition(":")
        return cls(username=username, password=password)


def split_urls(url: str) -> tuple[str, ...]:
    """Split a comma-separated URL list, dropping blank entries."""
    return tuple(part.strip() for part in url.split(",") if part.strip())


@dataclass(frozen=True)
class RequestConfig:
    """Read-only description of one logical request.

    Attributes:
        url: Target URL.
        method: HTTP method name, mapped to ``Method`` during composition.
        header: JSON object text of extra headers.
        body: Raw request body.
        form: JSON object text of form fields. Values naming an existing
              path are sent as file parts.
        basic_auth: Credentials for basic authentication.
        user_agent: User-Agent header value.
        proxy_url: Proxy URL (http, https, socks5, socks5h).
        follow_redirects: Whether to follow redirects (capped at 10 hops).
        timeout: Per-attempt timeout in seconds. None disables the timeout.
        retry_count: Maximum attempts for a request; 0 still sends once.
        store_path: File to write the raw response body to.
        download_path: File to stream the response body to with progress.
        cookie_file: JSON array of ``{"name", "value"}`` cookie objects.
        verbose: Print request/response metadata and retry diagnostics.
        silent: Suppress body output on the console.
        concurrent_urls: URLs to fan the request out to in parallel.
    """

    url: str
    method: str = Method.GET.value
    header: str | None = None
    body: str | None = None
    form: str | None = None
    basic_auth: BasicAuth | None = None
    user_agent: str | None = None
    proxy_url: str | None = None
    follow_redirects: bool = False
    timeout: float | None = None
    retry_count: int = 0
    store_path: str | None = None
    download_path: str | None = None
    cookie_file: str | None = None
    verbose: bool = False
    silent: bool = False
    concurrent_urls: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.retry_count < 0:
            raise ConfigError("retry_count must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")
        for flag in ("follow_redirects", "verbose", "silent"):
            if not isinstance(getattr(self, flag), bool):
                raise ConfigError(f"{flag} must be a boolean")
        if self.concurrent_urls is not None and not self.concurrent_urls:
            raise ConfigError("concurrent_urls must not be empty")

    @property
    def targets(self) -> tuple[str, ...]:
        """URLs this configuration is sent to."""
        if self.concurrent_urls:
            return self.concurrent_urls
        return (self.url,)

    @property
    def is_concurrent(self) -> bool:
        """Whether the request fans out across several URLs."""
        return self.concurrent_urls is not None

    def for_url(self, url: str) -> "RequestConfig":
        """Copy of this configuration targeting a single URL."""
        return replace(self, url=url, concurrent_urls=None)
