"""httpx-based transport and the factory that configures it."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from .config import MAX_REDIRECTS
from .models import (
    ComposedRequest,
    ConfigError,
    NetworkError,
    RequestTimeout,
    TransportError,
)

PROXY_SCHEMES = ("http", "https", "socks5", "socks5h")


def validate_proxy_url(proxy_url: str) -> str:
    """Check that a proxy URL has a supported scheme and a host.

    Returns:
        The proxy URL unchanged.

    Raises:
        ConfigError: If the URL is malformed.
    """
    try:
        url = httpx.URL(proxy_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigError(f"malformed proxy URL {proxy_url!r}: {e}") from e

    if url.scheme not in PROXY_SCHEMES:
        raise ConfigError(
            f"malformed proxy URL {proxy_url!r}: scheme must be one of "
            f"{', '.join(PROXY_SCHEMES)}"
        )
    if not url.host:
        raise ConfigError(f"malformed proxy URL {proxy_url!r}: missing host")
    return proxy_url


def translate_error(error: httpx.HTTPError, timeout: float | None) -> NetworkError:
    """Map an httpx exception onto the tool's error taxonomy."""
    if isinstance(error, httpx.TimeoutException):
        return RequestTimeout(timeout, original_error=error)
    if isinstance(error, httpx.TooManyRedirects):
        return TransportError(
            f"too many redirects (limit is {MAX_REDIRECTS})", original_error=error
        )
    if isinstance(error, (httpx.NetworkError, httpx.ProxyError)):
        return NetworkError(f"{type(error).__name__}: {error}", original_error=error)
    return TransportError(f"{type(error).__name__}: {error}", original_error=error)


class HttpxTransport:
    """Thin wrapper over lazily created httpx clients.

    One instance is shared by every request of an invocation; the sync client
    serves sequential sends and the async client serves concurrent fan-out.
    Both pools are released by ``close_sync``/``close_async``.
    """

    def __init__(
        self,
        timeout: float | None = None,
        follow_redirects: bool = False,
        proxy: str | None = None,
        http2: bool = True,
        mount: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize transport.

        Args:
            timeout: Per-attempt timeout in seconds, None for no timeout.
            follow_redirects: Whether to follow redirects.
            proxy: Validated proxy URL.
            http2: Whether to negotiate HTTP/2.
            mount: Transport to use instead of the network (for tests).
        """
        self._timeout = timeout
        self._follow_redirects = follow_redirects
        self._proxy = proxy
        self._http2 = http2
        self._mount = mount
        self._sync_client: httpx.Client | None = None
        self._async_client: httpx.AsyncClient | None = None
        self._closed = False

    @property
    def timeout(self) -> float | None:
        """Per-attempt timeout in seconds."""
        return self._timeout

    @property
    def proxy(self) -> str | None:
        """Configured proxy URL."""
        return self._proxy

    @property
    def is_closed(self) -> bool:
        """Check if transport has been closed."""
        return self._closed

    def _client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(self._timeout),
            "follow_redirects": self._follow_redirects,
            "max_redirects": MAX_REDIRECTS,
        }
        if self._mount is not None:
            kwargs["transport"] = self._mount
        else:
            kwargs["http2"] = self._http2
            if self._proxy:
                kwargs["proxy"] = self._proxy
        return kwargs

    def _get_sync_client(self) -> httpx.Client:
        """Get or create sync client (lazy initialization)."""
        if self._sync_client is None:
            self._sync_client = httpx.Client(**self._client_kwargs())
        return self._sync_client

    def _get_async_client(self) -> httpx.AsyncClient:
        """Get or create async client (lazy initialization)."""
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(**self._client_kwargs())
        return self._async_client

    def send(self, request: ComposedRequest, stream: bool = True) -> httpx.Response:
        """Send one attempt synchronously.

        The timeout applies to each connect, read, write and pool phase
        separately (``httpx.Timeout``), so a slow trickle of bytes that
        never stalls for a full period does not time out.

        Args:
            request: Request to send; a fresh ``httpx.Request`` is built from it.
            stream: Leave the body unread so it can be consumed incrementally.

        Returns:
            httpx response. With ``stream=True`` the caller reads and closes it.

        Raises:
            NetworkError: On connection, timeout or transport errors.
        """
        if self._closed:
            raise TransportError("Transport is closed")

        client = self._get_sync_client()
        try:
            return client.send(request.build(client), stream=stream)
        except httpx.HTTPError as e:
            raise translate_error(e, self._timeout) from e

    async def send_async(self, request: ComposedRequest, stream: bool = False) -> httpx.Response:
        """Send one attempt asynchronously.

        Unlike the sync path, the whole attempt is bounded by the timeout,
        not just each connect/read/write phase. With ``stream=True`` the
        bound covers the exchange up to the response headers.

        Args:
            request: Request to send.
            stream: Leave the body unread for ``aiter_bytes``.

        Raises:
            NetworkError: On connection, timeout or transport errors.
        """
        if self._closed:
            raise TransportError("Transport is closed")

        client = self._get_async_client()
        try:
            return await asyncio.wait_for(
                client.send(request.build(client), stream=stream), self._timeout
            )
        except asyncio.TimeoutError as e:
            raise RequestTimeout(self._timeout, original_error=e) from e
        except httpx.HTTPError as e:
            raise translate_error(e, self._timeout) from e

    def close_sync(self) -> None:
        """Close sync client."""
        if self._sync_client is not None:
            self._sync_client.close()
            self._sync_client = None
        self._closed = True

    async def release_async(self) -> None:
        """Close the async client only; a later send creates a new one.

        The async client is bound to the event loop it was used in, so it is
        released before that loop ends.
        """
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    async def close_async(self) -> None:
        """Close both clients."""
        await self.release_async()
        self.close_sync()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close_sync()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close_async()


class ClientFactory:
    """Builds the transport shared by every request of an invocation."""

    def __init__(
        self,
        http2: bool = True,
        mount: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        self._http2 = http2
        self._mount = mount

    def build(
        self,
        timeout: float | None = None,
        follow_redirects: bool = False,
        proxy_url: str | None = None,
    ) -> HttpxTransport:
        """Build a configured transport.

        Args:
            timeout: Per-attempt timeout in seconds, None for no timeout.
            follow_redirects: Follow redirects up to 10 hops.
            proxy_url: Proxy URL.

        Raises:
            ConfigError: If the proxy URL is malformed.
        """
        if proxy_url is not None:
            validate_proxy_url(proxy_url)
        return HttpxTransport(
            timeout=timeout,
            follow_redirects=follow_redirects,
            proxy=proxy_url,
            http2=self._http2,
            mount=self._mount,
        )
