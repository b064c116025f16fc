"""Tests for ClientFactory and HttpxTransport."""

import asyncio
import json

import httpx
import pytest

from http_cli import (
    ClientFactory,
    ComposedRequest,
    ConfigError,
    HttpxTransport,
    NetworkError,
    RequestTimeout,
    TransportError,
)
from http_cli.transport import translate_error, validate_proxy_url

from .conftest import RecordingHandler


def get_request(url: str = "http://example.test/items") -> ComposedRequest:
    return ComposedRequest(method="GET", url=url)


class TestClientFactory:
    """Tests for ClientFactory.build."""

    def test_build_defaults(self):
        """Test transport built with no options."""
        transport = ClientFactory().build()

        assert transport.timeout is None
        assert transport.proxy is None
        assert not transport.is_closed
        transport.close_sync()

    def test_no_timeout_means_unbounded_client(self):
        """Test an absent timeout gives an httpx client without a timeout."""
        transport = ClientFactory(mount=httpx.MockTransport(RecordingHandler())).build()
        client = transport._get_sync_client()

        assert client.timeout == httpx.Timeout(None)
        assert client.max_redirects == 10
        transport.close_sync()

    def test_timeout_applied(self):
        """Test the timeout reaches the httpx client."""
        transport = ClientFactory(mount=httpx.MockTransport(RecordingHandler())).build(timeout=2.5)
        client = transport._get_sync_client()

        assert client.timeout == httpx.Timeout(2.5)
        transport.close_sync()

    @pytest.mark.parametrize(
        "proxy",
        ["http://proxy:8080", "https://proxy:8443", "socks5://user:pw@proxy:1080", "socks5h://proxy:1080"],
    )
    def test_valid_proxy(self, proxy):
        """Test supported proxy URLs are accepted."""
        transport = ClientFactory().build(proxy_url=proxy)
        assert transport.proxy == proxy
        transport.close_sync()

    @pytest.mark.parametrize("proxy", ["ftp://proxy:21", "proxy:8080", "http://", "not a proxy"])
    def test_malformed_proxy(self, proxy):
        """Test malformed proxy URLs fail before any client exists."""
        with pytest.raises(ConfigError, match="malformed proxy URL"):
            ClientFactory().build(proxy_url=proxy)

    def test_validate_proxy_returns_url(self):
        """Test validation passes the URL through."""
        assert validate_proxy_url("http://proxy:3128") == "http://proxy:3128"


class TestRedirects:
    """Tests for redirect handling."""

    @staticmethod
    def redirect_loop(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "http://example.test/loop"})

    def test_redirects_not_followed_by_default(self):
        """Test redirects are returned as-is when not following."""
        factory = ClientFactory(mount=httpx.MockTransport(self.redirect_loop))
        with factory.build() as transport:
            response = transport.send(get_request(), stream=False)
        assert response.status_code == 302

    def test_redirect_followed(self):
        """Test a redirect is followed when enabled."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "/new"})
            return httpx.Response(200, text="moved here")

        factory = ClientFactory(mount=httpx.MockTransport(handler))
        with factory.build(follow_redirects=True) as transport:
            response = transport.send(get_request("http://example.test/old"), stream=False)

        assert response.status_code == 200
        assert response.text == "moved here"

    def test_redirect_cap(self):
        """Test a redirect loop fails instead of looping forever."""
        handler = RecordingHandler(self.redirect_loop)
        factory = ClientFactory(mount=httpx.MockTransport(handler))

        with factory.build(follow_redirects=True) as transport:
            with pytest.raises(TransportError, match="too many redirects"):
                transport.send(get_request())

        assert handler.call_count == 11


class TestHttpxTransport:
    """Tests for sending through HttpxTransport."""

    def test_send_streams_body(self, transport):
        """Test streamed responses are readable afterwards."""
        response = transport.send(get_request())
        assert json.loads(response.read()) == {"id": 1, "name": "widget"}

    def test_each_send_builds_new_request(self, transport, json_handler):
        """Test the same composed request can be sent repeatedly."""
        request = ComposedRequest(
            method="POST",
            url="http://example.test/items",
            headers=(("X-A", "1"),),
            content=b"payload",
        )
        transport.send(request, stream=False)
        transport.send(request, stream=False)

        first, second = json_handler.requests
        assert first is not second
        assert first.content == second.content == b"payload"
        assert first.headers["X-A"] == second.headers["X-A"] == "1"

    def test_timeout_translated(self):
        """Test timeouts become RequestTimeout with the configured seconds."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        factory = ClientFactory(mount=httpx.MockTransport(handler))
        with factory.build(timeout=5) as transport:
            with pytest.raises(RequestTimeout) as exc_info:
                transport.send(get_request())

        assert str(exc_info.value) == "request timed out after 5 seconds"
        assert exc_info.value.timeout == 5
        assert isinstance(exc_info.value, NetworkError)

    def test_connect_error_translated(self):
        """Test connection failures become NetworkError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        factory = ClientFactory(mount=httpx.MockTransport(handler))
        with factory.build() as transport:
            with pytest.raises(NetworkError) as exc_info:
                transport.send(get_request())

        assert "connection refused" in str(exc_info.value)
        assert not isinstance(exc_info.value, TransportError)
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    def test_protocol_error_translated(self):
        """Test other httpx errors become TransportError."""
        error = httpx.RemoteProtocolError("bad framing")
        assert isinstance(translate_error(error, None), TransportError)

    def test_closed_transport_raises(self, transport):
        """Test sending on a closed transport fails."""
        transport.close_sync()
        with pytest.raises(TransportError, match="closed"):
            transport.send(get_request())

    def test_context_manager_sync(self):
        """Test sync context manager."""
        with HttpxTransport(mount=httpx.MockTransport(RecordingHandler())) as transport:
            assert not transport.is_closed
        assert transport.is_closed

    @pytest.mark.asyncio
    async def test_send_async(self, json_handler):
        """Test async send returns a response with its body read."""
        async with HttpxTransport(mount=httpx.MockTransport(json_handler)) as transport:
            response = await transport.send_async(get_request())

        assert response.status_code == 200
        assert response.json() == {"id": 1, "name": "widget"}
        assert transport.is_closed

    @pytest.mark.asyncio
    async def test_release_async_keeps_transport_open(self, transport):
        """Test releasing the async client does not close the transport."""
        await transport.send_async(get_request())
        await transport.release_async()

        assert transport._async_client is None
        assert not transport.is_closed

    @pytest.mark.asyncio
    async def test_async_attempt_deadline(self):
        """Test the timeout bounds the whole async attempt."""

        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        async with HttpxTransport(timeout=0.05, mount=httpx.MockTransport(slow)) as transport:
            with pytest.raises(RequestTimeout, match="timed out after 0.05 seconds"):
                await transport.send_async(get_request())

    @pytest.mark.asyncio
    async def test_send_async_stream_leaves_body_unread(self):
        """Test stream=True returns before the body is consumed."""

        async def chunks():
            yield b"part-1 "
            yield b"part-2"

        def handler(request):
            return httpx.Response(200, stream=ChunkStream(chunks))

        async with HttpxTransport(mount=httpx.MockTransport(handler)) as transport:
            response = await transport.send_async(get_request(), stream=True)
            assert not response.is_stream_consumed
            assert await response.aread() == b"part-1 part-2"


class ChunkStream(httpx.AsyncByteStream):
    """Async body built from an async generator factory."""

    def __init__(self, factory):
        self.factory = factory

    async def __aiter__(self):
        async for chunk in self.factory():
            yield chunk
