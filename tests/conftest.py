"""Shared test fixtures and configuration."""

import json
from typing import Callable, Generator

import httpx
import pytest

from http_cli import ClientFactory, HttpxTransport, RequestConfig


# ============== Configuration Fixtures ==============

@pytest.fixture
def base_config() -> RequestConfig:
    """Plain GET configuration."""
    return RequestConfig(url="http://example.test/items")


@pytest.fixture
def post_config() -> RequestConfig:
    """POST with a JSON header block and a raw body."""
    return RequestConfig(
        url="http://example.test/items",
        method="POST",
        header='{"Content-Type": "application/json"}',
        body='{"id":1}',
    )


# ============== File Fixtures ==============

@pytest.fixture
def fixture_dir(tmp_path):
    """Directory with files to upload."""
    (tmp_path / "photo.png").write_bytes(b"\x89PNG fake image bytes")
    (tmp_path / "notes.txt").write_text("some notes\n")
    return tmp_path


@pytest.fixture
def cookie_file(tmp_path) -> str:
    """Cookie file with two cookies."""
    path = tmp_path / "cookies.json"
    path.write_text(json.dumps([
        {"name": "session", "value": "abc123"},
        {"name": "theme", "value": "dark"},
    ]))
    return str(path)


# ============== Transport Fixtures ==============

class RecordingHandler:
    """MockTransport handler that records requests and replays responses.

    ``responses`` entries may be an ``httpx.Response``, an exception
    instance to raise, or a callable taking the request.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(200, text="OK")
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            # Fresh copy per call; httpx rebinds the stream of a returned response.
            return httpx.Response(item.status_code, headers=item.headers, content=item.content)
        return item(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


class BrokenAsyncStream(httpx.AsyncByteStream):
    """Async body that yields one chunk, then fails as if the connection dropped."""

    async def __aiter__(self):
        yield b"x" * 8192
        raise httpx.ReadError("connection reset")


def broken_download() -> httpx.Response:
    """Response announcing 20000 bytes whose body breaks after 8192."""
    return httpx.Response(200, headers={"Content-Length": "20000"}, stream=BrokenAsyncStream())


@pytest.fixture
def make_factory() -> Callable[..., ClientFactory]:
    """Build a ClientFactory whose transports never touch the network."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> ClientFactory:
        return ClientFactory(mount=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def json_handler() -> RecordingHandler:
    """Handler that always answers with a small JSON document."""
    return RecordingHandler(
        httpx.Response(200, json={"id": 1, "name": "widget"}),
    )


@pytest.fixture
def transport(json_handler: RecordingHandler) -> Generator[HttpxTransport, None, None]:
    """Transport backed by ``json_handler``."""
    transport = HttpxTransport(mount=httpx.MockTransport(json_handler))
    yield transport
    transport.close_sync()
