"""Command-line HTTP request tool.

Turns a declarative request description into one or more HTTP exchanges
and renders the result:

- Request composition from a read-only RequestConfig (headers, cookies,
  raw or multipart body, basic auth, user agent)
- Sequential dispatch with immediate retries
- Concurrent fan-out across several URLs, joined in URL order
- Rendering with verbose metadata, JSON pretty-printing and silent mode
- Streaming downloads with a progress bar

Basic usage:

    from http_cli import RequestConfig, execute

    config = RequestConfig(
        url="https://example.com/items",
        method="POST",
        header='{"Content-Type": "application/json"}',
        body='{"id": 1}',
        retry_count=3,
    )
    exit_code = execute(config)

    # Fan out
    config = RequestConfig(
        url="https://a.test/x,https://b.test/y",
        concurrent_urls=split_urls("https://a.test/x,https://b.test/y"),
    )
    execute(config)
"""

from .config import (
    DEFAULT_TIMEOUT,
    MAX_REDIRECTS,
    BasicAuth,
    Method,
    RequestConfig,
    split_urls,
)
from .models import (
    ComposedRequest,
    FormPart,
    RequestOutcome,
    HTTPCLIError,
    ConfigError,
    UnsupportedMethod,
    InvalidHeader,
    NetworkError,
    RequestTimeout,
    TransportError,
    OutputError,
)
from .cookies import Cookie, cookie_header, load_cookies
from .transport import ClientFactory, HttpxTransport
from .composer import RequestComposer
from .dispatch import ConcurrentDispatcher, RetryDispatcher
from .render import ResponseRenderer
from .download import ProgressBar, StreamDownloader
from .executor import Executor, execute

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "RequestConfig",
    "BasicAuth",
    "Method",
    "split_urls",
    "DEFAULT_TIMEOUT",
    "MAX_REDIRECTS",
    # Models
    "ComposedRequest",
    "FormPart",
    "RequestOutcome",
    "Cookie",
    "cookie_header",
    "load_cookies",
    # Exceptions
    "HTTPCLIError",
    "ConfigError",
    "UnsupportedMethod",
    "InvalidHeader",
    "NetworkError",
    "RequestTimeout",
    "TransportError",
    "OutputError",
    # Pipeline
    "ClientFactory",
    "HttpxTransport",
    "RequestComposer",
    "RetryDispatcher",
    "ConcurrentDispatcher",
    "ResponseRenderer",
    "StreamDownloader",
    "ProgressBar",
    "Executor",
    "execute",
    # Version
    "__version__",
]
