"""http-cli command line interface.

Maps command-line flags onto a RequestConfig and hands it to the executor.
"""

from __future__ import annotations

import sys

import click

from .config import DEFAULT_TIMEOUT, BasicAuth, RequestConfig, split_urls
from .executor import EXIT_FAILURE, execute
from .models import ConfigError

TOOL_HELP = """\
Send an HTTP request described by command-line options.

\b
EXAMPLES
────────
  http-cli https://example.com/items
  http-cli https://example.com/items -X POST \\
      -H '{"Content-Type": "application/json"}' -d '{"id": 1}'
  http-cli https://example.com/upload -X POST \\
      -F '{"name": "alice", "avatar": "./photo.png"}'
  http-cli https://a.test/x,https://b.test/y --concurrent
  http-cli https://example.com/big.iso --download big.iso

\b
INPUT FORMATS
─────────────
  --header   JSON object of header names to values.
  --form     JSON object of field names to values; a value naming an
             existing file is uploaded as that file.
  --cookie   File with a JSON array of {"name": ..., "value": ...}.
"""


@click.command(help=TOOL_HELP, context_settings={"max_content_width": 88})
@click.argument("url")
@click.option("-X", "--request", "method", default="GET", show_default=True, help="HTTP method.")
@click.option("-H", "--header", default=None, help="Headers as a JSON object.")
@click.option("-d", "--data", "body", default=None, help="Raw request body.")
@click.option(
    "-F",
    "--form",
    default=None,
    help="Multipart form fields as a JSON object. Takes precedence over --data.",
)
@click.option("-u", "--user", default=None, help="Basic auth credentials as user:password.")
@click.option("-A", "--user-agent", default=None, help="User-Agent header value.")
@click.option(
    "-x",
    "--proxy",
    default=None,
    envvar="HTTP_CLI_PROXY",
    help="Proxy URL (http, https, socks5, socks5h).",
)
@click.option("-L", "--location", is_flag=True, default=False, help="Follow redirects (max 10).")
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    envvar="HTTP_CLI_TIMEOUT",
    help="Per-attempt timeout in seconds.",
)
@click.option(
    "--retry",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Maximum attempts on network failure (0 sends once).",
)
@click.option("-o", "--output", "store_path", default=None, help="Write the raw body to a file.")
@click.option(
    "--download",
    "download_path",
    default=None,
    help="Stream the body to a file with a progress bar.",
)
@click.option("-b", "--cookie", "cookie_file", default=None, help="Cookie file (JSON array).")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show request and response metadata.")
@click.option("-s", "--silent", is_flag=True, default=False, help="Do not print the body.")
@click.option(
    "--concurrent",
    is_flag=True,
    default=False,
    help="Treat URL as a comma-separated list and send to all in parallel.",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Cap on in-flight requests with --concurrent (default: no cap).",
)
def main(
    url,
    method,
    header,
    body,
    form,
    user,
    user_agent,
    proxy,
    location,
    timeout,
    retry,
    store_path,
    download_path,
    cookie_file,
    verbose,
    silent,
    concurrent,
    max_concurrency,
):
    try:
        config = RequestConfig(
            url=url,
            method=method,
            header=header,
            body=body,
            form=form,
            basic_auth=BasicAuth.parse(user) if user is not None else None,
            user_agent=user_agent,
            proxy_url=proxy,
            follow_redirects=location,
            timeout=timeout,
            retry_count=retry,
            store_path=store_path,
            download_path=download_path,
            cookie_file=cookie_file,
            verbose=verbose,
            silent=silent,
            concurrent_urls=split_urls(url) if concurrent else None,
        )
    except ConfigError as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    sys.exit(execute(config, concurrency=max_concurrency))


if __name__ == "__main__":
    main()
