"""Console rendering and persistence of completed responses."""

from __future__ import annotations

import json
import sys
from typing import TextIO

import httpx

from .models import HTTPCLIError, OutputError, RequestOutcome


def format_body(body: bytes, encoding: str | None = None) -> str:
    """Pretty-print a JSON body; return any other body as decoded text.

    Args:
        body: Raw body bytes.
        encoding: Charset declared by the response.

    Returns:
        JSON re-serialized with a 2-space indent, else the text unchanged.
    """
    try:
        value = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return body.decode(encoding or "utf-8", errors="replace")
    return json.dumps(value, indent=2, ensure_ascii=False)


def write_body(path: str, body: bytes) -> None:
    """Create or truncate ``path`` and write the raw body to it.

    Raises:
        OutputError: If the file cannot be created or written.
    """
    try:
        with open(path, "wb") as fh:
            fh.write(body)
    except OSError as e:
        raise OutputError(f"cannot write response body to {path}: {e}", path, e) from e


class ResponseRenderer:
    """Writes responses to the console and optionally to a file.

    Args:
        out: Stream for metadata and bodies (defaults to stdout).
        err: Stream for error messages (defaults to stderr).
    """

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None):
        self.out = out or sys.stdout
        self.err = err or sys.stderr

    def render_metadata(self, response: httpx.Response) -> None:
        """Write the status line and every response header."""
        reason = response.reason_phrase or ""
        status_line = f"< {response.http_version} {response.status_code} {reason}".rstrip()
        self.out.write(status_line + "\n")
        encoding = response.headers.encoding
        for name, value in response.headers.raw:
            self.out.write(f"< {name.decode(encoding)}: {value.decode(encoding)}\n")
        self.out.write("\n")
        self.out.flush()

    def report_error(self, message: str) -> None:
        """Write a human-readable error line to the error stream."""
        self.err.write(f"error: {message}\n")
        self.err.flush()

    def render(
        self,
        outcome: RequestOutcome,
        verbose: bool = False,
        silent: bool = False,
        store_path: str | None = None,
    ) -> bool:
        """Render one outcome.

        Verbose metadata is written before the body is read, even in silent
        mode. The body is read exactly once. A store failure is reported but
        the console output still happens.

        Args:
            outcome: Outcome to render.
            verbose: Write status line and headers.
            silent: Suppress the body on the console.
            store_path: File to write the raw body to.

        Returns:
            True if everything succeeded, False if a failure was reported.
        """
        if not outcome.ok:
            self.report_error(outcome.describe_failure())
            return False

        response = outcome.response
        if verbose:
            self.render_metadata(response)

        try:
            body = outcome.read_body()
        except HTTPCLIError as e:
            self.report_error(f"{outcome.url}: {e}")
            return False

        succeeded = True
        if store_path is not None:
            try:
                write_body(store_path, body)
            except OutputError as e:
                self.report_error(str(e))
                succeeded = False

        if not silent:
            text = format_body(body, response.encoding)
            self.out.write(text)
            if not text.endswith("\n"):
                self.out.write("\n")
            self.out.flush()

        return succeeded
