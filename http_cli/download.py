"""Streaming a response body to disk with a progress indicator."""

from __future__ import annotations

import sys
from typing import Callable, TextIO

import httpx

from .config import CHUNK_SIZE, PROGRESS_BAR_WIDTH
from .models import OutputError, RequestOutcome


def content_length(response: httpx.Response) -> int | None:
    """Declared body size, None when absent or unparsable.

    Content-Length counts encoded bytes while downloads count decoded ones,
    so a content-encoded body has no usable total.
    """
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    if response.headers.get("Content-Encoding", "identity").strip().lower() != "identity":
        return None
    try:
        total = int(value)
    except ValueError:
        return None
    return total if total >= 0 else None


class ProgressBar:
    """Single-line progress indicator redrawn with a carriage return.

    With a known total it shows a 50-character bar and a percentage;
    otherwise only the byte count.
    """

    def __init__(self, output: TextIO | None = None, width: int = PROGRESS_BAR_WIDTH):
        self.output = output or sys.stderr
        self.width = width
        self._drawn = False

    def render_line(self, downloaded: int, total: int | None) -> str:
        """Render the indicator text for a counter value."""
        if not total:
            return f"{downloaded:,} bytes"
        ratio = min(downloaded / total, 1.0)
        filled = int(self.width * ratio)
        bar = "#" * filled + "." * (self.width - filled)
        return f"[{bar}] {ratio * 100:6.2f}% ({downloaded:,}/{total:,} bytes)"

    def update(self, downloaded: int, total: int | None) -> None:
        """Overwrite the current line with the new progress."""
        self.output.write("\r" + self.render_line(downloaded, total))
        self.output.flush()
        self._drawn = True

    def finish(self) -> None:
        """Terminate the progress line."""
        if self._drawn:
            self.output.write("\n")
            self.output.flush()
            self._drawn = False


class StreamDownloader:
    """Writes a response body to a file chunk by chunk.

    Args:
        output: Stream for the progress indicator (defaults to stderr).
        chunk_size: Bytes per read.
        on_progress: Optional callback(downloaded, total) for every update.
        show_progress: Whether to draw the progress indicator.
    """

    def __init__(
        self,
        output: TextIO | None = None,
        chunk_size: int = CHUNK_SIZE,
        on_progress: Callable[[int, int | None], None] | None = None,
        show_progress: bool = True,
    ):
        self.progress = ProgressBar(output)
        self.chunk_size = chunk_size
        self.on_progress = on_progress
        self.show_progress = show_progress

    def download(self, outcome: RequestOutcome, destination: str) -> int:
        """Stream the body of a successful outcome to ``destination``.

        A broken stream leaves the partial file in place.

        Args:
            outcome: Successful outcome whose body has not been read.
            destination: File to create or truncate.

        Returns:
            Number of bytes written.

        Raises:
            HTTPCLIError: The outcome's error, when the outcome is a failure.
            OutputError: If the file cannot be written or the stream breaks.
        """
        outcome.raise_for_error()
        response = outcome.response
        total = content_length(response)
        downloaded = 0

        try:
            fh = open(destination, "wb")
        except OSError as e:
            if not response.is_closed:
                response.close()
            raise OutputError(f"cannot create {destination}: {e}", destination, e) from e

        try:
            with fh:
                for chunk in response.iter_bytes(chunk_size=self.chunk_size):
                    if not chunk:
                        break
                    fh.write(chunk)
                    downloaded += len(chunk)
                    self._report(downloaded, total)
        except OSError as e:
            raise OutputError(f"cannot write to {destination}: {e}", destination, e) from e
        except httpx.HTTPError as e:
            raise OutputError(
                f"download of {outcome.url} interrupted after {downloaded:,} bytes: {e}",
                destination,
                e,
            ) from e
        finally:
            if self.show_progress:
                self.progress.finish()
            if not response.is_closed:
                response.close()

        return downloaded

    async def download_async(self, outcome: RequestOutcome, destination: str) -> int:
        """Async counterpart of ``download`` for responses sent with ``stream=True``.

        Chunks are written as they arrive through ``aiter_bytes``. A broken
        stream leaves the partial file in place and is not retried.

        Raises:
            HTTPCLIError: The outcome's error, when the outcome is a failure.
            OutputError: If the file cannot be written or the stream breaks.
        """
        outcome.raise_for_error()
        response = outcome.response
        total = content_length(response)
        downloaded = 0

        try:
            fh = open(destination, "wb")
        except OSError as e:
            await response.aclose()
            raise OutputError(f"cannot create {destination}: {e}", destination, e) from e

        try:
            with fh:
                async for chunk in response.aiter_bytes(chunk_size=self.chunk_size):
                    if not chunk:
                        break
                    fh.write(chunk)
                    downloaded += len(chunk)
                    self._report(downloaded, total)
        except OSError as e:
            raise OutputError(f"cannot write to {destination}: {e}", destination, e) from e
        except httpx.HTTPError as e:
            raise OutputError(
                f"download of {outcome.url} interrupted after {downloaded:,} bytes: {e}",
                destination,
                e,
            ) from e
        finally:
            if self.show_progress:
                self.progress.finish()
            await response.aclose()

        return downloaded

    def _report(self, downloaded: int, total: int | None) -> None:
        if self.on_progress:
            self.on_progress(downloaded, total)
        if self.show_progress:
            self.progress.update(downloaded, total)
