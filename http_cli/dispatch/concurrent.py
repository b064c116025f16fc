"""Fan a request template out across several URLs in parallel."""

from __future__ import annotations

import asyncio
from typing import Sequence

from ..composer import RequestComposer
from ..config import RequestConfig
from ..download import StreamDownloader
from ..models import ConfigError, HTTPCLIError, RequestOutcome
from .retry import RetryDispatcher


class ConcurrentDispatcher:
    """Runs one asyncio task per URL and joins them all.

    Each task owns its composed request and outcome. A failure in one task
    never cancels the others, and results come back in URL order.
    """

    def __init__(
        self,
        retry: RetryDispatcher,
        composer: RequestComposer | None = None,
        concurrency: int | None = None,
        downloader: StreamDownloader | None = None,
    ):
        """Initialize dispatcher.

        Args:
            retry: Dispatcher used for every URL (shares the transport).
            composer: Composer for per-URL requests.
            concurrency: Max in-flight requests; None means one task per URL
                         with no cap.
            downloader: Writes streamed bodies when destinations are given.
                        Defaults to one without a progress bar, since
                        parallel bars would overwrite each other.
        """
        if concurrency is not None and concurrency < 1:
            raise ConfigError("concurrency must be >= 1")
        self._retry = retry
        self._composer = composer or RequestComposer()
        self._concurrency = concurrency
        self._downloader = downloader or StreamDownloader(show_progress=False)

    async def send_all(
        self,
        template: RequestConfig,
        urls: Sequence[str],
        destinations: Sequence[str] | None = None,
    ) -> list[RequestOutcome]:
        """Send the template to every URL and wait for all of them.

        Args:
            template: Method, headers, body and options shared by every URL.
            urls: Targets. ``result[i]`` is the outcome for ``urls[i]``.
            destinations: Per-URL files. When given, each response is sent
                with a streamed body that is written to ``destinations[i]``
                inside that URL's task. A body that breaks mid-stream is
                recorded as the outcome's ``download_error`` and not retried.

        Returns:
            One outcome per URL. Composition errors become failed outcomes
            with zero attempts.
        """
        semaphore = asyncio.Semaphore(self._concurrency) if self._concurrency else None
        stream = destinations is not None

        async def exchange(url: str, destination: str | None) -> RequestOutcome:
            try:
                request = self._composer.compose(template.for_url(url))
            except ConfigError as e:
                return RequestOutcome(url=url, error=e, attempts=0)

            self._retry.debug.log_request(request, self._retry.transport.proxy)
            outcome = await self._retry.send_async(request, template.retry_count, stream=stream)
            if destination is not None and outcome.ok:
                try:
                    outcome.bytes_written = await self._downloader.download_async(
                        outcome, destination
                    )
                except HTTPCLIError as e:
                    outcome.download_error = e
            return outcome

        async def send_one(index: int, url: str) -> RequestOutcome:
            destination = destinations[index] if destinations is not None else None
            if semaphore is None:
                return await exchange(url, destination)
            async with semaphore:
                return await exchange(url, destination)

        return list(await asyncio.gather(*(send_one(i, url) for i, url in enumerate(urls))))

    def run(
        self,
        template: RequestConfig,
        urls: Sequence[str],
        destinations: Sequence[str] | None = None,
    ) -> list[RequestOutcome]:
        """Blocking wrapper around ``send_all`` for synchronous callers.

        Runs a private event loop and releases the transport's async client
        before the loop closes.
        """

        async def send_and_release() -> list[RequestOutcome]:
            try:
                return await self.send_all(template, urls, destinations)
            finally:
                await self._retry.transport.release_async()

        return asyncio.run(send_and_release())
