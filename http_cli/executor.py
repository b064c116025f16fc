"""End-to-end execution of a RequestConfig.

    config -> ClientFactory -> RequestComposer -> RetryDispatcher
           |                                   \\-> ConcurrentDispatcher
           \\-> ResponseRenderer | StreamDownloader
"""

from __future__ import annotations

import os
import sys
from typing import TextIO

from ._debug import DebugOutput
from .composer import RequestComposer
from .config import RequestConfig
from .dispatch import ConcurrentDispatcher, RetryDispatcher
from .download import StreamDownloader
from .models import ConfigError, HTTPCLIError, RequestOutcome
from .render import ResponseRenderer
from .transport import ClientFactory

EXIT_OK = 0
EXIT_FAILURE = 1


def path_for_index(path: str, index: int) -> str:
    """Per-URL output path in concurrent mode: ``out.json`` -> ``out-2.json``."""
    root, ext = os.path.splitext(path)
    return f"{root}-{index}{ext}"


class Executor:
    """Runs one invocation: compose, dispatch, then render or download.

    Args:
        out: Stream for response metadata and bodies.
        err: Stream for errors, verbose diagnostics and download progress.
        factory: Transport factory (tests pass one with a mocked transport).
        concurrency: Cap on in-flight requests in concurrent mode.
    """

    def __init__(
        self,
        out: TextIO | None = None,
        err: TextIO | None = None,
        factory: ClientFactory | None = None,
        concurrency: int | None = None,
    ):
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.factory = factory or ClientFactory()
        self.concurrency = concurrency
        self.composer = RequestComposer()
        self.renderer = ResponseRenderer(self.out, self.err)

    def execute(self, config: RequestConfig) -> int:
        """Run the request(s) described by ``config``.

        Returns:
            Process exit status: 0 on success, 1 if any failure was reported.
        """
        try:
            transport = self.factory.build(
                timeout=config.timeout,
                follow_redirects=config.follow_redirects,
                proxy_url=config.proxy_url,
            )
        except ConfigError as e:
            self.renderer.report_error(str(e))
            return EXIT_FAILURE

        debug = DebugOutput(enabled=config.verbose, output=self.err)
        retry = RetryDispatcher(transport, debug)
        try:
            if config.is_concurrent:
                return self._execute_concurrent(config, retry)
            return self._execute_single(config, retry, debug)
        finally:
            transport.close_sync()

    def _execute_single(
        self,
        config: RequestConfig,
        retry: RetryDispatcher,
        debug: DebugOutput,
    ) -> int:
        try:
            request = self.composer.compose(config)
        except ConfigError as e:
            self.renderer.report_error(str(e))
            return EXIT_FAILURE

        debug.log_request(request, retry.transport.proxy)
        outcome = retry.send(request, config.retry_count)
        return self._finish(outcome, config, config.store_path, config.download_path)

    def _execute_concurrent(self, config: RequestConfig, retry: RetryDispatcher) -> int:
        dispatcher = ConcurrentDispatcher(retry, self.composer, self.concurrency)
        destinations = None
        if config.download_path:
            destinations = [
                path_for_index(config.download_path, index)
                for index in range(1, len(config.targets) + 1)
            ]
        outcomes = dispatcher.run(config, config.targets, destinations)

        status = EXIT_OK
        for index, outcome in enumerate(outcomes, start=1):
            if not config.silent:
                self.out.write(f"==> {outcome.url} <==\n")
            store_path = path_for_index(config.store_path, index) if config.store_path else None
            download_path = destinations[index - 1] if destinations else None
            if self._finish(outcome, config, store_path, download_path) != EXIT_OK:
                status = EXIT_FAILURE
        return status

    def _finish(
        self,
        outcome: RequestOutcome,
        config: RequestConfig,
        store_path: str | None,
        download_path: str | None,
    ) -> int:
        """Render or download one outcome and map the result to an exit status."""
        if download_path is None:
            rendered = self.renderer.render(
                outcome,
                verbose=config.verbose,
                silent=config.silent,
                store_path=store_path,
            )
            return EXIT_OK if rendered else EXIT_FAILURE

        if not outcome.ok:
            self.renderer.report_error(outcome.describe_failure())
            return EXIT_FAILURE
        if config.verbose:
            self.renderer.render_metadata(outcome.response)

        if outcome.streamed:
            if outcome.download_error is not None:
                self.renderer.report_error(str(outcome.download_error))
                return EXIT_FAILURE
            written = outcome.bytes_written
        else:
            downloader = StreamDownloader(output=self.err, show_progress=not config.silent)
            try:
                written = downloader.download(outcome, download_path)
            except HTTPCLIError as e:
                self.renderer.report_error(str(e))
                return EXIT_FAILURE

        if not config.silent:
            self.err.write(f"saved {written:,} bytes to {download_path}\n")
        return EXIT_OK


def execute(
    config: RequestConfig,
    out: TextIO | None = None,
    err: TextIO | None = None,
    factory: ClientFactory | None = None,
    concurrency: int | None = None,
) -> int:
    """Run ``config`` and return the process exit status."""
    return Executor(out=out, err=err, factory=factory, concurrency=concurrency).execute(config)
