"""
Pipeline orchestration for PixelRank.

One producer task reads image locations from the input source, a pool of
worker tasks analyzes them concurrently, and a single writer task appends
each result line to the output file as soon as it is ready.
"""

from __future__ import annotations

import asyncio
import signal
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import structlog

from pixelrank.analysis.processor import ImageRecordProcessor
from pixelrank.config.config import Config
from pixelrank.fetch.http_client import HttpClient
from pixelrank.io.lines import LineWriter, open_line_source

# Queue sentinel telling a consumer there is no more work.
_DONE = None


@dataclass
class PipelineSummary:
    """Outcome of a pipeline run."""

    input_location: str
    output_path: str
    written: int
    succeeded: int
    failed: int
    duration: float
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PipelineState:
    """Live counters, updated while the run is in progress."""

    read: int = 0
    succeeded: int = 0
    failed: int = 0
    written: int = 0
    start_time: float = 0.0


class Pipeline:
    """
    Reads image locations, analyzes them with bounded concurrency and writes
    exactly one result line per location.

    Args:
        config: Application configuration
        processor: Image record processor. When omitted one is built around a
            fresh ``HttpClient`` for the duration of each run.
    """

    def __init__(self, config: Optional[Config] = None, processor: Optional[ImageRecordProcessor] = None) -> None:
        self.config = config or Config()
        self.processor = processor
        self.logger = structlog.get_logger(self.__class__.__name__)

        self.state = PipelineState()
        self.is_running = False

        self._shutdown_requested = False
        self._shutdown_event: Optional[asyncio.Event] = None
        self._original_sigint_handler: Any = None
        self._original_sigterm_handler: Any = None

    async def run(
        self,
        input_location: Optional[str] = None,
        output_path: Optional[Path] = None,
        concurrency_limit: Optional[int] = None,
    ) -> PipelineSummary:
        """
        Run the pipeline to completion or until shutdown is requested.

        Raises:
            InputSourceError: if the input source cannot be opened or read.
                No output file is created when it cannot be opened.
        """
        settings = self.config.pipeline
        location = input_location if input_location is not None else settings.input_location
        out_path = Path(output_path if output_path is not None else settings.output_path)
        concurrency = concurrency_limit if concurrency_limit is not None else settings.concurrency_limit
        if concurrency < 1:
            raise ValueError("concurrency_limit must be at least 1")

        self.state = PipelineState(start_time=time.time())
        self._shutdown_requested = False
        self._shutdown_event = asyncio.Event()
        self.is_running = True

        self.logger.info(
            "Pipeline starting",
            input_location=location,
            output_path=str(out_path),
            concurrency_limit=concurrency,
        )

        try:
            async with HttpClient(self.config.fetch) as http_client:
                processor = self.processor or ImageRecordProcessor(http_client)
                async with open_line_source(location, http_client) as lines:
                    with LineWriter(out_path) as writer:
                        await self._process(lines, processor, writer, concurrency)
        except Exception as e:
            self.logger.error("Pipeline failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            self.is_running = False

        summary = PipelineSummary(
            input_location=location,
            output_path=str(out_path),
            written=self.state.written,
            succeeded=self.state.succeeded,
            failed=self.state.failed,
            duration=time.time() - self.state.start_time,
            cancelled=self._shutdown_requested,
        )
        self.logger.info("Pipeline finished", **summary.to_dict())
        return summary

    async def _process(
        self,
        lines: AsyncIterator[str],
        processor: ImageRecordProcessor,
        writer: LineWriter,
        concurrency: int,
    ) -> None:
        work: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=concurrency * self.config.pipeline.queue_factor)
        results: asyncio.Queue[Optional[str]] = asyncio.Queue()

        async def watch_shutdown() -> None:
            assert self._shutdown_event is not None
            await self._shutdown_event.wait()
            raise _ShutdownRequested()

        try:
            async with asyncio.TaskGroup() as tg:
                writer_task = tg.create_task(self._writer(results, writer))
                watcher = tg.create_task(watch_shutdown())

                async with asyncio.TaskGroup() as producers:
                    producers.create_task(self._producer(lines, work, concurrency))
                    for i in range(concurrency):
                        producers.create_task(self._worker(f"worker-{i}", work, results, processor))

                # Every worker is done, so every result is queued behind this sentinel.
                await results.put(_DONE)
                await writer_task
                watcher.cancel()
        except BaseExceptionGroup as eg:
            cancelled, errors = eg.split(_ShutdownRequested)
            if errors is not None:
                raise _unwrap(errors) from None
            if cancelled is not None:
                self.logger.warning("Pipeline cancelled", written=self.state.written, read=self.state.read)

    async def _producer(self, lines: AsyncIterator[str], work: asyncio.Queue[Optional[str]], consumers: int) -> None:
        """Single reading point: feeds locations to the workers."""
        async for line in lines:
            self.state.read += 1
            await work.put(line)
        for _ in range(consumers):
            await work.put(_DONE)
        self.logger.debug("Input exhausted", read=self.state.read)

    async def _worker(
        self,
        worker_id: str,
        work: asyncio.Queue[Optional[str]],
        results: asyncio.Queue[Optional[str]],
        processor: ImageRecordProcessor,
    ) -> None:
        while True:
            location = await work.get()
            if location is _DONE:
                break
            record = await processor.process(location)
            if record.ok:
                self.state.succeeded += 1
            else:
                self.state.failed += 1
            await results.put(record.to_line())
        self.logger.debug("Worker finished", worker_id=worker_id)

    async def _writer(self, results: asyncio.Queue[Optional[str]], writer: LineWriter) -> None:
        """The only task that touches the output writer."""
        while True:
            line = await results.get()
            if line is _DONE:
                break
            writer.write_line(line)
            self.state.written += 1

    def request_shutdown(self) -> None:
        """Stop reading input and abort in-flight records; lines already written are kept."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True
        self.logger.info("Shutdown requested")
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to ``request_shutdown`` on the running loop."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum: int, frame: Any) -> None:
            self.logger.info(f"Received signal {signum}, initiating shutdown")
            loop.call_soon_threadsafe(self.request_shutdown)

        self._original_sigint_handler = signal.signal(signal.SIGINT, signal_handler)
        self._original_sigterm_handler = signal.signal(signal.SIGTERM, signal_handler)

    def restore_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if self._original_sigint_handler is not None:
            signal.signal(signal.SIGINT, self._original_sigint_handler)
            self._original_sigint_handler = None
        if self._original_sigterm_handler is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            self._original_sigterm_handler = None

    def get_stats(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "read": self.state.read,
            "succeeded": self.state.succeeded,
            "failed": self.state.failed,
            "written": self.state.written,
        }


class _ShutdownRequested(Exception):
    """Raised inside the task group to tear it down on shutdown."""


def _unwrap(group: BaseExceptionGroup) -> BaseException:
    """Return the only leaf of a (possibly nested) exception group, or the group itself."""
    leaves = []
    stack = [group]
    while stack:
        current = stack.pop()
        if isinstance(current, BaseExceptionGroup):
            stack.extend(reversed(current.exceptions))
        else:
            leaves.append(current)
    return leaves[0] if len(leaves) == 1 else group
