"""
Line-oriented input and output.

``open_line_source`` reads a local file or a URL lazily, one line at a time.
``LineWriter`` appends result lines to the output file; it is meant to be
owned by a single task.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, TextIO, Union
from urllib.parse import urlparse

import structlog

from pixelrank.exceptions import FetchError, InputSourceError
from pixelrank.fetch.http_client import HttpClient, local_path

logger = structlog.get_logger(__name__)

ENCODING = "utf-8"


def strip_line_ending(line: str) -> str:
    """Remove one trailing line terminator; all other whitespace is kept."""
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith(("\n", "\r")):
        return line[:-1]
    return line


def is_remote(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


async def _open_text(path: Path) -> TextIO:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, lambda: open(path, "r", encoding=ENCODING, newline=""))
    except OSError as e:
        raise InputSourceError(str(path), e.strerror or str(e)) from e


async def _file_lines(handle: TextIO, path: Path) -> AsyncIterator[str]:
    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, handle.readline)
            if not line:
                break
            yield strip_line_ending(line)
    except (OSError, UnicodeDecodeError) as e:
        raise InputSourceError(str(path), str(e)) from e


@asynccontextmanager
async def open_line_source(location: str, http_client: HttpClient) -> AsyncIterator[AsyncIterator[str]]:
    """
    Open the list of image locations.

    The source is opened before anything is yielded, so a missing file or an
    unreachable host raises ``InputSourceError`` here rather than mid-run.
    """
    if is_remote(location):
        try:
            async with http_client.stream(location) as response:

                async def remote_lines() -> AsyncIterator[str]:
                    try:
                        async for raw in response.content:
                            yield strip_line_ending(raw.decode(ENCODING))
                    except UnicodeDecodeError as e:
                        raise InputSourceError(location, str(e)) from e

                logger.info("Input source opened", location=location, status=response.status)
                yield remote_lines()
        except FetchError as e:
            raise InputSourceError(location, str(e)) from e
        return

    path = local_path(location) if urlparse(location).scheme == "file" else Path(location)
    handle = await _open_text(path)
    logger.info("Input source opened", location=str(path))
    try:
        yield _file_lines(handle, path)
    finally:
        handle.close()


class LineWriter:
    """Buffered UTF-8 text writer, one record per line, closed exactly once."""

    def __init__(self, target: Union[Path, TextIO]) -> None:
        if isinstance(target, Path):
            target.parent.mkdir(parents=True, exist_ok=True)
            self._handle: TextIO = open(target, "w", encoding=ENCODING)
            self.path: Optional[Path] = target
        else:
            self._handle = target
            self.path = None
        self.lines_written = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write_line(self, line: str) -> None:
        if self._closed:
            raise ValueError("write to closed LineWriter")
        self._handle.write(line)
        self._handle.write("\n")
        self.lines_written += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handle.close()
        logger.debug("Output closed", path=str(self.path) if self.path else None, lines=self.lines_written)

    def __enter__(self) -> "LineWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
