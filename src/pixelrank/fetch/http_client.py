"""
HTTP client used to fetch images and input files, with retries and observability.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Dict, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import aiohttp
import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from pixelrank.config.config import FetchConfig
from pixelrank.exceptions import FetchError
from pixelrank.observability.metrics import METRICS

logger = structlog.get_logger(__name__)

RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


@dataclass
class FetchResponse:
    """Response body with timing and attempt information."""

    status: int
    headers: Dict[str, str]
    body: bytes
    start_ts: float
    end_ts: float
    attempts: int
    url: str
    final_url: str


def _is_retryable(exc: BaseException) -> bool:
    """Timeouts, connection errors and throttling statuses are worth another attempt."""
    if not isinstance(exc, FetchError):
        return False
    return exc.status is None or exc.status in RETRYABLE_STATUSES


def local_path(url: str) -> Path:
    """Filesystem path of a ``file://`` URL."""
    parsed = urlparse(url)
    return Path(url2pathname(parsed.path))


class HttpClient:
    """aiohttp based client for ``http``, ``https`` and ``file`` URLs."""

    def __init__(self, config: Optional[FetchConfig] = None) -> None:
        self.config = config or FetchConfig()
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def is_initialized(self) -> bool:
        return self.session is not None

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_connections,
                ttl_dns_cache=30,
                enable_cleanup_closed=True,
            )
            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
            )
            logger.debug("HTTP client session initialized", timeout=self.config.timeout)

    async def close(self) -> None:
        """Close the HTTP client and release its connections."""
        if self.session:
            await self.session.close()
            self.session = None
            logger.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")
        return self.session

    def _before_retry(self, url: str, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        METRICS["fetch_retries_total"].inc()
        logger.info(
            "Retrying request",
            url=url,
            attempt=retry_state.attempt_number,
            max_retries=self.config.max_retries,
            error=str(exc),
        )

    async def _read_file(self, url: str) -> bytes:
        path = local_path(url)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, path.read_bytes)
        except OSError as e:
            raise FetchError(f"Cannot read {path}: {e.strerror or e}") from e

    async def _request(self, url: str) -> tuple[int, Dict[str, str], bytes, str]:
        session = self._require_session()
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"HTTP {response.status}", status=response.status)
                body = await response.read()
                return response.status, dict(response.headers), body, str(response.url)
        except asyncio.TimeoutError as e:
            raise FetchError(f"Request timed out after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

    async def fetch(self, url: str, *, max_retries: Optional[int] = None) -> FetchResponse:
        """
        Fetch the bytes behind a URL.

        Args:
            url: ``http``, ``https`` or ``file`` URL
            max_retries: Retry attempts for retryable failures (None = use config default)

        Returns:
            FetchResponse for a 2xx response or a readable local file

        Raises:
            FetchError: on network errors, timeouts, non-2xx statuses and unreadable files
        """
        start_time = time.time()

        if urlparse(url).scheme == "file":
            body = await self._read_file(url)
            return FetchResponse(
                status=200,
                headers={},
                body=body,
                start_ts=start_time,
                end_ts=time.time(),
                attempts=1,
                url=url,
                final_url=url,
            )

        if max_retries is None:
            max_retries = self.config.max_retries

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_exponential(multiplier=self.config.backoff_multiplier, max=self.config.backoff_max),
            retry=retry_if_exception(_is_retryable),
            before_sleep=lambda state: self._before_retry(url, state),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    status, headers, body, final_url = await self._request(url)
        finally:
            METRICS["fetch_latency_seconds"].observe(time.time() - start_time)

        return FetchResponse(
            status=status,
            headers=headers,
            body=body,
            start_ts=start_time,
            end_ts=time.time(),
            attempts=attempt.retry_state.attempt_number,
            url=url,
            final_url=final_url,
        )

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        Open a response for incremental reading.

        The status is checked before the response is handed out, so callers
        only ever see 2xx responses.
        """
        session = self._require_session()
        # No total timeout for input files of unknown length.
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=self.config.timeout, sock_read=self.config.timeout)
        try:
            async with session.get(url, timeout=timeout) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(f"HTTP {response.status}", status=response.status)
                yield response
        except asyncio.TimeoutError as e:
            raise FetchError(f"Request timed out after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e
