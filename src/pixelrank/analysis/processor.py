"""
Per-location image analysis.

``ImageRecordProcessor.process`` is the error boundary of the system: whatever
goes wrong while resolving, fetching or decoding an image becomes a
``Failure`` record. Only task cancellation escapes.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional
from urllib.parse import urlparse

import structlog

from pixelrank.analysis.records import AnalysisRecord, Failure, Success
from pixelrank.exceptions import InvalidLocationError, RecordError
from pixelrank.fetch.decoder import ImageDecoder
from pixelrank.fetch.http_client import HttpClient
from pixelrank.observability.metrics import METRICS

logger = structlog.get_logger(__name__)

SUPPORTED_SCHEMES = ("http", "https", "file")


class ImageRecordProcessor:
    """Turns one image location into one analysis record."""

    def __init__(self, http_client: HttpClient, decoder: Optional[ImageDecoder] = None) -> None:
        self.http_client = http_client
        self.decoder = decoder or ImageDecoder()

    def resolve(self, location: str) -> str:
        """
        Validate ``location`` and return the URL to fetch.

        Overridden in tests to map fixture names onto local files.
        """
        try:
            parsed = urlparse(location)
        except ValueError as e:
            raise InvalidLocationError(f"Malformed URL: {e}") from e
        if parsed.scheme not in SUPPORTED_SCHEMES:
            raise InvalidLocationError(f"Unsupported or missing URL scheme: {parsed.scheme!r}")
        if parsed.scheme != "file" and not parsed.hostname:
            raise InvalidLocationError("URL has no host")
        return location

    async def analyze(self, location: str) -> Success:
        """Fetch and analyze one image. Raises on any failure."""
        url = self.resolve(location)
        response = await self.http_client.fetch(url)
        loop = asyncio.get_running_loop()
        colors = await loop.run_in_executor(None, self.decoder.top_colors, response.body)
        return Success(location=location, colors=colors)

    async def process(self, location: str) -> AnalysisRecord:
        """Analyze ``location``; never raises except on cancellation."""
        start_time = time.time()
        log = logger.bind(location=location)
        METRICS["in_flight_records"].inc()
        try:
            record: AnalysisRecord = await self.analyze(location)
        except RecordError as e:
            log.warning("No image at location", error_type=type(e).__name__, reason=str(e))
            record = Failure(location=location, reason=str(e))
        except Exception as e:
            log.error("Unexpected error analyzing image", error_type=type(e).__name__, exc_info=True)
            record = Failure(location=location, reason=f"{type(e).__name__}: {e}")
        finally:
            METRICS["in_flight_records"].dec()

        METRICS["records_total"].labels(outcome="success" if record.ok else "failure").inc()
        if record.ok:
            log.info(
                "Image analyzed",
                colors=[color.hex for color in record.colors],
                duration=round(time.time() - start_time, 3),
            )
        return record
