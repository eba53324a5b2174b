"""
Exception hierarchy for PixelRank.

Record-level errors are recoverable: the image record processor turns them into
failure records. ``InputSourceError`` is fatal and aborts the whole run.
"""

from __future__ import annotations

from typing import Optional


class PixelRankError(Exception):
    """Base class for all PixelRank errors."""


class InputSourceError(PixelRankError):
    """The list of image locations could not be opened or read."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Cannot read input source {location!r}: {reason}")
        self.location = location
        self.reason = reason


class RecordError(PixelRankError):
    """A single image location could not be analyzed."""


class InvalidLocationError(RecordError):
    """The location is not a URL this system can fetch."""


class FetchError(RecordError):
    """Fetching the bytes behind a location failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class DecodeError(RecordError):
    """The fetched bytes are not a decodable image."""
