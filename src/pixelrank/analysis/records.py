"""
Analysis records: the per-location outcome written to the output file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from pixelrank.analysis.colors import Top3Result

ERROR_SUFFIX = " - NO IMAGE AT THIS LOCATION"


@dataclass(frozen=True)
class Success:
    """Top colors found for an image, most frequent first."""

    location: str
    colors: Top3Result = field(default_factory=tuple)

    ok = True

    def to_line(self) -> str:
        return self.location + "".join(f",{color}" for color in self.colors)


@dataclass(frozen=True)
class Failure:
    """No image could be analyzed at a location."""

    location: str
    reason: str = ""

    ok = False

    def to_line(self) -> str:
        return self.location + ERROR_SUFFIX


AnalysisRecord = Union[Success, Failure]
