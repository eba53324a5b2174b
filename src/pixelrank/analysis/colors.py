"""
Pixel color counting and top-3 selection.

Raw samples are 32 bit ARGB integers (the layout a decoder yields), channel
tuples or ``PixelColor`` values. The alpha channel never takes part in
counting: two samples that only differ in alpha are the same color.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Sequence, Tuple, Union

import numpy as np

RGB_MASK = 0xFFFFFF

Sample = Union[int, Sequence[int], "PixelColor"]


def to_rgb(argb: int) -> str:
    """
    Render a packed ARGB sample as six uppercase hex digits.

    The alpha byte is dropped, so ``to_rgb(0xCAFEBABE) == "FEBABE"``.
    Negative values (all bits set, as signed 32 bit readers return them)
    are masked the same way: ``to_rgb(-1) == "FFFFFF"``.
    """
    return f"{argb & RGB_MASK:06X}"


def pack_rgb(channels: Sequence[int]) -> int:
    """Pack an ``(r, g, b)`` or ``(r, g, b, a)`` tuple into a 24 bit int."""
    red, green, blue = channels[0], channels[1], channels[2]
    return ((red & 0xFF) << 16) | ((green & 0xFF) << 8) | (blue & 0xFF)


@dataclass(frozen=True, order=True)
class PixelColor:
    """A 24 bit RGB color."""

    value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", self.value & RGB_MASK)

    @classmethod
    def from_sample(cls, sample: Sample) -> "PixelColor":
        if isinstance(sample, PixelColor):
            return sample
        if isinstance(sample, int):
            return cls(sample)
        return cls(pack_rgb(sample))

    @classmethod
    def from_hex(cls, text: str) -> "PixelColor":
        return cls(int(text.lstrip("#"), 16))

    @property
    def hex(self) -> str:
        return to_rgb(self.value)

    @property
    def channels(self) -> Tuple[int, int, int]:
        return (self.value >> 16) & 0xFF, (self.value >> 8) & 0xFF, self.value & 0xFF

    def __str__(self) -> str:
        return f"#{self.hex}"


Top3Result = Tuple[PixelColor, ...]


def count_colors(pixels: Iterable[Sample]) -> Counter[int]:
    """
    Build the color frequency table of an image in a single pass.

    Keys are 24 bit RGB ints. The table keeps first-seen order, which is
    what ``select_top3`` relies on to break ties.
    """
    table: Counter[int] = Counter()
    for sample in pixels:
        table[PixelColor.from_sample(sample).value] += 1
    return table


def count_pixel_array(argb: np.ndarray) -> Dict[int, int]:
    """
    Vectorized ``count_colors`` for a decoded image.

    Keys come back in first-seen order, like ``count_colors``, so ties break
    the same way.
    """
    rgb = np.asarray(argb, dtype=np.uint32).ravel() & RGB_MASK
    keys, first_index, counts = np.unique(rgb, return_index=True, return_counts=True)
    order = np.argsort(first_index, kind="stable")
    return dict(zip(keys[order].tolist(), counts[order].tolist()))


def select_top3(table: Mapping[int, int]) -> Top3Result:
    """
    Return the three most frequent colors of a frequency table.

    One linear scan keeps three running slots instead of sorting the whole
    table. Comparisons are strict, so among equal counts the entry seen first
    keeps its slot. Slots that never received a color are left out.
    """
    keys = [0, 0, 0]
    counts = [0, 0, 0]

    for key, count in table.items():
        if count > counts[0]:
            keys[2], counts[2] = keys[1], counts[1]
            keys[1], counts[1] = keys[0], counts[0]
            keys[0], counts[0] = key, count
        elif count > counts[1]:
            keys[2], counts[2] = keys[1], counts[1]
            keys[1], counts[1] = key, count
        elif count > counts[2]:
            keys[2], counts[2] = key, count

    return tuple(PixelColor(key) for key, count in zip(keys, counts) if count > 0)


def count_top3(pixels: Iterable[Sample]) -> Top3Result:
    """Count every sample and select the top three colors."""
    return select_top3(count_colors(pixels))
