"""
Image decoding: raw bytes to row-major ARGB pixel samples.
"""

from __future__ import annotations

import io

import numpy as np
from PIL import Image

from pixelrank.analysis.colors import Top3Result, count_pixel_array, select_top3
from pixelrank.exceptions import DecodeError

# Integer grayscale modes Pillow uses for 16 bit images.
WIDE_GRAY_MODES = frozenset({"I", "I;16", "I;16L", "I;16B", "I;16N"})


class ImageDecoder:
    """Decode image bytes with Pillow and expose the pixels as packed ARGB ints."""

    def decode(self, data: bytes) -> Image.Image:
        if not data:
            raise DecodeError("Empty response body")
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except Image.DecompressionBombError as e:
            raise DecodeError(str(e)) from e
        except (OSError, ValueError, SyntaxError) as e:
            # UnidentifiedImageError and truncated files are OSErrors
            raise DecodeError(f"{type(e).__name__}: {e}") from e
        return image

    def pixels(self, image: Image.Image) -> np.ndarray:
        """
        Return every pixel as ``0xAARRGGBB`` in a flat uint32 array, row by
        row, left to right.

        Images without an alpha channel come back fully opaque. 16 bit
        grayscale keeps its high byte.
        """
        if image.mode in WIDE_GRAY_MODES:
            gray = np.clip(np.asarray(image, dtype=np.int64) >> 8, 0, 0xFF).astype(np.uint32)
            argb = (0xFF << 24) | (gray << 16) | (gray << 8) | gray
        else:
            rgba = np.asarray(image.convert("RGBA"))
            red, green, blue, alpha = (rgba[..., i].astype(np.uint32) for i in range(4))
            argb = (alpha << 24) | (red << 16) | (green << 8) | blue
        return argb.ravel()

    def top_colors(self, data: bytes) -> Top3Result:
        """Decode ``data`` and return its three most frequent colors. Blocking."""
        image = self.decode(data)
        try:
            return select_top3(count_pixel_array(self.pixels(image)))
        finally:
            image.close()
