"""Color counting and per-image analysis."""

from .colors import PixelColor, count_colors, count_pixel_array, count_top3, select_top3, to_rgb
from .processor import ImageRecordProcessor
from .records import ERROR_SUFFIX, AnalysisRecord, Failure, Success

__all__ = [
    "ERROR_SUFFIX",
    "AnalysisRecord",
    "Failure",
    "ImageRecordProcessor",
    "PixelColor",
    "Success",
    "count_colors",
    "count_pixel_array",
    "count_top3",
    "select_top3",
    "to_rgb",
]
