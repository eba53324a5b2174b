"""
PixelRank - the three most common pixel colors of many images.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .pipeline import Pipeline, PipelineSummary

__all__ = ["__version__", "Config", "Pipeline", "PipelineSummary"]
