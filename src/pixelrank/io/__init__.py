"""Line-oriented input and output."""

from .lines import LineWriter, open_line_source

__all__ = ["LineWriter", "open_line_source"]
