"""Helpers shared by the test suite."""

from .images import (
    NO_IMAGE,
    NO_IMAGE_LINE,
    TEST_IMAGE,
    TEST_IMAGE_LINE,
    FixtureProcessor,
    image_bytes,
    make_test_image,
)
from .metrics import histogram_observes, metric_delta

__all__ = [
    "NO_IMAGE",
    "NO_IMAGE_LINE",
    "TEST_IMAGE",
    "TEST_IMAGE_LINE",
    "FixtureProcessor",
    "histogram_observes",
    "image_bytes",
    "make_test_image",
    "metric_delta",
]
