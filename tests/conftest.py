"""
Shared fixtures for the PixelRank test suite.

Images are generated with Pillow at test time so every color count is exact.
"""

from pathlib import Path

import pytest
import pytest_asyncio

from pixelrank.config.config import Config, FetchConfig
from pixelrank.fetch.http_client import HttpClient
from tests.helpers import TEST_IMAGE, FixtureProcessor, make_test_image


@pytest.fixture
def test_image(tmp_path: Path) -> Path:
    return make_test_image(tmp_path / "test.png")


@pytest.fixture
def fetch_config() -> FetchConfig:
    """Fast fetch settings: one retry, no backoff."""
    return FetchConfig(timeout=5.0, max_retries=1, backoff_multiplier=0.0, backoff_max=0.0)


@pytest.fixture
def config(fetch_config: FetchConfig, tmp_path: Path) -> Config:
    config = Config()
    config.fetch = fetch_config
    config.pipeline = config.pipeline.model_copy(update={"output_path": tmp_path / "pixels.txt"})
    return config


@pytest_asyncio.fixture
async def http_client(fetch_config: FetchConfig):
    async with HttpClient(fetch_config) as client:
        yield client


@pytest.fixture
def fixture_processor(http_client: HttpClient, test_image: Path) -> FixtureProcessor:
    return FixtureProcessor(http_client, {TEST_IMAGE: test_image.as_uri()})
