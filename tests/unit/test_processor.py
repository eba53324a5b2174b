"""Unit tests for the image record processor: every failure becomes a record."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from aioresponses import aioresponses
from pixelrank.analysis.colors import PixelColor
from pixelrank.analysis.processor import ImageRecordProcessor
from pixelrank.analysis.records import Failure, Success
from pixelrank.exceptions import InvalidLocationError

from tests.helpers import NO_IMAGE, NO_IMAGE_LINE, image_bytes


@pytest.mark.unit
class TestResolve:
    @pytest.mark.parametrize("location", ["http://i.imgur.com/a.jpg", "https://example.com/x", "file:///tmp/a.png"])
    def test_accepts_fetchable_urls(self, location):
        assert ImageRecordProcessor(MagicMock()).resolve(location) == location

    @pytest.mark.parametrize("location", ["", "   ", "not a url", "ftp://example.com/a.png", "http://", "https:///path"])
    def test_rejects_everything_else(self, location):
        with pytest.raises(InvalidLocationError):
            ImageRecordProcessor(MagicMock()).resolve(location)


@pytest.mark.unit
class TestProcess:
    @pytest.mark.asyncio
    async def test_success(self, http_client):
        body = image_bytes([(0, 0, 255)] * 3 + [(255, 255, 0)], (2, 2))
        with aioresponses() as m:
            m.get("https://example.com/a.png", status=200, body=body)
            record = await ImageRecordProcessor(http_client).process("https://example.com/a.png")

        assert record == Success("https://example.com/a.png", (PixelColor(0x0000FF), PixelColor(0xFFFF00)))
        assert record.to_line() == "https://example.com/a.png,#0000FF,#FFFF00"

    @pytest.mark.asyncio
    async def test_unreachable_host(self, http_client):
        with aioresponses():
            record = await ImageRecordProcessor(http_client).process(NO_IMAGE)

        assert isinstance(record, Failure)
        assert record.to_line() == NO_IMAGE_LINE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("location", ["", "garbage", "ftp://example.com/a.png"])
    async def test_invalid_locations(self, http_client, location):
        record = await ImageRecordProcessor(http_client).process(location)
        assert record.to_line() == location + " - NO IMAGE AT THIS LOCATION"

    @pytest.mark.asyncio
    async def test_http_error_status(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/gone.png", status=404)
            record = await ImageRecordProcessor(http_client).process("https://example.com/gone.png")

        assert not record.ok
        assert "404" in record.reason

    @pytest.mark.asyncio
    async def test_body_is_not_an_image(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/page", status=200, body="<html></html>")
            record = await ImageRecordProcessor(http_client).process("https://example.com/page")

        assert isinstance(record, Failure)

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failure(self, http_client, tmp_path):
        path = tmp_path / "a.png"
        path.write_bytes(b"irrelevant")
        decoder = MagicMock()
        decoder.top_colors.side_effect = RuntimeError("decoder bug")

        record = await ImageRecordProcessor(http_client, decoder).process(path.as_uri())

        assert isinstance(record, Failure)
        assert "RuntimeError" in record.reason

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        http_client = MagicMock()
        http_client.fetch = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await ImageRecordProcessor(http_client).process("https://example.com/a.png")
