"""
Tests for HTTP client fetch behavior.

Network traffic is mocked with aioresponses; unmatched URLs fail with a
connection error just like an unreachable host.
"""

import asyncio

import pytest
from aioresponses import aioresponses
from pixelrank.exceptions import FetchError
from pixelrank.fetch.http_client import HttpClient


@pytest.mark.unit
class TestHttpClientFetch:
    @pytest.mark.asyncio
    async def test_fetch_success(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/a.png", status=200, body=b"bytes")
            response = await http_client.fetch("https://example.com/a.png")

        assert response.status == 200
        assert response.body == b"bytes"
        assert response.attempts == 1

    @pytest.mark.asyncio
    async def test_404_is_not_retried(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/missing.png", status=404)
            m.get("https://example.com/missing.png", status=200, body=b"never")
            with pytest.raises(FetchError) as exc_info:
                await http_client.fetch("https://example.com/missing.png")

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_retry_on_503_then_success(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/a.png", status=503)
            m.get("https://example.com/a.png", status=200, body=b"ok")
            response = await http_client.fetch("https://example.com/a.png")

        assert response.body == b"ok"
        assert response.attempts == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/a.png", status=503, repeat=True)
            with pytest.raises(FetchError) as exc_info:
                await http_client.fetch("https://example.com/a.png", max_retries=2)

        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_timeout_becomes_fetch_error(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/slow.png", exception=asyncio.TimeoutError(), repeat=True)
            with pytest.raises(FetchError, match="timed out"):
                await http_client.fetch("https://example.com/slow.png")

    @pytest.mark.asyncio
    async def test_unreachable_host(self, http_client):
        with aioresponses():
            with pytest.raises(FetchError):
                await http_client.fetch("http://noimagehere")

    @pytest.mark.asyncio
    async def test_file_url(self, http_client, tmp_path):
        path = tmp_path / "img.bin"
        path.write_bytes(b"\x89PNG")
        response = await http_client.fetch(path.as_uri())
        assert response.body == b"\x89PNG"
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_missing_file_url(self, http_client, tmp_path):
        with pytest.raises(FetchError):
            await http_client.fetch((tmp_path / "nope.png").as_uri())

    @pytest.mark.asyncio
    async def test_requires_initialization(self, fetch_config):
        client = HttpClient(fetch_config)
        with pytest.raises(RuntimeError):
            await client.fetch("https://example.com/a.png")


@pytest.mark.unit
class TestHttpClientStream:
    @pytest.mark.asyncio
    async def test_stream_yields_response(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/input.txt", status=200, body=b"a\nb\n")
            async with http_client.stream("https://example.com/input.txt") as response:
                assert await response.read() == b"a\nb\n"

    @pytest.mark.asyncio
    async def test_stream_rejects_error_status(self, http_client):
        with aioresponses() as m:
            m.get("https://example.com/input.txt", status=500)
            with pytest.raises(FetchError) as exc_info:
                async with http_client.stream("https://example.com/input.txt"):
                    pass

        assert exc_info.value.status == 500
