"""Fetch and decode collaborators."""

from .decoder import ImageDecoder
from .http_client import FetchResponse, HttpClient

__all__ = ["FetchResponse", "HttpClient", "ImageDecoder"]
