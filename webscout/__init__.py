"""Polite web fetching and search client for research agents."""

from importlib.metadata import PackageNotFoundError, version

from webscout.client import Blocked, Page, SearchResult, WebClient
from webscout.config import ClientConfig
from webscout.urls import canonicalize_url

try:
    __version__ = version("webscout")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"

__all__ = [
    "Blocked",
    "ClientConfig",
    "Page",
    "SearchResult",
    "WebClient",
    "canonicalize_url",
]
