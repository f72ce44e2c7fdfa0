"""Multi-engine search: try engines in order, first one with results wins."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote, urlsplit

from webscout.extractors import extract_feed_items, extract_links
from webscout.models import Blocked, Page, SearchResult
from webscout.urls import canonicalize_url

logger = logging.getLogger(__name__)


class ParserKind(str, Enum):
    """How links are pulled out of an engine's result page."""

    HTML = "html"  # every outbound href on the page
    FEED = "feed"  # RSS <item><link>


@dataclass(frozen=True)
class Engine:
    name: str
    url_template: str
    parser: ParserKind


@dataclass(frozen=True)
class SearchCandidate:
    engine: str
    search_url: str
    parser: ParserKind


# Fallback order when the preferred engine is blocked or yields nothing
ENGINES = (
    Engine("brave", "https://search.brave.com/search?q={query}", ParserKind.HTML),
    Engine("yandex", "https://yandex.ru/search/?text={query}", ParserKind.HTML),
    Engine("duckduckgo", "https://duckduckgo.com/html/?q={query}", ParserKind.HTML),
    Engine("bing_rss", "https://www.bing.com/search?format=rss&q={query}", ParserKind.FEED),
)

DEFAULT_ENGINE = "yandex"
ENGINE_ALIASES = {
    "bing": "bing_rss",
    "duck": "duckduckgo",
    "ddg": "duckduckgo",
}

# Result links on these hosts are the engine's own UI, not results
_ENGINE_HOST_MARKERS = ("yandex", "duckduckgo", "brave.com", "bing.com", "ya.ru")
_ENGINE_HOST_PREFIXES = ("r.bing", "th.bing")


def resolve_engine(name: str | None) -> str:
    key = (name or "").strip().lower()
    key = ENGINE_ALIASES.get(key, key)
    return key if any(e.name == key for e in ENGINES) else DEFAULT_ENGINE


def build_candidates(query: str, preferred: str | None) -> list[SearchCandidate]:
    """Catalog with the preferred engine first; the rest keep catalog order."""
    first = resolve_engine(preferred)
    ordered = [e for e in ENGINES if e.name == first] + [e for e in ENGINES if e.name != first]
    encoded = quote(query, safe="")
    return [SearchCandidate(e.name, e.url_template.format(query=encoded), e.parser) for e in ordered]


def is_engine_host(url: str) -> bool:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return True
    if not host:
        return True
    return any(m in host for m in _ENGINE_HOST_MARKERS) or host.startswith(_ENGINE_HOST_PREFIXES)


class SearchPlanner:
    """Runs a query against the engine catalog through fetch_page."""

    def __init__(self, fetch_page: Callable[..., Page | Blocked], *, timeout: float) -> None:
        self._fetch_page = fetch_page
        self._timeout = timeout

    def _raw_results(self, candidate: SearchCandidate, page: Page) -> list[tuple[str, str, str]]:
        """(url, title, snippet) triples in page order; empty strings when the parser has none."""
        if candidate.parser is ParserKind.FEED:
            return [(item.url, item.title, item.description) for item in extract_feed_items(page.html)]
        return [(link.url, link.text, "") for link in extract_links(page.html)]

    def _collect(self, query: str, candidate: SearchCandidate, page: Page, limit: int) -> list[SearchResult]:
        results: list[SearchResult] = []
        seen: set[str] = set()
        for raw_url, title, snippet in self._raw_results(candidate, page):
            if len(results) >= limit:
                break
            if is_engine_host(raw_url):
                continue
            url = canonicalize_url(raw_url)
            if url in seen:
                continue
            seen.add(url)
            results.append(
                SearchResult(
                    url=url,
                    title=title or page.title,
                    snippet=snippet or query,
                    query=query,
                    engine=candidate.engine,
                    source_url=candidate.search_url,
                )
            )
        return results

    def search(self, query: str, preferred_engine: str | None = None, limit: int = 5) -> list[SearchResult]:
        """Best-effort search; returns [] when every engine is blocked or empty."""
        if limit <= 0 or not query.strip():
            return []
        for candidate in build_candidates(query, preferred_engine):
            page = self._fetch_page(
                candidate.search_url,
                type="search",
                skip_robots_check=True,
                timeout=self._timeout,
            )
            if page.blocked:
                logger.debug("Engine %s blocked (%s); trying next", candidate.engine, page.reason)
                continue
            results = self._collect(query, candidate, page, limit)
            if results:
                logger.debug("Engine %s returned %d results for %r", candidate.engine, len(results), query)
                return results
            logger.debug("Engine %s returned no usable results for %r", candidate.engine, query)
        return []
