"""robots.txt compliance: one fetch per origin, cached for the life of the run."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from webscout.fetcher import FetchResult
from webscout.urls import domain_of, origin_of

logger = logging.getLogger(__name__)

# A robots.txt that simply does not exist is not an error
ABSENT_STATUSES = frozenset({404, 410})


@dataclass
class RobotsRuleSet:
    origin: str
    disallowed_prefixes: list[str] = field(default_factory=list)

    def allows(self, path: str) -> bool:
        if "/" in self.disallowed_prefixes:
            return False
        return not any(rule and path.startswith(rule) for rule in self.disallowed_prefixes)


def parse_robots_rules(content: str) -> list[str]:
    """
    Disallow values listed under "User-agent: *".

    Only wildcard-agent Disallow lines are read; Allow, Crawl-delay, Sitemap and
    agent-specific groups are ignored. Empty Disallow values are skipped.
    """
    disallow: list[str] = []
    applies = False
    for raw in (content or "").splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key == "user-agent":
            applies = value == "*"
        elif applies and key == "disallow" and value:
            disallow.append(value)
    return disallow


class RobotsPolicy:
    """Answers whether a URL may be fetched. A missing or unreachable robots.txt allows everything."""

    def __init__(
        self,
        fetch: Callable[[str], FetchResult],
        on_error: Callable[[str, str | int], None] | None = None,
    ) -> None:
        self._fetch = fetch
        self._on_error = on_error
        self._cache: dict[str, RobotsRuleSet] = {}

    def rules_for(self, origin: str) -> RobotsRuleSet:
        rules = self._cache.get(origin)
        if rules is None:
            result = self._fetch(f"{origin}/robots.txt")
            prefixes = parse_robots_rules(result.body) if result.ok else []
            if not (result.ok or result.blocked or result.status in ABSENT_STATUSES):
                logger.debug("robots.txt for %s failed (status %s); allowing all", origin, result.status)
                if self._on_error is not None:
                    self._on_error(domain_of(origin), result.status if result.status is not None else "FETCH")
            rules = self._cache[origin] = RobotsRuleSet(origin, prefixes)
            logger.info("Cached robots.txt for %s (%d disallow rules)", origin, len(prefixes))
        return rules

    def can_fetch(self, url: str) -> bool:
        origin = origin_of(url)
        if origin is None:
            return False
        path = urlsplit(url).path or "/"
        return self.rules_for(origin).allows(path)
