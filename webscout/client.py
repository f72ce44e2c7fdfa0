"""WebClient: the polite page fetcher and search client used by research agents."""

import logging
import random
import time
from collections.abc import Callable

import httpx

from webscout.budget import RequestBudget, Throttle
from webscout.config import ClientConfig
from webscout.errors import BudgetExhausted, DomainLimitReached
from webscout.extractors import extract_text, extract_title
from webscout.fetcher import (
    BUDGET,
    COOLDOWN,
    DOMAIN_LIMIT,
    DOMAIN_LIMIT_WARNING,
    HTTP_ERROR,
    INVALID_URL,
    ROBOTS,
    Fetcher,
    FetchResult,
)
from webscout.health import DomainHealth
from webscout.models import Blocked, Page, SearchResult
from webscout.robots import RobotsPolicy
from webscout.search import SearchPlanner
from webscout.stats import StatsCollector
from webscout.urls import canonicalize_url, domain_of, is_search_engine_domain

logger = logging.getLogger(__name__)

__all__ = ["Blocked", "Page", "SearchResult", "WebClient"]


class WebClient:
    """
    Fetches pages and runs searches for a single research run.

    All state (budget, throttle timestamp, robots cache, domain health, stats)
    lives on the instance; build a fresh client per run. Calls must be
    sequential. Expected failures come back as Blocked results or an empty
    search list, never as exceptions.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config.validate()
        self._clock = clock
        self.stats = StatsCollector(clock)
        self.budget = RequestBudget(config.max_requests, config.domain_cap)
        self.throttle = Throttle(config.min_delay, clock=clock, sleep=sleep)
        self.health = DomainHealth(clock)
        self.fetcher = Fetcher(
            config,
            self.budget,
            self.throttle,
            self.stats,
            sleep=sleep,
            rng=rng or random.Random(),
            transport=transport,
        )
        self.robots = RobotsPolicy(self.fetcher.fetch, on_error=self.stats.record_error)
        self._planner = SearchPlanner(self.fetch_page, timeout=config.search_timeout)

    def close(self) -> None:
        self.fetcher.close()

    def __enter__(self) -> "WebClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def low_traffic_mode(self) -> bool:
        return self.fetcher.low_traffic_mode

    def _blocked(self, url: str, reason: str) -> Blocked:
        self.stats.record_blocked()
        return Blocked(url, reason)

    def _refusal(self, domain: str) -> str | None:
        """Reason the budget would refuse a request to domain, without reserving anything."""
        try:
            self.budget.check(domain)
        except DomainLimitReached:
            if self.stats.warn(DOMAIN_LIMIT_WARNING):
                logger.warning("Visited domain limit reached; refusing %s", domain)
            return DOMAIN_LIMIT
        except BudgetExhausted:
            return BUDGET
        return None

    def _record_failure(self, domain: str, result: FetchResult) -> None:
        self.stats.record_error(domain, result.status if result.status is not None else "FETCH")
        if domain and self.health.record_failure(domain):
            self.stats.warn(f"circuit-breaker:{domain}")

    def fetch_page(
        self,
        url: str,
        *,
        type: str = "page",
        skip_robots_check: bool = False,
        timeout: float | None = None,
    ) -> Page | Blocked:
        """
        Fetch one page.

        type is an opaque label recorded in the trace. URLs without a host are
        refused before any budget is spent. Checks then run in order: budget,
        domain cap, cooldown, robots.txt (unless skipped or a search engine),
        then throttle and the request itself.
        """
        url = canonicalize_url(url)
        domain = domain_of(url)
        self.stats.add_trace(domain, type)

        if not domain:
            logger.debug("Refusing %r: no host to fetch from", url)
            return self._blocked(url, INVALID_URL)

        reason = self._refusal(domain)
        if reason is not None:
            return self._blocked(url, reason)

        if self.health.is_cooling_down(domain):
            self.stats.record_error(domain, "COOLDOWN")
            return self._blocked(url, COOLDOWN)

        if not (skip_robots_check or is_search_engine_domain(domain)) and not self.robots.can_fetch(url):
            logger.debug("robots.txt disallows %s", url)
            return self._blocked(url, ROBOTS)

        result = self.fetcher.fetch(url, timeout=timeout)
        if result.blocked:
            return self._blocked(url, result.reason or BUDGET)
        if not result.ok:
            self._record_failure(domain, result)
            return Blocked(url, result.reason or HTTP_ERROR)

        self.health.record_success(domain)
        return Page(url=url, title=extract_title(result.body), html=result.body, text=extract_text(result.body))

    def search(self, query: str, preferred_engine: str | None = None, limit: int = 5) -> list[SearchResult]:
        """Search with engine fallback; the first engine with results wins."""
        return self._planner.search(query, preferred_engine, limit)

    def get_stats(self) -> dict[str, object]:
        return self.stats.snapshot()

    def get_trace(self) -> list[dict[str, str]]:
        return self.stats.trace()
