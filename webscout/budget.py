"""Request budget and inter-request throttle for one run."""

import logging
from collections.abc import Callable

from webscout.errors import BudgetExhausted, DomainLimitReached

logger = logging.getLogger(__name__)

# Low-traffic mode never waits less than this between requests
LOW_TRAFFIC_MIN_DELAY = 2.0


class RequestBudget:
    """Hard cap on total requests and on distinct domains visited."""

    def __init__(self, max_requests: int, max_visited_domains: int | None = None) -> None:
        self.max_requests = max_requests
        self.max_visited_domains = max_visited_domains
        self.requests_made = 0
        self.visited_domains: set[str] = set()

    @property
    def exhausted(self) -> bool:
        return self.requests_made >= self.max_requests

    def _rejects_domain(self, domain: str) -> bool:
        return bool(
            domain
            and self.max_visited_domains is not None
            and domain not in self.visited_domains
            and len(self.visited_domains) >= self.max_visited_domains
        )

    def check(self, domain: str) -> None:
        """Raise if a request to domain would be refused. Mutates nothing."""
        if self.exhausted:
            raise BudgetExhausted(f"request budget of {self.max_requests} spent")
        if self._rejects_domain(domain):
            raise DomainLimitReached(domain)

    def reserve(self, domain: str) -> None:
        """Claim one request slot for domain, or raise BudgetExhausted / DomainLimitReached."""
        self.check(domain)
        if domain:
            self.visited_domains.add(domain)
        self.requests_made += 1

    @property
    def remaining(self) -> int:
        return max(0, self.max_requests - self.requests_made)

    def shrink(self, factor: float) -> int:
        """Scale the remaining budget by factor. Returns the new total cap."""
        before = self.max_requests
        self.max_requests = self.requests_made + int(self.remaining * factor)
        logger.debug("Request budget shrunk from %d to %d", before, self.max_requests)
        return self.max_requests


class Throttle:
    """Keeps at least min_delay seconds between the end of one request and the start of the next."""

    def __init__(
        self,
        min_delay: float,
        *,
        clock: Callable[[], float],
        sleep: Callable[[float], None],
    ) -> None:
        self.min_delay = min_delay
        self.low_traffic = False
        self._clock = clock
        self._sleep = sleep
        self._last_finished: float | None = None

    @property
    def delay(self) -> float:
        if self.low_traffic:
            return max(self.min_delay * 2, LOW_TRAFFIC_MIN_DELAY)
        return self.min_delay

    def wait(self) -> float:
        """Sleep until the gap since the last request is at least delay. Returns seconds slept."""
        if self._last_finished is None:
            return 0.0
        remaining = self.delay - (self._clock() - self._last_finished)
        if remaining <= 0:
            return 0.0
        self._sleep(remaining)
        return remaining

    def mark(self) -> None:
        """Record that a physical request just finished."""
        self._last_finished = self._clock()
