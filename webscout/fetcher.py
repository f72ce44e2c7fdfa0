"""HTTP GET with budget reservation, throttling, retries with jittered backoff, and rate-limit tracking."""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from webscout.budget import RequestBudget, Throttle
from webscout.config import ClientConfig
from webscout.errors import BudgetExhausted, DomainLimitReached
from webscout.stats import StatsCollector
from webscout.urls import domain_of

logger = logging.getLogger(__name__)

# Statuses that mean "slow down"; retried like network failures
RATE_LIMIT_STATUSES = frozenset({429, 503, 520, 522})
MAX_ATTEMPTS = 3
BACKOFF_BASE = 0.4  # seconds before the first retry, doubled per attempt
BACKOFF_CAP = 8.0
# Consecutive rate-limited responses that switch the run to low-traffic mode
LOW_TRAFFIC_AFTER = 2
LOW_TRAFFIC_BUDGET_FACTOR = 0.8

LOW_TRAFFIC_WARNING = "rate-limited, switched to low-traffic mode"
DOMAIN_LIMIT_WARNING = "visited domain limit reached"

# Blocked/failure reasons
BUDGET = "budget"
DOMAIN_LIMIT = "domain_limit"
COOLDOWN = "cooldown"
ROBOTS = "robots"
HTTP_ERROR = "http_error"
NETWORK_ERROR = "network_error"
INVALID_URL = "invalid_url"


class Outcome(str, Enum):
    """Result of one attempt; drives the retry loop."""

    SUCCESS = "success"
    RETRY = "retry"
    FATAL = "fatal"


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the given zero-based attempt, before jitter."""
    return min(BACKOFF_CAP, BACKOFF_BASE * (2 ** attempt))


@dataclass
class FetchResult:
    """Outcome of one logical fetch. blocked=True means no request was sent."""

    url: str
    ok: bool = False
    status: int | None = None
    body: str = ""
    blocked: bool = False
    reason: str | None = None
    attempts: int = 0


class Fetcher:
    """Issues GETs for one run. Not safe to share between threads."""

    def __init__(
        self,
        config: ClientConfig,
        budget: RequestBudget,
        throttle: Throttle,
        stats: StatsCollector,
        *,
        sleep: Callable[[float], None],
        rng: random.Random,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._budget = budget
        self._throttle = throttle
        self._stats = stats
        self._sleep = sleep
        self._rng = rng
        self._transport = transport
        self._client: httpx.Client | None = None
        self.consecutive_rate_limits = 0
        self.low_traffic_mode = False

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                follow_redirects=True,
                timeout=self._config.timeout,
                headers=self._config.merged_headers(),
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the pooled connection; WebClient owns the lifecycle."""
        if self._client and not self._client.is_closed:
            self._client.close()

    def _note_rate_limit(self, url: str, status: int) -> None:
        self.consecutive_rate_limits += 1
        logger.debug("Rate limited (%d) on %s; %d in a row", status, url, self.consecutive_rate_limits)
        if self.consecutive_rate_limits >= LOW_TRAFFIC_AFTER and not self.low_traffic_mode:
            self.low_traffic_mode = True
            self._throttle.low_traffic = True
            new_cap = self._budget.shrink(LOW_TRAFFIC_BUDGET_FACTOR)
            self._stats.warn(LOW_TRAFFIC_WARNING)
            logger.warning(
                "Rate limited %d times in a row; low-traffic mode (delay %.1fs, budget %d)",
                self.consecutive_rate_limits, self._throttle.delay, new_cap,
            )

    def _backoff(self, attempt: int) -> None:
        # Jitter factor in [0.5, 1.5)
        wait = backoff_delay(attempt) * (0.5 + self._rng.random())
        logger.debug("Backing off %.2fs after attempt %d", wait, attempt + 1)
        self._sleep(wait)

    def _attempt(self, url: str, headers: dict[str, str], timeout: float) -> tuple[Outcome, FetchResult]:
        try:
            resp = self._get_client().get(url, headers=headers, timeout=timeout)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            logger.debug("Invalid URL %s: %s", url, e)
            return Outcome.FATAL, FetchResult(url, reason=INVALID_URL)
        except httpx.RequestError as e:
            logger.debug("Request to %s failed: %s: %s", url, type(e).__name__, e)
            return Outcome.RETRY, FetchResult(url, reason=NETWORK_ERROR)
        finally:
            self._throttle.mark()
        status = resp.status_code
        if status in RATE_LIMIT_STATUSES:
            self._note_rate_limit(url, status)
            return Outcome.RETRY, FetchResult(url, status=status, reason=HTTP_ERROR)
        if resp.is_success:
            self.consecutive_rate_limits = 0
            return Outcome.SUCCESS, FetchResult(url, ok=True, status=status, body=resp.text)
        return Outcome.FATAL, FetchResult(url, status=status, body=resp.text, reason=HTTP_ERROR)

    def fetch(self, url: str, *, timeout: float | None = None) -> FetchResult:
        """
        GET url within the run's budget. Never raises for expected failures.

        Reserves one request slot, waits out the throttle, then tries up to
        MAX_ATTEMPTS times. Rate-limit statuses and network errors are retried
        after a jittered exponential backoff; other non-2xx statuses fail at once.
        """
        domain = domain_of(url)
        try:
            self._budget.reserve(domain)
        except DomainLimitReached:
            if self._stats.warn(DOMAIN_LIMIT_WARNING):
                logger.warning("Visited domain limit (%s) reached; refusing %s", self._budget.max_visited_domains, domain)
            return FetchResult(url, blocked=True, reason=DOMAIN_LIMIT)
        except BudgetExhausted:
            logger.debug("Request budget spent; refusing %s", url)
            return FetchResult(url, blocked=True, reason=BUDGET)
        self._stats.record_request()
        self._throttle.wait()

        headers = {"User-Agent": self._rng.choice(self._config.user_agents)}
        timeout = timeout if timeout is not None else self._config.timeout
        result = FetchResult(url, reason=NETWORK_ERROR)
        attempt = 0
        while attempt < MAX_ATTEMPTS:
            outcome, result = self._attempt(url, headers, timeout)
            result.attempts = attempt + 1
            if outcome is not Outcome.RETRY:
                return result
            attempt += 1
            if attempt < MAX_ATTEMPTS:
                self._backoff(attempt - 1)
        logger.debug("Giving up on %s after %d attempts (status %s)", url, attempt, result.status)
        return result
