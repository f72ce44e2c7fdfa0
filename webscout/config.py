"""Construction-time options for one research run's client."""

from dataclasses import dataclass, field

# Rotated per request; cosmetic variety, not an anti-detection measure
DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.1 Mobile/15E148 Safari/604.1",
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ru-RU,ru;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

DEFAULT_MIN_DELAY = 0.6
DEFAULT_TIMEOUT = 15.0
DEFAULT_SEARCH_TIMEOUT = 12.0


@dataclass(frozen=True)
class ClientConfig:
    """Options for a WebClient. Times are in seconds."""

    max_requests: int
    max_visited_domains: int | None = None
    min_delay: float = DEFAULT_MIN_DELAY
    timeout: float = DEFAULT_TIMEOUT
    search_timeout: float = DEFAULT_SEARCH_TIMEOUT
    user_agents: tuple[str, ...] = DEFAULT_USER_AGENTS
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def domain_cap(self) -> int | None:
        """Distinct-domain cap, or None when unset or non-positive."""
        if self.max_visited_domains is None or self.max_visited_domains <= 0:
            return None
        return int(self.max_visited_domains)

    def merged_headers(self) -> dict[str, str]:
        return {**DEFAULT_HEADERS, **self.headers}

    def validate(self) -> "ClientConfig":
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {self.max_requests}")
        if self.min_delay < 0:
            raise ValueError(f"min_delay must be >= 0, got {self.min_delay}")
        if self.timeout <= 0 or self.search_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if not self.user_agents:
            raise ValueError("user_agents must not be empty")
        return self
