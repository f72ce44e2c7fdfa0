"""Per-domain circuit breaker: consecutive failures open a time-boxed cooldown."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 5
COOLDOWN_SECONDS = 10 * 60


@dataclass
class DomainFailureState:
    domain: str
    consecutive_failures: int = 0
    cooldown_until: float | None = None


class DomainHealth:
    """Tracks failures per domain. Entries are created on first failure."""

    def __init__(
        self,
        clock: Callable[[], float],
        *,
        threshold: int = FAILURE_THRESHOLD,
        cooldown: float = COOLDOWN_SECONDS,
    ) -> None:
        self._clock = clock
        self._threshold = threshold
        self._cooldown = cooldown
        self._states: dict[str, DomainFailureState] = {}

    def state(self, domain: str) -> DomainFailureState | None:
        return self._states.get(domain)

    def is_cooling_down(self, domain: str) -> bool:
        state = self._states.get(domain)
        return bool(state and state.cooldown_until is not None and state.cooldown_until > self._clock())

    def record_failure(self, domain: str) -> bool:
        """Count a failure; returns True when this failure opened (or re-opened) the cooldown."""
        state = self._states.get(domain)
        if state is None:
            state = self._states[domain] = DomainFailureState(domain)
        state.consecutive_failures += 1
        if state.consecutive_failures < self._threshold:
            return False
        state.cooldown_until = self._clock() + self._cooldown
        logger.warning(
            "Circuit breaker open for %s after %d consecutive failures (%.0fs cooldown)",
            domain, state.consecutive_failures, self._cooldown,
        )
        return True

    def record_success(self, domain: str) -> None:
        state = self._states.get(domain)
        if state is not None:
            state.consecutive_failures = 0
            state.cooldown_until = None
