"""Run statistics: request/block/error counters, warnings, trace and top-error table."""

from collections.abc import Callable
from dataclasses import dataclass

TOP_ERRORS_SIZE = 5


@dataclass(frozen=True)
class TraceEntry:
    domain: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"domain": self.domain, "type": self.type}


class StatsCollector:
    """Aggregates counters for the caller's report. Makes no decisions."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._started = clock()
        self.requests_made = 0
        self.blocked_count = 0
        self.errors_count = 0
        self.warnings: list[str] = []
        self.top_errors: list[dict[str, object]] = []
        self._error_counts: dict[tuple[str, str], int] = {}
        self._trace: list[TraceEntry] = []

    def record_request(self) -> None:
        self.requests_made += 1

    def record_blocked(self) -> None:
        self.blocked_count += 1

    def record_error(self, domain: str, code: str | int | None) -> None:
        """Count one error and fold (domain, code) into the top-error table."""
        self.errors_count += 1
        if not domain:
            return
        key = (domain, str(code) if code is not None else "ERR")
        self._error_counts[key] = self._error_counts.get(key, 0) + 1
        ranked = sorted(self._error_counts.items(), key=lambda item: item[1], reverse=True)
        self.top_errors = [
            {"domain": d, "code": c, "count": n} for (d, c), n in ranked[:TOP_ERRORS_SIZE]
        ]

    def warn(self, message: str) -> bool:
        """Add a warning unless the same text is already recorded. Returns True if added."""
        if message in self.warnings:
            return False
        self.warnings.append(message)
        return True

    def add_trace(self, domain: str, type_: str) -> None:
        self._trace.append(TraceEntry(domain, type_))

    def trace(self) -> list[dict[str, str]]:
        return [entry.to_dict() for entry in self._trace]

    def snapshot(self) -> dict[str, object]:
        """Point-in-time copy of the counters; duration_ms is measured from construction."""
        return {
            "requests_made": self.requests_made,
            "blocked_count": self.blocked_count,
            "errors_count": self.errors_count,
            "duration_ms": int(round((self._clock() - self._started) * 1000)),
            "top_errors": [dict(entry) for entry in self.top_errors],
            "warnings": list(self.warnings),
        }
