"""Result objects returned to callers of WebClient."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Page:
    url: str
    title: str
    html: str
    text: str

    blocked = False

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class Blocked:
    """A fetch that produced no data: refused before sending, or failed."""

    url: str
    reason: str

    blocked = True

    def to_dict(self) -> dict[str, object]:
        return {"blocked": True, "url": self.url, "reason": self.reason}


@dataclass(frozen=True)
class SearchResult:
    url: str
    title: str
    snippet: str
    query: str
    engine: str
    source_url: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
