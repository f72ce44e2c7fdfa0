import random

import httpx
import pytest

from webscout.client import WebClient
from webscout.config import ClientConfig


class FakeClock:
    """Monotonic clock whose sleep() advances time instead of blocking."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """MockTransport handler that records requests and delegates to a routing function."""

    def __init__(self, route) -> None:
        self.route = route
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.route(request)

    @property
    def paths(self) -> list[str]:
        return [f"{r.url.host}{r.url.path}" for r in self.requests]

    def count(self, host: str, path: str | None = None) -> int:
        return sum(1 for r in self.requests if r.url.host == host and (path is None or r.url.path == path))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_client(clock):
    clients = []

    def _make(route, **config_kwargs):
        config_kwargs.setdefault("max_requests", 50)
        recorder = Recorder(route)
        client = WebClient(
            ClientConfig(**config_kwargs),
            transport=httpx.MockTransport(recorder),
            clock=clock,
            sleep=clock.sleep,
            rng=random.Random(1234),
        )
        clients.append(client)
        return client, recorder

    yield _make
    for client in clients:
        client.close()


def html_page(title: str = "Example", body: str = "<p>Hello</p>") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"
