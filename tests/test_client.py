import httpx
import pytest

from webscout.config import ClientConfig
from webscout.fetcher import LOW_TRAFFIC_WARNING, MAX_ATTEMPTS, backoff_delay
from webscout.health import COOLDOWN_SECONDS, FAILURE_THRESHOLD
from webscout.models import Blocked, Page

from conftest import html_page


def ok(request):
    return httpx.Response(200, html=html_page("Home", "<script>var x = 1;</script><p>Hello   <b>world</b></p>"))


def test_fetch_page_returns_title_and_text(make_client):
    client, recorder = make_client(ok)

    page = client.fetch_page("http://www.example.com/about/?utm_source=x", skip_robots_check=True)

    assert isinstance(page, Page)
    assert page.url == "https://example.com/about"
    assert page.title == "Home"
    assert page.text == "Home Hello world"
    assert "<script>" in page.html
    assert str(recorder.requests[0].url) == "https://example.com/about"
    assert recorder.requests[0].headers["User-Agent"] in client.config.user_agents


def test_circuit_breaker_blocks_without_network(make_client, clock):
    client, recorder = make_client(lambda request: httpx.Response(500, text="boom"))

    for _ in range(FAILURE_THRESHOLD):
        result = client.fetch_page("https://example.com/page", skip_robots_check=True)
        assert result.blocked and result.reason == "http_error"
    made = client.get_stats()["requests_made"]
    assert made == FAILURE_THRESHOLD
    assert "circuit-breaker:example.com" in client.get_stats()["warnings"]

    blocked = client.fetch_page("https://example.com/page", skip_robots_check=True)
    assert blocked.blocked and blocked.reason == "cooldown"
    clock.advance(COOLDOWN_SECONDS - 5)
    again = client.fetch_page("https://example.com/other", skip_robots_check=True)
    assert again.reason == "cooldown"

    stats = client.get_stats()
    assert stats["requests_made"] == made
    assert len(recorder.requests) == made
    assert stats["blocked_count"] == 2
    assert stats["errors_count"] == FAILURE_THRESHOLD + 2
    assert {"domain": "example.com", "code": "COOLDOWN", "count": 2} in stats["top_errors"]


def test_cooldown_expires_and_other_domains_unaffected(make_client, clock):
    def route(request):
        if request.url.host == "bad.com":
            return httpx.Response(404)
        return ok(request)

    client, recorder = make_client(route)
    for _ in range(FAILURE_THRESHOLD):
        client.fetch_page("https://bad.com/x", skip_robots_check=True)

    assert not client.fetch_page("https://good.com/", skip_robots_check=True).blocked
    assert client.fetch_page("https://bad.com/x", skip_robots_check=True).reason == "cooldown"

    clock.advance(COOLDOWN_SECONDS + 1)
    client.fetch_page("https://bad.com/x", skip_robots_check=True)
    assert recorder.count("bad.com") == FAILURE_THRESHOLD + 1


def test_success_resets_domain_failures(make_client):
    responses = iter([500] * (FAILURE_THRESHOLD - 1) + [200] + [500] * (FAILURE_THRESHOLD - 1) + [200])

    client, recorder = make_client(lambda request: httpx.Response(next(responses), html=html_page()))
    results = [client.fetch_page("https://example.com/", skip_robots_check=True) for _ in range(2 * FAILURE_THRESHOLD)]

    assert not results[-1].blocked
    assert all(r.reason != "cooldown" for r in results if r.blocked)
    assert client.health.state("example.com").consecutive_failures == 0


def test_budget_caps_real_requests(make_client):
    client, recorder = make_client(ok, max_requests=5)

    results = [client.fetch_page(f"https://example.com/p{i}", skip_robots_check=True) for i in range(10)]

    assert len(recorder.requests) == 5
    assert all(not r.blocked for r in results[:5])
    assert all(r.blocked and r.reason == "budget" for r in results[5:])
    stats = client.get_stats()
    assert stats["requests_made"] == 5
    assert stats["blocked_count"] == 5


def test_budget_counts_robots_requests(make_client):
    def route(request):
        if request.url.path == "/robots.txt":
            return httpx.Response(404)
        return ok(request)

    client, recorder = make_client(route, max_requests=5)
    results = [client.fetch_page(f"https://site{i}.com/page") for i in range(10)]

    assert len(recorder.requests) == 5
    assert client.get_stats()["requests_made"] == 5
    assert [r.blocked for r in results[:2]] == [False, False]
    assert all(r.blocked for r in results[2:])


def test_domain_cap_rejects_new_domains_only(make_client):
    client, recorder = make_client(ok, max_visited_domains=1)

    assert not client.fetch_page("https://a.com/", skip_robots_check=True).blocked
    refused = client.fetch_page("https://b.com/", skip_robots_check=True)
    assert refused.blocked and refused.reason == "domain_limit"
    assert not client.fetch_page("https://a.com/second", skip_robots_check=True).blocked

    assert recorder.count("b.com") == 0
    stats = client.get_stats()
    assert stats["warnings"] == ["visited domain limit reached"]
    assert stats["blocked_count"] == 1


def test_non_positive_domain_cap_means_no_cap(make_client):
    client, _ = make_client(ok, max_visited_domains=0)
    assert not client.fetch_page("https://a.com/", skip_robots_check=True).blocked
    assert not client.fetch_page("https://b.com/", skip_robots_check=True).blocked


def test_rate_limit_enters_low_traffic_mode_once(make_client, clock):
    client, recorder = make_client(lambda request: httpx.Response(429), max_requests=20, min_delay=0.6)

    first = client.fetch_page("https://example.com/a", skip_robots_check=True)
    assert first.blocked and first.reason == "http_error"
    assert len(recorder.requests) == MAX_ATTEMPTS
    assert client.low_traffic_mode
    assert client.budget.max_requests == 1 + int(19 * 0.8)
    assert client.throttle.delay == 2.0

    sleeps_before = len(clock.sleeps)
    client.fetch_page("https://example.com/b", skip_robots_check=True)
    assert clock.sleeps[sleeps_before] == pytest.approx(2.0)
    assert client.budget.max_requests == 16

    stats = client.get_stats()
    assert stats["warnings"].count(LOW_TRAFFIC_WARNING) == 1
    assert stats["top_errors"][0] == {"domain": "example.com", "code": "429", "count": 2}


def test_rate_limit_recovers_on_retry(make_client):
    statuses = iter([503, 200])
    client, recorder = make_client(lambda request: httpx.Response(next(statuses), html=html_page("Back")))

    page = client.fetch_page("https://example.com/", skip_robots_check=True)

    assert not page.blocked and page.title == "Back"
    assert len(recorder.requests) == 2
    assert client.fetcher.consecutive_rate_limits == 0
    assert not client.low_traffic_mode
    assert client.get_stats()["requests_made"] == 1


def test_backoff_schedule_with_jitter(make_client, clock):
    def route(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client, recorder = make_client(route, min_delay=0)
    result = client.fetch_page("https://example.com/", skip_robots_check=True)

    assert isinstance(result, Blocked) and result.reason == "network_error"
    assert len(recorder.requests) == MAX_ATTEMPTS
    assert len(clock.sleeps) == MAX_ATTEMPTS - 1
    for attempt, slept in enumerate(clock.sleeps):
        assert 0.5 * backoff_delay(attempt) <= slept < 1.5 * backoff_delay(attempt)
    stats = client.get_stats()
    assert stats["errors_count"] == 1
    assert stats["top_errors"] == [{"domain": "example.com", "code": "FETCH", "count": 1}]


def test_backoff_delay_is_capped():
    assert backoff_delay(0) == pytest.approx(0.4)
    assert backoff_delay(1) == pytest.approx(0.8)
    assert backoff_delay(10) == 8.0


def test_non_retryable_status_fails_on_first_attempt(make_client):
    client, recorder = make_client(lambda request: httpx.Response(404, text="missing"))

    result = client.fetch_page("https://example.com/missing", skip_robots_check=True)

    assert result.blocked and result.reason == "http_error"
    assert len(recorder.requests) == 1
    assert client.get_stats()["top_errors"] == [{"domain": "example.com", "code": "404", "count": 1}]


def test_throttle_spaces_requests(make_client, clock):
    client, _ = make_client(ok, min_delay=0.6)
    client.fetch_page("https://example.com/1", skip_robots_check=True)
    client.fetch_page("https://example.com/2", skip_robots_check=True)
    assert clock.sleeps == [pytest.approx(0.6)]


def test_trace_records_every_call(make_client):
    def route(request):
        if request.url.path == "/robots.txt":
            return httpx.Response(200, text="User-agent: *\nDisallow: /private\n")
        return ok(request)

    client, _ = make_client(route, max_requests=3)
    client.fetch_page("https://example.com/list", type="list")
    client.fetch_page("https://example.com/private", type="company")
    client.fetch_page("https://example.com/company", type="company")
    client.fetch_page("https://example.com/more")

    assert client.get_trace() == [
        {"domain": "example.com", "type": "list"},
        {"domain": "example.com", "type": "company"},
        {"domain": "example.com", "type": "company"},
        {"domain": "example.com", "type": "page"},
    ]


def test_to_dict_shapes(make_client):
    client, _ = make_client(ok, max_requests=1)
    page = client.fetch_page("https://example.com/", skip_robots_check=True)
    blocked = client.fetch_page("https://example.com/next", skip_robots_check=True)
    assert set(page.to_dict()) == {"url", "title", "html", "text"}
    assert blocked.to_dict() == {"blocked": True, "url": "https://example.com/next", "reason": "budget"}


def test_invalid_config_rejected():
    with pytest.raises(ValueError):
        ClientConfig(max_requests=0).validate()
    with pytest.raises(ValueError):
        ClientConfig(max_requests=5, user_agents=()).validate()
    with pytest.raises(ValueError):
        ClientConfig(max_requests=5, timeout=0).validate()


def test_hostless_urls_are_refused_without_spending_budget(make_client, clock):
    client, recorder = make_client(ok)

    for url in ["mailto:someone@example.com", "javascript:void(0)", "not a url"] * 2:
        result = client.fetch_page(url, skip_robots_check=True)
        assert result.blocked and result.reason == "invalid_url"

    assert recorder.requests == []
    assert clock.sleeps == []
    stats = client.get_stats()
    assert stats["requests_made"] == 0
    assert stats["blocked_count"] == 6
    assert stats["errors_count"] == 0
    assert not any(w.startswith("circuit-breaker") for w in stats["warnings"])
    assert len(client.get_trace()) == 6


def test_unsupported_protocol_is_not_retried(make_client, clock):
    def route(request):
        raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol", request=request)

    client, recorder = make_client(route, min_delay=0)
    result = client.fetch_page("https://example.com/x", skip_robots_check=True)

    assert result.blocked and result.reason == "invalid_url"
    assert len(recorder.requests) == 1
    assert clock.sleeps == []
