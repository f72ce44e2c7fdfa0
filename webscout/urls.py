"""URL canonicalization and domain helpers shared by the fetcher, robots cache and search."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Query parameters that only carry attribution/tracking state
TRACKING_PARAMS = frozenset({"gclid", "yclid", "fbclid", "ref", "from"})
TRACKING_PREFIXES = ("utm_",)

TELEGRAM_HOSTS = frozenset({"t.me", "telegram.me"})
VK_HOST = "vk.com"

# Result pages on these domains are never checked against robots.txt
SEARCH_ENGINE_DOMAINS = frozenset({
    "yandex.ru",
    "ya.ru",
    "duckduckgo.com",
    "bing.com",
    "search.brave.com",
})


def _is_tracking_param(name: str) -> bool:
    lower = name.lower()
    return lower in TRACKING_PARAMS or lower.startswith(TRACKING_PREFIXES)


def _strip_www(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def canonicalize_url(url: str) -> str:
    """
    Normalize url into a stable dedup key and request target.

    Forces https for any URL with a host (ftp:// included), lower-cases the host
    and drops a leading www., removes tracking query parameters and the fragment,
    and strips trailing slashes from the path. Telegram links collapse to
    https://t.me/<handle> (nested /s/ preview prefixes included); VK links keep
    only their first path segment. Returns url unchanged when it cannot be parsed or has no host.
    """
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
        port = parts.port
    except (AttributeError, ValueError):
        return url
    if not host:
        return url

    host = _strip_www(host)

    if host in TELEGRAM_HOSTS:
        path = parts.path.rstrip("/")
        while path.startswith("/s/"):
            path = path[2:]
        return f"https://t.me{path or '/'}"

    if host == VK_HOST:
        segments = [s for s in parts.path.split("/") if s]
        path = f"/{segments[0]}" if segments else "/"
        return urlunsplit(("https", host, path, "", ""))

    netloc = f"{host}:{port}" if port is not None else host
    query = urlencode(
        [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if not _is_tracking_param(k)]
    )
    path = parts.path.rstrip("/") or "/"
    return urlunsplit(("https", netloc, path, query, ""))


def domain_of(url: str) -> str:
    """Lower-cased host without www., or "" when url has no host."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return ""
    return _strip_www(host) if host else ""


def origin_of(url: str) -> str | None:
    """scheme://host[:port] of url, the unit robots.txt is cached under."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None
    if not host or not parts.scheme:
        return None
    netloc = f"{host}:{port}" if port is not None else host
    return f"{parts.scheme.lower()}://{netloc}"


def is_search_engine_domain(domain: str) -> bool:
    return domain in SEARCH_ENGINE_DOMAINS
