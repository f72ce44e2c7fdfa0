"""Extract title, plain text, outbound links and feed items from fetched pages."""

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup

_WS_RE = re.compile(r"\s+")

# Tags whose content is never page text
_NON_TEXT_TAGS = ("script", "style", "noscript", "template")

# Search engines that wrap result links in their own redirect URL: host marker -> query parameter
REDIRECT_PARAMS = (
    ("yandex", "url"),
    ("duckduckgo.com", "uddg"),
)


@dataclass(frozen=True)
class Link:
    url: str
    text: str = ""


@dataclass(frozen=True)
class FeedItem:
    url: str
    title: str = ""
    description: str = ""


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def extract_title(html: str) -> str:
    """Stripped <title> text, or "" when the page has none."""
    soup = _soup(html)
    if soup.title is None:
        return ""
    return _collapse(soup.title.get_text())


def extract_text(html: str) -> str:
    """Visible text of html with script/style content removed and whitespace collapsed."""
    soup = _soup(html)
    for tag in soup(_NON_TEXT_TAGS):
        tag.decompose()
    return _collapse(soup.get_text(" "))


def unwrap_redirect(url: str) -> str:
    """Undo &amp; escaping and unwrap a search engine's redirect link to its target."""
    url = url.replace("&amp;", "&").strip()
    if url.startswith("//"):
        url = "https:" + url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    host = (parts.hostname or "").lower()
    for marker, param in REDIRECT_PARAMS:
        if marker in host:
            values = parse_qs(parts.query).get(param)
            if values and values[0]:
                return values[0]
    return url


def extract_links(html: str) -> list[Link]:
    """Absolute http(s) links in document order, redirect wrappers unwrapped."""
    out: list[Link] = []
    for tag in _soup(html).find_all(href=True):
        href = unwrap_redirect(str(tag["href"]))
        if not href.startswith(("http://", "https://")):
            continue
        out.append(Link(href, _collapse(tag.get_text(" "))))
    return out


def extract_feed_items(xml: str) -> list[FeedItem]:
    """Link, title and description of each RSS <item>."""
    soup = BeautifulSoup(xml or "", "xml")
    items: list[FeedItem] = []
    for item in soup.find_all("item"):
        link = item.find("link")
        if link is None:
            continue
        url = unwrap_redirect(link.get_text())
        if not url.startswith(("http://", "https://")):
            continue
        title = item.find("title")
        description = item.find("description")
        items.append(
            FeedItem(
                url,
                _collapse(title.get_text()) if title is not None else "",
                _collapse(description.get_text()) if description is not None else "",
            )
        )
    return items
