import asyncio
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, List, Optional, TypeVar
from urllib.parse import urljoin
from xml.etree import ElementTree as ET

import requests
from bs4 import BeautifulSoup

from app.core.config import settings
from app.domain.news_domain import NewsItem
from app.schemas.news import NewsSource

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Browser-like headers so news sites don't block us
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_date(value: Optional[str]) -> datetime:
    """Parse RFC 822 or ISO 8601 dates, falling back to the current time"""
    if not value:
        return utcnow()
    value = value.strip()

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable date '{value}', using current time")
            return utcnow()

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def http_get(url: str, **kwargs) -> requests.Response:
    """Blocking GET with the scraper headers and timeout"""
    headers = {**HEADERS, **kwargs.pop("headers", {})}
    response = requests.get(
        url, headers=headers, timeout=settings.FETCH_TIMEOUT, **kwargs
    )
    response.raise_for_status()
    return response


async def fetch_content(url: str, **kwargs) -> bytes:
    """Run the blocking GET off the event loop and return the body"""
    response = await asyncio.to_thread(http_get, url, **kwargs)
    return response.content


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
) -> T:
    """
    Await `operation` up to `attempts` times with a fixed delay in between.

    The last error is re-raised once every attempt has failed.
    """
    attempts = attempts or settings.FETCH_RETRY_ATTEMPTS
    delay = settings.FETCH_RETRY_DELAY if delay is None else delay

    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(f"{label} attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                await asyncio.sleep(delay)

    raise last_error


def parse_feed(content: bytes, source: NewsSource) -> List[NewsItem]:
    """Parse an RSS 2.0 or Atom document into news items"""
    root = ET.fromstring(content)
    items = []

    # RSS 2.0: <rss><channel><item>
    for item in root.iter("item"):
        title = (item.findtext("title") or "").strip()
        link = (item.findtext("link") or "").strip()
        published = item.findtext("pubDate") or item.findtext(
            "{http://purl.org/dc/elements/1.1/}date"
        )
        if title and link:
            items.append(
                NewsItem(
                    title=title,
                    url=link,
                    source=source,
                    created_at=parse_date(published),
                )
            )

    # Atom: <feed><entry>
    for entry in root.findall("atom:entry", ATOM_NS):
        title = (entry.findtext("atom:title", default="", namespaces=ATOM_NS)).strip()
        link_elem = entry.find("atom:link[@href]", ATOM_NS)
        link = link_elem.get("href", "").strip() if link_elem is not None else ""
        published = entry.findtext(
            "atom:updated", namespaces=ATOM_NS
        ) or entry.findtext("atom:published", namespaces=ATOM_NS)
        if title and link:
            items.append(
                NewsItem(
                    title=title,
                    url=link,
                    source=source,
                    created_at=parse_date(published),
                )
            )

    return items


def parse_article_listing(
    html: bytes, source: NewsSource, base_url: Optional[str] = None
) -> List[NewsItem]:
    """Extract `<article>` cards (h2 title, first link, time) from a blog index"""
    soup = BeautifulSoup(html, "html.parser")
    items = []

    for article in soup.find_all("article"):
        heading = article.find("h2")
        title = heading.get_text(" ", strip=True) if heading else ""
        link = article.find("a", href=True)
        url = link["href"].strip() if link else ""
        time_tag = article.find("time")
        published = time_tag.get("datetime") if time_tag else None

        if not title or not url:
            continue
        if base_url and not url.startswith("http"):
            url = urljoin(base_url, url)

        items.append(
            NewsItem(
                title=title,
                url=url,
                source=source,
                created_at=parse_date(published),
            )
        )

    return items
