import logging
from typing import List

from app.domain.news_domain import NewsItem
from app.fetchers.base import fetch_content, parse_feed
from app.schemas.news import NewsSource

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

HACKER_NEWS_FEED = "https://hnrss.org/newest?q=AI"
GOOGLE_NEWS_FEED = "https://news.google.com/rss/search?q=artificial+intelligence"
ARXIV_AI_FEED = "https://export.arxiv.org/rss/cs.AI"


async def _fetch_feed(url: str, source: NewsSource, label: str) -> List[NewsItem]:
    try:
        content = await fetch_content(url)
        items = parse_feed(content, source)
        logger.info(f"Fetched {len(items)} items from {label}")
        return items
    except Exception as e:
        logger.error(f"Error fetching {label}: {e}")
        return []


async def fetch_hacker_news() -> List[NewsItem]:
    return await _fetch_feed(HACKER_NEWS_FEED, NewsSource.HACKERNEWS, "Hacker News")


async def fetch_google_news() -> List[NewsItem]:
    return await _fetch_feed(GOOGLE_NEWS_FEED, NewsSource.GOOGLENEWS, "Google News")


async def fetch_arxiv_ai() -> List[NewsItem]:
    return await _fetch_feed(ARXIV_AI_FEED, NewsSource.ARXIV, "arXiv AI")
