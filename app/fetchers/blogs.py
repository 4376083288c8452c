import logging
from typing import List, Optional

from app.domain.news_domain import NewsItem
from app.fetchers.base import fetch_content, parse_article_listing
from app.schemas.news import NewsSource

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MARKTECHPOST_URL = "https://www.marktechpost.com/"
THE_DECODER_URL = "https://the-decoder.com/"
VENTUREBEAT_URL = "https://venturebeat.com/category/ai/"


async def _scrape_blog(
    url: str, source: NewsSource, label: str, base_url: Optional[str] = None
) -> List[NewsItem]:
    try:
        html = await fetch_content(url)
        items = parse_article_listing(html, source, base_url=base_url)
        logger.info(f"Scraped {len(items)} articles from {label}")
        return items
    except Exception as e:
        logger.error(f"Error scraping {label}: {e}")
        return []


async def scrape_marktechpost() -> List[NewsItem]:
    return await _scrape_blog(MARKTECHPOST_URL, NewsSource.MARKTECHPOST, "Marktechpost")


async def fetch_the_decoder() -> List[NewsItem]:
    return await _scrape_blog(
        THE_DECODER_URL,
        NewsSource.THE_DECODER,
        "The Decoder",
        base_url="https://the-decoder.com",
    )


async def fetch_venturebeat() -> List[NewsItem]:
    return await _scrape_blog(
        VENTUREBEAT_URL,
        NewsSource.VENTUREBEAT,
        "VentureBeat",
        base_url="https://venturebeat.com",
    )
