from typing import Awaitable, Callable, List, Tuple

from app.domain.news_domain import NewsItem
from app.schemas.news import NewsSource

from .blogs import fetch_the_decoder, fetch_venturebeat, scrape_marktechpost
from .feeds import fetch_arxiv_ai, fetch_google_news, fetch_hacker_news
from .reddit import fetch_reddit_api, fetch_reddit_rss
from .twint import fetch_twint_data

Fetcher = Callable[[], Awaitable[List[NewsItem]]]

# Iteration order here is the merge order used before deduplication
FETCHERS: List[Tuple[NewsSource, Fetcher]] = [
    (NewsSource.REDDIT_API, fetch_reddit_api),
    (NewsSource.REDDIT_RSS, fetch_reddit_rss),
    (NewsSource.TWINT, fetch_twint_data),
    (NewsSource.MARKTECHPOST, scrape_marktechpost),
    (NewsSource.HACKERNEWS, fetch_hacker_news),
    (NewsSource.GOOGLENEWS, fetch_google_news),
    (NewsSource.ARXIV, fetch_arxiv_ai),
    (NewsSource.THE_DECODER, fetch_the_decoder),
    (NewsSource.VENTUREBEAT, fetch_venturebeat),
]

__all__ = [
    "FETCHERS",
    "Fetcher",
    "fetch_reddit_api",
    "fetch_reddit_rss",
    "fetch_twint_data",
    "scrape_marktechpost",
    "fetch_hacker_news",
    "fetch_google_news",
    "fetch_arxiv_ai",
    "fetch_the_decoder",
    "fetch_venturebeat",
]
