import asyncio
import logging
from datetime import datetime, timezone
from typing import List

import requests

from app.core.config import settings
from app.domain.news_domain import NewsItem
from app.fetchers.base import fetch_content, parse_feed, with_retry
from app.schemas.news import NewsSource

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_OAUTH_URL = "https://oauth.reddit.com"
REDDIT_RSS_URL = "https://www.reddit.com/r/{subreddit}/.rss"

API_SUBREDDIT = "technology"
API_LIMIT = 25


def _has_credentials() -> bool:
    return all(
        [
            settings.REDDIT_CLIENT_ID,
            settings.REDDIT_CLIENT_SECRET,
            settings.REDDIT_USERNAME,
            settings.REDDIT_PASSWORD,
        ]
    )


def _get_access_token() -> str:
    """Obtain an OAuth token with the script-app password grant"""
    response = requests.post(
        REDDIT_TOKEN_URL,
        auth=(settings.REDDIT_CLIENT_ID, settings.REDDIT_CLIENT_SECRET),
        data={
            "grant_type": "password",
            "username": settings.REDDIT_USERNAME,
            "password": settings.REDDIT_PASSWORD,
        },
        headers={"User-Agent": settings.REDDIT_USER_AGENT},
        timeout=settings.FETCH_TIMEOUT,
    )
    response.raise_for_status()
    token = response.json().get("access_token")
    if not token:
        raise ValueError("Reddit did not return an access token")
    return token


def _get_hot_posts(subreddit: str, limit: int) -> List[dict]:
    token = _get_access_token()
    response = requests.get(
        f"{REDDIT_OAUTH_URL}/r/{subreddit}/hot",
        params={"limit": limit},
        headers={
            "Authorization": f"bearer {token}",
            "User-Agent": settings.REDDIT_USER_AGENT,
        },
        timeout=settings.FETCH_TIMEOUT,
    )
    response.raise_for_status()

    listing = response.json()
    children = listing.get("data", {}).get("children")
    if not isinstance(children, list):
        raise ValueError("Reddit API did not return a listing")
    return [child.get("data", {}) for child in children]


async def _fetch_reddit_api_once() -> List[NewsItem]:
    posts = await asyncio.to_thread(_get_hot_posts, API_SUBREDDIT, API_LIMIT)
    items = []
    for post in posts:
        title = (post.get("title") or "").strip()
        url = post.get("url") or ""
        if not title or not url:
            continue
        items.append(
            NewsItem(
                title=title,
                url=url,
                source=NewsSource.REDDIT_API,
                created_at=datetime.fromtimestamp(
                    post.get("created_utc", 0), tz=timezone.utc
                ),
            )
        )
    return items


async def fetch_reddit_rss(subreddit: str = "ArtificialIntelligence") -> List[NewsItem]:
    """Fetch a subreddit's Atom feed, retrying before giving up with []"""

    async def attempt() -> List[NewsItem]:
        content = await fetch_content(REDDIT_RSS_URL.format(subreddit=subreddit))
        return parse_feed(content, NewsSource.REDDIT_RSS)

    try:
        items = await with_retry(attempt, f"Reddit RSS r/{subreddit}")
        logger.info(f"Fetched {len(items)} posts from Reddit RSS r/{subreddit}")
        return items
    except Exception as e:
        logger.error(f"Error fetching from Reddit RSS: {e}")
        return []


async def fetch_reddit_api() -> List[NewsItem]:
    """
    Fetch hot posts from r/technology through the Reddit API.

    Retries the API, then falls back to the subreddit RSS feed before giving
    up with an empty list.
    """
    if not _has_credentials():
        logger.warning("Reddit API credentials missing, using RSS fallback")
        return await fetch_reddit_rss(API_SUBREDDIT)

    try:
        items = await with_retry(_fetch_reddit_api_once, "Reddit API")
        logger.info(f"Fetched {len(items)} posts from Reddit API")
        return items
    except Exception as e:
        logger.error(f"Error fetching from Reddit API: {e}")

    try:
        logger.info("Attempting to fetch from Reddit RSS as fallback...")
        return await fetch_reddit_rss(API_SUBREDDIT)
    except Exception as rss_error:
        logger.error(f"Error fetching from Reddit RSS as fallback: {rss_error}")
        return []
