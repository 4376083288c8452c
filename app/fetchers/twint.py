import asyncio
import json
import logging
from pathlib import Path
from typing import List

from app.core.config import settings
from app.domain.news_domain import NewsItem
from app.fetchers.base import parse_date
from app.schemas.news import NewsSource

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def fetch_twint_data() -> List[NewsItem]:
    """Read the exported tweet snapshot (a JSON list of Twint records)"""
    try:
        path = Path(settings.TWINT_DATA_PATH)
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        tweets = json.loads(raw)

        items = []
        for tweet in tweets:
            text = (tweet.get("tweet") or "").strip()
            tweet_id = tweet.get("id_str") or tweet.get("id")
            if not text or not tweet_id:
                continue
            items.append(
                NewsItem(
                    title=text,
                    url=f"https://twitter.com/user/status/{tweet_id}",
                    source=NewsSource.TWINT,
                    created_at=parse_date(tweet.get("created_at")),
                )
            )
        logger.info(f"Loaded {len(items)} tweets from {path}")
        return items
    except Exception as e:
        logger.error(f"Error fetching Twint data: {e}")
        return []
