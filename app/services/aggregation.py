import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.domain.news_domain import NewsDomain, NewsItem, deduplicate_news
from app.fetchers import FETCHERS, Fetcher
from app.repositories.news_repository import NewsRepository
from app.repositories.scrape_log_repository import ScrapeLogRepository
from app.schemas.news import NewsSource

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

FINAL_PROCESSING_SOURCE = "final-processing"
DATABASE_SOURCE = "database"
GET_HANDLER_SOURCE = "GET-handler"


@dataclass
class AggregationResult:
    count: int
    sources: int
    success_count: int
    failure_count: int
    inserted: int = 0


class AggregationService:
    """
    Runs every registered fetcher, merges their results and stores new stories.

    A failing source never stops the others, and no failure reaches the
    caller: each one is logged and recorded in scrape_logs under its source.
    """

    def __init__(
        self,
        db: Session,
        fetchers: Optional[Sequence[Tuple[NewsSource, Fetcher]]] = None,
    ):
        self.db = db
        self.fetchers = list(FETCHERS if fetchers is None else fetchers)
        self.news_repository = NewsRepository(db)
        self.scrape_log_repository = ScrapeLogRepository(db)

    def log_failure(self, source: str, error: BaseException) -> None:
        """Log a failure and persist it; a broken log table is only logged"""
        message = str(error) or error.__class__.__name__
        logger.error(f"❌ {source} failed: {message}")
        try:
            self.scrape_log_repository.create(source=source, message=message)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Could not record scrape failure for {source}: {e}")

    async def _run_fetchers(self) -> Tuple[List[NewsItem], int]:
        results = await asyncio.gather(
            *(fetcher() for _, fetcher in self.fetchers), return_exceptions=True
        )

        all_news: List[NewsItem] = []
        failures = 0
        for (source, _), result in zip(self.fetchers, results):
            source_name = getattr(source, "value", source)
            if isinstance(result, BaseException):
                failures += 1
                await asyncio.to_thread(self.log_failure, source_name, result)
                continue
            logger.info(f"{source_name}: {len(result)} items")
            all_news.extend(result)

        return all_news, failures

    async def run_aggregation(self) -> AggregationResult:
        logger.info(f"🔍 Running {len(self.fetchers)} news fetchers")
        all_news, failures = await self._run_fetchers()
        result = AggregationResult(
            count=0,
            sources=len(self.fetchers),
            success_count=len(self.fetchers) - failures,
            failure_count=failures,
        )

        try:
            unique_news = deduplicate_news(all_news)
            stories = [NewsDomain.item_to_story_dict(item) for item in unique_news]
        except Exception as e:
            await asyncio.to_thread(self.log_failure, FINAL_PROCESSING_SOURCE, e)
            return result

        result.count = len(stories)
        if not stories:
            return result

        try:
            result.inserted = await asyncio.to_thread(
                self.news_repository.upsert_ignore_duplicates, stories
            )
            logger.info(
                f"✅ Processed {len(stories)} stories ({result.inserted} new)"
            )
        except Exception as e:
            self.db.rollback()
            await asyncio.to_thread(self.log_failure, DATABASE_SOURCE, e)

        return result
