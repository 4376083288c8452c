import logging
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.domain.news_domain import NewsDomain, filter_news, sort_news
from app.repositories.news_repository import NewsRepository
from app.schemas.news import (
    ScrapeErrorResponse,
    ScrapeResponse,
    SortByEnum,
    StoryListResponse,
)
from app.services.aggregation import GET_HANDLER_SOURCE, AggregationService

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter(tags=["news"])


async def _scrape(db: Session) -> Union[ScrapeResponse, ScrapeErrorResponse]:
    service = AggregationService(db)
    try:
        result = await service.run_aggregation()
        return ScrapeResponse(
            success=True,
            count=result.count,
            sources=result.sources,
            successful_sources=result.success_count,
            failed_sources=result.failure_count,
            timestamp=datetime.now(timezone.utc),
        )
    except Exception as e:
        # Still a 200 so clients polling /scrape don't break
        logger.error(f"Error in scrape route: {e}")
        service.log_failure(GET_HANDLER_SOURCE, e)
        return ScrapeErrorResponse(
            error="Some sources failed to scrape",
            details=str(e),
            timestamp=datetime.now(timezone.utc),
        )


@router.get(
    "/scrape",
    response_model=Union[ScrapeResponse, ScrapeErrorResponse],
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
async def scrape_news(db: Session = Depends(get_db)):
    """
    Fetch all news sources, deduplicate and store new stories

    Source failures are recorded in scrape_logs and reported in
    failedSources; the request itself always succeeds.
    """
    return await _scrape(db)


@router.post(
    "/scrape",
    response_model=Union[ScrapeResponse, ScrapeErrorResponse],
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
async def trigger_scrape(db: Session = Depends(get_db)):
    """Same as GET /scrape, for schedulers that POST"""
    return await _scrape(db)


@router.get(
    "/news",
    response_model=StoryListResponse,
    status_code=status.HTTP_200_OK,
)
def list_news(
    platform: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: SortByEnum = SortByEnum.DATE,
    db: Session = Depends(get_db),
):
    """Stored stories with optional platform, category and text filters"""
    try:
        stories = NewsRepository(db).get_all()
        stories = sort_news(filter_news(stories, platform, category, search), sort_by)
        return StoryListResponse(data=NewsDomain.to_response_list(stories))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )
