from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class NewsSource(str, Enum):
    REDDIT_API = "reddit-api"
    REDDIT_RSS = "reddit-rss"
    TWINT = "twint"
    MARKTECHPOST = "marktechpost"
    HACKERNEWS = "hackernews"
    GOOGLENEWS = "googlenews"
    ARXIV = "arxiv"
    THE_DECODER = "the-decoder"
    VENTUREBEAT = "venturebeat"


class PlatformEnum(str, Enum):
    REDDIT = "Reddit"
    X = "X"
    MARKTECHPOST = "Marktechpost"
    HACKERNEWS = "HackerNews"
    GOOGLENEWS = "GoogleNews"
    ARXIV = "arXiv"
    THE_DECODER = "TheDecoder"
    VENTUREBEAT = "VentureBeat"
    UNKNOWN = "Unknown"


class CategoryEnum(str, Enum):
    TOOL = "tool"
    NEWS = "news"
    RESEARCH = "research"
    STARTUP = "startup"


class SortByEnum(str, Enum):
    DATE = "date"
    SCORE = "score"


class StoryResponse(BaseModel):
    id: int
    platform: str
    title: str
    content: str
    url: str
    date: datetime
    category: Optional[str] = None
    score: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StoryListResponse(BaseModel):
    data: List[StoryResponse] = Field(..., description="Stored stories")


class ScrapeResponse(BaseModel):
    success: bool
    count: int = Field(..., description="Number of deduplicated stories processed")
    sources: int = Field(..., description="Number of fetchers invoked")
    successful_sources: int = Field(..., alias="successfulSources")
    failed_sources: int = Field(..., alias="failedSources")
    timestamp: datetime

    class Config:
        populate_by_name = True


class ScrapeErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: str
    timestamp: datetime
