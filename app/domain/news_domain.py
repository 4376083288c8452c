import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.models.news import AINews
from app.schemas.news import (
    CategoryEnum,
    NewsSource,
    PlatformEnum,
    SortByEnum,
    StoryResponse,
)

SOURCE_PLATFORM_MAP: Dict[str, PlatformEnum] = {
    NewsSource.REDDIT_API.value: PlatformEnum.REDDIT,
    NewsSource.REDDIT_RSS.value: PlatformEnum.REDDIT,
    NewsSource.TWINT.value: PlatformEnum.X,
    NewsSource.MARKTECHPOST.value: PlatformEnum.MARKTECHPOST,
    NewsSource.HACKERNEWS.value: PlatformEnum.HACKERNEWS,
    NewsSource.GOOGLENEWS.value: PlatformEnum.GOOGLENEWS,
    NewsSource.ARXIV.value: PlatformEnum.ARXIV,
    NewsSource.THE_DECODER.value: PlatformEnum.THE_DECODER,
    NewsSource.VENTUREBEAT.value: PlatformEnum.VENTUREBEAT,
}

# Engagement multipliers per platform
ENGAGEMENT_WEIGHTS: Dict[str, float] = {
    PlatformEnum.REDDIT.value: 0.5,
    PlatformEnum.X.value: 0.3,
}

TOOL_BONUS = 30
MAJOR_COMPANY_BONUS = 10
CONTROVERSY_BONUS = 20

MAJOR_COMPANIES = ["OpenAI", "Google", "Meta", "GPT"]
CONTROVERSY_WORDS = ["bias", "lawsuit", "ban", "replace", "job loss"]


@dataclass(frozen=True)
class NewsItem:
    """Domain entity for a fetched headline, before it becomes a stored story"""

    title: str
    url: str
    source: NewsSource
    created_at: datetime


def dedup_key(title: str) -> str:
    return title.strip().lower()


def deduplicate_news(news: Iterable[NewsItem]) -> List[NewsItem]:
    """
    Collapse items whose titles match after trimming and case-folding.

    The first occurrence wins and input order is kept. Titles that differ in
    punctuation or wording are not merged.
    """
    seen = set()
    unique_news = []
    for item in news:
        key = dedup_key(item.title)
        if key in seen:
            continue
        seen.add(key)
        unique_news.append(item)
    return unique_news


def _field(story: Any, name: str, default: Any = None) -> Any:
    if isinstance(story, Mapping):
        value = story.get(name, default)
    else:
        value = getattr(story, name, default)
    return default if value is None else value


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def calculate_viral_score(story: Any) -> int:
    """
    Heuristic virality score for a story (mapping or object).

    Rules stack: platform engagement, tool launches, major company mentions
    in the title and controversy keywords in title or content.
    """
    score = 0.0

    platform = _enum_value(_field(story, "platform", ""))
    engagement = _field(story, "score", 0) or 0
    score += engagement * ENGAGEMENT_WEIGHTS.get(platform, 0.0)

    if _enum_value(_field(story, "category")) == CategoryEnum.TOOL.value:
        score += TOOL_BONUS

    title = _field(story, "title", "")
    if any(company in title for company in MAJOR_COMPANIES):
        score += MAJOR_COMPANY_BONUS

    text = f"{title} {_field(story, 'content', '')}".lower()
    if any(word in text for word in CONTROVERSY_WORDS):
        score += CONTROVERSY_BONUS

    # Half-up, so 2.5 scores 3
    return int(math.floor(score + 0.5))


def filter_news(
    news: List[AINews],
    platform: Optional[str] = None,
    category: Optional[str] = None,
    search_query: Optional[str] = None,
) -> List[AINews]:
    """Filter stories by platform, category and a free-text query"""
    filtered = []
    for item in news:
        if platform and item.platform != platform:
            continue
        if category and item.category != category:
            continue
        if search_query:
            query = search_query.lower()
            if query not in item.title.lower() and query not in item.content.lower():
                continue
        filtered.append(item)
    return filtered


def sort_news(news: List[AINews], sort_by: SortByEnum = SortByEnum.DATE) -> List[AINews]:
    if sort_by == SortByEnum.SCORE:
        return sorted(news, key=lambda item: item.score, reverse=True)
    return sorted(news, key=lambda item: item.date, reverse=True)


class NewsDomain:
    """Domain logic for news stories"""

    @staticmethod
    def platform_for_source(source: Any) -> PlatformEnum:
        return SOURCE_PLATFORM_MAP.get(_enum_value(source), PlatformEnum.UNKNOWN)

    @staticmethod
    def item_to_story_dict(item: NewsItem) -> dict:
        """
        Convert a fetched NewsItem into an ai_news row.

        Fetchers carry no body text or engagement, so content falls back to
        the title and the stored score is the heuristic score without
        engagement.
        """
        story = {
            "platform": NewsDomain.platform_for_source(item.source).value,
            "title": item.title,
            "content": item.title,
            "url": item.url,
            "date": item.created_at,
            "category": None,
            "score": 0,
            "created_at": item.created_at,
        }
        story["score"] = calculate_viral_score(story)
        return story

    @staticmethod
    def to_response(story: AINews) -> StoryResponse:
        return StoryResponse.model_validate(story)

    @staticmethod
    def to_response_list(stories: List[AINews]) -> List[StoryResponse]:
        return [NewsDomain.to_response(story) for story in stories]

    @staticmethod
    def to_summary(story: AINews) -> dict:
        """Compact story shape stored alongside generated scripts"""
        return {
            "title": story.title,
            "content": story.content,
            "url": story.url,
            "platform": story.platform,
            "score": story.score,
        }
