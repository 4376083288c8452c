#!/usr/bin/env python3
"""
Pytest tests for news deduplication, viral scoring and read-path helpers
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.domain.news_domain import (
    NewsDomain,
    NewsItem,
    calculate_viral_score,
    deduplicate_news,
    filter_news,
    sort_news,
)
from app.schemas.news import NewsSource, PlatformEnum, SortByEnum

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_item(title, url=None, source=NewsSource.HACKERNEWS):
    return NewsItem(
        title=title,
        url=url or f"https://example.com/{abs(hash(title))}",
        source=source,
        created_at=NOW,
    )


class TestDeduplicateNews:
    """Test title-based deduplication"""

    def test_first_occurrence_wins(self):
        items = [
            make_item("OpenAI ships GPT-5", "https://a.example/1"),
            make_item("  openai ships gpt-5 ", "https://b.example/2"),
            make_item("Meta open-sources a model", "https://c.example/3"),
        ]

        result = deduplicate_news(items)

        assert [item.url for item in result] == [
            "https://a.example/1",
            "https://c.example/3",
        ]

    def test_preserves_input_order(self):
        items = [make_item(f"Story {i}") for i in range(5)]

        assert deduplicate_news(items) == items

    def test_idempotent(self):
        items = [
            make_item("A"),
            make_item("a"),
            make_item("B "),
            make_item("b"),
            make_item("C"),
        ]

        once = deduplicate_news(items)

        assert deduplicate_news(once) == once
        assert len(once) == 3

    def test_punctuation_variants_are_not_merged(self):
        items = [make_item("AI beats humans"), make_item("AI beats humans!")]

        assert len(deduplicate_news(items)) == 2

    def test_empty_input(self):
        assert deduplicate_news([]) == []


class TestCalculateViralScore:
    """Test the stacked scoring heuristic"""

    def test_reddit_tool_launch_scenario(self):
        story = {
            "platform": "Reddit",
            "score": 10,
            "category": "tool",
            "title": "OpenAI launches new tool",
            "content": "Available today for developers",
        }

        assert calculate_viral_score(story) == 45

    def test_x_engagement_weight(self):
        story = {"platform": "X", "score": 100, "title": "hello", "content": ""}

        assert calculate_viral_score(story) == 30

    def test_other_platforms_ignore_engagement(self):
        story = {"platform": "HackerNews", "score": 500, "title": "hi", "content": ""}

        assert calculate_viral_score(story) == 0

    def test_major_company_is_case_sensitive(self):
        assert calculate_viral_score({"title": "google releases"}) == 0
        assert calculate_viral_score({"title": "Google releases"}) == 10

    def test_controversy_in_content(self):
        story = {"title": "New model", "content": "Facing a LAWSUIT over data"}

        assert calculate_viral_score(story) == 20

    def test_missing_engagement_counts_as_zero(self):
        story = {"platform": "Reddit", "score": None, "title": "x", "content": ""}

        assert calculate_viral_score(story) == 0

    def test_accepts_objects(self):
        story = SimpleNamespace(
            platform="Reddit",
            score=3,
            category=None,
            title="Meta bans bots",
            content="",
        )

        # 1.5 + 10 + 20 rounds to 32
        assert calculate_viral_score(story) == 32

    def test_halves_round_up(self):
        assert calculate_viral_score({"platform": "Reddit", "score": 5, "title": "x"}) == 3
        assert calculate_viral_score({"platform": "Reddit", "score": 1, "title": "x"}) == 1


class TestNewsDomain:
    """Test mapping and read-path helpers"""

    def test_item_to_story_dict(self):
        item = make_item("OpenAI faces lawsuit", source=NewsSource.REDDIT_RSS)

        story = NewsDomain.item_to_story_dict(item)

        assert story["platform"] == PlatformEnum.REDDIT.value
        assert story["content"] == item.title
        assert story["date"] == item.created_at
        assert story["category"] is None
        assert story["score"] == 30

    def test_unknown_source_maps_to_unknown_platform(self):
        assert NewsDomain.platform_for_source("mastodon") == PlatformEnum.UNKNOWN

    def test_every_source_has_a_platform(self):
        for source in NewsSource:
            assert NewsDomain.platform_for_source(source) != PlatformEnum.UNKNOWN

    def test_filter_and_sort(self):
        stories = [
            SimpleNamespace(
                platform="Reddit",
                category="tool",
                title="A tool",
                content="",
                score=5,
                date=NOW - timedelta(days=1),
            ),
            SimpleNamespace(
                platform="X",
                category=None,
                title="Agents everywhere",
                content="agent news",
                score=50,
                date=NOW,
            ),
            SimpleNamespace(
                platform="Reddit",
                category=None,
                title="Another agent",
                content="",
                score=20,
                date=NOW - timedelta(days=2),
            ),
        ]

        reddit = filter_news(stories, platform="Reddit")
        assert [s.title for s in reddit] == ["A tool", "Another agent"]

        agents = filter_news(stories, search_query="AGENT")
        assert len(agents) == 2

        by_score = sort_news(stories, SortByEnum.SCORE)
        assert [s.score for s in by_score] == [50, 20, 5]

        by_date = sort_news(stories)
        assert by_date[0].title == "Agents everywhere"
