#!/usr/bin/env python3
"""
Pytest tests for the news source fetchers
Network calls are mocked at requests.get / requests.post
"""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from app.core.config import settings
from app.fetchers import FETCHERS
from app.fetchers.base import parse_article_listing, parse_date, parse_feed, with_retry
from app.fetchers.blogs import fetch_the_decoder, scrape_marktechpost
from app.fetchers.feeds import fetch_arxiv_ai, fetch_hacker_news
from app.fetchers.reddit import fetch_reddit_api, fetch_reddit_rss
from app.fetchers.twint import fetch_twint_data
from app.schemas.news import NewsSource

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>AI feed</title>
    <item>
      <title>OpenAI ships a new model</title>
      <link>https://example.com/openai-model</link>
      <pubDate>Mon, 02 Jun 2025 10:00:00 +0200</pubDate>
    </item>
    <item>
      <title>No link here</title>
    </item>
    <item>
      <title>Undated story</title>
      <link>https://example.com/undated</link>
    </item>
  </channel>
</rss>"""

ATOM_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>r/technology</title>
  <entry>
    <title>Reddit thread about AI chips</title>
    <link href="https://www.reddit.com/r/technology/comments/abc/ai_chips/" />
    <updated>2025-06-01T08:30:00+00:00</updated>
  </entry>
</feed>"""

BLOG_HTML = b"""<html><body>
<article>
  <h2><a href="/2025/06/agents">Agents take over the enterprise</a></h2>
  <time datetime="2025-06-01T09:00:00Z">June 1</time>
</article>
<article>
  <h2>Absolute link story</h2>
  <a href="https://other.example/story">Read</a>
</article>
<article><p>Card without a heading</p><a href="/x">x</a></article>
</body></html>"""


def mock_response(content=b"", json_data=None):
    response = Mock()
    response.status_code = 200
    response.content = content
    response.json.return_value = json_data
    response.raise_for_status = Mock()
    return response


class TestParsing:
    """Test feed, HTML and date parsing"""

    def test_parse_rss_feed(self):
        items = parse_feed(RSS_FEED, NewsSource.HACKERNEWS)

        assert [item.title for item in items] == [
            "OpenAI ships a new model",
            "Undated story",
        ]
        assert items[0].url == "https://example.com/openai-model"
        assert items[0].created_at == datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc)
        assert all(item.source == NewsSource.HACKERNEWS for item in items)

    def test_parse_atom_feed(self):
        items = parse_feed(ATOM_FEED, NewsSource.REDDIT_RSS)

        assert len(items) == 1
        assert items[0].url.startswith("https://www.reddit.com/r/technology/")
        assert items[0].created_at == datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)

    def test_parse_article_listing_resolves_relative_urls(self):
        items = parse_article_listing(
            BLOG_HTML, NewsSource.THE_DECODER, base_url="https://the-decoder.com"
        )

        assert [item.url for item in items] == [
            "https://the-decoder.com/2025/06/agents",
            "https://other.example/story",
        ]
        assert items[0].title == "Agents take over the enterprise"

    def test_parse_date_fallback_is_now(self):
        before = datetime.now(timezone.utc)
        parsed = parse_date("not a date")

        assert parsed >= before
        assert parsed.tzinfo is not None

    def test_parse_date_naive_iso_is_utc(self):
        assert parse_date("2025-06-01T12:00:00") == datetime(
            2025, 6, 1, 12, 0, tzinfo=timezone.utc
        )


class TestRetry:
    """Test the fixed-delay retry helper"""

    def test_retries_until_success(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise requests.ConnectionError("boom")
            return ["ok"]

        result = asyncio.run(with_retry(flaky, "flaky", attempts=3, delay=0))

        assert result == ["ok"]
        assert len(calls) == 3

    def test_reraises_last_error(self):
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError(f"failure {len(calls)}")

        with pytest.raises(ValueError, match="failure 3"):
            asyncio.run(with_retry(broken, "broken", attempts=3, delay=0))
        assert len(calls) == 3


class TestFeedFetchers:
    """Test RSS and HTML fetchers end to end with mocked HTTP"""

    @patch("app.fetchers.base.requests.get")
    def test_fetch_hacker_news(self, mock_get):
        mock_get.return_value = mock_response(RSS_FEED)

        items = asyncio.run(fetch_hacker_news())

        assert len(items) == 2
        assert mock_get.call_args[0][0] == "https://hnrss.org/newest?q=AI"

    @patch("app.fetchers.base.requests.get")
    def test_fetcher_failure_returns_empty_list(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")

        assert asyncio.run(fetch_arxiv_ai()) == []

    @patch("app.fetchers.base.requests.get")
    def test_malformed_feed_returns_empty_list(self, mock_get):
        mock_get.return_value = mock_response(b"<rss><channel><item>")

        assert asyncio.run(fetch_hacker_news()) == []

    @patch("app.fetchers.base.requests.get")
    def test_blog_scrapers(self, mock_get):
        mock_get.return_value = mock_response(BLOG_HTML)

        decoder = asyncio.run(fetch_the_decoder())
        marktechpost = asyncio.run(scrape_marktechpost())

        assert decoder[0].source == NewsSource.THE_DECODER
        assert decoder[0].url == "https://the-decoder.com/2025/06/agents"
        # No base URL: relative links are kept as found
        assert marktechpost[0].url == "/2025/06/agents"


class TestRedditFetchers:
    """Test Reddit retry and fallback chains"""

    def setup_method(self):
        self.credentials = {
            "REDDIT_CLIENT_ID": "id",
            "REDDIT_CLIENT_SECRET": "secret",
            "REDDIT_USERNAME": "user",
            "REDDIT_PASSWORD": "pass",
        }

    @patch("app.fetchers.base.requests.get")
    def test_rss_retries_three_times_then_empty(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")

        items = asyncio.run(fetch_reddit_rss())

        assert items == []
        assert mock_get.call_count == settings.FETCH_RETRY_ATTEMPTS
        assert "r/ArtificialIntelligence/.rss" in mock_get.call_args[0][0]

    @patch("app.fetchers.base.requests.get")
    def test_rss_recovers_on_second_attempt(self, mock_get):
        mock_get.side_effect = [requests.Timeout("slow"), mock_response(ATOM_FEED)]

        items = asyncio.run(fetch_reddit_rss())

        assert len(items) == 1
        assert items[0].source == NewsSource.REDDIT_RSS

    @patch("app.fetchers.base.requests.get")
    def test_api_without_credentials_uses_rss(self, mock_get, monkeypatch):
        for key in self.credentials:
            monkeypatch.setattr(settings, key, "")
        mock_get.return_value = mock_response(ATOM_FEED)

        items = asyncio.run(fetch_reddit_api())

        assert len(items) == 1
        assert "r/technology/.rss" in mock_get.call_args[0][0]

    @patch("app.fetchers.reddit.requests.post")
    @patch("app.fetchers.base.requests.get")
    def test_api_success(self, mock_get, mock_post, monkeypatch):
        for key, value in self.credentials.items():
            monkeypatch.setattr(settings, key, value)
        mock_post.return_value = mock_response(json_data={"access_token": "tok"})
        mock_get.return_value = mock_response(
            json_data={
                "data": {
                    "children": [
                        {
                            "data": {
                                "title": "Chip export ban expands",
                                "url": "https://news.example/chips",
                                "created_utc": 1748736000,
                            }
                        },
                        {"data": {"title": "", "url": "https://news.example/x"}},
                    ]
                }
            }
        )

        items = asyncio.run(fetch_reddit_api())

        assert len(items) == 1
        assert items[0].source == NewsSource.REDDIT_API
        assert items[0].created_at == datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert mock_get.call_args[0][0] == "https://oauth.reddit.com/r/technology/hot"

    @patch("app.fetchers.reddit.requests.post")
    @patch("app.fetchers.base.requests.get")
    def test_api_failure_falls_back_to_rss(self, mock_get, mock_post, monkeypatch):
        for key, value in self.credentials.items():
            monkeypatch.setattr(settings, key, value)
        mock_post.side_effect = requests.HTTPError("401 Unauthorized")
        mock_get.return_value = mock_response(ATOM_FEED)

        items = asyncio.run(fetch_reddit_api())

        assert mock_post.call_count == settings.FETCH_RETRY_ATTEMPTS
        assert len(items) == 1
        assert items[0].source == NewsSource.REDDIT_RSS
        assert "r/technology/.rss" in mock_get.call_args[0][0]

    @patch("app.fetchers.reddit.requests.post")
    @patch("app.fetchers.base.requests.get")
    def test_api_and_rss_failure_returns_empty(self, mock_get, mock_post, monkeypatch):
        for key, value in self.credentials.items():
            monkeypatch.setattr(settings, key, value)
        mock_post.side_effect = requests.HTTPError("503")
        mock_get.side_effect = requests.ConnectionError("down")

        assert asyncio.run(fetch_reddit_api()) == []


class TestTwintFetcher:
    """Test the static tweet snapshot reader"""

    def test_reads_snapshot(self, tmp_path, monkeypatch):
        snapshot = tmp_path / "twint.json"
        snapshot.write_text(
            json.dumps(
                [
                    {
                        "id_str": "123",
                        "tweet": "GPT agents are here",
                        "created_at": "2025-06-01T10:00:00Z",
                    },
                    {"id_str": "456", "tweet": ""},
                ]
            )
        )
        monkeypatch.setattr(settings, "TWINT_DATA_PATH", str(snapshot))

        items = asyncio.run(fetch_twint_data())

        assert len(items) == 1
        assert items[0].url == "https://twitter.com/user/status/123"
        assert items[0].title == "GPT agents are here"

    def test_missing_snapshot_returns_empty(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "TWINT_DATA_PATH", str(tmp_path / "none.json"))

        assert asyncio.run(fetch_twint_data()) == []


class TestRegistry:
    def test_nine_sources_in_order(self):
        assert [source for source, _ in FETCHERS] == list(NewsSource)
