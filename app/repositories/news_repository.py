from datetime import datetime
from typing import List, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.news import AINews


class NewsRepository:
    """Repository for AINews database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_url(self, url: str) -> Optional[AINews]:
        """Get a story by its unique URL"""
        return self.db.query(AINews).filter(AINews.url == url).first()

    def upsert_ignore_duplicates(self, stories: List[dict]) -> int:
        """
        Insert stories keyed by URL, leaving existing rows untouched.
        Returns the number of newly inserted rows.
        """
        if not stories:
            return 0

        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            return self._insert_missing(stories)

        stmt = (
            insert(AINews)
            .values(stories)
            .on_conflict_do_nothing(index_elements=["url"])
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return max(result.rowcount or 0, 0)

    def _insert_missing(self, stories: List[dict]) -> int:
        """Portable fallback for dialects without ON CONFLICT support"""
        urls = [story["url"] for story in stories]
        existing = {
            url for (url,) in self.db.query(AINews.url).filter(AINews.url.in_(urls))
        }
        new_rows = []
        for story in stories:
            if story["url"] in existing:
                continue
            existing.add(story["url"])
            new_rows.append(AINews(**story))
        self.db.add_all(new_rows)
        self.db.commit()
        return len(new_rows)

    def get_top_since(self, since: datetime, limit: int = 3) -> List[AINews]:
        """Get the highest scored stories since `since`, newer first on ties"""
        return (
            self.db.query(AINews)
            .filter(AINews.date >= since)
            .order_by(AINews.score.desc(), AINews.date.desc())
            .limit(limit)
            .all()
        )

    def get_all(self, skip: int = 0, limit: int = 500) -> List[AINews]:
        """Get all stories, newest first, with pagination"""
        return (
            self.db.query(AINews)
            .order_by(AINews.date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
