from sqlalchemy.orm import Session

from app.models.scrape_log import ScrapeLog


class ScrapeLogRepository:
    """Repository for ScrapeLog database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, source: str, message: str) -> ScrapeLog:
        """Record a failure for a scrape source"""
        db_log = ScrapeLog(source=source, message=message)
        self.db.add(db_log)
        self.db.commit()
        self.db.refresh(db_log)
        return db_log
