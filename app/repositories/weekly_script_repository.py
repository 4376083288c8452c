from typing import Optional

from sqlalchemy.orm import Session

from app.models.weekly_script import WeeklyScript


class WeeklyScriptRepository:
    """Repository for WeeklyScript database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, script_data: dict) -> WeeklyScript:
        """Record one backend attempt"""
        db_script = WeeklyScript(**script_data)
        self.db.add(db_script)
        self.db.commit()
        self.db.refresh(db_script)
        return db_script

    def get_latest(self) -> Optional[WeeklyScript]:
        """Get the most recently generated script"""
        return (
            self.db.query(WeeklyScript)
            .order_by(WeeklyScript.created_at.desc(), WeeklyScript.id.desc())
            .first()
        )
