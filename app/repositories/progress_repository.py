from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.quiz import QuizProgress

PROGRESS_KEY = ["quiz_id", "admission_number"]
PROGRESS_FIELDS = ["student_name", "answers", "current_question"]


class ProgressRepository:
    """Repository for QuizProgress database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, quiz_id: int, admission_number: str) -> Optional[QuizProgress]:
        """Get the saved progress for a (quiz, student) pair"""
        return (
            self.db.query(QuizProgress)
            .filter(
                QuizProgress.quiz_id == quiz_id,
                QuizProgress.admission_number == admission_number,
            )
            .first()
        )

    def upsert(self, progress_data: dict) -> QuizProgress:
        """
        Create or supersede the progress row for (quiz_id, admission_number)
        in a single statement. Concurrent saves never conflict: the last
        write wins.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            return self._upsert_portable(progress_data)

        stmt = insert(QuizProgress).values(**progress_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=PROGRESS_KEY,
            set_={
                **{name: stmt.excluded[name] for name in PROGRESS_FIELDS},
                "last_saved": func.now(),
            },
        )
        self.db.execute(stmt)
        self.db.commit()
        return self._reload(progress_data)

    def _upsert_portable(self, progress_data: dict) -> QuizProgress:
        """Fallback for dialects without ON CONFLICT support"""
        try:
            self.db.add(QuizProgress(**progress_data))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            self.db.query(QuizProgress).filter(
                QuizProgress.quiz_id == progress_data["quiz_id"],
                QuizProgress.admission_number == progress_data["admission_number"],
            ).update(
                {
                    **{name: progress_data[name] for name in PROGRESS_FIELDS},
                    "last_saved": func.now(),
                },
                synchronize_session=False,
            )
            self.db.commit()
        return self._reload(progress_data)

    def _reload(self, progress_data: dict) -> QuizProgress:
        self.db.expire_all()
        return (
            self.db.query(QuizProgress)
            .filter(
                QuizProgress.quiz_id == progress_data["quiz_id"],
                QuizProgress.admission_number == progress_data["admission_number"],
            )
            .one()
        )

    def delete(self, quiz_id: int, admission_number: str) -> bool:
        """Delete saved progress, returning whether a row existed"""
        deleted_count = (
            self.db.query(QuizProgress)
            .filter(
                QuizProgress.quiz_id == quiz_id,
                QuizProgress.admission_number == admission_number,
            )
            .delete()
        )
        self.db.commit()
        return deleted_count > 0
