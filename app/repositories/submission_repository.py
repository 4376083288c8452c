from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.quiz import Submission


class SubmissionRepository:
    """Repository for Submission database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, quiz_id: int, admission_number: str) -> Optional[Submission]:
        """Get the submission of a student for a quiz"""
        return (
            self.db.query(Submission)
            .filter(
                Submission.quiz_id == quiz_id,
                Submission.admission_number == admission_number,
            )
            .first()
        )

    def exists(self, quiz_id: int, admission_number: str) -> bool:
        return self.get(quiz_id, admission_number) is not None

    def create(self, submission_data: dict) -> Submission:
        """Create a submission; the unique key rejects a second one"""
        db_submission = Submission(**submission_data)
        self.db.add(db_submission)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(db_submission)
        return db_submission

    def get_by_quiz(self, quiz_id: int) -> List[Submission]:
        """Get all submissions for a quiz"""
        return (
            self.db.query(Submission)
            .filter(Submission.quiz_id == quiz_id)
            .order_by(Submission.submitted_at)
            .all()
        )
