from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.assignment import Assignment, AssignmentSubmission


class AssignmentRepository:
    """Repository for Assignment database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        return self.db.query(Assignment).filter(Assignment.id == assignment_id).first()

    def create(self, assignment_data: dict) -> Assignment:
        """Create a new assignment entry"""
        db_assignment = Assignment(**assignment_data)
        self.db.add(db_assignment)
        self.db.commit()
        self.db.refresh(db_assignment)
        return db_assignment

    def get_all(self, skip: int = 0, limit: int = 100) -> List[Assignment]:
        return (
            self.db.query(Assignment)
            .order_by(Assignment.created_at.desc(), Assignment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def create_submission(self, submission_data: dict) -> AssignmentSubmission:
        """Record an uploaded assignment document"""
        db_submission = AssignmentSubmission(**submission_data)
        self.db.add(db_submission)
        self.db.commit()
        self.db.refresh(db_submission)
        return db_submission
