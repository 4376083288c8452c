from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import SessionLocal
from app.repositories.progress_repository import ProgressRepository
from app.repositories.submission_repository import SubmissionRepository


class DuplicateSubmissionError(ValueError):
    """A submission already exists for this (quiz, admission number)"""


class QuizRemoteStore(Protocol):
    """Remote side of a quiz attempt: saved progress and final submissions"""

    def has_submission(self, quiz_id: int, admission_number: str) -> bool: ...

    def load_progress(
        self, quiz_id: int, admission_number: str
    ) -> Optional[Dict[str, Any]]: ...

    def save_progress(self, snapshot: Dict[str, Any]) -> None: ...

    def delete_progress(self, quiz_id: int, admission_number: str) -> None: ...

    def create_submission(self, submission: Dict[str, Any]) -> Dict[str, Any]: ...


class DatabaseQuizStore:
    """QuizRemoteStore backed by the quiz_progress and submissions tables"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def has_submission(self, quiz_id: int, admission_number: str) -> bool:
        with self.session_factory() as db:
            return SubmissionRepository(db).exists(quiz_id, admission_number)

    def load_progress(
        self, quiz_id: int, admission_number: str
    ) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            progress = ProgressRepository(db).get(quiz_id, admission_number)
            if progress is None:
                return None
            return {
                "quiz_id": progress.quiz_id,
                "admission_number": progress.admission_number,
                "student_name": progress.student_name,
                "answers": dict(progress.answers or {}),
                "current_question": progress.current_question,
                "last_saved": progress.last_saved,
            }

    def save_progress(self, snapshot: Dict[str, Any]) -> None:
        with self.session_factory() as db:
            ProgressRepository(db).upsert(snapshot)

    def delete_progress(self, quiz_id: int, admission_number: str) -> None:
        with self.session_factory() as db:
            ProgressRepository(db).delete(quiz_id, admission_number)

    def create_submission(self, submission: Dict[str, Any]) -> Dict[str, Any]:
        """Store the final answers, then drop the now obsolete saved progress"""
        with self.session_factory() as db:
            try:
                created = SubmissionRepository(db).create(submission)
            except IntegrityError as e:
                raise DuplicateSubmissionError(
                    "You have already submitted this quiz"
                ) from e
            result = {"id": created.id, "submitted_at": created.submitted_at}
            ProgressRepository(db).delete(
                submission["quiz_id"], submission["admission_number"]
            )
            return result
