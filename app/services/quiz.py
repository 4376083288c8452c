import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.quiz_progress import (
    Restore,
    calculate_percentage,
    new_state,
    normalize_admission_number,
    to_remote_snapshot,
    transition,
)
from app.models.quiz import Question
from app.repositories.progress_repository import ProgressRepository
from app.repositories.quiz_repository import QuizRepository
from app.repositories.submission_repository import SubmissionRepository
from app.schemas.quiz import (
    LeaderboardEntry,
    LeaderboardResponse,
    ProgressResponse,
    ProgressSave,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionListResponse,
    QuestionResponse,
    QuizCreate,
    QuizListResponse,
    QuizResponse,
    RevisionItem,
    RevisionResponse,
    SubmissionCreate,
    SubmissionResponse,
)
from app.services.progress_writer import LocalProgressCache
from app.services.quiz_session import QuizSession
from app.services.quiz_store import (
    DatabaseQuizStore,
    DuplicateSubmissionError,
    QuizRemoteStore,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_time(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuizService:
    def __init__(self, db: Session):
        self.db = db
        self.quiz_repository = QuizRepository(db)
        self.progress_repository = ProgressRepository(db)
        self.submission_repository = SubmissionRepository(db)

    def _get_questions_or_raise(self, quiz_id: int) -> List[Question]:
        if self.quiz_repository.get_by_id(quiz_id) is None:
            raise ValueError(f"Quiz with ID {quiz_id} not found")
        return self.quiz_repository.get_questions(quiz_id)

    # Quizzes and questions

    def list_quizzes(self) -> QuizListResponse:
        quizzes = self.quiz_repository.get_all()
        return QuizListResponse(
            data=[QuizResponse.model_validate(quiz) for quiz in quizzes]
        )

    def create_quiz(self, quiz: QuizCreate) -> QuizResponse:
        created = self.quiz_repository.create({"title": quiz.title})
        logger.info(f"Created quiz {created.id}: {created.title}")
        return QuizResponse.model_validate(created)

    def add_question(
        self, quiz_id: int, question: QuestionCreate
    ) -> QuestionDetailResponse:
        """Add a question; needs two or more choices and a valid correct index"""
        if self.quiz_repository.get_by_id(quiz_id) is None:
            raise ValueError(f"Quiz with ID {quiz_id} not found")

        choices = [choice.strip() for choice in question.choices]
        if len(choices) < 2:
            raise ValueError("A question needs at least 2 choices")
        if any(not choice for choice in choices):
            raise ValueError("Choices cannot be empty")
        if not 0 <= question.correct_choice < len(choices):
            raise ValueError(
                f"correct_choice must be between 0 and {len(choices) - 1}"
            )

        created = self.quiz_repository.add_question(
            {
                "quiz_id": quiz_id,
                "question_text": question.question_text.strip(),
                "choices": choices,
                "correct_choice": question.correct_choice,
            }
        )
        return QuestionDetailResponse.model_validate(created)

    def get_questions(self, quiz_id: int) -> QuestionListResponse:
        questions = self._get_questions_or_raise(quiz_id)
        return QuestionListResponse(
            data=[QuestionResponse.model_validate(q) for q in questions]
        )

    # Progress

    def get_progress(self, quiz_id: int, admission_number: str) -> ProgressResponse:
        admission_number = normalize_admission_number(admission_number)
        progress = self.progress_repository.get(quiz_id, admission_number)
        if progress is None:
            raise ValueError(
                f"Saved progress for {admission_number} on quiz {quiz_id} not found"
            )
        return ProgressResponse.model_validate(progress)

    def save_progress(
        self, quiz_id: int, admission_number: str, payload: ProgressSave
    ) -> ProgressResponse:
        """
        Upsert progress for (quiz, admission number).

        The payload is normalised through the quiz state machine: answers to
        unknown questions or with invalid choices are dropped, and the
        position never passes the first unanswered question.
        """
        admission_number = normalize_admission_number(admission_number)
        questions = self._get_questions_or_raise(quiz_id)
        if self.submission_repository.exists(quiz_id, admission_number):
            raise DuplicateSubmissionError("You have already submitted this quiz")

        state = transition(
            new_state(
                quiz_id,
                [q.id for q in questions],
                {q.id: len(q.choices) for q in questions},
            ),
            Restore(
                student_name=payload.student_name,
                admission_number=admission_number,
                answers=payload.answers,
                current=payload.current_question,
            ),
        )
        progress = self.progress_repository.upsert(to_remote_snapshot(state))
        return ProgressResponse.model_validate(progress)

    def delete_progress(self, quiz_id: int, admission_number: str) -> None:
        admission_number = normalize_admission_number(admission_number)
        if not self.progress_repository.delete(quiz_id, admission_number):
            raise ValueError(
                f"Saved progress for {admission_number} on quiz {quiz_id} not found"
            )

    # Submissions

    def _validate_submission(
        self, submission: SubmissionCreate, questions: List[Question]
    ) -> dict:
        name = submission.name.strip()
        admission_number = normalize_admission_number(submission.admission_number)
        if not name or not admission_number:
            raise ValueError("Name and admission number are required")
        if not questions:
            raise ValueError("Quiz has no questions")

        answers = {}
        for question in questions:
            key = str(question.id)
            if key not in submission.answers:
                raise ValueError("Please answer all questions before submitting")
            choice = submission.answers[key]
            if not 0 <= choice < len(question.choices):
                raise ValueError(f"Invalid choice {choice} for question {key}")
            answers[key] = choice

        unknown = set(submission.answers) - set(answers)
        if unknown:
            raise ValueError(f"Unknown question ids: {', '.join(sorted(unknown))}")

        return {"name": name, "admission_number": admission_number, "answers": answers}

    def submit(self, quiz_id: int, submission: SubmissionCreate) -> SubmissionResponse:
        """Store a final submission; a second one for the same student is refused"""
        questions = self._get_questions_or_raise(quiz_id)
        data = self._validate_submission(submission, questions)

        if self.submission_repository.exists(quiz_id, data["admission_number"]):
            raise DuplicateSubmissionError("You have already submitted this quiz")

        try:
            created = self.submission_repository.create({"quiz_id": quiz_id, **data})
        except IntegrityError as e:
            raise DuplicateSubmissionError(
                "You have already submitted this quiz"
            ) from e

        self.progress_repository.delete(quiz_id, data["admission_number"])
        logger.info(f"✅ Submission stored for quiz {quiz_id} ({data['admission_number']})")
        return SubmissionResponse.model_validate(created)

    def get_revision(self, quiz_id: int, admission_number: str) -> RevisionResponse:
        """Submission with a per-question correctness flag and the percent score"""
        admission_number = normalize_admission_number(admission_number)
        questions = self._get_questions_or_raise(quiz_id)
        submission = self.submission_repository.get(quiz_id, admission_number)
        if submission is None:
            raise ValueError(
                f"Submission for {admission_number} on quiz {quiz_id} not found"
            )

        answers = submission.answers or {}
        items = []
        for question in questions:
            selected = answers.get(str(question.id))
            items.append(
                RevisionItem(
                    question_id=question.id,
                    question_text=question.question_text,
                    choices=question.choices,
                    selected_choice=selected,
                    correct_choice=question.correct_choice,
                    is_correct=selected == question.correct_choice,
                )
            )

        return RevisionResponse(
            submission=SubmissionResponse.model_validate(submission),
            score=calculate_percentage(answers, questions),
            items=items,
        )

    def get_leaderboard(self, quiz_id: int) -> LeaderboardResponse:
        """Submissions ranked by percent score, earlier submissions first on ties"""
        questions = self._get_questions_or_raise(quiz_id)
        submissions = self.submission_repository.get_by_quiz(quiz_id)

        scored = [
            (calculate_percentage(s.answers or {}, questions), s) for s in submissions
        ]
        scored.sort(key=lambda pair: (-pair[0], _sort_time(pair[1].submitted_at)))

        return LeaderboardResponse(
            data=[
                LeaderboardEntry(
                    rank=rank,
                    name=submission.name,
                    admission_number=submission.admission_number,
                    score=score,
                    submitted_at=submission.submitted_at,
                )
                for rank, (score, submission) in enumerate(scored, start=1)
            ]
        )

    # Quiz taking

    def open_session(
        self,
        quiz_id: int,
        store: Optional[QuizRemoteStore] = None,
        local_cache: Optional[LocalProgressCache] = None,
        debounce: Optional[float] = None,
    ) -> QuizSession:
        """
        Create a QuizSession for one student taking `quiz_id`.

        Without an explicit store the session reads and writes through the
        same database this service is bound to.
        """
        questions = self._get_questions_or_raise(quiz_id)
        if store is None:
            store = DatabaseQuizStore(sessionmaker(bind=self.db.get_bind()))
        return QuizSession(
            quiz_id,
            questions,
            store,
            local_cache=local_cache,
            debounce=debounce,
        )
