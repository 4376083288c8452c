import asyncio
import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.domain.quiz_progress import (
    Advance,
    ChangeName,
    MarkSubmitted,
    QuizEvent,
    QuizPhase,
    QuizState,
    QuizTransitionError,
    Restore,
    SelectAnswer,
    Start,
    can_submit,
    new_state,
    normalize_admission_number,
    restore_event_from_local,
    restore_event_from_remote,
    transition,
)
from app.services.progress_writer import (
    DebouncedRemoteWriter,
    LocalProgressCache,
    ProgressWriter,
    progress_key,
)
from app.services.quiz_store import DuplicateSubmissionError, QuizRemoteStore

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class StartOutcome(str, Enum):
    STARTED = "started"
    SAVED_PROGRESS_FOUND = "saved_progress_found"
    ALREADY_SUBMITTED = "already_submitted"


class ResumeOutcome(str, Enum):
    RESUMED = "resumed"
    NO_SAVED_PROGRESS = "no_saved_progress"
    ALREADY_SUBMITTED = "already_submitted"


class SubmitOutcome(str, Enum):
    SUBMITTED = "submitted"
    ALREADY_SUBMITTED = "already_submitted"


class SubmissionError(Exception):
    """The submission could not be stored; the student may submit again"""


class QuizSession:
    """
    One student's attempt at one quiz.

    Every state change is written synchronously to the local cache and,
    after a quiet period, to the remote progress store. Resume prefers the
    remote copy and falls back to the local one.
    """

    def __init__(
        self,
        quiz_id: int,
        questions: List[Any],
        store: QuizRemoteStore,
        local_cache: Optional[LocalProgressCache] = None,
        debounce: Optional[float] = None,
    ):
        self.questions = list(questions)
        self.store = store
        self.local_cache = local_cache or LocalProgressCache()
        self.writer = ProgressWriter(
            self.local_cache,
            DebouncedRemoteWriter(
                store,
                settings.PROGRESS_SAVE_DEBOUNCE if debounce is None else debounce,
            ),
        )
        self._choice_counts = {str(q.id): len(q.choices) for q in self.questions}
        self.state: QuizState = new_state(
            quiz_id, [q.id for q in self.questions], self._choice_counts
        )

    @property
    def quiz_id(self) -> int:
        return self.state.quiz_id

    @property
    def current_question(self) -> Optional[Any]:
        if self.state.phase != QuizPhase.IN_PROGRESS:
            return None
        return self.questions[self.state.current]

    def _apply(self, event: QuizEvent) -> QuizState:
        next_state = transition(self.state, event)
        if next_state != self.state:
            self.state = next_state
            if next_state.phase == QuizPhase.IN_PROGRESS:
                self.writer.write(next_state)
        return self.state

    def _mark_submitted(self, admission_number: str, student_name: str = "") -> None:
        self.writer.clear(self.quiz_id, admission_number)
        self.state = transition(
            replace(
                self.state,
                admission_number=admission_number,
                student_name=student_name or self.state.student_name,
            ),
            MarkSubmitted(),
        )

    async def _has_submission(self, admission_number: str) -> bool:
        try:
            return await asyncio.to_thread(
                self.store.has_submission, self.quiz_id, admission_number
            )
        except Exception as e:
            logger.error(f"Error checking submission: {e}")
            return False

    async def _load_remote(self, admission_number: str) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(
                self.store.load_progress, self.quiz_id, admission_number
            )
        except Exception as e:
            logger.warning(f"Remote quiz progress unavailable, using local cache: {e}")
            return None

    def _load_local(self, admission_number: str) -> Optional[Dict[str, Any]]:
        return self.local_cache.load(progress_key(self.quiz_id, admission_number))

    async def has_saved_progress(self, admission_number: str) -> bool:
        if await self._load_remote(admission_number):
            return True
        return self._load_local(admission_number) is not None

    async def start(
        self, student_name: str, admission_number: str, discard_existing: bool = False
    ) -> StartOutcome:
        """
        Begin a fresh attempt.

        Saved progress is never overwritten silently: without
        `discard_existing` the caller gets SAVED_PROGRESS_FOUND and must
        either resume or confirm the reset.
        """
        admission_number = normalize_admission_number(admission_number)
        # Validates name, admission number and phase before any side effect
        transition(self.state, Start(student_name, admission_number))

        if await self._has_submission(admission_number):
            self._mark_submitted(admission_number, student_name)
            return StartOutcome.ALREADY_SUBMITTED

        if await self.has_saved_progress(admission_number):
            if not discard_existing:
                return StartOutcome.SAVED_PROGRESS_FOUND
            self.writer.clear(self.quiz_id, admission_number)
            try:
                await asyncio.to_thread(
                    self.store.delete_progress, self.quiz_id, admission_number
                )
            except Exception as e:
                logger.error(f"Failed to discard remote quiz progress: {e}")

        self._apply(Start(student_name, admission_number))
        logger.info(f"Quiz {self.quiz_id} started by {admission_number}")
        return StartOutcome.STARTED

    async def resume(self, admission_number: str) -> ResumeOutcome:
        """Restore a saved attempt, remote copy first"""
        admission_number = normalize_admission_number(admission_number)
        if not admission_number:
            raise QuizTransitionError("Admission number is required to resume")

        if await self._has_submission(admission_number):
            self._mark_submitted(admission_number)
            return ResumeOutcome.ALREADY_SUBMITTED

        event: Optional[Restore] = None
        remote = await self._load_remote(admission_number)
        if remote:
            event = restore_event_from_remote(remote)
        else:
            local = self._load_local(admission_number)
            if local is not None:
                try:
                    event = restore_event_from_local(local, admission_number)
                except QuizTransitionError as e:
                    logger.error(f"Error restoring quiz: {e}")

        if event is None:
            return ResumeOutcome.NO_SAVED_PROGRESS

        try:
            self._apply(event)
        except (TypeError, ValueError) as e:
            logger.error(f"Error restoring quiz: {e}")
            return ResumeOutcome.NO_SAVED_PROGRESS

        logger.info(
            f"Quiz {self.quiz_id} resumed for {admission_number} "
            f"at question {self.state.current + 1}"
        )
        return ResumeOutcome.RESUMED

    def change_name(self, student_name: str) -> QuizState:
        return self._apply(ChangeName(student_name))

    def select_answer(self, question_id: Any, choice: int) -> QuizState:
        question_id = str(question_id)
        return self._apply(
            SelectAnswer(question_id, choice, self._choice_counts.get(question_id, 0))
        )

    def advance(self) -> QuizState:
        return self._apply(Advance())

    async def submit(self) -> SubmitOutcome:
        """Store the final answers once; failures leave the attempt open"""
        if not can_submit(self.state):
            raise QuizTransitionError(
                "Please enter your name and answer every question before submitting"
            )

        admission_number = self.state.admission_number
        if await self._has_submission(admission_number):
            self._mark_submitted(admission_number)
            return SubmitOutcome.ALREADY_SUBMITTED

        try:
            await asyncio.to_thread(
                self.store.create_submission,
                {
                    "quiz_id": self.quiz_id,
                    "name": self.state.student_name,
                    "admission_number": admission_number,
                    "answers": dict(self.state.answers),
                },
            )
        except DuplicateSubmissionError:
            self._mark_submitted(admission_number)
            return SubmitOutcome.ALREADY_SUBMITTED
        except Exception as e:
            logger.error(f"Error submitting quiz: {e}")
            raise SubmissionError("Error submitting quiz, please try again") from e

        self._mark_submitted(admission_number)
        logger.info(f"✅ Quiz {self.quiz_id} submitted by {admission_number}")
        return SubmitOutcome.SUBMITTED

    async def flush(self) -> None:
        """Push any pending progress to the remote store immediately"""
        await self.writer.remote.flush()
