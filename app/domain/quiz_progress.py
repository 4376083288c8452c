"""
Quiz-taking state machine.

A student's attempt moves NOT_STARTED -> IN_PROGRESS -> SUBMITTED. While in
progress the attempt walks forward one question at a time: answering locks
the current question, and advancing is only possible once it is answered.
Transitions are pure functions returning a new QuizState; persistence lives in
app.services.quiz_session.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class QuizPhase(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class QuizTransitionError(ValueError):
    """Raised when an event is not allowed in the current state"""


@dataclass(frozen=True)
class QuizState:
    quiz_id: int
    question_ids: Tuple[str, ...]
    phase: QuizPhase = QuizPhase.NOT_STARTED
    student_name: str = ""
    admission_number: str = ""
    answers: Mapping[str, int] = field(default_factory=dict)
    locked: Mapping[str, bool] = field(default_factory=dict)
    current: int = 0
    # Number of choices per question id, used to range-check restored answers
    choice_counts: Mapping[str, int] = field(default_factory=dict)

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    @property
    def current_question_id(self) -> Optional[str]:
        if 0 <= self.current < self.total_questions:
            return self.question_ids[self.current]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current == self.total_questions - 1

    def is_locked(self, question_id: str) -> bool:
        return bool(self.locked.get(question_id))


@dataclass(frozen=True)
class Start:
    student_name: str
    admission_number: str


@dataclass(frozen=True)
class Restore:
    student_name: str
    admission_number: str
    answers: Mapping[str, int]
    current: int


@dataclass(frozen=True)
class ChangeName:
    student_name: str


@dataclass(frozen=True)
class SelectAnswer:
    question_id: str
    choice: int
    choice_count: int


@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class MarkSubmitted:
    pass


QuizEvent = Union[Start, Restore, ChangeName, SelectAnswer, Advance, MarkSubmitted]


def normalize_admission_number(admission_number: Optional[str]) -> str:
    """Canonical form used for every lookup keyed on the admission number"""
    return (admission_number or "").strip()


def new_state(
    quiz_id: int, question_ids, choice_counts: Optional[Mapping[Any, int]] = None
) -> QuizState:
    return QuizState(
        quiz_id=quiz_id,
        question_ids=tuple(str(q) for q in question_ids),
        choice_counts={str(q): int(n) for q, n in (choice_counts or {}).items()},
    )


def _valid_choice(state: QuizState, question_id: str, choice: Any) -> bool:
    if isinstance(choice, bool) or not isinstance(choice, int):
        return False
    count = state.choice_counts.get(question_id)
    if count is None:
        return choice >= 0
    return 0 <= choice < count


def _require_phase(state: QuizState, phase: QuizPhase, action: str) -> None:
    if state.phase != phase:
        raise QuizTransitionError(
            f"Cannot {action} while quiz is {state.phase.value}"
        )


def _start(state: QuizState, event: Start) -> QuizState:
    _require_phase(state, QuizPhase.NOT_STARTED, "start")
    admission_number = normalize_admission_number(event.admission_number)
    if not event.student_name.strip() or not admission_number:
        raise QuizTransitionError("Please enter your name and admission number")
    if state.total_questions == 0:
        raise QuizTransitionError("Quiz has no questions")
    return replace(
        state,
        phase=QuizPhase.IN_PROGRESS,
        student_name=event.student_name,
        admission_number=admission_number,
        answers={},
        locked={},
        current=0,
    )


def _restore(state: QuizState, event: Restore) -> QuizState:
    """
    Rebuild an attempt from saved progress.

    Saved data is untrusted: answers to unknown questions or with an
    out-of-range choice are dropped, and the position is pulled back to the
    first unanswered question so every question stays reachable. Answers
    beyond that position are discarded.
    """
    _require_phase(state, QuizPhase.NOT_STARTED, "resume")
    admission_number = normalize_admission_number(event.admission_number)
    if not admission_number:
        raise QuizTransitionError("Admission number is required to resume")
    if state.total_questions == 0:
        raise QuizTransitionError("Quiz has no questions")

    saved = {str(qid): choice for qid, choice in (event.answers or {}).items()}
    current = min(max(int(event.current or 0), 0), state.total_questions - 1)

    answers = {}
    for index, question_id in enumerate(state.question_ids):
        if index > current:
            break
        choice = saved.get(question_id)
        if not _valid_choice(state, question_id, choice):
            current = index
            break
        answers[question_id] = choice

    # Lock status is derived from the presence of an answer
    locked = {qid: True for qid in answers}

    return replace(
        state,
        phase=QuizPhase.IN_PROGRESS,
        student_name=event.student_name or state.student_name,
        admission_number=admission_number,
        answers=answers,
        locked=locked,
        current=current,
    )


def _change_name(state: QuizState, event: ChangeName) -> QuizState:
    if state.phase == QuizPhase.SUBMITTED:
        raise QuizTransitionError("Cannot change name after submission")
    if state.phase == QuizPhase.IN_PROGRESS and state.current > 0:
        raise QuizTransitionError("Name is locked after the first question")
    return replace(state, student_name=event.student_name)


def _select_answer(state: QuizState, event: SelectAnswer) -> QuizState:
    _require_phase(state, QuizPhase.IN_PROGRESS, "answer")
    question_id = str(event.question_id)
    if question_id != state.current_question_id:
        raise QuizTransitionError("Only the current question can be answered")
    if state.is_locked(question_id):
        return state
    if not 0 <= event.choice < event.choice_count:
        raise QuizTransitionError(f"Invalid choice {event.choice}")

    return replace(
        state,
        answers={**state.answers, question_id: event.choice},
        locked={**state.locked, question_id: True},
    )


def _advance(state: QuizState, event: Advance) -> QuizState:
    _require_phase(state, QuizPhase.IN_PROGRESS, "advance")
    if state.current_question_id not in state.answers:
        raise QuizTransitionError("Answer the current question before continuing")
    if state.is_last_question:
        raise QuizTransitionError("Already on the last question")
    return replace(state, current=state.current + 1)


def _mark_submitted(state: QuizState, event: MarkSubmitted) -> QuizState:
    return replace(state, phase=QuizPhase.SUBMITTED)


_HANDLERS = {
    Start: _start,
    Restore: _restore,
    ChangeName: _change_name,
    SelectAnswer: _select_answer,
    Advance: _advance,
    MarkSubmitted: _mark_submitted,
}


def transition(state: QuizState, event: QuizEvent) -> QuizState:
    """Apply `event` to `state`, returning the next state"""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise QuizTransitionError(f"Unknown event {event!r}")
    return handler(state, event)


def can_submit(state: QuizState) -> bool:
    return (
        state.phase == QuizPhase.IN_PROGRESS
        and state.total_questions > 0
        and len(state.answers) == state.total_questions
        and bool(state.student_name.strip())
    )


def calculate_percentage(answers: Mapping[str, int], questions) -> int:
    """Percent of questions answered correctly, rounded to an integer"""
    if not questions:
        return 0
    correct = sum(
        1
        for question in questions
        if answers.get(str(question.id)) == question.correct_choice
    )
    return round(correct / len(questions) * 100)


def to_local_snapshot(state: QuizState, saved_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Serialise the attempt in the local cache format"""
    saved_at = saved_at or datetime.now(timezone.utc)
    return {
        "studentName": state.student_name,
        "admissionNumber": state.admission_number,
        "answers": dict(state.answers),
        "locked": dict(state.locked),
        "current": state.current,
        "started": state.phase == QuizPhase.IN_PROGRESS,
        "lastSaved": saved_at.isoformat(),
    }


def to_remote_snapshot(state: QuizState) -> Dict[str, Any]:
    """Serialise the attempt as a quiz_progress row"""
    return {
        "quiz_id": state.quiz_id,
        "admission_number": state.admission_number,
        "student_name": state.student_name,
        "answers": dict(state.answers),
        "current_question": state.current,
    }


def restore_event_from_local(
    snapshot: Mapping[str, Any], admission_number: str
) -> Restore:
    if not isinstance(snapshot, Mapping):
        raise QuizTransitionError("Malformed saved progress")
    answers = snapshot.get("answers") or {}
    if not isinstance(answers, Mapping):
        raise QuizTransitionError("Malformed saved answers")
    return Restore(
        student_name=snapshot.get("studentName") or "",
        admission_number=admission_number,
        answers=answers,
        current=snapshot.get("current") or 0,
    )


def restore_event_from_remote(progress: Mapping[str, Any]) -> Restore:
    return Restore(
        student_name=progress.get("student_name") or "",
        admission_number=progress.get("admission_number") or "",
        answers=progress.get("answers") or {},
        current=progress.get("current_question") or 0,
    )
