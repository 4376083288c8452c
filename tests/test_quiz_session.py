#!/usr/bin/env python3
"""
Pytest tests for quiz sessions: local cache, debounced remote saves,
resume and submit-once behaviour
"""

import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from app.domain.quiz_progress import QuizPhase, QuizTransitionError
from app.models.quiz import Question, Quiz, QuizProgress, Submission
from app.repositories.progress_repository import ProgressRepository
from app.services.quiz import QuizService
from app.services.progress_writer import (
    DebouncedRemoteWriter,
    LocalProgressCache,
    progress_key,
)
from app.services.quiz_session import (
    QuizSession,
    ResumeOutcome,
    StartOutcome,
    SubmissionError,
    SubmitOutcome,
)
from app.services.quiz_store import DatabaseQuizStore, DuplicateSubmissionError

QUIZ_ID = 7
DEBOUNCE = 0.05
# Long enough that no timer fires while a session test is running
SESSION_DEBOUNCE = 1.0


def make_questions(count=5):
    return [
        SimpleNamespace(id=100 + i, choices=["a", "b", "c", "d"], correct_choice=i % 4)
        for i in range(count)
    ]


class FakeQuizStore:
    """In-memory QuizRemoteStore"""

    def __init__(self):
        self.lock = threading.Lock()
        self.progress = {}
        self.submissions = {}
        self.saves = []
        self.fail_loads = False
        self.fail_saves = False
        self.fail_creates = 0
        self.race_duplicate = False

    def has_submission(self, quiz_id, admission_number):
        return (quiz_id, admission_number) in self.submissions

    def load_progress(self, quiz_id, admission_number):
        if self.fail_loads:
            raise ConnectionError("remote unavailable")
        return self.progress.get((quiz_id, admission_number))

    def save_progress(self, snapshot):
        if self.fail_saves:
            raise ConnectionError("remote unavailable")
        with self.lock:
            self.saves.append(snapshot)
            key = (snapshot["quiz_id"], snapshot["admission_number"])
            self.progress[key] = dict(snapshot)

    def delete_progress(self, quiz_id, admission_number):
        self.progress.pop((quiz_id, admission_number), None)

    def create_submission(self, submission):
        if self.race_duplicate:
            raise DuplicateSubmissionError("You have already submitted this quiz")
        if self.fail_creates:
            self.fail_creates -= 1
            raise ConnectionError("insert failed")
        key = (submission["quiz_id"], submission["admission_number"])
        self.submissions[key] = submission
        return {"id": len(self.submissions), "submitted_at": None}


class TestLocalProgressCache:
    """Test the file-backed local cache"""

    def setup_method(self):
        self.key = progress_key(QUIZ_ID, "A001")

    def test_save_and_load(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))

        assert cache.save(self.key, {"current": 2})
        assert cache.load(self.key) == {"current": 2}

        cache.remove(self.key)
        assert cache.load(self.key) is None

    def test_corrupt_entry_is_treated_as_missing(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))
        cache._path(self.key).write_text("{not json", encoding="utf-8")

        assert cache.load(self.key) is None

    def test_non_object_entry_is_treated_as_missing(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))
        cache._path(self.key).write_text("[1, 2, 3]", encoding="utf-8")

        assert cache.load(self.key) is None

    def test_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        cache = LocalProgressCache(str(blocker / "nested"))

        assert cache.save(self.key, {"current": 0}) is False

    def test_key_format(self):
        assert progress_key(3, "A/01") == "quiz-progress-3-A/01"


class TestDebouncedRemoteWriter:
    """Test the single-slot, latest-wins remote writer"""

    def setup_method(self):
        self.store = FakeQuizStore()

    def test_only_latest_snapshot_is_sent(self):
        writer = DebouncedRemoteWriter(self.store, delay=0.3)

        async def scenario():
            for i in range(5):
                writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": i})
                await asyncio.sleep(0.01)
            assert writer.pending
            await asyncio.sleep(0.6)
            await writer.flush()

        asyncio.run(scenario())

        assert [s["current_question"] for s in self.store.saves] == [4]
        assert not writer.pending

    def test_each_change_restarts_the_timer(self):
        writer = DebouncedRemoteWriter(self.store, delay=0.3)
        saved_at_first_deadline = []

        async def scenario():
            writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 0})
            await asyncio.sleep(0.2)
            writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 1})
            # Past the first change's deadline but before the restarted one
            await asyncio.sleep(0.15)
            saved_at_first_deadline.extend(self.store.saves)
            await asyncio.sleep(0.4)

        asyncio.run(scenario())

        assert saved_at_first_deadline == []
        assert [s["current_question"] for s in self.store.saves] == [1]

    def test_flush_sends_immediately(self):
        writer = DebouncedRemoteWriter(self.store, delay=60)

        async def scenario():
            writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 1})
            await writer.flush()

        asyncio.run(scenario())

        assert len(self.store.saves) == 1

    def test_cancel_drops_pending_snapshot(self):
        writer = DebouncedRemoteWriter(self.store, delay=DEBOUNCE)

        async def scenario():
            writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 1})
            writer.cancel()
            await asyncio.sleep(DEBOUNCE * 3)

        asyncio.run(scenario())

        assert self.store.saves == []

    def test_failed_save_is_logged_not_raised(self):
        self.store.fail_saves = True
        writer = DebouncedRemoteWriter(self.store, delay=DEBOUNCE)

        async def scenario():
            writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 1})
            await asyncio.sleep(DEBOUNCE * 3)
            await writer.flush()

        asyncio.run(scenario())

        assert self.store.saves == []

    def test_without_event_loop_saves_synchronously(self):
        writer = DebouncedRemoteWriter(self.store, delay=DEBOUNCE)

        writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 3})
        writer.submit({"quiz_id": 1, "admission_number": "A", "current_question": 4})

        # One write per call, nothing left queued
        assert [s["current_question"] for s in self.store.saves] == [3, 4]
        assert not writer.pending


class TestQuizSession:
    """Test start, resume and submit against an in-memory store"""

    def setup_method(self):
        self.store = FakeQuizStore()
        self.questions = make_questions()

    def new_session(self, tmp_path):
        return QuizSession(
            QUIZ_ID,
            self.questions,
            self.store,
            local_cache=LocalProgressCache(str(tmp_path)),
            debounce=SESSION_DEBOUNCE,
        )

    def test_resume_restores_position_and_answers(self, tmp_path):
        async def first_visit():
            session = self.new_session(tmp_path)
            assert await session.start("Ada", "A001") == StartOutcome.STARTED
            session.select_answer(100, 1)
            session.advance()
            session.select_answer(101, 2)
            await session.flush()

        async def second_visit():
            session = self.new_session(tmp_path)
            outcome = await session.resume("A001")
            return session, outcome

        asyncio.run(first_visit())
        session, outcome = asyncio.run(second_visit())

        assert outcome == ResumeOutcome.RESUMED
        assert session.state.current == 1
        assert session.state.answers == {"100": 1, "101": 2}
        assert session.state.student_name == "Ada"
        assert session.state.is_locked("101")

    def test_resume_falls_back_to_local_cache(self, tmp_path):
        async def first_visit():
            session = self.new_session(tmp_path)
            await session.start("Ada", "A001")
            session.select_answer(100, 3)
            session.writer.remote.cancel()

        async def second_visit():
            self.store.fail_loads = True
            session = self.new_session(tmp_path)
            return session, await session.resume("A001")

        asyncio.run(first_visit())
        session, outcome = asyncio.run(second_visit())

        assert self.store.saves == []
        assert outcome == ResumeOutcome.RESUMED
        assert session.state.answers == {"100": 3}

    def test_corrupt_local_cache_means_no_progress(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))
        cache._path(progress_key(QUIZ_ID, "A001")).write_text("{{{", encoding="utf-8")

        session = self.new_session(tmp_path)
        outcome = asyncio.run(session.resume("A001"))

        assert outcome == ResumeOutcome.NO_SAVED_PROGRESS
        assert session.state.phase == QuizPhase.NOT_STARTED

    def test_malformed_local_answers_mean_no_progress(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))
        cache.save(progress_key(QUIZ_ID, "A001"), {"answers": "oops", "current": 1})

        outcome = asyncio.run(self.new_session(tmp_path).resume("A001"))

        assert outcome == ResumeOutcome.NO_SAVED_PROGRESS

    def test_resume_from_skipped_position_can_still_finish(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))
        cache.save(
            progress_key(QUIZ_ID, "A001"),
            {"studentName": "Ada", "answers": {"100": 1}, "current": 3},
        )

        async def scenario():
            session = self.new_session(tmp_path)
            assert await session.resume("A001") == ResumeOutcome.RESUMED
            assert session.state.current == 1
            for index, question in enumerate(self.questions[1:], start=1):
                session.select_answer(question.id, 0)
                if index < len(self.questions) - 1:
                    session.advance()
            return await session.submit()

        assert asyncio.run(scenario()) == SubmitOutcome.SUBMITTED

    def test_invalid_cached_choices_are_never_submitted(self, tmp_path):
        cache = LocalProgressCache(str(tmp_path))
        cache.save(
            progress_key(QUIZ_ID, "A001"),
            {
                "studentName": "Ada",
                "answers": {"100": 99, "101": -4, "102": 0, "103": 0, "104": 0},
                "current": 4,
            },
        )

        async def scenario():
            session = self.new_session(tmp_path)
            await session.resume("A001")
            assert session.state.current == 0
            assert session.state.answers == {}
            self.answer_all(session)
            return await session.submit()

        assert asyncio.run(scenario()) == SubmitOutcome.SUBMITTED
        stored = self.store.submissions[(QUIZ_ID, "A001")]["answers"]
        assert all(0 <= choice < 4 for choice in stored.values())

    def test_admission_number_is_trimmed(self, tmp_path):
        self.store.submissions[(QUIZ_ID, "A001")] = {"answers": {}}

        session = self.new_session(tmp_path)
        assert asyncio.run(session.start("Ada", " A001 ")) == StartOutcome.ALREADY_SUBMITTED

        other = self.new_session(tmp_path)
        assert asyncio.run(other.resume("A001  ")) == ResumeOutcome.ALREADY_SUBMITTED

    def test_start_with_saved_progress_needs_confirmation(self, tmp_path):
        self.store.progress[(QUIZ_ID, "A001")] = {
            "quiz_id": QUIZ_ID,
            "admission_number": "A001",
            "student_name": "Ada",
            "answers": {"100": 0},
            "current_question": 0,
        }
        session = self.new_session(tmp_path)

        assert asyncio.run(session.start("Ada", "A001")) == StartOutcome.SAVED_PROGRESS_FOUND
        assert session.state.phase == QuizPhase.NOT_STARTED

        assert (
            asyncio.run(session.start("Ada", "A001", discard_existing=True))
            == StartOutcome.STARTED
        )
        assert (QUIZ_ID, "A001") not in self.store.progress
        assert session.state.answers == {}

    def test_start_validation_happens_first(self, tmp_path):
        session = self.new_session(tmp_path)

        with pytest.raises(QuizTransitionError):
            asyncio.run(session.start("", "A001"))

    def test_existing_submission_blocks_start_and_resume(self, tmp_path):
        self.store.submissions[(QUIZ_ID, "A001")] = {"answers": {}}

        session = self.new_session(tmp_path)
        assert asyncio.run(session.start("Ada", "A001")) == StartOutcome.ALREADY_SUBMITTED
        assert session.state.phase == QuizPhase.SUBMITTED

        other = self.new_session(tmp_path)
        assert asyncio.run(other.resume("A001")) == ResumeOutcome.ALREADY_SUBMITTED

        assert len(self.store.submissions) == 1
        assert self.store.saves == []

    def answer_all(self, session):
        for index, question in enumerate(self.questions):
            session.select_answer(question.id, question.correct_choice)
            if index < len(self.questions) - 1:
                session.advance()

    def test_submit_clears_progress(self, tmp_path):
        async def scenario():
            session = self.new_session(tmp_path)
            await session.start("Ada", "A001")
            self.answer_all(session)
            outcome = await session.submit()
            return session, outcome

        session, outcome = asyncio.run(scenario())

        assert outcome == SubmitOutcome.SUBMITTED
        assert session.state.phase == QuizPhase.SUBMITTED
        assert (QUIZ_ID, "A001") in self.store.submissions
        assert LocalProgressCache(str(tmp_path)).load(progress_key(QUIZ_ID, "A001")) is None
        assert not session.writer.remote.pending
        assert self.store.saves == []

    def test_incomplete_quiz_cannot_be_submitted(self, tmp_path):
        async def scenario():
            session = self.new_session(tmp_path)
            await session.start("Ada", "A001")
            session.select_answer(100, 0)
            await session.submit()

        with pytest.raises(QuizTransitionError):
            asyncio.run(scenario())
        assert self.store.submissions == {}

    def test_failed_submit_can_be_retried(self, tmp_path):
        self.store.fail_creates = 1

        async def scenario():
            session = self.new_session(tmp_path)
            await session.start("Ada", "A001")
            self.answer_all(session)
            with pytest.raises(SubmissionError):
                await session.submit()
            assert session.state.phase == QuizPhase.IN_PROGRESS
            return await session.submit()

        assert asyncio.run(scenario()) == SubmitOutcome.SUBMITTED

    def test_racing_duplicate_is_already_submitted(self, tmp_path):
        self.store.race_duplicate = True

        async def scenario():
            session = self.new_session(tmp_path)
            await session.start("Ada", "A001")
            self.answer_all(session)
            return session, await session.submit()

        session, outcome = asyncio.run(scenario())

        assert outcome == SubmitOutcome.ALREADY_SUBMITTED
        assert session.state.phase == QuizPhase.SUBMITTED


class TestDatabaseQuizStore:
    """Test the session against the SQL-backed store"""

    def test_submit_once_with_database(self, db, session_factory, tmp_path):
        quiz = Quiz(title="Week 1")
        db.add(quiz)
        db.commit()
        for i in range(2):
            db.add(Question(quiz_id=quiz.id, question_text=f"Q{i}", choices=["a", "b"], correct_choice=0))
        db.commit()
        questions = db.query(Question).filter(Question.quiz_id == quiz.id).order_by(Question.id).all()
        store = DatabaseQuizStore(session_factory)

        async def take_quiz():
            session = QuizSession(
                quiz.id,
                questions,
                store,
                local_cache=LocalProgressCache(str(tmp_path)),
                debounce=SESSION_DEBOUNCE,
            )
            await session.start("Ada", "A001")
            session.select_answer(questions[0].id, 0)
            await session.flush()
            assert store.load_progress(quiz.id, "A001")["answers"] == {
                str(questions[0].id): 0
            }
            session.advance()
            session.select_answer(questions[1].id, 1)
            return await session.submit()

        async def come_back():
            session = QuizSession(
                quiz.id,
                questions,
                store,
                local_cache=LocalProgressCache(str(tmp_path)),
                debounce=SESSION_DEBOUNCE,
            )
            return await session.start("Ada", "A001")

        assert asyncio.run(take_quiz()) == SubmitOutcome.SUBMITTED
        assert asyncio.run(come_back()) == StartOutcome.ALREADY_SUBMITTED
        assert db.query(Submission).count() == 1

        with pytest.raises(DuplicateSubmissionError):
            store.create_submission(
                {"quiz_id": quiz.id, "name": "Ada", "admission_number": "A001", "answers": {}}
            )

    def test_session_submit_removes_saved_progress(self, db, session_factory, tmp_path):
        quiz = Quiz(title="Week 2")
        db.add(quiz)
        db.commit()
        db.add(Question(quiz_id=quiz.id, question_text="Q", choices=["a", "b"], correct_choice=1))
        db.commit()
        question = db.query(Question).filter(Question.quiz_id == quiz.id).one()
        store = DatabaseQuizStore(session_factory)

        async def take_quiz():
            session = QuizSession(
                quiz.id,
                [question],
                store,
                local_cache=LocalProgressCache(str(tmp_path)),
                debounce=SESSION_DEBOUNCE,
            )
            await session.start("Ada", "A001")
            session.select_answer(question.id, 1)
            await session.flush()
            assert store.load_progress(quiz.id, "A001") is not None
            return await session.submit()

        assert asyncio.run(take_quiz()) == SubmitOutcome.SUBMITTED
        assert store.load_progress(quiz.id, "A001") is None


class TestOpenSession:
    """Test sessions created through QuizService"""

    def test_answer_flush_resume_and_submit(self, db, tmp_path):
        quiz = Quiz(title="Week 3")
        db.add(quiz)
        db.commit()
        for i in range(3):
            db.add(Question(quiz_id=quiz.id, question_text=f"Q{i}", choices=["a", "b", "c"], correct_choice=i))
        db.commit()
        service = QuizService(db)

        def open_on(device):
            return service.open_session(
                quiz.id,
                local_cache=LocalProgressCache(str(tmp_path / device)),
                debounce=SESSION_DEBOUNCE,
            )

        async def first_visit():
            session = open_on("laptop")
            await session.start("Ada", "A001")
            session.select_answer(session.current_question.id, 2)
            session.advance()
            await session.flush()
            return dict(session.state.answers)

        async def second_visit():
            # No local cache on this device, so progress comes from the database
            session = open_on("phone")
            outcome = await session.resume("A001")
            resumed = (outcome, session.state.current, dict(session.state.answers))
            last = len(session.questions) - 1
            for index in range(session.state.current, last + 1):
                session.select_answer(session.current_question.id, 0)
                if index < last:
                    session.advance()
            return resumed, await session.submit()

        answers = asyncio.run(first_visit())
        assert service.get_progress(quiz.id, "A001").current_question == 1

        (outcome, current, resumed_answers), submitted = asyncio.run(second_visit())

        assert outcome == ResumeOutcome.RESUMED
        assert current == 1
        assert resumed_answers == answers
        assert submitted == SubmitOutcome.SUBMITTED
        assert db.query(Submission).filter(Submission.quiz_id == quiz.id).count() == 1
        with pytest.raises(ValueError, match="not found"):
            service.get_progress(quiz.id, "A001")

    def test_unknown_quiz(self, db):
        with pytest.raises(ValueError, match="not found"):
            QuizService(db).open_session(404)


class TestProgressRepository:
    """Test the progress upsert on (quiz_id, admission_number)"""

    def setup_method(self):
        self.snapshot = {
            "quiz_id": 1,
            "admission_number": "A001",
            "student_name": "Ada",
            "answers": {"1": 0},
            "current_question": 0,
        }

    def add_quiz(self, db):
        db.add(Quiz(id=1, title="Week 1"))
        db.commit()

    def test_last_write_wins(self, db, session_factory):
        self.add_quiz(db)
        first = session_factory()
        second = session_factory()
        try:
            ProgressRepository(first).upsert(self.snapshot)
            saved = ProgressRepository(second).upsert(
                {**self.snapshot, "answers": {"1": 0, "2": 1}, "current_question": 1}
            )
        finally:
            first.close()
            second.close()

        assert saved.current_question == 1
        assert db.query(QuizProgress).count() == 1
        assert db.query(QuizProgress).one().answers == {"1": 0, "2": 1}

    def test_concurrent_first_saves_do_not_conflict(self, db, session_factory):
        self.add_quiz(db)
        other_tab = session_factory()
        try:
            # This tab still believes no row exists when it saves
            with patch.object(ProgressRepository, "get", return_value=None):
                ProgressRepository(other_tab).upsert(self.snapshot)
                saved = ProgressRepository(db).upsert(
                    {**self.snapshot, "current_question": 0, "student_name": "Ada L."}
                )
        finally:
            other_tab.close()

        assert saved.student_name == "Ada L."
        assert db.query(QuizProgress).count() == 1
