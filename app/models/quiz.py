from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import JSON, DateTime

from app.core.database import Base


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    choices = Column(JSON, nullable=False)
    correct_choice = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class QuizProgress(Base):
    __tablename__ = "quiz_progress"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    admission_number = Column(String(100), nullable=False, index=True)
    student_name = Column(String(255), nullable=False, default="")
    answers = Column(JSON, nullable=False, default=dict)
    current_question = Column(Integer, nullable=False, default=0)
    last_saved = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # One progress row per student attempt, superseded on every save
    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "admission_number", name="uq_quiz_progress_quiz_admission"
        ),
    )


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    admission_number = Column(String(100), nullable=False, index=True)
    answers = Column(JSON, nullable=False)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Ensure one submission per student per quiz
    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "admission_number", name="uq_submissions_quiz_admission"
        ),
    )
