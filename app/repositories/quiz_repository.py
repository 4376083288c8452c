from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.quiz import Question, Quiz


class QuizRepository:
    """Repository for Quiz and Question database operations following DDD pattern"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, quiz_id: int) -> Optional[Quiz]:
        """Get a quiz entry by ID"""
        return self.db.query(Quiz).filter(Quiz.id == quiz_id).first()

    def create(self, quiz_data: dict) -> Quiz:
        """Create a new quiz entry"""
        db_quiz = Quiz(**quiz_data)
        self.db.add(db_quiz)
        self.db.commit()
        self.db.refresh(db_quiz)
        return db_quiz

    def get_all(self, skip: int = 0, limit: int = 100) -> List[Quiz]:
        """Get all quiz entries, newest first, with pagination"""
        return (
            self.db.query(Quiz)
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_questions(self, quiz_id: int) -> List[Question]:
        """Get the questions of a quiz in creation order"""
        return (
            self.db.query(Question)
            .filter(Question.quiz_id == quiz_id)
            .order_by(Question.id)
            .all()
        )

    def add_question(self, question_data: dict) -> Question:
        """Create a new question entry"""
        db_question = Question(**question_data)
        self.db.add(db_question)
        self.db.commit()
        self.db.refresh(db_question)
        return db_question
