from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator


class QuizCreate(BaseModel):
    title: str = Field(..., description="Quiz title", min_length=1, max_length=255)

    @validator("title")
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class QuizResponse(BaseModel):
    id: int
    title: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuizListResponse(BaseModel):
    data: List[QuizResponse] = Field(..., description="Available quizzes")


class QuestionCreate(BaseModel):
    question_text: str = Field(..., description="The quiz question", min_length=1)
    choices: List[str] = Field(..., description="Answer choices, at least two")
    correct_choice: int = Field(..., description="Index of the correct choice", ge=0)


class QuestionResponse(BaseModel):
    """Question as shown to students, without the answer"""

    id: int
    quiz_id: int
    question_text: str
    choices: List[str]

    class Config:
        from_attributes = True


class QuestionDetailResponse(QuestionResponse):
    correct_choice: int


class QuestionListResponse(BaseModel):
    data: List[QuestionResponse] = Field(..., description="Questions in quiz order")


class ProgressSave(BaseModel):
    student_name: str = Field(default="", description="Name entered so far")
    answers: Dict[str, int] = Field(
        default_factory=dict, description="question_id -> chosen index"
    )
    current_question: int = Field(default=0, ge=0)


class ProgressResponse(BaseModel):
    quiz_id: int
    admission_number: str
    student_name: str
    answers: Dict[str, int]
    current_question: int
    last_saved: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionCreate(BaseModel):
    name: str = Field(..., description="Student name")
    admission_number: str = Field(..., description="Student admission number")
    answers: Dict[str, int] = Field(..., description="question_id -> chosen index")


class SubmissionResponse(BaseModel):
    id: int
    quiz_id: int
    name: str
    admission_number: str
    answers: Dict[str, int]
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RevisionItem(BaseModel):
    question_id: int
    question_text: str
    choices: List[str]
    selected_choice: Optional[int] = None
    correct_choice: int
    is_correct: bool


class RevisionResponse(BaseModel):
    submission: SubmissionResponse
    score: int = Field(..., description="Percent of correct answers")
    items: List[RevisionItem]


class LeaderboardEntry(BaseModel):
    rank: int
    name: str
    admission_number: str
    score: int
    submitted_at: Optional[datetime] = None


class LeaderboardResponse(BaseModel):
    data: List[LeaderboardEntry]
