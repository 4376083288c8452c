from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator


class AssignmentCreate(BaseModel):
    title: str = Field(..., description="Assignment title", min_length=1, max_length=255)
    description: str = Field(default="", description="What students have to hand in")

    @validator("title")
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class AssignmentResponse(BaseModel):
    id: int
    title: str
    description: str = ""
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignmentListResponse(BaseModel):
    data: List[AssignmentResponse]


class AssignmentSubmissionResponse(BaseModel):
    id: int
    assignment_id: int
    student_name: str
    admission_number: str
    document_url: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
