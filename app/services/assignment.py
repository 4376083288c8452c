import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.repositories.assignment_repository import AssignmentRepository
from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentSubmissionResponse,
)
from app.services.storage import BlobStorage

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class AssignmentService:
    def __init__(self, db: Session, storage: Optional[BlobStorage] = None):
        self.db = db
        self.repository = AssignmentRepository(db)
        self.storage = storage

    def list_assignments(self) -> AssignmentListResponse:
        assignments = self.repository.get_all()
        return AssignmentListResponse(
            data=[AssignmentResponse.model_validate(a) for a in assignments]
        )

    def create_assignment(self, assignment: AssignmentCreate) -> AssignmentResponse:
        created = self.repository.create(
            {"title": assignment.title, "description": assignment.description.strip()}
        )
        return AssignmentResponse.model_validate(created)

    def submit_document(
        self,
        assignment_id: int,
        student_name: str,
        admission_number: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> AssignmentSubmissionResponse:
        """Upload a student's document and record its public URL"""
        if self.repository.get_by_id(assignment_id) is None:
            raise ValueError(f"Assignment with ID {assignment_id} not found")
        if not student_name.strip() or not admission_number.strip():
            raise ValueError("Name and admission number are required")
        if content_type and content_type not in ALLOWED_CONTENT_TYPES:
            raise ValueError("Only PDF or Word documents can be submitted")

        storage = self.storage or BlobStorage()
        document_url = storage.upload(filename, content, content_type)

        created = self.repository.create_submission(
            {
                "assignment_id": assignment_id,
                "student_name": student_name.strip(),
                "admission_number": admission_number.strip(),
                "document_url": document_url,
            }
        )
        logger.info(
            f"📄 Assignment {assignment_id} submitted by {admission_number}: {document_url}"
        )
        return AssignmentSubmissionResponse.model_validate(created)
