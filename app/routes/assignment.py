from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentSubmissionResponse,
)
from app.services.assignment import AssignmentService

router = APIRouter(prefix="/assignments", tags=["assignment"])


@router.get("", response_model=AssignmentListResponse, status_code=status.HTTP_200_OK)
def list_assignments(db: Session = Depends(get_db)):
    try:
        service = AssignmentService(db)
        return service.list_assignments()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.post(
    "", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED
)
def create_assignment(assignment: AssignmentCreate, db: Session = Depends(get_db)):
    try:
        service = AssignmentService(db)
        return service.create_assignment(assignment)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.post(
    "/{assignment_id}/submissions",
    response_model=AssignmentSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_assignment(
    assignment_id: int,
    student_name: str = Form(...),
    admission_number: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Upload a document for an assignment

    The file is stored in the S3 bucket and the submission keeps its
    public URL.
    """
    try:
        content = await file.read()
        service = AssignmentService(db)
        return service.submit_document(
            assignment_id,
            student_name,
            admission_number,
            file.filename,
            content,
            file.content_type,
        )
    except ValueError as e:
        error_msg = str(e)
        if "not found" in error_msg.lower():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error_msg)
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg
            )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )
