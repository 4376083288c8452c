from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.quiz import (
    LeaderboardResponse,
    ProgressResponse,
    ProgressSave,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionListResponse,
    QuizCreate,
    QuizListResponse,
    QuizResponse,
    RevisionResponse,
    SubmissionCreate,
    SubmissionResponse,
)
from app.services.quiz import QuizService
from app.services.quiz_store import DuplicateSubmissionError

router = APIRouter(prefix="/quizzes", tags=["quiz"])


@router.get("", response_model=QuizListResponse, status_code=status.HTTP_200_OK)
def list_quizzes(db: Session = Depends(get_db)):
    """List all quizzes, newest first"""
    try:
        service = QuizService(db)
        return service.list_quizzes()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.post("", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
def create_quiz(quiz: QuizCreate, db: Session = Depends(get_db)):
    """Create an empty quiz"""
    try:
        service = QuizService(db)
        return service.create_quiz(quiz)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.post(
    "/{quiz_id}/questions",
    response_model=QuestionDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_question(quiz_id: int, question: QuestionCreate, db: Session = Depends(get_db)):
    """
    Add a multiple-choice question

    At least 2 choices are required and correct_choice must index one of them.
    """
    try:
        service = QuizService(db)
        return service.add_question(quiz_id, question)
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


@router.get(
    "/{quiz_id}/questions",
    response_model=QuestionListResponse,
    status_code=status.HTTP_200_OK,
)
def get_questions(quiz_id: int, db: Session = Depends(get_db)):
    """Questions in quiz order, without answers"""
    try:
        service = QuizService(db)
        return service.get_questions(quiz_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.get(
    "/{quiz_id}/progress/{admission_number}",
    response_model=ProgressResponse,
    status_code=status.HTTP_200_OK,
)
def get_progress(quiz_id: int, admission_number: str, db: Session = Depends(get_db)):
    """Saved progress for a student, used to resume on another device"""
    try:
        service = QuizService(db)
        return service.get_progress(quiz_id, admission_number)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.put(
    "/{quiz_id}/progress/{admission_number}",
    response_model=ProgressResponse,
    status_code=status.HTTP_200_OK,
)
def save_progress(
    quiz_id: int,
    admission_number: str,
    payload: ProgressSave,
    db: Session = Depends(get_db),
):
    """Create or replace saved progress (last write wins)"""
    try:
        service = QuizService(db)
        return service.save_progress(quiz_id, admission_number, payload)
    except DuplicateSubmissionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
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


@router.delete(
    "/{quiz_id}/progress/{admission_number}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_progress(quiz_id: int, admission_number: str, db: Session = Depends(get_db)):
    """Discard saved progress"""
    try:
        service = QuizService(db)
        service.delete_progress(quiz_id, admission_number)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.post(
    "/{quiz_id}/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_quiz(
    quiz_id: int, submission: SubmissionCreate, db: Session = Depends(get_db)
):
    """
    Submit final answers

    Every question must be answered. A student can submit a quiz only once;
    a second submission returns 409.
    """
    try:
        service = QuizService(db)
        return service.submit(quiz_id, submission)
    except DuplicateSubmissionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
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


@router.get(
    "/{quiz_id}/submissions/{admission_number}",
    response_model=RevisionResponse,
    status_code=status.HTTP_200_OK,
)
def get_submission(quiz_id: int, admission_number: str, db: Session = Depends(get_db)):
    """A student's submission with the correct answers marked, for revision"""
    try:
        service = QuizService(db)
        return service.get_revision(quiz_id, admission_number)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.get(
    "/{quiz_id}/leaderboard",
    response_model=LeaderboardResponse,
    status_code=status.HTTP_200_OK,
)
def get_leaderboard(quiz_id: int, db: Session = Depends(get_db)):
    """Submissions ranked by percent score, earliest first on ties"""
    try:
        service = QuizService(db)
        return service.get_leaderboard(quiz_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )
