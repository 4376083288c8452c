from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.weekly_script import (
    FallbackPromptResponse,
    WeeklyScriptGenerateResponse,
    WeeklyScriptResponse,
)
from app.services.weekly_script import WeeklyScriptService

router = APIRouter(prefix="/weekly-script", tags=["weekly-script"])


@router.get(
    "/generate",
    response_model=WeeklyScriptGenerateResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def generate_weekly_script(
    llm: Optional[str] = None, db: Session = Depends(get_db)
):
    """
    Generate a 1-minute reel script from this week's top 3 stories

    Runs the requested backend (openai, mistral, llama3 or zephyr), or all of
    them when `llm` is omitted. Every attempt is stored. If no backend
    succeeds the response carries `fallback_prompt` to paste into any chatbot.
    """
    try:
        service = WeeklyScriptService(db)
        result = await service.generate(llm)
        return WeeklyScriptGenerateResponse(
            scripts=result.scripts, fallback_prompt=result.fallback_prompt
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.get(
    "/latest",
    response_model=WeeklyScriptResponse,
    status_code=status.HTTP_200_OK,
)
def get_latest_weekly_script(db: Session = Depends(get_db)):
    """Most recently stored script attempt"""
    try:
        service = WeeklyScriptService(db)
        return service.latest_script()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )


@router.get(
    "/fallback-prompt",
    response_model=FallbackPromptResponse,
    status_code=status.HTTP_200_OK,
)
def get_fallback_prompt(db: Session = Depends(get_db)):
    """This week's prompt, without calling any LLM"""
    try:
        service = WeeklyScriptService(db)
        return FallbackPromptResponse(prompt=service.fallback_prompt())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )
