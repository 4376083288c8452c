from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LLMEnum(str, Enum):
    OPENAI = "openai"
    MISTRAL = "mistral"
    LLAMA3 = "llama3"
    ZEPHYR = "zephyr"


class ScriptStatusEnum(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ScriptResult(BaseModel):
    llm: str
    status: ScriptStatusEnum
    script_text: Optional[str] = None
    error: Optional[str] = None


class WeeklyScriptGenerateResponse(BaseModel):
    scripts: List[ScriptResult] = Field(..., description="One result per backend")
    fallback_prompt: Optional[str] = Field(
        default=None, description="Prompt to paste into any chatbot when every backend failed"
    )


class WeeklyScriptResponse(BaseModel):
    id: int
    llm: str
    status: ScriptStatusEnum
    script_text: Optional[str] = None
    error: Optional[str] = None
    stories_used: List[Dict[str, Any]] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FallbackPromptResponse(BaseModel):
    prompt: str
