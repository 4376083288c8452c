import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional

import requests
from langchain_core.prompts import PromptTemplate
from langchain_openai import AzureChatOpenAI
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domain.news_domain import NewsDomain
from app.models.news import AINews
from app.repositories.news_repository import NewsRepository
from app.repositories.weekly_script_repository import WeeklyScriptRepository
from app.schemas.weekly_script import (
    LLMEnum,
    ScriptResult,
    ScriptStatusEnum,
    WeeklyScriptResponse,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TOP_STORY_COUNT = 3
DEFAULT_LLMS = [llm.value for llm in LLMEnum]

WEEKLY_SCRIPT_PROMPT = """You're a viral tech content creator. Based on these 3 stories, write a 1-minute Instagram Reel script. Make it casual, catchy, and informative. Include:
- An engaging hook at the start
- A punchy summary of each story
- A CTA at the end (e.g. "Follow for weekly AI news before it trends")

Here are the stories:
{stories}"""

Backend = Callable[[str], Awaitable[str]]


class NotEnoughStoriesError(ValueError):
    """Fewer than three stories in the selection window"""


@dataclass
class ScriptGenerationResult:
    scripts: List[ScriptResult]
    first_success: Optional[ScriptResult]
    fallback_prompt: Optional[str]


class WeeklyScriptService:
    def __init__(self, db: Session, backends: Optional[Dict[str, Backend]] = None):
        self.db = db
        self.news_repository = NewsRepository(db)
        self.script_repository = WeeklyScriptRepository(db)
        self._llm = None
        self.backends: Dict[str, Backend] = backends or {
            LLMEnum.OPENAI.value: self._generate_with_openai,
            LLMEnum.MISTRAL.value: self._ollama_backend(LLMEnum.MISTRAL.value),
            LLMEnum.LLAMA3.value: self._ollama_backend(LLMEnum.LLAMA3.value),
            LLMEnum.ZEPHYR.value: self._ollama_backend(LLMEnum.ZEPHYR.value),
        }

    def _get_llm(self):
        """Get Azure OpenAI LLM instance"""
        if self._llm is None:
            self._llm = AzureChatOpenAI(
                openai_api_version=settings.AOAI_API_VERSION,
                azure_deployment=settings.AOAI_DEPLOY_GPT4O_MINI,
                temperature=0.7,
                max_tokens=500,
                api_key=settings.AOAI_API_KEY,
                azure_endpoint=settings.AOAI_ENDPOINT,
            )
        return self._llm

    async def _generate_with_openai(self, prompt: str) -> str:
        result = await self._get_llm().ainvoke(prompt)
        script = (result.content or "").strip()
        if not script:
            raise ValueError("No script returned from OpenAI")
        return script

    @staticmethod
    def _call_ollama(model: str, prompt: str) -> str:
        response = requests.post(
            settings.OLLAMA_URL,
            json={"model": model, "prompt": prompt, "stream": False},
            timeout=settings.LLM_TIMEOUT,
        )
        if not response.ok:
            raise RuntimeError(
                f"Ollama error: {response.status_code} {response.reason}"
            )
        script = (response.json().get("response") or "").strip()
        if not script:
            raise ValueError("No script returned from Ollama")
        return script

    def _ollama_backend(self, model: str) -> Backend:
        async def generate(prompt: str) -> str:
            return await asyncio.to_thread(self._call_ollama, model, prompt)

        return generate

    def select_top_stories(self, now: Optional[datetime] = None) -> List[AINews]:
        """Top three stories of the last week by stored score, newer first on ties"""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=settings.NEWS_WINDOW_DAYS)
        stories = self.news_repository.get_top_since(since, limit=TOP_STORY_COUNT)
        if len(stories) < TOP_STORY_COUNT:
            raise NotEnoughStoriesError("Not enough stories to generate a script")
        return stories

    @staticmethod
    def build_prompt(stories: List[AINews]) -> str:
        lines = "\n".join(
            f"{i}. {story.title} - {story.content}"
            for i, story in enumerate(stories, start=1)
        )
        return PromptTemplate.from_template(WEEKLY_SCRIPT_PROMPT).format(stories=lines)

    async def _run_backend(self, llm: str, prompt: str) -> ScriptResult:
        backend = self.backends.get(llm)
        if backend is None:
            return ScriptResult(
                llm=llm, status=ScriptStatusEnum.ERROR, error=f"Unknown LLM: {llm}"
            )
        try:
            script = await backend(prompt)
            return ScriptResult(
                llm=llm, status=ScriptStatusEnum.SUCCESS, script_text=script
            )
        except Exception as e:
            logger.error(f"❌ {llm} script generation failed: {e}")
            return ScriptResult(
                llm=llm, status=ScriptStatusEnum.ERROR, error=str(e) or repr(e)
            )

    def _save_result(self, result: ScriptResult, stories_used: List[dict]) -> None:
        try:
            self.script_repository.create(
                {
                    "llm": result.llm,
                    "status": result.status.value,
                    "script_text": result.script_text,
                    "error": result.error,
                    "stories_used": stories_used,
                }
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error saving weekly script from {result.llm}: {e}")

    async def generate(
        self, llm: Optional[str] = None, now: Optional[datetime] = None
    ) -> ScriptGenerationResult:
        """
        Generate the weekly script with one backend, or all of them.

        Backends run concurrently and every outcome is stored. When none
        succeeds, the result carries the prompt so it can be pasted into any
        chatbot by hand.
        """
        stories = self.select_top_stories(now)
        prompt = self.build_prompt(stories)
        llms = [llm] if llm else DEFAULT_LLMS

        logger.info(f"📝 Generating weekly script with {', '.join(llms)}")
        results = await asyncio.gather(
            *(self._run_backend(name, prompt) for name in llms),
            return_exceptions=True,
        )

        scripts = []
        for name, result in zip(llms, results):
            if isinstance(result, BaseException):
                result = ScriptResult(
                    llm=name, status=ScriptStatusEnum.ERROR, error=str(result)
                )
            scripts.append(result)

        stories_used = [NewsDomain.to_summary(story) for story in stories]
        for result in scripts:
            self._save_result(result, stories_used)

        first_success = next(
            (s for s in scripts if s.status == ScriptStatusEnum.SUCCESS), None
        )
        if first_success is None:
            logger.warning("⚠️ Every backend failed, returning the prompt instead")

        return ScriptGenerationResult(
            scripts=scripts,
            first_success=first_success,
            fallback_prompt=None if first_success else prompt,
        )

    def latest_script(self) -> WeeklyScriptResponse:
        script = self.script_repository.get_latest()
        if script is None:
            raise ValueError("Weekly script not found")
        return WeeklyScriptResponse.model_validate(script)

    def fallback_prompt(self, now: Optional[datetime] = None) -> str:
        """The prompt for this week's stories, without calling any backend"""
        return self.build_prompt(self.select_top_stories(now))
