from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    DATABASE_URL: str = "sqlite:///./app.db"
    PROJECT_NAME: str = "AI News Radar & Quiz Portal"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Azure OpenAI Configuration
    AOAI_ENDPOINT: str = ""
    AOAI_API_KEY: str = ""
    AOAI_API_VERSION: str = "2024-02-01"
    AOAI_DEPLOY_GPT4O_MINI: str = "gpt-4o-mini"

    # Local Ollama server for the open-weight script backends
    OLLAMA_URL: str = "http://localhost:11434/api/generate"
    LLM_TIMEOUT: int = 120

    # Reddit API (password grant)
    REDDIT_CLIENT_ID: str = ""
    REDDIT_CLIENT_SECRET: str = ""
    REDDIT_USERNAME: str = ""
    REDDIT_PASSWORD: str = ""
    REDDIT_USER_AGENT: str = "AI-Trend-Radar/1.0"

    # Scraping
    TWINT_DATA_PATH: str = "public/data/twint.json"
    FETCH_TIMEOUT: int = 20
    FETCH_RETRY_ATTEMPTS: int = 3
    FETCH_RETRY_DELAY: float = 2.0
    NEWS_WINDOW_DAYS: int = 7

    # Quiz progress autosave
    PROGRESS_CACHE_DIR: str = ".quiz-progress"
    PROGRESS_SAVE_DEBOUNCE: float = 2.0

    # S3 Bucket
    S3_BUCKET: str = ""
    AWS_ACCESS_KEY: str = ""
    AWS_SECRET_KEY: str = ""
    AWS_REGION: str = "us-east-1"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
