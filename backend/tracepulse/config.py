"""Application configuration."""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "TracePulse"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis (cache for the system map and recent diffs)
    REDIS_URL: str = ""

    # Celery
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"

    # System map
    SYSTEM_MAP_PATH: str = "./system-map.yaml"
    SYSTEM_MAP_TTL_SECONDS: int = 300

    # OpenAI hypothesis generator
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4-turbo-preview"
    GENERATOR_TIMEOUT_SECONDS: float = 30.0
    GENERATOR_TEMPERATURE: float = 0.3
    GENERATOR_MAX_TOKENS: int = 2000

    # GitHub recent changes
    GITHUB_TOKEN: str = ""
    GITHUB_OWNER: str = ""
    GITHUB_REPO: str = ""
    GITHUB_API_URL: str = "https://api.github.com"
    RECENT_CHANGES_HOURS: int = 24
    RECENT_CHANGES_TIMEOUT_SECONDS: float = 10.0
    RECENT_CHANGES_CACHE_TTL_SECONDS: int = 300

    # Analysis pipeline
    ANALYSIS_MAX_WORKERS: int = 4
    BATCH_DEADLINE_SECONDS: float = 120.0

    # Webhook API keys
    INTERNAL_API_KEY: str = "internal-dev-key"
    EXTERNAL_API_KEY: str = "dev-api-key"

    # Event emitter defaults
    TRACEPULSE_ENDPOINT: str = "http://localhost:3000/webhook/event"
    TRACEPULSE_API_KEY: str = ""
    SERVICE_NAME: str = "unknown"
    ENVIRONMENT: str = "development"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
