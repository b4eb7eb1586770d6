"""Configuration settings for the exam question generation service."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10

    # LLM Configuration
    LLM_PROVIDER: str = "openai"  # openai or anthropic

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-5"
    OPENAI_MINI_MODEL: str = "gpt-5-mini"

    # Anthropic (optional)
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-5"
    ANTHROPIC_MINI_MODEL: str = "claude-haiku-4-5"

    # Storage for uploaded materials
    STORAGE_BACKEND: str = "gcs"  # gcs or local
    GCS_PROJECT_ID: str = ""
    LOCAL_STORAGE_ROOT: str = "/data/uploads"

    # Job dispatch
    DISPATCH_MODE: str = "cloud_tasks"  # cloud_tasks or inline
    CLOUD_TASKS_LOCATION: str = "us-central1"
    CLOUD_TASKS_QUEUE: str = "examgen-jobs"
    AI_SERVICE_URL: str = "http://localhost:8000"
    AI_INTERNAL_TOKEN: str = ""

    # Stuck-job reaper
    STALE_JOB_MINUTES: float = 5.0
    REAPER_INTERVAL_SECONDS: float = 60.0
    REAPER_ENABLED: bool = True

    # Pipeline tuning
    GENERATION_TIMEOUT_SECONDS: float = 120.0
    GENERATION_CONTEXT_CHARS: int = 12000
    MIN_MATERIAL_CHARS: int = 100
    HEADING_MAX_LENGTH: int = 80

    # Service Configuration
    FRONTEND_URL: str = "http://localhost:3000"  # Frontend URL for CORS
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == "development"


# Global settings instance
settings = Settings()
