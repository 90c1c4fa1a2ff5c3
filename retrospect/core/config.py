import os
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "retrospect-api"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./retrospect.db"
    CREATE_TABLES_ON_START: bool = True

    CORS_ORIGINS: List[str] = ["*"]
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Edit capability
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    EDIT_PASSWORD: str = "change-me"
    EDIT_PASSWORD_HASH: Optional[str] = None
    EDIT_TOKEN_EXPIRE_MINUTES: int = 480

    # Completion provider
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    COMPLETION_TIMEOUT_SECONDS: float = 90.0
    CHAT_MODEL: str = "gpt-4o"
    ESTIMATE_MODEL: str = "gpt-4o"
    PARSE_OFFER_MODEL: str = "gpt-4o"
    TASKS_MODEL: str = "gpt-4o-mini"

    # Agency economics
    INTERNAL_HOURLY_COST: float = 30
    TARGET_MARGIN_MIN: float = 50
    TARGET_MARGIN_MAX: float = 55

    # Task generation polling (client side)
    JOB_POLL_INTERVAL_SECONDS: float = 1.0
    JOB_MAX_POLL_ATTEMPTS: int = 60

    class Config:
        case_sensitive = True
        # Load .env ONLY when not production
        env_file = ".env" if os.getenv("ENVIRONMENT") != "production" else None


settings = Settings()
