from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "listmod-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "List Moderation")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/listmod_dev")

    # Review queue
    claim_timeout_minutes: int = int(os.getenv("CLAIM_TIMEOUT_MINUTES", "120"))
    reaper_enabled: bool = os.getenv("REAPER_ENABLED", "1") == "1"
    reaper_interval_seconds: int = int(os.getenv("REAPER_INTERVAL_SECONDS", "60"))

    # Users at or above this ban level may not submit or resubmit
    submission_ban_level: int = int(os.getenv("SUBMISSION_BAN_LEVEL", "2"))

    # Auth (tokens are issued by the login service)
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))

settings = Settings()
