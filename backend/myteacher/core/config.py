"""
MyTeacher settings, read from the environment and an optional .env file.

List-valued settings (CORS origins, upload extensions) are stored as
comma-separated or JSON strings and exposed as parsed properties.
"""

import json
from pathlib import Path
from typing import Any, List, Tuple

from pydantic_settings import BaseSettings

PLACEHOLDER_SECRETS = {"", "CHANGE_ME", "changeme", "secret"}


def split_list(value: Any, lowercase: bool = False) -> List[str]:
    """'a, b' or '["a", "b"]' -> ['a', 'b']"""
    if isinstance(value, str):
        text = value.strip()
        items: List[Any] = []
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError:
                items = []
        if not items:
            items = text.split(",")
    else:
        items = list(value or [])
    cleaned = [str(item).strip() for item in items if str(item).strip()]
    return [item.lower() for item in cleaned] if lowercase else cleaned


def extension_list(value: Any) -> List[str]:
    return [ext.lstrip(".") for ext in split_list(value, lowercase=True)]


class Settings(BaseSettings):

    # Application
    APP_NAME: str = "MyTeacher"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    TESTING: bool = False
    SECRET_KEY: str
    API_VERSION: str = "v1"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    FRONTEND_URL: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_ECHO: bool = False

    # Staff authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # one school day
    REFRESH_TOKEN_EXPIRE_DAYS: int = 14
    BCRYPT_ROUNDS: int = 12
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:3000/auth/callback/google"

    # Rate limiting; counters live in Redis when REDIS_URL is set
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 120
    REDIS_URL: str = ""

    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Claude drafting and goal review; disabled without a key
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 2048
    CLAUDE_TEMPERATURE: float = 0.4
    CLAUDE_REQUEST_TIMEOUT: int = 120
    CLAUDE_CONNECT_TIMEOUT: int = 30
    CLAUDE_MAX_RETRIES: int = 3
    CLAUDE_RETRY_BASE_DELAY: float = 2.0
    CLAUDE_RETRY_MAX_DELAY: float = 30.0

    # Uploads (work samples, exemplars, dispute attachments) and rendered exports
    UPLOAD_PATH: str = "uploads"
    EXPORT_PATH: str = "exports"
    MAX_UPLOAD_SIZE: int = 25 * 1024 * 1024
    MAX_REQUEST_SIZE: int = 30 * 1024 * 1024  # multipart overhead on top of MAX_UPLOAD_SIZE
    WORK_SAMPLE_EXTENSIONS_STR: str = "pdf,png,jpg,jpeg,gif,heic,doc,docx,txt"
    BEST_PRACTICE_EXTENSIONS_STR: str = "pdf,docx,txt"
    DISPUTE_ATTACHMENT_EXTENSIONS_STR: str = "pdf,doc,docx,txt,png,jpg,jpeg,eml,msg"

    # Compliance
    DEFAULT_STATE_CODE: str = "MD"
    DEFAULT_REVIEW_LEAD_DAYS: int = 30
    REVIEW_DASHBOARD_DAYS: int = 30

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return split_list(self.CORS_ORIGINS_STR)

    @property
    def WORK_SAMPLE_EXTENSIONS(self) -> List[str]:
        return extension_list(self.WORK_SAMPLE_EXTENSIONS_STR)

    @property
    def BEST_PRACTICE_EXTENSIONS(self) -> List[str]:
        return extension_list(self.BEST_PRACTICE_EXTENSIONS_STR)

    @property
    def DISPUTE_ATTACHMENT_EXTENSIONS(self) -> List[str]:
        return extension_list(self.DISPUTE_ATTACHMENT_EXTENSIONS_STR)

    @property
    def UPLOAD_DIR(self) -> Path:
        return Path(self.UPLOAD_PATH).resolve()

    @property
    def EXPORT_DIR(self) -> Path:
        return Path(self.EXPORT_PATH).resolve()

    def is_dev_mode(self) -> bool:
        return self.ENVIRONMENT == "development" or self.DEBUG

    def startup_report(self) -> Tuple[List[str], List[str]]:
        """(fatal problems, degraded features) for the startup check"""
        fatal, degraded = [], []
        if not self.DATABASE_URL:
            fatal.append("DATABASE_URL is not set")
        for name in ("SECRET_KEY", "JWT_SECRET_KEY"):
            if getattr(self, name) in PLACEHOLDER_SECRETS:
                fatal.append(f"{name} is not set or uses a placeholder value")

        if not self.ANTHROPIC_API_KEY:
            degraded.append("ANTHROPIC_API_KEY not set: draft generation and goal review are disabled")
        if not self.REDIS_URL:
            degraded.append("REDIS_URL not set: rate limits are kept in process memory")
        if not (self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET):
            degraded.append("Google sign-in not configured: password login only")
        return fatal, degraded


settings = Settings()
