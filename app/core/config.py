# app/core/config.py
import os
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root: the directory holding main.py, alembic.ini and certs/
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# uvicorn / alembic runs pick up .env (or DOTENV_PATH); real environment variables win.
# Tests pin their environment in conftest.py instead.
DOTENV = os.getenv("DOTENV_PATH", os.path.join(BASE_DIR, ".env"))
if os.path.exists(DOTENV):
    load_dotenv(dotenv_path=DOTENV)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, env_file_encoding="utf-8", extra="ignore")

    ENVIRONMENT: str = "development"  # development | test | production
    API_V1_STR: str = "/api/v1"

    # --- Postgres (users + contests) ---
    DB_HOST: str
    DB_PORT: int
    DB_USER: str
    DB_PASSWORD: str
    DB_NAME: str
    DB_SSL_MODE: str = "prefer"
    DB_CA_CERT_FILE: Optional[str] = None  # file name inside <BASE_DIR>/certs

    # --- Firebase Auth / Sentry ---
    FIREBASE_SERVICE_ACCOUNT_KEY_PATH: str = "service-account.json"
    SENTRY_DSN: Optional[str] = None

    # --- Novu ---
    NOVU_API_KEY: Optional[str] = None
    NOVU_API_URL: str = "https://api.novu.co/v1"
    NOVU_TIMEOUT_SECONDS: float = 30.0
    DISCORD_WEBHOOK_URL: Optional[str] = None
    CONTEST_ALERT_WORKFLOW: str = "contest-alert"
    CONTEST_TIMEZONE: str = "Asia/Kolkata"

    # slowapi limit string for POST /user/signup
    SIGNUP_RATE_LIMIT: str = "10/minute"

    @field_validator("CONTEST_TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def DATABASE_URL(self) -> str:
        """libpq-style DSN for asyncpg; alembic/env.py strips the ssl query keys."""
        dsn = (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSL_MODE}"
        )
        if self.DB_SSL_MODE in ("verify-ca", "verify-full") and self.DB_CA_CERT_FILE:
            dsn += f"&sslrootcert={os.path.join(BASE_DIR, 'certs', self.DB_CA_CERT_FILE)}"
        return dsn


def _load_settings() -> Settings:
    return Settings()


# Tests build fresh settings after monkeypatching the environment; everything else reads once.
get_settings = _load_settings if os.getenv("ENVIRONMENT") == "test" else lru_cache()(_load_settings)

settings = get_settings()
