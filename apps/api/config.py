"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


# Remote anon keys are JWTs: long and dot-separated.
REMOTE_KEY_MIN_LENGTH = 20
REMOTE_KEY_SEPARATOR = "."


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Local fallback storage
    LOCAL_DATABASE_URL: str = "sqlite+aiosqlite:///./moneymuse_local.db"
    AUTO_CREATE_DB_SCHEMA: bool = True

    # Remote row store (Supabase / PostgREST)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    DEFAULT_SUPABASE_URL: str = "http://localhost:54321"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def is_remote_configured(url: str, key: str) -> bool:
    """Return True when a URL/key pair looks usable for the remote backend."""
    url = (url or "").strip()
    key = (key or "").strip()
    return bool(url) and len(key) > REMOTE_KEY_MIN_LENGTH and REMOTE_KEY_SEPARATOR in key
