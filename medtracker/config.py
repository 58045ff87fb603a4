"""Configuration management for the medication reminder service."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


def _load_env_file() -> None:
    """Load .env from root directory if present."""
    env_path = Path(__file__).parent.parent / ".env"
    if not env_path.is_file():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                key, value = stripped.split("=", 1)
                key, value = key.strip(), value.strip().strip("'\"")
                if key and value and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        pass


_load_env_file()


DEFAULT_APP_NAME = "Medication Reminder Server"
DEFAULT_APP_VERSION = "1.0.0"


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_float(name: str, fallback: float) -> float:
    try:
        return float(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


class Settings(BaseModel):
    """Application settings with environment fallbacks."""

    # App metadata
    app_name: str = Field(default=DEFAULT_APP_NAME)
    app_version: str = Field(default=DEFAULT_APP_VERSION)

    # Server runtime
    server_host: str = Field(default_factory=lambda: os.getenv("MEDTRACKER_HOST", "0.0.0.0"))
    server_port: int = Field(default_factory=lambda: _env_int("MEDTRACKER_PORT", 8001))

    # Notification engine
    poll_interval_seconds: float = Field(default_factory=lambda: _env_float("MEDTRACKER_POLL_INTERVAL_SECONDS", 5.0))
    refill_settle_seconds: float = Field(default_factory=lambda: _env_float("MEDTRACKER_REFILL_SETTLE_SECONDS", 30.0))
    default_user_id: str = Field(default_factory=lambda: os.getenv("MEDTRACKER_DEFAULT_USER_ID", "web_user"))

    # Supabase document store
    supabase_url: Optional[str] = Field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_key: Optional[str] = Field(default_factory=lambda: os.getenv("SUPABASE_KEY"))

    # HTTP behaviour
    cors_allow_origins_raw: str = Field(default_factory=lambda: os.getenv("MEDTRACKER_CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"))
    enable_docs: bool = Field(default_factory=lambda: os.getenv("MEDTRACKER_ENABLE_DOCS", "1") != "0")
    docs_url: Optional[str] = Field(default_factory=lambda: os.getenv("MEDTRACKER_DOCS_URL", "/docs"))

    @property
    def cors_allow_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_allow_origins_raw.strip() in {"", "*"}:
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins_raw.split(",") if origin.strip()]

    @property
    def resolved_docs_url(self) -> Optional[str]:
        """Return documentation URL when docs are enabled."""
        return (self.docs_url or "/docs") if self.enable_docs else None

    @property
    def store_configured(self) -> bool:
        """Flag indicating the Supabase document store has credentials."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
