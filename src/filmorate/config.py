"""Service settings, read from ``FILMORATE_*`` environment variables or ``.env``."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FILMORATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/filmorate.db",
        description="SQLAlchemy URL; must name an async driver",
    )
    echo_sql: bool = Field(default=False, description="Echo every SQL statement")
    data_dir: Path = Field(default=Path("./data"), description="Where the SQLite file lives")

    # ── HTTP ─────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # ── Logging ──────────────────────────────────────────
    log_level: LogLevel = LogLevel.INFO
    json_logs: bool | None = Field(default=None, description="None picks JSON when stderr is not a TTY")

    # ── Query defaults ───────────────────────────────────
    default_page_size: int = Field(default=10, gt=0)
    default_popular_count: int = Field(default=10, gt=0)
    default_review_count: int = Field(default=10, gt=0)

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, built on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings (tests change the environment between runs)."""
    global _settings
    _settings = None
