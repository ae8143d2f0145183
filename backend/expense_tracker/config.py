from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration read from EXPENSE_* environment variables."""

    db_url: str = field(default_factory=lambda: os.getenv("EXPENSE_DB_URL", "sqlite:///./expenses.db"))
    backup_dir: str = field(default_factory=lambda: os.getenv("EXPENSE_BACKUP_DIR", "./backups"))
    cors_origins: List[str] = field(
        default_factory=lambda: _env_list("EXPENSE_CORS_ORIGINS", "http://localhost:5173")
    )
    seed_on_startup: bool = field(default_factory=lambda: _env_bool("EXPENSE_SEED_ON_STARTUP", True))
    log_level: str = field(default_factory=lambda: os.getenv("EXPENSE_LOG_LEVEL", "INFO").upper())


settings = Settings()
