"""
Application Configuration.

Pydantic Settings model for the 10xJournal client.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic_settings import BaseSettings
from pydantic import SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Local durable storage ---
    LOCAL_STORAGE_PATH: str = "journal_local.db"
    SESSION_STORAGE_KEY: str = "supabase.auth.token"

    # --- Remote call policy ---
    AUTH_RETRY_MAX_ATTEMPTS: int = 3
    AUTH_RETRY_BASE_DELAY_S: float = 0.5
    USER_INIT_TIMEOUT_S: float = 30.0

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "journal.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    # --- Development user override ---
    DEV_USER_ENABLED: bool = False
    DEV_USER_ID: str = ""
    DEV_USER_EMAIL: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        This validator logs a warning so first-run misconfiguration is
        visible in the log rather than surfacing as an opaque auth failure.
        """
        _log = logging.getLogger("journal.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL or SUPABASE_ANON_KEY is empty; remote "
                "authentication and data access are disabled."
            )

        return self

    def dev_user_id(self) -> Optional[UUID]:
        """Return the parsed development user id, or ``None``.

        ``None`` is returned when the override is disabled, unset, or
        not a valid UUID.
        """
        if not self.DEV_USER_ENABLED or not self.DEV_USER_ID.strip():
            return None
        try:
            return UUID(self.DEV_USER_ID.strip())
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern to avoid the lock overhead on the fast path.

    Prefer direct constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
