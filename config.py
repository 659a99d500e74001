"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from snapshot_store import DEFAULT_SNAPSHOT_STORE_PATH


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the CLI and the store client."""

    supabase_url: str | None = None
    supabase_key: str | None = None
    request_timeout_seconds: float = 15.0
    default_period: str = "30d"
    ledger_dir: str | None = None
    snapshot_store_path: str = DEFAULT_SNAPSHOT_STORE_PATH
    log_level: str = "INFO"

    @property
    def has_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_settings() -> Settings:
    """Load runtime settings from environment variables (and a local .env)."""
    load_dotenv()

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY") or None,
        request_timeout_seconds=_as_float(os.getenv("TALLYBOARD_REQUEST_TIMEOUT_SECONDS"), 15.0),
        default_period=os.getenv("TALLYBOARD_DEFAULT_PERIOD", "30d").strip().lower(),
        ledger_dir=os.getenv("TALLYBOARD_LEDGER_DIR") or None,
        snapshot_store_path=os.getenv("TALLYBOARD_SNAPSHOT_STORE", DEFAULT_SNAPSHOT_STORE_PATH),
        log_level=os.getenv("TALLYBOARD_LOG_LEVEL", "INFO").strip().upper(),
    )
