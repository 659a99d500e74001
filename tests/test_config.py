import logging

from config import get_settings
from log_config import setup_logging


def test_get_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://db.example.com")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setenv("TALLYBOARD_REQUEST_TIMEOUT_SECONDS", "3.5")
    monkeypatch.setenv("TALLYBOARD_DEFAULT_PERIOD", " YTD ")

    settings = get_settings()

    assert settings.has_store
    assert settings.supabase_key == "service-key"
    assert settings.request_timeout_seconds == 3.5
    assert settings.default_period == "ytd"


def test_get_settings_falls_back_on_bad_values(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.setenv("TALLYBOARD_REQUEST_TIMEOUT_SECONDS", "soon")

    settings = get_settings()

    assert not settings.has_store
    assert settings.request_timeout_seconds == 15.0


def test_setup_logging_sets_level_and_quiets_urllib3() -> None:
    root = logging.getLogger()
    previous = root.level
    try:
        setup_logging("debug")
        assert root.level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        root.setLevel(previous)
