from pathlib import Path

import pytest
from fastapi import FastAPI

from keyserver.config import Settings
from keyserver.constants import DEFAULT_LOG_FILE
from keyserver.logging_config import _resolve_log_file
from keyserver.telemetry import setup_telemetry


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.setenv("DB_FILE", "/data/keys.json")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")

    app_settings = Settings()

    assert app_settings.port == 8123
    assert app_settings.db_file == "/data/keys.json"
    assert app_settings.telegram_enabled is True


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in ("PORT", "DB_FILE", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"):
        monkeypatch.delenv(name, raising=False)

    app_settings = Settings(_env_file=None)

    assert app_settings.port == 3000
    assert app_settings.db_file == "db.json"
    assert app_settings.telegram_enabled is False


def test_port_out_of_range_is_rejected():
    with pytest.raises(ValueError):
        Settings(port=70000)


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"debug": True}, None),
        ({"debug": True, "log_to_file": True}, Path(DEFAULT_LOG_FILE)),
        ({"debug": False}, Path(DEFAULT_LOG_FILE)),
        ({"debug": True, "log_file": "custom/app.log"}, Path("custom/app.log")),
    ],
)
def test_log_file_selection(overrides, expected):
    app_settings = Settings(**{"log_to_file": False, "log_file": None, **overrides})

    assert _resolve_log_file(app_settings) == expected


def test_telemetry_is_off_by_default():
    assert setup_telemetry(FastAPI(), Settings(enable_telemetry=False)) is False


def test_telemetry_is_skipped_under_pytest():
    assert setup_telemetry(FastAPI(), Settings(enable_telemetry=True)) is False
