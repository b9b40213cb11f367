# pylint: disable=missing-module-docstring,missing-function-docstring

import dataclasses

import pytest

from config import AppConfig
from constants import CLOSE_ACK_TIMEOUT_MS, REOPEN_TIMEOUT_MS, SIGNAL_BACKLOG_MAX, SIGNAL_DEDUP_WINDOW_MS

ENV_VARS = (
    "ENV",
    "LOG_LEVEL",
    "ENABLE_JSON_LOGS",
    "HOST",
    "PORT",
    "CLOSE_ACK_TIMEOUT_MS",
    "REOPEN_TIMEOUT_MS",
    "SIGNAL_BACKLOG_MAX",
    "SIGNAL_DEDUP_WINDOW_MS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_come_from_constants(clean_env: pytest.MonkeyPatch):
    config = AppConfig.load_from_env()

    assert config.env == "dev"
    assert config.log_level == "INFO"
    assert config.enable_json_logs is True
    assert config.close_ack_timeout_ms == CLOSE_ACK_TIMEOUT_MS
    assert config.reopen_timeout_ms == REOPEN_TIMEOUT_MS
    assert config.signal_backlog_max == SIGNAL_BACKLOG_MAX
    assert config.signal_dedup_window_ms == SIGNAL_DEDUP_WINDOW_MS


def test_overrides(clean_env: pytest.MonkeyPatch):
    clean_env.setenv("ENV", "prod")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("ENABLE_JSON_LOGS", "0")
    clean_env.setenv("PORT", "9001")
    clean_env.setenv("CLOSE_ACK_TIMEOUT_MS", "50")
    clean_env.setenv("SIGNAL_DEDUP_WINDOW_MS", "0")

    config = AppConfig.load_from_env()

    assert config.env == "prod"
    assert config.log_level == "DEBUG"
    assert config.enable_json_logs is False
    assert config.port == 9001
    assert config.close_ack_timeout_ms == 50
    assert config.signal_dedup_window_ms == 0


def test_non_integer_raises(clean_env: pytest.MonkeyPatch):
    clean_env.setenv("REOPEN_TIMEOUT_MS", "soon")

    with pytest.raises(ValueError):
        AppConfig.load_from_env()


def test_config_is_frozen():
    config = AppConfig()

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.port = 1  # type: ignore[misc]
