import pytest
from pydantic import ValidationError

from onchain_agent.core.config import DEFAULT_PORT, Settings
from conftest import make_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("PORT", "MONGODB_URI", "LOG_LEVEL", "SHUTDOWN_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


def test_port_defaults_to_5000():
    assert Settings(_env_file=None).PORT == DEFAULT_PORT == 5000


@pytest.mark.parametrize("raw, expected", [
    ("8080", 8080),
    (" 3000 ", 3000),
    ("abc", 5000),
    ("", 5000),
    ("0", 5000),
    ("70000", 5000),
    ("-1", 5000),
    ("80.5", 5000),
])
def test_port_from_environment(monkeypatch, raw, expected):
    monkeypatch.setenv("PORT", raw)
    assert Settings(_env_file=None).PORT == expected


def test_mongodb_uri_read_from_environment(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "  mongodb://db:27017/agent  ")
    settings = Settings(_env_file=None)
    assert settings.mongodb_uri == "mongodb://db:27017/agent"


def test_mongodb_uri_missing_is_empty():
    assert Settings(_env_file=None).mongodb_uri == ""


def test_settings_are_immutable():
    settings = make_settings()
    with pytest.raises(ValidationError):
        settings.PORT = 9000


def test_invalid_log_level_rejected(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "loud")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_log_level_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert Settings(_env_file=None).LOG_LEVEL == "DEBUG"


def test_shutdown_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(SHUTDOWN_TIMEOUT=0)


def test_safe_dump_hides_connection_string():
    dumped = make_settings(MONGODB_URI="mongodb://user:secret@db/agent").model_dump_safe()
    assert dumped["MONGODB_URI"] == "***"
