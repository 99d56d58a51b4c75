import pytest

from onchain_agent.api.lifespan.controller import LifecycleController
from onchain_agent.api.main import run
from onchain_agent.core import config


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    # no stray .env, no cached settings from another test
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "_settings", None)
    for key in ("PORT", "LOG_LEVEL", "LOG_FORMAT", "MONGODB_URI"):
        monkeypatch.delenv(key, raising=False)


def test_invalid_log_level_exits_1(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/agent")
    monkeypatch.setenv("LOG_LEVEL", "loud")

    with pytest.raises(SystemExit) as exc_info:
        run()

    assert exc_info.value.code == 1


@pytest.mark.parametrize("uri", ["", "   "])
def test_blank_mongodb_uri_exits_1(monkeypatch, uri):
    monkeypatch.setenv("MONGODB_URI", uri)

    with pytest.raises(SystemExit) as exc_info:
        run()

    assert exc_info.value.code == 1


def test_exit_status_comes_from_controller(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/agent")

    async def clean_run(self):
        return 0

    monkeypatch.setattr(LifecycleController, "run", clean_run)

    with pytest.raises(SystemExit) as exc_info:
        run()

    assert exc_info.value.code == 0
