from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from mindcontext.config import (
    ConfigError,
    ConfigStore,
    MindcontextSettings,
    NotInitializedError,
    PendingQueue,
    ProjectConfig,
    get_settings,
)
from mindcontext.identity import MachineIdentity

IDENTITY = MachineIdentity(name="ada-laptop", id="11111111")


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MINDCONTEXT_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("MINDCONTEXT_LOG_LEVEL", "debug")
    monkeypatch.setenv("MINDCONTEXT_GIT_TIMEOUT", "2.5")
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.home == (tmp_path / "home").resolve()
    assert settings.log_level == "DEBUG"
    assert settings.git_timeout == 2.5
    assert settings.config_file == settings.home / "config.json"
    assert settings.updates_dir("demo") == settings.home / "repo" / "projects" / "demo" / "updates"


def test_settings_reject_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MINDCONTEXT_LOG_LEVEL", "loud")
    with pytest.raises(ValidationError):
        MindcontextSettings()
    monkeypatch.setenv("MINDCONTEXT_LOG_LEVEL", "INFO")
    monkeypatch.setenv("MINDCONTEXT_GIT_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        MindcontextSettings()


def test_config_store_round_trip(tmp_path: Path) -> None:
    settings = MindcontextSettings(MINDCONTEXT_HOME=tmp_path / "home")
    store = ConfigStore(settings)
    assert not store.is_initialized()
    assert store.read() is None

    config = store.create_default(IDENTITY)
    config.projects["demo"] = ProjectConfig(path="/work/demo", category="client", openspec=True)
    store.write(config)
    settings.repo_dir.mkdir()

    assert store.is_initialized()
    loaded = store.read()
    assert loaded == config
    document = json.loads(settings.config_file.read_text(encoding="utf-8"))
    assert document["version"] == "1.0"
    assert document["machine"] == {"name": "ada-laptop", "id": "11111111"}


def test_config_store_require(tmp_path: Path) -> None:
    settings = MindcontextSettings(MINDCONTEXT_HOME=tmp_path)
    store = ConfigStore(settings)
    with pytest.raises(NotInitializedError):
        store.require()

    settings.repo_dir.mkdir()
    settings.config_file.write_text("{broken", encoding="utf-8")
    assert store.read() is None
    with pytest.raises(ConfigError):
        store.require()


def test_config_store_read_ignores_non_utf8_file(tmp_path: Path) -> None:
    settings = MindcontextSettings(MINDCONTEXT_HOME=tmp_path)
    store = ConfigStore(settings)
    settings.repo_dir.mkdir()
    settings.config_file.write_bytes(b"\xff\xfe{bad")

    assert store.read() is None
    with pytest.raises(ConfigError):
        store.require()


def test_ensure_project_dir(tmp_path: Path) -> None:
    settings = MindcontextSettings(MINDCONTEXT_HOME=tmp_path)
    path = ConfigStore(settings).ensure_project_dir("demo")
    assert path.is_dir()
    assert path == tmp_path / "repo" / "projects" / "demo" / "updates"


def test_pending_queue(tmp_path: Path) -> None:
    queue = PendingQueue(tmp_path / "pending.json")
    assert queue.read() == []

    queue.add("update: demo")
    queue.add("update: other")
    assert [item.message for item in queue.read()] == ["update: demo", "update: other"]

    queue.clear()
    assert queue.read() == []


def test_pending_queue_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "pending.json"
    path.write_text("not json", encoding="utf-8")
    assert PendingQueue(path).read() == []
