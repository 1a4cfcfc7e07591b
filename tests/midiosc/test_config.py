"""Tests for settings and their persistence."""

import json
from pathlib import Path

import pytest

from midiosc import config as config_module
from midiosc.base import RepositoryError, ValidationError
from midiosc.config import AppConfig, JsonConfigStore, MemoryConfigStore, config_dir


def test_defaults() -> None:
    config = AppConfig()
    assert config.selected_midi_device is None
    assert config.selected_midi_channel == "all"
    assert config.osc_host == "127.0.0.1"
    assert config.osc_port == 11000
    assert config.auto_reconnect
    assert config.last_opened


@pytest.mark.parametrize(
    "changes",
    [
        {"osc_port": 0},
        {"osc_port": 65536},
        {"osc_port": True},
        {"selected_midi_channel": 17},
        {"selected_midi_channel": "some"},
        {"osc_host": ""},
        {"color": "red"},
    ],
)
def test_invalid_updates(changes: dict) -> None:
    store = MemoryConfigStore()
    with pytest.raises(ValidationError):
        store.update(**changes)
    assert store.get().osc_port == 11000


def test_get_and_set_value() -> None:
    store = MemoryConfigStore()
    store.set_value("selected_midi_channel", 10)
    assert store.get_value("selected_midi_channel") == 10
    with pytest.raises(ValidationError):
        store.get_value("color")
    with pytest.raises(ValidationError):
        store.set_value("color", "red")


def test_reset() -> None:
    store = MemoryConfigStore()
    store.update(osc_port=9000, selected_midi_device="DeviceA")
    config = store.reset()
    assert config.osc_port == 11000
    assert store.get().selected_midi_device is None


def test_json_store_creates_and_reloads(tmp_path: Path) -> None:
    path = tmp_path / "midiosc" / "config.json"
    store = JsonConfigStore(path)
    assert path.exists()
    store.update(osc_host="192.168.1.5", osc_port=9000)
    store.set_value("selected_midi_device", "DeviceA")

    reloaded = JsonConfigStore(path)
    assert reloaded.get().osc_host == "192.168.1.5"
    assert reloaded.get().osc_port == 9000
    assert reloaded.get_value("selected_midi_device") == "DeviceA"


def test_json_store_ignores_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"osc_port": 9001, "window_size": [800, 600]}))
    assert JsonConfigStore(path).get().osc_port == 9001


@pytest.mark.parametrize("content", ["{bad", "[]", '{"osc_port": -5}'])
def test_json_store_unreadable(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content)
    with pytest.raises((RepositoryError, ValidationError)):
        JsonConfigStore(path)


def test_touch_updates_last_opened() -> None:
    store = MemoryConfigStore(AppConfig(last_opened="2000-01-01T00:00:00"))
    store.touch()
    assert store.get().last_opened != "2000-01-01T00:00:00"


@pytest.mark.parametrize(
    "platform,expected",
    [
        ("darwin", Path("Library") / "Application Support" / "midiosc"),
        ("linux", Path(".config") / "midiosc"),
    ],
)
def test_config_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, platform: str, expected: Path
) -> None:
    monkeypatch.setattr(config_module.sys, "platform", platform)
    monkeypatch.setattr(config_module.Path, "home", lambda: tmp_path)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    assert config_dir() == tmp_path / expected


def test_config_dir_windows(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config_module.sys, "platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path))
    assert config_dir() == tmp_path / "midiosc"
