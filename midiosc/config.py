"""Application settings and their persistence.

Settings live in a frozen ``AppConfig``; changes always produce a new
instance. ``JsonConfigStore`` keeps them in ``config.json`` inside the
platform configuration directory.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from abc import ABCMeta, abstractmethod
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union, override

from midiosc import constants
from midiosc.base import RepositoryError, ValidationError
from midiosc.values import MidiChannel


def _now_iso() -> str:
    return datetime.now().isoformat()


@dataclass(frozen=True)
class AppConfig:
    """Persisted bridge settings."""

    selected_midi_device: Optional[str] = None  # Device name, "all" or unset
    selected_midi_channel: Union[int, str] = constants.ALL_CHANNELS
    osc_host: str = constants.DEFAULT_OSC_HOST
    osc_port: int = constants.DEFAULT_OSC_PORT
    auto_reconnect: bool = True
    last_opened: str = field(default_factory=_now_iso)

    def __post_init__(self) -> None:
        # Raises on a channel outside 1-16 that is not "all"
        MidiChannel.from_value(self.selected_midi_channel)
        if (
            isinstance(self.osc_port, bool)
            or not isinstance(self.osc_port, int)
            or not (1 <= self.osc_port <= 65535)
        ):
            raise ValidationError(f"Invalid OSC port: {self.osc_port}")
        if not self.osc_host:
            raise ValidationError("OSC host cannot be empty")

    @staticmethod
    def keys() -> list[str]:
        return [f.name for f in fields(AppConfig)]

    def updated(self, **changes: Any) -> AppConfig:
        """Return a copy with some settings changed.

        Raises:
            ValidationError: On an unknown key or an invalid value.
        """
        unknown = set(changes) - set(AppConfig.keys())
        if unknown:
            raise ValidationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_json(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_json(data: dict[str, Any]) -> AppConfig:
        """Decode settings, ignoring keys this version does not know."""
        known = {k: v for k, v in data.items() if k in AppConfig.keys()}
        return AppConfig(**known)


def config_dir() -> Path:
    """Get the platform configuration directory for the bridge.

    Returns:
        ``~/Library/Application Support/midiosc`` on macOS,
        ``%APPDATA%/midiosc`` on Windows and ``~/.config/midiosc`` elsewhere.
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / constants.APP_DIR_NAME
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home()
        return base / constants.APP_DIR_NAME
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
        return base / constants.APP_DIR_NAME


class ConfigStore(metaclass=ABCMeta):
    """Abstract base class for settings persistence."""

    @abstractmethod
    def get(self) -> AppConfig:
        raise NotImplementedError()

    @abstractmethod
    def _write(self, config: AppConfig) -> None:
        raise NotImplementedError()

    def update(self, **changes: Any) -> AppConfig:
        config = self.get().updated(**changes)
        self._write(config)
        return config

    def reset(self) -> AppConfig:
        config = AppConfig()
        self._write(config)
        return config

    def get_value(self, key: str) -> Any:
        if key not in AppConfig.keys():
            raise ValidationError(f"Unknown config key: {key}")
        return getattr(self.get(), key)

    def set_value(self, key: str, value: Any) -> None:
        self.update(**{key: value})

    def touch(self) -> None:
        """Record that the bridge was opened now."""
        self.set_value("last_opened", _now_iso())


class MemoryConfigStore(ConfigStore):
    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self._config = config if config is not None else AppConfig()

    @override
    def get(self) -> AppConfig:
        return self._config

    @override
    def _write(self, config: AppConfig) -> None:
        self._config = config


class JsonConfigStore(ConfigStore):
    """Settings persisted to a JSON file, created with defaults on first run."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._config = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> AppConfig:
        if not self._path.exists():
            logging.info("No config file found at %s, creating with defaults", self._path)
            config = AppConfig()
            self._write(config)
            return config
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = AppConfig.from_json(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise RepositoryError(f"Failed to load config from {self._path}: {e}") from e
        logging.info("Config loaded from %s", self._path)
        return config

    @override
    def get(self) -> AppConfig:
        return self._config

    @override
    def _write(self, config: AppConfig) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(config.to_json(), f, indent=2)
        except OSError as e:
            raise RepositoryError(f"Failed to save config to {self._path}: {e}") from e
        self._config = config
