"""Settings for Song Picker.

A run is driven by a flat settings dict.  It starts from the built-in
defaults in :mod:`song_picker.tuning`, then takes whatever a user's
``config.json`` provides, then any command-line overrides::

    {
      "max_folder_bytes": 629145600,
      "extensions": [".mp3"],
      "on_error": "abort",        # or "skip"
      "strategy": "weighted",     # or "random"
      "seed": 1234                # optional, time based when absent
    }

Every layer is checked against ``schemas/config.schema.json``.  The
user's file is forgiving: a key that fails the schema is dropped (and
listed in :attr:`ConfigService.rejected_keys`) while the valid keys
still apply, and a file that is not JSON at all is ignored with a
warning.  Command-line overrides and settings handed to the engine
directly are strict and raise :class:`ValueError`.

``config.json`` lives in ``$XDG_CONFIG_HOME/SongPicker`` (``%APPDATA%``
on Windows).  In portable mode, forced by a ``portable.flag`` file in
the app directory or by ``--portable``, it lives in the app directory
itself.
"""

from __future__ import annotations

import json
import os
import platform
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema

from . import tuning

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config.schema.json"


@lru_cache(maxsize=1)
def _schema() -> Dict[str, Any]:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def user_config_dir(app_name: str = "SongPicker") -> Path:
    if platform.system().lower() == "windows":
        base = os.environ.get("APPDATA")
        return Path(base) / app_name if base else Path.home() / "AppData" / "Roaming" / app_name
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) / app_name if xdg else Path.home() / ".config" / app_name


def find_invalid_settings(data: Mapping[str, Any]) -> Dict[str, str]:
    """Return ``{key: reason}`` for every setting the schema rejects."""
    schema = _schema()
    invalid: Dict[str, str] = {
        key: "unknown setting" for key in data if key not in schema["properties"]
    }
    for error in jsonschema.Draft7Validator(schema).iter_errors(dict(data)):
        if error.path:
            invalid.setdefault(str(error.path[0]), error.message)
    return invalid


def resolve_settings(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge ``layers`` over the defaults, rejecting any invalid setting.

    ``None`` values inside a layer mean "not set" and are skipped.
    """
    settings = tuning.defaults()
    for layer in layers:
        if not layer:
            continue
        given = {key: value for key, value in layer.items() if value is not None}
        invalid = find_invalid_settings(given)
        if invalid:
            details = "; ".join(f"{key}: {reason}" for key, reason in sorted(invalid.items()))
            raise ValueError(f"Invalid settings: {details}")
        settings.update(given)
    return settings


@dataclass
class ConfigService:
    """Find, read and write the user's ``config.json``."""

    app_dir: Path
    portable: bool = False
    portable_flag_filename: str = "portable.flag"
    config_filename: str = "config.json"
    rejected_keys: Dict[str, str] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self.app_dir = Path(self.app_dir)
        if (self.app_dir / self.portable_flag_filename).exists():
            self.portable = True

    @property
    def config_path(self) -> Path:
        base = self.app_dir if self.portable else user_config_dir()
        return base / self.config_filename

    def read_user_config(self) -> Dict[str, Any]:
        """Return the valid part of ``config.json`` (``{}`` when missing or unreadable)."""
        self.rejected_keys = {}
        path = self.config_path
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            print(f"Warning: could not read {path}: {exc}. Falling back to defaults.")
            return {}
        if not isinstance(data, dict):
            print(f"Warning: {path} must contain a JSON object. Falling back to defaults.")
            return {}
        self.rejected_keys = find_invalid_settings(data)
        for key, reason in sorted(self.rejected_keys.items()):
            print(f"Warning: ignoring setting {key!r} in {path}: {reason}")
        return {key: value for key, value in data.items() if key not in self.rejected_keys}

    def load_config(self, overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Return full settings: defaults, then ``config.json``, then ``overrides``.

        Raises :class:`ValueError` if an override is invalid.
        """
        return resolve_settings(self.read_user_config(), overrides)

    def save_config(self, config: Mapping[str, Any]) -> None:
        """Write ``config`` to ``config.json`` after checking it."""
        invalid = find_invalid_settings(config)
        if invalid:
            details = "; ".join(f"{key}: {reason}" for key, reason in sorted(invalid.items()))
            raise ValueError(f"Invalid settings: {details}")
        path = self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(dict(config), indent=2) + "\n", encoding="utf-8")
