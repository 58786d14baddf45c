"""Local configuration manager for the image server and manifest options.

User-editable values live in a `config.json` file mirroring what a site
administrator sets on the manifest view: the IIIF image server, the title
display mode, field bindings and the optional search endpoint. Loading never
writes to disk; `iiif-manifest --write-config` materializes the file.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

# Plain stdlib logger: `.logger` reads its settings from this module.
logger = logging.getLogger("iiif_manifest.config_manager")

CONFIG_FILE_NAME = "config.json"

DEFAULT_CONFIG_JSON: dict[str, Any] = {
    "paths": {
        "logs_dir": "data/local/logs",
        "public_files_dir": "data/files/public",
        "private_files_dir": "data/files/private",
    },
    "settings": {
        "iiif": {
            "server_url": "",
            "show_title": "default",
            "use_relative_paths": False,
            "request_timeout": 30,
        },
        "manifest": {
            "tile_fields": ["field_media_image"],
            "ocr_file_field": "",
            "structured_text_term_uri": "",
            "search_endpoint": "",
        },
        "logging": {
            "level": "INFO",
        },
    },
}

# settings key -> legacy alias accepted in older config files
_LEGACY_SETTINGS = {
    "iiif.server_url": "iiif.iiif_server",
}


def _merge_into(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    for key, value in overrides.items():
        current = defaults.get(key)
        defaults[key] = _merge_into(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return defaults


def default_config_path() -> Path:
    """Return the first existing of `./config.json` and `~/.iiif-manifest/config.json`.

    Falls back to `./config.json` when neither exists.
    """
    candidates = (Path.cwd() / CONFIG_FILE_NAME, Path.home() / ".iiif-manifest" / CONFIG_FILE_NAME)
    return next((c for c in candidates if c.is_file()), candidates[0])


def _read_user_config(path: Path) -> dict[str, Any]:
    if not path.is_file():
        logger.debug("No config file at %s; using defaults", path)
        return {}
    try:
        loaded = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}
    if not isinstance(loaded, dict):
        logger.warning("Ignoring config file %s: top level is not an object", path)
        return {}
    return loaded


@dataclass
class ConfigManager:
    """In-memory view of config.json with dotted access to `settings`."""

    path: Path
    _data: dict[str, Any]

    @classmethod
    def load(cls, path: Path | None = None) -> ConfigManager:
        """Merge the user file (if any) over the defaults; nothing is written."""
        cfg_path = Path(path) if path else default_config_path()
        data = _merge_into(copy.deepcopy(DEFAULT_CONFIG_JSON), _read_user_config(cfg_path))
        cm = cls(path=cfg_path, _data=data)
        cm._migrate_legacy_keys()
        return cm

    def _migrate_legacy_keys(self) -> None:
        for key, legacy in _LEGACY_SETTINGS.items():
            section, _, name = legacy.partition(".")
            node = self._data.get("settings", {}).get(section)
            if not isinstance(node, dict) or name not in node:
                continue
            value = node.pop(name)
            if not self.get_setting(key):
                self.set_setting(key, value)

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def save(self) -> Path:
        """Write the current configuration to `self.path` and return it."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        return self.path

    def set_path(self, key: str, value: str | Path) -> None:
        """Set one of the `paths` entries (`logs_dir`, `public_files_dir`, `private_files_dir`)."""
        if key not in DEFAULT_CONFIG_JSON["paths"]:
            raise KeyError(f"Unknown path setting: {key}")
        self._data.setdefault("paths", {})[key] = str(value).strip() or DEFAULT_CONFIG_JSON["paths"][key]

    def resolve_path(self, key: str) -> Path:
        """Return the configured path for `key`; relative values are anchored at the CWD."""
        raw = (self._data.get("paths") or {}).get(key) or DEFAULT_CONFIG_JSON["paths"][key]
        p = Path(str(raw)).expanduser()
        return p if p.is_absolute() else (Path.cwd() / p).resolve()

    def get_setting(self, dotted_path: str, default: Any = None) -> Any:
        """Read a nested value from `settings`, e.g. `get_setting("iiif.server_url", "")`."""
        node: Any = self._data.get("settings") or {}
        for part in filter(None, (dotted_path or "").split(".")):
            if not isinstance(node, dict):
                return default
            node = node.get(part)
        return default if node is None else node

    def set_setting(self, dotted_path: str, value: Any) -> None:
        """Set a nested value in `settings`, creating intermediate sections."""
        *parents, leaf = [p for p in (dotted_path or "").split(".") if p] or [None]
        if leaf is None:
            return
        node = self._data.setdefault("settings", {})
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

    def get_logs_dir(self) -> Path:
        """Return the logs directory, creating it if needed."""
        path = self.resolve_path("logs_dir")
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_public_files_dir(self) -> Path:
        """Directory backing `public://` file URIs."""
        return self.resolve_path("public_files_dir")

    def get_private_files_dir(self) -> Path:
        """Directory backing `private://` file URIs."""
        return self.resolve_path("private_files_dir")


@lru_cache(maxsize=1)
def get_config_manager() -> ConfigManager:
    """Get the singleton config manager."""
    return ConfigManager.load()
