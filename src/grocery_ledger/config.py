"""
Configuration file system for grocery-ledger.

Supports loading configuration from multiple locations, merged with precedence:
1. /etc/grocery-ledger/config.yaml or config.json (lowest priority)
2. ~/.config/grocery-ledger/config.yaml or config.json
3. ./config.yaml, ./config.json, ./grocery-ledger.yaml or ./grocery-ledger.json (highest priority)

All found config files are merged, with later files overriding earlier ones.
YAML is checked before JSON at each location. Environment variables
(GROCERY_LEDGER_*) have the highest priority.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

# Config filenames for current working directory (project-local config)
CONFIG_FILENAMES = ["config.yaml", "config.json", "grocery-ledger.yaml", "grocery-ledger.json"]
# Config filenames for system/user config directories
CONFIG_USER_FILENAMES = ["config.yaml", "config.json"]

ENV_PREFIX = "GROCERY_LEDGER_"

DEFAULTS: dict[str, Any] = {
    "data_dir": "~/.local/share/grocery-ledger",
    "mode": "add",  # What a repeated item/brand submission does: add or replace
    "storage": {"key": "tableData"},
    "export": {
        "format": "pdf",
        "title": "Grocery List",
        "filename": "grocery-list.pdf",
    },
    "serve": {"host": "127.0.0.1", "port": 8000},
}


def _get_config_dirs() -> list[Path]:
    """Get list of config directories to search, in merge order (lowest priority first)."""
    return [
        Path("/etc/grocery-ledger"),
        Path.home() / ".config" / "grocery-ledger",
        Path.cwd(),
    ]


def find_config_files() -> list[Path]:
    """Find all existing config files, in merge order (lowest priority first).

    At each location only the first found file (YAML before JSON) is included.
    """
    found_files = []

    for dir_path in _get_config_dirs():
        filenames = CONFIG_FILENAMES if dir_path == Path.cwd() else CONFIG_USER_FILENAMES
        for filename in filenames:
            path = dir_path / filename
            if path.exists():
                found_files.append(path)
                break
    return found_files


def find_config_file() -> Path | None:
    """Find the highest-priority existing config file, or None."""
    files = find_config_files()
    return files[-1] if files else None


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base dict, modifying base in place."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _deep_copy(d: dict) -> dict:
    result = {}
    for key, value in d.items():
        result[key] = _deep_copy(value) if isinstance(value, dict) else value
    return result


def _load_config_file(path: Path) -> dict[str, Any]:
    """Load a single config file and return its contents.

    Raises:
        ImportError: If YAML config is found but PyYAML is not installed.
        json.JSONDecodeError: If JSON config file is malformed.
    """
    if path.suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError as e:
            raise ImportError(
                "PyYAML required for .yaml config files. Install with: pip install grocery-ledger[yaml]"
            ) from e
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load config from file(s), merging with defaults.

    If path is provided, only that file is loaded (plus defaults and
    environment overrides). Otherwise all standard locations are merged.

    Returns:
        Merged configuration dictionary with defaults applied.
    """
    config = _deep_copy(DEFAULTS)

    if path is not None:
        if path.exists():
            _deep_merge(config, _load_config_file(path))
    else:
        for config_path in find_config_files():
            _deep_merge(config, _load_config_file(config_path))

    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: dict[str, Any]) -> None:
    """Apply GROCERY_LEDGER_<KEY> overrides; nested keys use double underscore.

    e.g. GROCERY_LEDGER_SERVE__PORT=9000
    """
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            _set_nested_value(config, key[len(ENV_PREFIX):].lower(), value)


def _set_nested_value(config: dict, key: str, value: str) -> None:
    parts = key.split("__")
    target = config
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    target[parts[-1]] = _convert_value(value)


def _convert_value(value: str) -> Any:
    """Convert string value to bool or int where it looks like one."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def get_config_value(config: dict[str, Any], key: str, default: Any = None) -> Any:
    """Get a config value using dot notation, e.g. ``export.title``."""
    target = config
    for part in key.split("."):
        if isinstance(target, dict) and part in target:
            target = target[part]
        else:
            return default
    return target


class Config:
    """Configuration holder with convenient access methods."""

    def __init__(self, path: Path | None = None):
        if path is not None:
            self._paths = [path] if path.exists() else []
        else:
            self._paths = find_config_files()
        self._data = load_config(path)

    @property
    def path(self) -> Path | None:
        """Return the highest-priority loaded config file, or None."""
        return self._paths[-1] if self._paths else None

    @property
    def paths(self) -> list[Path]:
        return self._paths.copy()

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return get_config_value(self._data, key, default)

    @property
    def data_dir(self) -> Path:
        """Directory holding the stored ledger."""
        return Path(str(self.get("data_dir", DEFAULTS["data_dir"]))).expanduser()

    @property
    def mode(self) -> str:
        return str(self.get("mode", "add"))

    @property
    def storage_key(self) -> str:
        return str(self.get("storage.key", "tableData"))

    @property
    def export_format(self) -> str:
        return str(self.get("export.format", "pdf"))

    @property
    def export_title(self) -> str:
        return str(self.get("export.title", "Grocery List"))

    @property
    def export_filename(self) -> str | None:
        """Configured export filename; only used when it matches the export format."""
        return self.get("export.filename")

    @property
    def serve_host(self) -> str:
        return self.get("serve.host", "127.0.0.1")

    @property
    def serve_port(self) -> int:
        return self.get("serve.port", 8000)
