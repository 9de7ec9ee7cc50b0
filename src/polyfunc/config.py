"""Configuration store for polyfunc (polyfunc.json / .yml)."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from polyfunc.logging import get_logger

logger = get_logger("config")

_JSON_SUFFIXES = {".json"}
_YAML_SUFFIXES = {".yml", ".yaml"}

DEFAULT_CONFIG_FILE = "polyfunc.json"
API_KEY_ENV = "OPENAI_API_KEY"


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be read or written."""


def default_config() -> Dict[str, Any]:
    """Return a fresh copy of the built-in configuration document."""
    return {
        "llm": {
            "provider": "openai",
            "model": "gpt-4",
            "apiKey": os.environ.get(API_KEY_ENV),
            "baseUrl": "https://api.openai.com/v1",
            "temperature": 0.2,
            "timeout": 60.0,
            "maxRetries": 2,
        },
        "languages": {
            "javascript": {"priority": 1, "useCase": ["web", "api"]},
            "python": {"priority": 2, "useCase": ["data", "ml"]},
            "go": {"priority": 3, "useCase": ["performance", "concurrency"]},
            "rust": {"priority": 4, "useCase": ["system", "performance"]},
        },
        "paths": {
            "services": "./services",
            "templates": "./templates",
        },
    }


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Mappings present on both sides are merged key by key. Every other
    value, lists included, is replaced wholesale by the override. Neither
    input is modified.
    """
    merged: Dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _format_for(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        return "json"
    if suffix in _YAML_SUFFIXES:
        return "yaml"
    raise ConfigError(f"Unsupported configuration file format: {suffix or path.name}")


def _parse(text: str, fmt: str) -> Dict[str, Any]:
    if fmt == "json":
        loaded = json.loads(text)
    else:
        loaded = yaml.safe_load(text)
        if loaded is None:
            return {}
    if not isinstance(loaded, dict):
        raise ConfigError("Configuration must contain a mapping at the root")
    return loaded


def _dump(data: Mapping[str, Any], fmt: str) -> str:
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(dict(data), default_flow_style=False, sort_keys=False)


class Config:
    """A nested settings document with dotted-path access.

    Args:
        data: Optional overrides merged over the built-in defaults.
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: Dict[str, Any] = default_config()
        if data:
            self._data = deep_merge(self._data, data)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted path such as ``"llm.model"``.

        Returns ``default`` as soon as a segment is missing.
        """
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key: str, value: Any) -> None:
        """Assign a dotted path, creating intermediate mappings as needed."""
        parts = key.split(".")
        current = self._data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def merge(self, override: Mapping[str, Any]) -> None:
        """Deep-merge an override document into the current settings."""
        self._data = deep_merge(self._data, override)

    def to_dict(self) -> Dict[str, Any]:
        """Return a deep copy of the settings document."""
        return copy.deepcopy(self._data)

    def redacted(self) -> Dict[str, Any]:
        """Return a copy of the settings without the API key, for display."""
        data = self.to_dict()
        llm = data.get("llm")
        if isinstance(llm, dict):
            llm.pop("apiKey", None)
        return data

    def persistable(self) -> Dict[str, Any]:
        """Return the settings as they should be written to disk.

        An API key that is unset or identical to ``$OPENAI_API_KEY`` is left
        out, so a saved file never pins a stale or empty key over the
        environment. A key set explicitly to another value is kept.
        """
        data = self.to_dict()
        llm = data.get("llm")
        if isinstance(llm, dict):
            key = llm.get("apiKey")
            if key is None or key == os.environ.get(API_KEY_ENV):
                llm.pop("apiKey", None)
        return data

    def load_from(self, path: str | Path) -> bool:
        """Merge settings from a JSON or YAML file.

        Values from the file win; keys the file omits keep their current
        values. Failures are logged and leave the settings untouched.

        Returns:
            True if the file was loaded.
        """
        path = Path(path)
        try:
            fmt = _format_for(path)
            text = path.read_text(encoding="utf-8")
            loaded = _parse(text, fmt)
        except (ConfigError, OSError, ValueError, yaml.YAMLError) as exc:
            logger.error("Failed to load configuration from %s: %s", path, exc)
            return False

        self.merge(loaded)
        logger.info("Configuration loaded from %s", path)
        return True

    def save_to(self, path: str | Path) -> bool:
        """Write the settings to a JSON or YAML file.

        The API key is written only when it was set explicitly (see
        :meth:`persistable`).

        Returns:
            True if the file was written.
        """
        path = Path(path)
        try:
            fmt = _format_for(path)
            path.write_text(_dump(self.persistable(), fmt), encoding="utf-8")
        except (ConfigError, OSError, TypeError, ValueError, yaml.YAMLError) as exc:
            logger.error("Failed to save configuration to %s: %s", path, exc)
            return False

        logger.info("Configuration saved to %s", path)
        return True
