"""Expansion settings: `[tool.implgen]` in pyproject.toml or a standalone implgen.toml."""
from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path

CONFIG_NAME = "implgen.toml"
PYPROJECT_NAME = "pyproject.toml"

# Attribute names are plain identifiers, optionally scoped (`tools::implgen`)
ATTRIBUTE_PATTERN = re.compile(r"^[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*$")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ExpansionConfig:
    attribute: str = "implgen"
    override_attribute: str = "implgen_override"
    marker_open: str = "${"
    marker_close: str = "}"
    template_comments: bool = True
    template_strings: bool = True
    template_macros: bool = True
    source: str = ""               # file the settings came from, if any

    def validate(self) -> None:
        for key in ("attribute", "override_attribute"):
            value = getattr(self, key)
            if not ATTRIBUTE_PATTERN.match(value):
                raise ConfigError(f"Invalid {key} '{value}'. Must be an identifier path like 'implgen'.")
        if self.attribute == self.override_attribute:
            raise ConfigError("attribute and override_attribute must differ")
        if not self.marker_open or not self.marker_close:
            raise ConfigError("marker_open and marker_close must not be empty")

    def with_overrides(self, **kwargs) -> "ExpansionConfig":
        """Copy with the given keys replaced; None values are ignored."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        config = replace(self, **changes)
        config.validate()
        return config


_KEYS = {f.name: f.type for f in fields(ExpansionConfig) if f.name != "source"}


def find_config(start: Path) -> Path | None:
    """Nearest implgen.toml, or pyproject.toml with a [tool.implgen] table, from `start` upwards."""
    directory = start if start.is_dir() else start.parent
    for candidate in (directory, *directory.parents):
        own = candidate / CONFIG_NAME
        if own.is_file():
            return own
        pyproject = candidate / PYPROJECT_NAME
        if pyproject.is_file() and _tool_table(_read(pyproject)) is not None:
            return pyproject
    return None


def load_config(path: Path | None = None, start: Path | None = None) -> ExpansionConfig:
    """Load settings from `path`, or discover them from `start` (default: cwd).

    Without any configuration file the defaults are returned.
    """
    if path is None:
        path = find_config(start if start is not None else Path.cwd())
    if path is None:
        return ExpansionConfig()
    if not path.exists():
        raise ConfigError(f"No configuration file at {path}")

    data = _read(path)
    if path.name == PYPROJECT_NAME:
        data = _tool_table(data) or {}
    return _parse_config(data, str(path))


def load_config_from_string(text: str) -> ExpansionConfig:
    """Settings from implgen.toml-style TOML text (top-level keys)."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}") from e
    return _parse_config(data, "")


def _read(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def _tool_table(data: dict) -> dict | None:
    table = data.get("tool", {}).get("implgen")
    return table if isinstance(table, dict) else None


def _parse_config(data: dict, source: str) -> ExpansionConfig:
    unknown = sorted(set(data) - set(_KEYS))
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        expected = bool if _KEYS[key] in (bool, "bool") else str
        if not isinstance(value, expected):
            raise ConfigError(f"'{key}' must be a {expected.__name__}, got {type(value).__name__}")
        values[key] = value

    config = ExpansionConfig(source=source, **values)
    config.validate()
    return config
