"""
maskid: runtime config loader.

File: src/maskid/config/loader.py

Purpose
- Load effective runtime config from defaults, a TOML or YAML file, ``MASKID_*``
  environment variables and explicit overrides.

What should be included in this file
- Precedence logic: overrides > env (MASKID_) > file > defaults.
- TOML loading via ``tomllib``; ``.yaml``/``.yml`` files via ``yaml.safe_load``.
- Environment bindings derived from the schema field tables.

Functional requirements
- Reject invalid config via schema validation.
- Allow env vars to set any field of a format the file declares.
- Resolve a relative ``observability.log_file`` against the config file's directory.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Final

import yaml

from maskid.config.schema import (
    FORMAT_FIELDS,
    OBSERVABILITY_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
    to_json_compatible,
)

DEFAULT_CONFIG_FILE: Final[str] = "maskid.toml"
YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})
ENV_PREFIX: Final[str] = "MASKID_"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an env value cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with precedence overrides > env > file > defaults.

    Without ``config_path`` a ``maskid.toml`` in the working directory is used when
    present; an explicit path that does not exist is an error.
    """

    if config_path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILE
        file_payload = _read_config_file(path) if path.exists() else {}
    else:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigLoadError(f"config file not found: {path}")
        file_payload = _read_config_file(path)

    # Validate the file layer first so env bindings only see well-formed format names.
    merged = assert_valid_config(merge_config(default_config(), file_payload))
    env_map = os.environ if environ is None else environ
    merged = merge_config(merged, _env_overrides(merged, env_map))
    merged = merge_config(merged, _expand_overrides(overrides or {}))
    merged = assert_valid_config(merged)

    _anchor_log_file(merged, path.resolve().parent)
    return merged


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return a deterministic JSON dump of ``config`` (sorted keys, ISO datetimes)."""

    return json.dumps(
        to_json_compatible(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _read_config_file(path: Path) -> dict[str, Any]:
    is_yaml = path.suffix.lower() in YAML_SUFFIXES
    try:
        if is_yaml:
            with path.open("r", encoding="utf-8") as handle:
                loaded: object = yaml.safe_load(handle)
        else:
            with path.open("rb") as handle:
                loaded = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigLoadError(f"config root must be a mapping: {path}")
    return loaded


def _bindings(config: Mapping[str, Any]) -> Iterator[tuple[tuple[str, ...], type]]:
    yield ("meta", "schema_version"), int
    for key, kind in OBSERVABILITY_FIELDS.items():
        yield ("observability", key), kind
    for name in sorted(config.get("formats", {})):
        for key, kind in FORMAT_FIELDS.items():
            yield ("formats", name, key), kind


def _env_overrides(config: Mapping[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for path, kind in _bindings(config):
        env_name = _env_name(path)
        raw = environ.get(env_name)
        if raw is not None:
            _assign(payload, path, _coerce(raw, kind, env_name))
    return payload


def _env_name(path: tuple[str, ...]) -> str:
    return ENV_PREFIX + "_".join(part.upper().replace("-", "_") for part in path)


def _coerce(raw: str, kind: type, env_name: str) -> object:
    value = raw.strip()
    if kind is int:
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} must be an integer, got {raw!r}") from exc
    if kind is bool:
        lowered = value.lower()
        if lowered in _TRUE_WORDS or lowered in _FALSE_WORDS:
            return lowered in _TRUE_WORDS
        raise ConfigLoadError(
            f"{env_name} must be a boolean (true/false/1/0/yes/no/on/off), got {raw!r}"
        )
    # Text and datetime fields pass through; the schema parses ISO-8601 starts.
    return value


def _expand_overrides(overrides: Mapping[str, object]) -> dict[str, Any]:
    """Turn ``{"formats.pin.mask": "9999"}`` style keys into nested mappings."""
    payload: dict[str, Any] = {}
    for key in sorted(overrides):
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid override key {key!r}")
        fragment: dict[str, Any] = {}
        _assign(fragment, path, overrides[key])
        payload = merge_config(payload, fragment)
    return payload


def _assign(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    for part in path[:-1]:
        target = target.setdefault(part, {})
    target[path[-1]] = value


def _anchor_log_file(config: dict[str, Any], base_dir: Path) -> None:
    raw = config["observability"]["log_file"]
    if not raw:
        return
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    config["observability"]["log_file"] = Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "load_config",
]
