"""
maskid: configuration schema and validation.

File: src/maskid/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules for
  named identifier formats and observability settings.

What should be included in this file
- Schema versioning and migration guidance.
- Field tables shared with the loader's environment bindings.
- Validation rules for required fields, types, enums, and format names.
- Deterministic deep-merge helper and JSON-safe dumps.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Accept TOML datetimes, dates and ISO-8601 strings for ``timestamp_start``.

Non-functional requirements
- Keep rules deterministic and easy to audit.
- Mask syntax is checked by the engine when formats are compiled, not here.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from types import MappingProxyType
from typing import Any, Final, Literal, NotRequired, TypedDict

from maskid.constants import CONFIG_SCHEMA_VERSION

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

# Field name -> value type, in validation order. The loader derives MASKID_* bindings from these.
OBSERVABILITY_FIELDS: Final[Mapping[str, type]] = MappingProxyType(
    {
        "log_level": str,
        "log_format": str,
        "log_file": str,
        "log_to_stdout": bool,
        "redact_identifiers": bool,
        "queue_size": int,
    }
)
FORMAT_FIELDS: Final[Mapping[str, type]] = MappingProxyType(
    {
        "mask": str,
        "crypto": bool,
        "timestamp_start": datetime,
        "description": str,
    }
)

_CHOICES: Final[Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {"log_level": LOG_LEVELS, "log_format": LOG_FORMATS}
)
_FORMAT_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


class MetaConfig(TypedDict):
    schema_version: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]
    log_file: str
    log_to_stdout: bool
    queue_size: int
    redact_identifiers: bool


class FormatConfig(TypedDict):
    mask: str
    crypto: bool
    timestamp_start: NotRequired[datetime]
    description: NotRequired[str]


class MaskidConfig(TypedDict):
    meta: MetaConfig
    observability: ObservabilityConfig
    formats: dict[str, FormatConfig]


DEFAULT_CONFIG: Final[MaskidConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "observability": {
        "log_level": "INFO",
        "log_format": "json",
        "log_file": "",
        "log_to_stdout": False,
        "queue_size": 4096,
        "redact_identifiers": True,
    },
    "formats": {},
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


def default_config() -> MaskidConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Return deterministic migration guidance for schema version mismatch."""

    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade maskid.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the maskid package"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; nested mappings merge, the rest replace."""

    merged: dict[str, Any] = _plain(base)
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = _plain(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    check = _Checker()
    root = check.section(config, "<root>")
    normalized = None if root is None else _validate_root(root, check)
    if check.issues:
        return ConfigValidationResult(config=None, issues=tuple(check.issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def to_json_compatible(config: Mapping[str, object]) -> dict[str, Any]:
    """Return a copy with datetimes rendered as ISO-8601 strings."""

    converted = _to_json_value(config)
    if isinstance(converted, dict):
        return converted
    return {}


def parse_timestamp_start(value: object) -> datetime | None:
    """Coerce a TOML datetime/date or ISO-8601 string into an aware UTC datetime."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None or parsed.utcoffset() is None:
        return parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except OverflowError:
        return None


class _Checker:
    """Collects issues in the order checks run; each check returns ``None`` on failure."""

    __slots__ = ("issues",)

    def __init__(self) -> None:
        self.issues: list[ConfigValidationIssue] = []

    def fail(self, path: str, message: str) -> None:
        self.issues.append(ConfigValidationIssue(path=path, message=message))

    def section(self, value: object, path: str) -> dict[str, object] | None:
        if not isinstance(value, Mapping):
            self.fail(path, f"expected object, got {type(value).__name__}")
            return None
        out: dict[str, object] = {}
        for key, item in value.items():
            if isinstance(key, str):
                out[key] = item
            else:
                self.fail(path, f"object key must be string, got {type(key).__name__}")
        return out

    def keys(
        self,
        payload: Mapping[str, object],
        path: str,
        *,
        allowed: Sequence[str],
        required: Sequence[str],
    ) -> None:
        for key in sorted(set(payload) - set(allowed)):
            self.fail(_join(path, key), "unknown field")
        for key in sorted(set(required) - set(payload)):
            self.fail(_join(path, key), "missing required field")

    def text(self, value: object, path: str, *, allow_empty: bool = False) -> str | None:
        if not isinstance(value, str):
            self.fail(path, f"expected string, got {type(value).__name__}")
            return None
        stripped = value.strip()
        if not stripped and not allow_empty:
            self.fail(path, "must not be empty")
            return None
        return stripped

    def flag(self, value: object, path: str) -> bool | None:
        if isinstance(value, bool):
            return value
        self.fail(path, f"expected boolean, got {type(value).__name__}")
        return None

    def integer(self, value: object, path: str, *, minimum: int = 1) -> int | None:
        if isinstance(value, bool) or not isinstance(value, int):
            self.fail(path, f"expected integer, got {type(value).__name__}")
            return None
        if value < minimum:
            self.fail(path, f"must be >= {minimum}")
            return None
        return value

    def choice(self, value: object, path: str, options: tuple[str, ...]) -> str | None:
        parsed = self.text(value, path)
        if parsed is not None and parsed not in options:
            expected = ", ".join(sorted(options))
            self.fail(path, f"invalid value {parsed!r}; expected one of: {expected}")
            return None
        return parsed


def _validate_root(payload: Mapping[str, object], check: _Checker) -> dict[str, Any]:
    check.keys(
        payload,
        "",
        allowed=("meta", "observability", "formats"),
        required=("meta", "observability"),
    )

    out: dict[str, Any] = {"formats": {}}
    meta = _section(payload, "meta", check)
    if meta is not None:
        out["meta"] = _validate_meta(meta, check)
    observability = _section(payload, "observability", check)
    if observability is not None:
        out["observability"] = _validate_fields(
            observability,
            "observability",
            OBSERVABILITY_FIELDS,
            check,
            required=tuple(OBSERVABILITY_FIELDS),
        )
    formats = _section(payload, "formats", check)
    if formats is not None:
        out["formats"] = _validate_formats(formats, check)
    return out


def _section(payload: Mapping[str, object], key: str, check: _Checker) -> dict[str, object] | None:
    raw = payload.get(key)
    return None if raw is None else check.section(raw, key)


def _validate_meta(payload: Mapping[str, object], check: _Checker) -> dict[str, Any]:
    check.keys(payload, "meta", allowed=("schema_version",), required=("schema_version",))
    if "schema_version" not in payload:
        return {}
    version = check.integer(payload["schema_version"], "meta.schema_version")
    if version is None:
        return {}
    if version != ConfigSchemaVersion:
        check.fail("meta.schema_version", migration_guidance(version))
    return {"schema_version": version}


def _validate_formats(payload: Mapping[str, object], check: _Checker) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name in sorted(payload):
        path = _join("formats", name)
        if not _FORMAT_NAME_PATTERN.fullmatch(name):
            check.fail(path, "format name must match ^[a-z][a-z0-9_-]*$")
            continue
        entry = check.section(payload[name], path)
        if entry is not None:
            out[name] = {"crypto": False} | _validate_fields(
                entry, path, FORMAT_FIELDS, check, required=("mask",)
            )
    return out


def _validate_fields(
    payload: Mapping[str, object],
    path: str,
    fields: Mapping[str, type],
    check: _Checker,
    *,
    required: Sequence[str],
) -> dict[str, Any]:
    check.keys(payload, path, allowed=tuple(fields), required=required)

    out: dict[str, Any] = {}
    for key, kind in fields.items():
        if key in payload:
            value = _check_field(check, _join(path, key), key, kind, payload[key])
            if value is not None:
                out[key] = value
    return out


def _check_field(check: _Checker, path: str, key: str, kind: type, raw: object) -> object | None:
    if key in _CHOICES:
        return check.choice(raw, path, _CHOICES[key])
    if kind is bool:
        return check.flag(raw, path)
    if kind is int:
        return check.integer(raw, path)
    if kind is datetime:
        parsed = parse_timestamp_start(raw)
        if parsed is None:
            check.fail(
                path,
                "expected TOML datetime or ISO-8601 string "
                f"(example: 2023-01-01T00:00:00Z), got {raw!r}",
            )
        return parsed
    if key == "log_file":
        text = check.text(raw, path, allow_empty=True)
        if text is not None and "\x00" in text:
            check.fail(path, "must not contain NUL bytes")
            return None
        return text
    if key == "mask":
        mask = check.text(raw, path)
        return None if mask is None else mask.upper()
    return check.text(raw, path)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _plain(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain(value[key]) for key in sorted(k for k in value if isinstance(k, str))}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _to_json_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _to_json_value(item) for key, item in sorted(value.items())}
    if isinstance(value, (list, tuple)):
        return [_to_json_value(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    return value


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "FORMAT_FIELDS",
    "FormatConfig",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "MaskidConfig",
    "OBSERVABILITY_FIELDS",
    "ObservabilityConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "parse_timestamp_start",
    "to_json_compatible",
    "validate_config",
]
