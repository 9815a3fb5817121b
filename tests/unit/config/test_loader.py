"""
maskid: unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML/YAML files, env overrides
  and explicit overrides.

What this test file should cover
- Precedence: overrides > env > file > defaults.
- Env var path mapping and type coercion, including per-format optional fields.
- Path normalization relative to the config file.
- Load errors for missing or malformed files.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from maskid.config import ConfigValidationError
from maskid.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    load_config,
)


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_missing_default_file_yields_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    loaded = load_config(environ={})

    assert loaded["meta"] == {"schema_version": 1}
    assert loaded["observability"]["log_level"] == "INFO"
    assert loaded["observability"]["log_file"] == ""
    assert loaded["formats"] == {}


def test_default_file_in_cwd_is_picked_up(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_config(tmp_path / "maskid.toml", '[formats.ticket]\nmask = "XX-999"\n')
    monkeypatch.chdir(tmp_path)

    assert load_config(environ={})["formats"]["ticket"]["mask"] == "XX-999"


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_loader_precedence_default_file_env_overrides(tmp_path: Path) -> None:
    default_path = tmp_path / "default.toml"
    config_path = tmp_path / "maskid.toml"
    _write_config(default_path, "")
    _write_config(config_path, '[observability]\nlog_level = "WARNING"\n')
    env = {"MASKID_OBSERVABILITY_LOG_LEVEL": "ERROR"}

    assert load_config(default_path, environ={})["observability"]["log_level"] == "INFO"
    assert load_config(config_path, environ={})["observability"]["log_level"] == "WARNING"
    assert load_config(config_path, environ=env)["observability"]["log_level"] == "ERROR"
    assert (
        load_config(
            config_path,
            environ=env,
            overrides={"observability.log_level": "DEBUG"},
        )["observability"]["log_level"]
        == "DEBUG"
    )


def test_formats_are_loaded_and_normalized(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(
        config_path,
        f"""
[formats.ticket]
mask = "xx-999"
description = "Support ticket"

[formats.session]
mask = "{"X" * 35}"
crypto = true

[formats.order]
mask = "XXX-9999"
timestamp_start = 2023-01-01T00:00:00Z
""".strip(),
    )

    formats = load_config(config_path, environ={})["formats"]

    assert sorted(formats) == ["order", "session", "ticket"]
    assert formats["ticket"] == {
        "mask": "XX-999",
        "crypto": False,
        "description": "Support ticket",
    }
    assert formats["session"]["crypto"] is True
    assert formats["order"]["timestamp_start"] == datetime(2023, 1, 1, tzinfo=UTC)


def test_env_mapping_covers_format_fields(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, '[formats.ticket]\nmask = "XX-999"\n')

    loaded = load_config(
        config_path,
        environ={
            "MASKID_FORMATS_TICKET_MASK": "xxx-999",
            "MASKID_FORMATS_TICKET_CRYPTO": "yes",
            "MASKID_FORMATS_TICKET_TIMESTAMP_START": "2023-01-01T00:00:00+00:00",
            "MASKID_FORMATS_TICKET_DESCRIPTION": "  Ticket  ",
            "MASKID_OBSERVABILITY_QUEUE_SIZE": "128",
            "MASKID_OBSERVABILITY_LOG_TO_STDOUT": "on",
            "MASKID_FORMATS_UNKNOWN_MASK": "XX",
        },
    )

    ticket = loaded["formats"]["ticket"]
    assert ticket["mask"] == "XXX-999"
    assert ticket["crypto"] is True
    assert ticket["timestamp_start"] == datetime(2023, 1, 1, tzinfo=UTC)
    assert ticket["description"] == "Ticket"
    assert loaded["observability"]["queue_size"] == 128
    assert loaded["observability"]["log_to_stdout"] is True
    assert "unknown" not in loaded["formats"]


@pytest.mark.parametrize(
    ("env_name", "raw", "message"),
    [
        ("MASKID_OBSERVABILITY_QUEUE_SIZE", "lots", "must be an integer"),
        ("MASKID_OBSERVABILITY_LOG_TO_STDOUT", "maybe", "must be a boolean"),
        ("MASKID_META_SCHEMA_VERSION", "1.5", "must be an integer"),
    ],
)
def test_env_coercion_errors_name_the_variable(
    tmp_path: Path, env_name: str, raw: str, message: str
) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match=f"{env_name} {message}, got '{raw}'"):
        load_config(config_path, environ={env_name: raw})


def test_env_name_for_hyphenated_format(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, '[formats.gift-card]\nmask = "XX-999"\n')

    loaded = load_config(
        config_path,
        environ={
            "MASKID_FORMATS_GIFT_CARD_MASK": "9999-9999",
            "MASKID_FORMATS_GIFT_CARD_CRYPTO": "0",
        },
    )

    assert loaded["formats"]["gift-card"] == {"mask": "9999-9999", "crypto": False}


def test_env_values_are_validated(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(config_path, environ={"MASKID_OBSERVABILITY_LOG_LEVEL": "TRACE"})

    assert [issue.path for issue in exc_info.value.issues] == ["observability.log_level"]


def test_overrides_accept_nested_mappings(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={},
        overrides={"formats": {"pin": {"mask": "9999"}}, "observability.queue_size": 64},
    )

    assert loaded["formats"]["pin"]["mask"] == "9999"
    assert loaded["observability"]["queue_size"] == 64


def test_dotted_overrides_merge_with_nested_mappings(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={},
        overrides={
            "formats": {"pin": {"mask": "9999"}},
            "formats.pin.description": "Door code",
        },
    )

    assert loaded["formats"]["pin"] == {"mask": "9999", "crypto": False, "description": "Door code"}


def test_empty_override_key_is_a_load_error(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="invalid override key"):
        load_config(config_path, environ={}, overrides={"..": "x"})


def test_invalid_toml_is_a_load_error(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "[formats.ticket\nmask = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_unknown_file_keys_fail_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, '[formats.ticket]\nmask = "XX"\nprefix = "T"\n')

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(config_path, environ={})

    assert exc_info.value.issues[0].path == "formats.ticket.prefix"
    assert exc_info.value.issues[0].message == "unknown field"


def test_yaml_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.yaml"
    _write_config(
        config_path,
        """
observability:
  log_level: DEBUG
formats:
  ticket:
    mask: xx-999
    timestamp_start: "2023-01-01T00:00:00Z"
""".lstrip(),
    )

    loaded = load_config(config_path, environ={})

    assert loaded["observability"]["log_level"] == "DEBUG"
    assert loaded["formats"]["ticket"]["mask"] == "XX-999"
    assert loaded["formats"]["ticket"]["timestamp_start"] == datetime(2023, 1, 1, tzinfo=UTC)


def test_empty_yaml_file_yields_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.yml"
    _write_config(config_path, "")

    assert load_config(config_path, environ={})["formats"] == {}


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("- just\n- a list\n", "config root must be a mapping"),
        ("formats: [unclosed\n", "invalid YAML"),
    ],
)
def test_bad_yaml_is_a_load_error(tmp_path: Path, text: str, message: str) -> None:
    config_path = tmp_path / "maskid.yaml"
    _write_config(config_path, text)

    with pytest.raises(ConfigLoadError, match=message):
        load_config(config_path, environ={})


def test_log_file_is_resolved_relative_to_config(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "maskid.toml"
    _write_config(config_path, '[observability]\nlog_file = "logs/../logs/maskid.jsonl"\n')

    loaded = load_config(config_path, environ={})

    expected = (config_path.resolve().parent / "logs" / "maskid.jsonl").as_posix()
    assert loaded["observability"]["log_file"] == expected


def test_empty_log_file_stays_empty(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(config_path, "")

    assert load_config(config_path, environ={})["observability"]["log_file"] == ""


def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    config_path = tmp_path / "maskid.toml"
    _write_config(
        config_path,
        '[formats.order]\nmask = "XXX-9999"\ntimestamp_start = 2023-01-01T00:00:00Z\n',
    )

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    parsed = json.loads(first)
    assert parsed["formats"]["order"]["timestamp_start"] == "2023-01-01T00:00:00Z"
    assert list(parsed) == ["formats", "meta", "observability"]
