"""Named identifier formats compiled from configuration."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from maskid.config import (
    ConfigValidationError,
    ConfigValidationIssue,
    assert_valid_config,
    load_config,
)
from maskid.engine import (
    IdentifierError,
    IdentifierSpec,
    InsufficientEntropyError,
    InvalidMaskCharacterError,
    compile_mask,
)
from maskid.engine.timestamp import Clock
from maskid.observability.logging import correlation_scope

logger = logging.getLogger(__name__)


class IdentifierRegistry(Mapping[str, IdentifierSpec]):
    """Read-only mapping of format name to compiled :class:`IdentifierSpec`."""

    __slots__ = ("_descriptions", "_specs")

    def __init__(
        self,
        specs: Mapping[str, IdentifierSpec],
        descriptions: Mapping[str, str] | None = None,
    ) -> None:
        self._specs = MappingProxyType(dict(sorted(specs.items())))
        self._descriptions = MappingProxyType(dict(descriptions or {}))

    def __getitem__(self, name: str) -> IdentifierSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"IdentifierRegistry({sorted(self._specs)!r})"

    def describe(self, name: str) -> str | None:
        if name not in self._specs:
            raise KeyError(name)
        return self._descriptions.get(name)

    def generate(self, name: str) -> str:
        spec = self._specs[name]
        with correlation_scope(format_name=name):
            return spec.generate()

    def match(self, value: object) -> tuple[str, str] | None:
        """Return ``(format_name, canonical)`` for the first format accepting ``value``.

        Each attempt logs under the format it tried, so rejections can be told apart.
        """
        for name, spec in self._specs.items():
            with correlation_scope(format_name=name):
                canonical = spec.parse(value)
            if canonical is not None:
                return name, canonical
        return None


def build_registry(
    config: Mapping[str, object],
    *,
    clock: Clock | None = None,
) -> IdentifierRegistry:
    """Compile every ``[formats.*]`` entry; all failing formats are reported together."""

    validated = assert_valid_config(config)
    formats = validated.get("formats", {})

    specs: dict[str, IdentifierSpec] = {}
    descriptions: dict[str, str] = {}
    issues: list[ConfigValidationIssue] = []
    first_error: IdentifierError | None = None

    for name in sorted(formats):
        entry = formats[name]
        try:
            specs[name] = compile_mask(
                entry["mask"],
                entry.get("crypto", False),
                entry.get("timestamp_start"),
                clock=clock,
            )
        except IdentifierError as exc:
            issues.append(ConfigValidationIssue(_issue_path(name, exc), str(exc)))
            first_error = first_error or exc
            continue
        if "description" in entry:
            descriptions[name] = entry["description"]

    if issues:
        raise ConfigValidationError(issues) from first_error

    logger.info("identifier registry built", extra={"formats": sorted(specs)})
    return IdentifierRegistry(specs, descriptions)


def load_registry(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
    clock: Clock | None = None,
) -> IdentifierRegistry:
    """Load ``maskid.toml`` (plus env/overrides) and compile its formats."""

    config = load_config(config_path, overrides=overrides, environ=environ)
    return build_registry(config, clock=clock)


def _issue_path(name: str, exc: IdentifierError) -> str:
    if isinstance(exc, InsufficientEntropyError):
        return f"formats.{name}.crypto"
    if isinstance(exc, InvalidMaskCharacterError):
        return f"formats.{name}.mask"
    # Mask type and emptiness are settled by schema validation; what remains is the start date.
    return f"formats.{name}.timestamp_start"


__all__ = ["IdentifierRegistry", "build_registry", "load_registry"]
