"""Structured logging for maskid: JSON lines written from a background queue.

Emitting threads only put records on a bounded queue; a ``QueueListener`` formats
and writes them. Records arriving while the queue is full are counted and dropped
so identifier generation never blocks on a slow sink.

Extra fields whose names denote identifiers (``identifier``, ``candidate``,
``value`` or anything ending in ``_identifier``) are replaced with a marker
before formatting unless redaction is disabled.
"""

from __future__ import annotations

import atexit
import contextvars
import copy
import json
import logging
import logging.handlers
import math
import queue
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

REDACTED: Final[str] = "***REDACTED***"
CORRELATION_KEYS: Final[tuple[str, ...]] = ("format_name", "request_id")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")

_DEFAULT_LOGGER_NAME: Final[str] = "maskid"
_DEFAULT_QUEUE_SIZE: Final[int] = 4096
_TEXT_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s %(message)s"
_IDENTIFIER_KEYS: Final[frozenset[str]] = frozenset({"identifier", "candidate", "value"})
_IDENTIFIER_SUFFIX: Final[str] = "_identifier"
_TRACEBACK_FORMATTER: Final[logging.Formatter] = logging.Formatter()

# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(vars(logging.makeLogRecord({}))) | {
    "asctime",
    "correlation",
    "message",
}

_correlation: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "maskid_correlation", default=()
)
_active_lock = threading.Lock()
_active_handle: StructuredLoggingHandle | None = None
_atexit_registered = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Settings for :func:`setup_structured_logging`."""

    logger_name: str = _DEFAULT_LOGGER_NAME
    level: int | str = "INFO"
    log_file: Path | str | None = None
    log_to_stdout: bool = True
    log_format: str = "json"
    queue_size: int = _DEFAULT_QUEUE_SIZE
    redact_identifiers: bool = True
    redactor: LogRedactor | None = None


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    logger_name: str = _DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Install logging from an ``[observability]`` section and return the configured logger.

    Engine modules log under ``maskid.*``, so the default ``logger_name`` captures
    compile, generate, parse and registry events.
    """

    section = dict(observability_config or {})
    log_file = section.get("log_file") or None
    handle = setup_structured_logging(
        LoggingConfig(
            logger_name=logger_name,
            level=_section_value(section, "log_level", (int, str), "INFO"),
            log_file=log_file if isinstance(log_file, (str, Path)) else None,
            log_to_stdout=bool(section.get("log_to_stdout", log_file is None)),
            log_format=_section_value(section, "log_format", (str,), "json"),
            queue_size=_section_value(section, "queue_size", (int,), _DEFAULT_QUEUE_SIZE),
            redact_identifiers=bool(section.get("redact_identifiers", True)),
        )
    )
    return handle.logger


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Route ``config.logger_name`` through a bounded queue; replaces any active setup."""

    shutdown_logging()

    queue_size = config.queue_size
    if isinstance(queue_size, bool) or not isinstance(queue_size, int) or queue_size <= 0:
        raise ValueError(f"queue_size must be > 0, got {queue_size!r}")
    logger_name = config.logger_name.strip() if isinstance(config.logger_name, str) else ""
    if not logger_name:
        raise ValueError("logger_name must not be empty")
    level = _resolve_level(config.level)
    formatter = _build_formatter(config)

    sinks: list[logging.Handler] = []
    log_path = None if config.log_file is None else Path(config.log_file)
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.log_to_stdout:
        sinks.append(logging.StreamHandler())
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=queue_size)
    queue_handler = _CorrelatingQueueHandler(log_queue)
    listener = _DrainingQueueListener(log_queue, *sinks, respect_handler_level=True)

    logger = logging.getLogger(logger_name)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(queue_handler)
    listener.start()

    handle = StructuredLoggingHandle(logger, queue_handler, listener, tuple(sinks), log_path)
    global _active_handle, _atexit_registered
    with _active_lock:
        _active_handle = handle
        if not _atexit_registered:
            atexit.register(shutdown_logging)
            _atexit_registered = True
    return handle


class StructuredLoggingHandle:
    """An installed logging pipeline; :meth:`shutdown` drains the queue and closes sinks."""

    def __init__(
        self,
        logger: logging.Logger,
        queue_handler: _CorrelatingQueueHandler,
        listener: logging.handlers.QueueListener,
        sinks: tuple[logging.Handler, ...],
        log_path: Path | None,
    ) -> None:
        self.logger = logger
        self.log_path = log_path
        self._queue_handler = queue_handler
        self._listener = listener
        self._sinks = sinks
        self._lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            # Stopping the listener writes every record queued before the sentinel.
            self._listener.stop()
            for sink in self._sinks:
                sink.close()
            self._closed = True


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Shut down ``handle``, or the active setup when none is given."""
    global _active_handle
    with _active_lock:
        target = handle or _active_handle
        if target is not None and target is _active_handle:
            _active_handle = None
    if target is not None:
        target.shutdown()


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active_handle


def get_correlation_context() -> dict[str, str]:
    return dict(_correlation.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Attach correlation fields (``format_name``, ``request_id``...) to records logged in scope.

    Scopes nest; passing ``None`` for a key hides the value bound by an outer scope.
    """
    merged = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            merged.pop(key, None)
            continue
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            raise ValueError(f"correlation field {key!r} must be a non-empty string")
        merged[key] = text
    token = _correlation.set(tuple(sorted(merged.items())))
    try:
        yield
    finally:
        _correlation.reset(token)


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Replace values stored under identifier-bearing keys with :data:`REDACTED`."""
    if isinstance(value, dict):
        return {
            key: REDACTED if _names_identifier(key) else default_log_redactor(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [default_log_redactor(item) for item in value]
    return value


class _CorrelatingQueueHandler(logging.handlers.QueueHandler):
    """Stamps the emitting context's correlation fields and never blocks on a full queue."""

    def __init__(self, log_queue: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(log_queue)
        self.dropped = 0
        self._drop_lock = threading.Lock()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # Runs in the emitting thread, where the caller's contextvars are visible.
        prepared = copy.copy(record)
        prepared.msg = record.getMessage()
        prepared.args = None
        if record.exc_info and not record.exc_text:
            prepared.exc_text = _TRACEBACK_FORMATTER.formatException(record.exc_info)
        prepared.exc_info = None
        context = get_correlation_context()
        if context:
            prepared.correlation = context
        return prepared

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._drop_lock:
                self.dropped += 1


class _DrainingQueueListener(logging.handlers.QueueListener):
    def enqueue_sentinel(self) -> None:
        # Wait for room instead of failing when shutdown races a full queue.
        self.queue.put(self._sentinel)  # type: ignore[attr-defined]


class _JsonLineFormatter(logging.Formatter):
    def __init__(self, redactor: LogRedactor) -> None:
        super().__init__()
        self._redactor = redactor

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        event: dict[str, JSONValue] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation = getattr(record, "correlation", None)
        if isinstance(correlation, Mapping):
            event.update({str(key): str(item) for key, item in correlation.items()})

        fields: dict[str, JSONValue] = {}
        for key, item in vars(record).items():
            if key in _RECORD_ATTRIBUTES or key.startswith("_"):
                continue
            if key in CORRELATION_KEYS and isinstance(item, str):
                event[key] = item
                continue
            fields[key] = _to_json(item)
        if fields:
            event["fields"] = self._redactor(fields)

        if record.exc_text:
            event["exception"] = record.exc_text
        if record.stack_info:
            event["stack"] = record.stack_info
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.log_format not in LOG_FORMATS:
        raise ValueError(f"unsupported log format {config.log_format!r}")
    if config.log_format == "text":
        return logging.Formatter(_TEXT_FORMAT)
    if config.redactor is not None:
        return _JsonLineFormatter(config.redactor)
    if config.redact_identifiers:
        return _JsonLineFormatter(default_log_redactor)
    return _JsonLineFormatter(lambda value: value)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    resolved = logging.getLevelNamesMapping().get(str(level).strip().upper())
    if resolved is None:
        raise ValueError(f"unsupported logging level {level!r}")
    return resolved


def _section_value(
    section: Mapping[str, object], key: str, kinds: tuple[type, ...], default: Any
) -> Any:
    value = section.get(key, default)
    return value if isinstance(value, kinds) and not isinstance(value, bool) else default


def _names_identifier(key: str) -> bool:
    lowered = key.lower()
    return lowered in _IDENTIFIER_KEYS or lowered.endswith(_IDENTIFIER_SUFFIX)


def _to_json(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json(item) for item in value]
    return str(value)


__all__ = [
    "CORRELATION_KEYS",
    "JSONScalar",
    "JSONValue",
    "LogRedactor",
    "LoggingConfig",
    "REDACTED",
    "StructuredLoggingHandle",
    "correlation_scope",
    "default_log_redactor",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
