"""Structured logging helpers for the site builder.

Module-level loggers get a ``NullHandler`` so importing :mod:`refsite` never
configures output; the CLI calls :func:`setup_logging` at the application
boundary. Adapters inject ``operation`` and ``status`` fields into every record
so JSON output stays uniform.

Examples
--------
>>> from refsite.logging import get_logger, with_fields
>>> logger = get_logger(__name__)
>>> adapter = with_fields(logger, operation="news")
>>> adapter.info("Changelog parsed", extra={"versions": 3})
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, MutableMapping

__all__ = [
    "JsonFormatter",
    "LogValue",
    "LoggerAdapter",
    "get_logger",
    "setup_logging",
    "with_fields",
]

type LogValue = Any

_STANDARD_ATTRIBUTES = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects.

    Structured fields attached through ``extra`` (or bound by
    :class:`LoggerAdapter`) are emitted next to ``ts``, ``level``, ``name`` and
    ``message`` when they are JSON-serialisable.
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRIBUTES or key in data or key.startswith("_"):
                continue
            if value is None:
                continue
            if isinstance(value, (str, int, float, bool, list, dict)):
                data[key] = value
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class LoggerAdapter(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that merges bound fields into every record.

    Per-call ``extra`` values win over bound fields. ``operation`` defaults to
    ``"unknown"``; ``status`` is inferred from the level when absent.
    """

    def __init__(self, logger: logging.Logger, extra: Mapping[str, object] | None = None) -> None:
        super().__init__(logger, dict(extra or {}))

    def process(
        self, msg: object, kwargs: MutableMapping[str, Any]
    ) -> tuple[object, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in (self.extra or {}).items():
            extra.setdefault(key, value)
        extra.setdefault("operation", "unknown")
        kwargs["extra"] = extra
        return msg, kwargs

    def log(self, level: int, msg: object, *args: object, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        msg, kwargs = self.process(msg, kwargs)
        extra = kwargs["extra"]
        if "status" not in extra:
            extra["status"] = _status_for(level)
        self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: object, *args: object, exc_info: Any = True, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def critical(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, *args, **kwargs)


def _status_for(level: int) -> str:
    if level >= logging.ERROR:
        return "error"
    if level >= logging.WARNING:
        return "warning"
    return "success"


def get_logger(name: str) -> LoggerAdapter:
    """Return a structured logger adapter for ``name``.

    A ``NullHandler`` is attached when the underlying logger has no handlers,
    preventing "no handler" warnings in library use.

    Parameters
    ----------
    name : str
        Logger name (typically ``__name__``).

    Returns
    -------
    LoggerAdapter
        Adapter with no bound fields.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return LoggerAdapter(logger, {})


def with_fields(logger: logging.Logger | LoggerAdapter, **fields: LogValue) -> LoggerAdapter:
    """Return an adapter bound to ``fields``.

    When ``logger`` is already an adapter its underlying logger is reused and
    its previously bound fields are dropped.

    Parameters
    ----------
    logger : logging.Logger | LoggerAdapter
        Base logger to wrap.
    **fields : LogValue
        Structured fields injected into every record.

    Returns
    -------
    LoggerAdapter
        Adapter carrying exactly ``fields``.
    """
    base_logger = logger.logger if isinstance(logger, LoggerAdapter) else logger
    return LoggerAdapter(base_logger, fields)


def setup_logging(level: int | str = logging.INFO, *, json_format: bool = False) -> None:
    """Configure the root logger for command-line use.

    Parameters
    ----------
    level : int | str, optional
        Threshold level, as a number or a level name. Defaults to ``INFO``.
    json_format : bool, optional
        Emit :class:`JsonFormatter` output instead of plain text.
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, handlers=[handler], force=True)
