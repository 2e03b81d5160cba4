"""
Structured JSON Logging Module.

Every SensorWatch component receives a ``StructuredLogger`` through its
constructor.  Records are emitted as one JSON object per line so that
auth audit events (login, signup, reset, logout) can be grepped and
shipped without a parser.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO, Union


class JSONFormatter(logging.Formatter):
    """Formats log records as structured JSON objects.

    Each entry carries ``timestamp`` (ISO-8601, UTC), ``level``,
    ``logger_name`` and ``message``; caller-supplied ``extra`` fields are
    grouped under ``extra`` and tracebacks under ``exception``.
    """

    # Attribute names present on every LogRecord, computed once.
    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Union[str, dict[str, str]]] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, str] = {
            key: str(value)
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            entry["extra"] = extra_fields

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


class StructuredLogger:
    """Injectable logger wrapper.

    Usage::

        log = StructuredLogger(name="auth")
        log.info("Login succeeded", extra={"event": "LOGIN"})

    The underlying ``logging.Logger`` is reachable via ``.logger``.
    Handlers are attached only the first time a given *name* is used, so
    constructing several wrappers for the same name never duplicates
    output.
    """

    def __init__(
        self,
        name: str = "sensorwatch",
        level: int = logging.INFO,
        stream: Union[TextIO, None] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)

        if self._logger.handlers:
            return

        if log_file is None or max_bytes is None or backup_count is None:
            # Lazy import to avoid a config <-> logger import cycle.
            from sensorwatch.config import get_config
            cfg = get_config()
            log_file = log_file or cfg.LOG_FILE
            max_bytes = max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES
            backup_count = backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT

        formatter = JSONFormatter()

        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            self._logger.addHandler(file_handler)
        except OSError as exc:
            self._logger.warning(
                "Could not create log file '%s': %s. "
                "Continuing with console logging only.",
                log_file,
                exc,
            )

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying ``logging.Logger`` directly."""
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.exception(msg, *args, **kwargs)


def get_logger(name: str = "sensorwatch") -> StructuredLogger:
    """Create a ``StructuredLogger`` for *name* using configured file output."""
    return StructuredLogger(name=name)
