"""
Structured JSON Logging Module.

All client loggers live under the ``journal`` namespace.  Handlers are
installed once, on the ``journal`` logger itself, by :func:`configure_logging`;
every ``journal.*`` logger (including plain ``logging.getLogger`` users such
as the error mapper) propagates into them.  Level, log file and rotation
come from :class:`journal.config.AppConfig`.

Each record is one JSON line.  The ``event`` and ``user_id`` fields used by
the auth and session code are lifted to top-level keys; any other ``extra``
fields go under ``context``.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO

from journal.config import AppConfig, get_config

ROOT_LOGGER_NAME: str = "journal"

_LIFTED_KEYS: tuple[str, ...] = ("event", "user_id")
_RESERVED_ATTRS: frozenset[str] = frozenset(
    logging.makeLogRecord({}).__dict__.keys()
) | {"message", "asctime", "taskName"}

_configure_lock: threading.Lock = threading.Lock()


class JSONFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``message``,
    then the lifted keys, ``context`` and ``exception`` when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        for key in _LIFTED_KEYS:
            if key in context:
                entry[key] = str(context.pop(key))
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _resolve_level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.strip().upper(), logging.INFO)


def configure_logging(
    config: Optional[AppConfig] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Install the JSON handlers on the ``journal`` logger.

    Replaces any handlers installed by an earlier call, so tests and the
    CLI can redirect output.  A log file that cannot be opened (read-only
    directory, permissions) degrades to console-only logging.
    """
    cfg = config or get_config()
    level = _resolve_level(cfg.LOG_LEVEL)
    root = logging.getLogger(ROOT_LOGGER_NAME)

    with _configure_lock:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        root.setLevel(level)
        root.propagate = False
        formatter = JSONFormatter()

        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        root.addHandler(console)

        if cfg.LOG_FILE:
            try:
                log_path = Path(cfg.LOG_FILE)
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = RotatingFileHandler(
                    filename=str(log_path),
                    maxBytes=cfg.LOG_MAX_BYTES,
                    backupCount=cfg.LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
            except OSError as exc:
                root.warning(
                    "Could not open log file '%s': %s. Console logging only.",
                    cfg.LOG_FILE,
                    exc,
                )
            else:
                file_handler.setFormatter(formatter)
                root.addHandler(file_handler)

    return root


class StructuredLogger:
    """Injectable logger carrying a fixed set of context fields.

    Services receive one of these through their constructor.  ``bind``
    returns a copy whose records all carry the extra fields, e.g. the
    command being run or the signed-in user::

        log = get_logger("journal.main").bind(command="login")
        log.info("Signed in.", extra={"event": "LOGIN"})
    """

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
            configure_logging()
        self._logger: logging.Logger = logging.getLogger(name)
        self._context: dict[str, Any] = dict(context or {})

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Return a logger for the same name with *fields* merged into context."""
        return StructuredLogger(self._logger.name, {**self._context, **fields})

    def _log(self, level: int, msg: str, args: tuple[object, ...], kwargs: dict[str, Any]) -> None:
        if self._context:
            kwargs["extra"] = {**self._context, **(kwargs.get("extra") or {})}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, msg, args, kwargs)


def get_logger(name: str = ROOT_LOGGER_NAME) -> StructuredLogger:
    return StructuredLogger(name=name)
