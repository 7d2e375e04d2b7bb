"""Logging setup: root formatter plus optional persistence to ``system_logs``."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import AsyncSessionLocal
from .models.system_log import SystemLog

SessionFactory = Callable[[], AsyncSession]

_LOG_RECORD_RESERVED_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}

# Records from these loggers are never persisted (the writer itself uses them).
_SKIPPED_LOGGER_PREFIXES = ("sqlalchemy", "aiosqlite")


def _record_extra(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the JSON-safe ``extra=`` fields attached to a record."""
    sanitized: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _LOG_RECORD_RESERVED_KEYS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
            sanitized[key] = value
        except (TypeError, ValueError):
            sanitized[key] = repr(value)
    return sanitized


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extra(record))
        if record.exc_info:
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Handler:
    """Install a single stream handler on the root logger."""
    level_name = (level or settings.log_level).upper()
    fmt = (fmt or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if getattr(existing, "_fm_tracker_handler", False):
            root_logger.removeHandler(existing)
    handler._fm_tracker_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    return handler


class _CentralLogHandler(logging.Handler):
    """Logging handler that forwards records into an async queue."""

    def __init__(self, manager: "CentralizedLogManager") -> None:
        super().__init__(manager.level)
        self.manager = manager

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno < self.manager.level:
            return
        if record.name.startswith(_SKIPPED_LOGGER_PREFIXES):
            return
        payload = self.manager.serialize_record(record)
        try:
            self.manager.queue.put_nowait(payload)
        except asyncio.QueueFull:
            self.manager.report_queue_full()


class CentralizedLogManager:
    """Background task that persists log records to the database."""

    def __init__(
        self,
        service_name: str,
        level: int,
        queue_size: int,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.service_name = service_name
        self.level = level
        self.queue: asyncio.Queue[Optional[Dict[str, Any]]] = asyncio.Queue(maxsize=queue_size)
        self.session_factory = session_factory or AsyncSessionLocal
        self.handler: Optional[logging.Handler] = None
        self.dropped = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._queue_warning_emitted = False

    def create_handler(self) -> logging.Handler:
        """Return a handler bound to this manager."""
        self.handler = _CentralLogHandler(self)
        return self.handler

    async def start(self) -> None:
        """Start the background consumer if not already running."""
        if self._task is None:
            self._task = asyncio.create_task(self._worker(), name=f"log-writer-{self.service_name}")

    async def stop(self) -> None:
        """Stop the background consumer, flushing any pending records."""
        if self._task is None:
            return
        await self.queue.put(None)
        await self._task
        self._task = None
        self._queue_warning_emitted = False

    async def _worker(self) -> None:
        while True:
            item = await self.queue.get()
            if item is None:
                self.queue.task_done()
                break
            try:
                async with self.session_factory() as session:
                    session.add(SystemLog(**item))
                    await session.commit()
            except SQLAlchemyError:
                # Logging here would feed the queue again.
                traceback.print_exc(file=sys.stderr)
            finally:
                self.queue.task_done()

    def serialize_record(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Convert a log record into the payload stored in the database."""
        payload: Dict[str, Any] = {
            "service": self.service_name,
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
            "created_at": datetime.fromtimestamp(record.created, tz=timezone.utc),
        }

        if record.exc_info:
            payload["traceback"] = "".join(traceback.format_exception(*record.exc_info))
        elif record.exc_text:
            payload["traceback"] = record.exc_text

        extra = _record_extra(record)
        if extra:
            payload["extra"] = extra
        return payload

    def report_queue_full(self) -> None:
        """Count the drop and warn once on stderr."""
        self.dropped += 1
        if self._queue_warning_emitted:
            return
        self._queue_warning_emitted = True
        print(
            f"Centralized logging queue for service '{self.service_name}' is full; dropping log entries.",
            file=sys.stderr,
        )


async def enable_centralized_logging(
    service_name: str,
    session_factory: Optional[SessionFactory] = None,
    force: bool = False,
) -> Optional[CentralizedLogManager]:
    """Forward root logger records into ``system_logs``.

    Returns ``None`` when centralized logging is disabled in settings and
    ``force`` is not set. The caller owns the returned manager and must pass
    it to :func:`disable_centralized_logging`.
    """
    if not (force or settings.centralized_logging_enabled):
        return None

    level = getattr(logging, settings.centralized_log_level.upper(), logging.WARNING)
    manager = CentralizedLogManager(
        service_name=service_name,
        level=level,
        queue_size=max(1, settings.centralized_log_queue_size),
        session_factory=session_factory,
    )

    handler = manager.create_handler()
    handler.setLevel(level)
    root_logger = logging.getLogger()
    if root_logger.level == logging.NOTSET or root_logger.level > level:
        root_logger.setLevel(level)
    root_logger.addHandler(handler)

    await manager.start()
    return manager


async def disable_centralized_logging(manager: Optional[CentralizedLogManager]) -> None:
    """Detach the manager's handler and flush what is still queued."""
    if manager is None:
        return
    if manager.handler is not None:
        logging.getLogger().removeHandler(manager.handler)
    await manager.stop()
