"""In-memory capture of editor log records.

Conversion fallbacks, slow previews and failed saves are logged through the
standard ``logging`` module. ``LoggingService`` hooks a handler onto the
root logger, keeps the last ``capacity`` records and republishes each one
as ``EditorEvent.LOG_RECORD_ADDED`` so a status panel can show warnings
without polling.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Any, Deque, Dict, Iterable, List, Optional

from .event_bus import EditorEvent, EventBus
from .service_locator import ServiceKey, services

__all__ = [
    "LogEntry",
    "LoggingService",
    "get_logging_service",
]

DEFAULT_EXPORT_NAME = "theme_studio_logs.jsonl"
_EVENT_MESSAGE_LIMIT = 120


@dataclass(frozen=True)
class LogEntry:
    level: str
    levelno: int
    name: str
    message: str
    created: float
    pathname: str
    lineno: int

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEntry":
        return cls(
            level=record.levelname,
            levelno=record.levelno,
            name=record.name,
            message=record.getMessage(),
            created=record.created,
            pathname=record.pathname,
            lineno=record.lineno,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "file": self.pathname,
            "level": self.level,
            "line": self.lineno,
            "message": self.message,
            "name": self.name,
        }


class _CaptureHandler(logging.Handler):
    def __init__(self, sink: "LoggingService") -> None:
        super().__init__(level=logging.DEBUG)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink._ingest_record(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)


class LoggingService:
    def __init__(self, capacity: int = 500, *, bus: EventBus | None = None) -> None:
        self._lock = RLock()
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._handler = _CaptureHandler(self)
        self._bus = bus
        self._restore_level: int | None = None
        self._attached = False

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    @property
    def attached(self) -> bool:
        return self._attached

    # Root logger --------------------------------------------------------
    def attach_root(self, level: int = logging.DEBUG) -> None:
        """Start capturing; lowers the root level to ``level`` if needed."""
        if self._attached:
            return
        root = logging.getLogger()
        if root.level > level:
            self._restore_level = root.level
            root.setLevel(level)
        root.addHandler(self._handler)
        self._attached = True

    def detach_root(self) -> None:
        if not self._attached:
            return
        root = logging.getLogger()
        root.removeHandler(self._handler)
        if self._restore_level is not None:
            root.setLevel(self._restore_level)
        self._restore_level = None
        self._attached = False

    def _ingest_record(self, record: logging.LogRecord) -> None:
        entry = LogEntry.from_record(record)
        with self._lock:
            self._entries.append(entry)
        bus = self._bus if self._bus is not None else services.try_get(ServiceKey.EVENT_BUS)
        if not isinstance(bus, EventBus):
            return
        bus.publish(
            EditorEvent.LOG_RECORD_ADDED,
            {
                "level": entry.level,
                "name": entry.name,
                "message": entry.message[:_EVENT_MESSAGE_LIMIT],
                "created": entry.created,
            },
        )

    # Queries --------------------------------------------------------------
    def recent(self, limit: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            entries = list(self._entries)
        if limit is None:
            return entries
        return entries[-limit:] if limit > 0 else []

    def filter(
        self,
        *,
        level: str | None = None,
        min_level: int | None = None,
        name_contains: str | None = None,
    ) -> List[LogEntry]:
        """``level`` matches a level name exactly; ``min_level`` is a threshold."""
        return [
            e
            for e in self.recent()
            if (level is None or e.level == level)
            and (min_level is None or e.levelno >= min_level)
            and (name_contains is None or name_contains in e.name)
        ]

    def warnings(self) -> List[LogEntry]:
        return self.filter(min_level=logging.WARNING)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def export_jsonl(
        self,
        path: str | Path | None = None,
        *,
        level: str | None = None,
        name_contains: str | None = None,
        append: bool = False,
    ) -> int:
        """Write matching entries as JSON Lines and return how many were written."""
        entries = self.filter(level=level, name_contains=name_contains)
        target = Path(path) if path is not None else Path.cwd() / DEFAULT_EXPORT_NAME
        with target.open("a" if append else "w", encoding="utf-8") as fh:
            fh.writelines(_json_lines(entries))
        return len(entries)


def _json_lines(entries: Iterable[LogEntry]) -> Iterable[str]:
    for entry in entries:
        yield json.dumps(entry.to_row(), sort_keys=True) + "\n"


def get_logging_service() -> LoggingService:
    return services.get_typed(ServiceKey.LOGGING_SERVICE, LoggingService)
