"""Synchronous event bus for editor notifications.

The theme editor announces previews, resets, discarded drafts, saves and
failed saves; the logging service announces captured records. Views
subscribe by ``EditorEvent`` member or by its string value.

Handlers run in publish order on the publishing thread. A handler that
raises is recorded in ``errors`` and the remaining handlers still run.
Tracing keeps a short ring buffer of recent event names for diagnostics.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from time import perf_counter
from typing import Any, Callable, DefaultDict, Deque, List

__all__ = [
    "EditorEvent",
    "Event",
    "EventBus",
    "EventHandler",
    "HandlerError",
    "Subscription",
    "TraceEntry",
]


class EditorEvent(str, Enum):
    TOKEN_PREVIEWED = "token_previewed"
    PREVIEW_RESET = "preview_reset"
    DRAFT_DISCARDED = "draft_discarded"
    THEME_SAVED = "theme_saved"
    SAVE_FAILED = "save_failed"
    SELECTION_CHANGED = "selection_changed"
    LOG_RECORD_ADDED = "log_record_added"


@dataclass(frozen=True)
class Event:
    name: str
    payload: Any
    timestamp: float


EventHandler = Callable[[Event], None]


@dataclass
class Subscription:
    event: str
    handler: EventHandler
    once: bool = False
    active: bool = True

    def cancel(self) -> None:
        self.active = False


@dataclass(frozen=True)
class HandlerError:
    event: Event
    handler: EventHandler
    error: Exception


@dataclass(frozen=True)
class TraceEntry:
    name: str
    timestamp: float
    summary: str


def _event_name(name: str | EditorEvent) -> str:
    return name.value if isinstance(name, EditorEvent) else str(name)


def _summarize(payload: Any, limit: int = 40) -> str:
    text = "-" if payload is None else str(payload)
    return text if len(text) <= limit else text[: limit - 3] + "..."


class EventBus:
    DEFAULT_TRACE_CAPACITY = 50

    def __init__(self) -> None:
        self._lock = RLock()
        self._subscriptions: DefaultDict[str, List[Subscription]] = defaultdict(list)
        self._errors: List[HandlerError] = []
        self._tracing = False
        self._traces: Deque[TraceEntry] = deque(maxlen=self.DEFAULT_TRACE_CAPACITY)

    # Subscriptions ------------------------------------------------------
    def subscribe(
        self, name: str | EditorEvent, handler: EventHandler, *, once: bool = False
    ) -> Subscription:
        sub = Subscription(_event_name(name), handler, once)
        with self._lock:
            self._subscriptions[sub.event].append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.active = False
        with self._lock:
            remaining = [s for s in self._subscriptions.get(sub.event, ()) if s is not sub]
            if remaining:
                self._subscriptions[sub.event] = remaining
            else:
                self._subscriptions.pop(sub.event, None)

    def subscriber_count(self, name: str | EditorEvent) -> int:
        with self._lock:
            return sum(1 for s in self._subscriptions.get(_event_name(name), ()) if s.active)

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()
            self._errors.clear()

    # Publishing -----------------------------------------------------------
    def publish(self, name: str | EditorEvent, payload: Any = None) -> Event:
        event = Event(_event_name(name), payload, perf_counter())
        with self._lock:
            # snapshot so handlers may (un)subscribe while we dispatch
            targets = list(self._subscriptions.get(event.name, ()))
            if self._tracing:
                self._traces.append(TraceEntry(event.name, event.timestamp, _summarize(payload)))
        for sub in targets:
            if not sub.active:
                continue
            if sub.once:
                self.unsubscribe(sub)
            try:
                sub.handler(event)
            except Exception as exc:  # noqa: BLE001 - one bad handler must not stop the rest
                with self._lock:
                    self._errors.append(HandlerError(event, sub.handler, exc))
        return event

    @property
    def errors(self) -> List[HandlerError]:
        with self._lock:
            return list(self._errors)

    # Tracing ----------------------------------------------------------------
    @property
    def tracing_enabled(self) -> bool:
        return self._tracing

    def enable_tracing(self, enabled: bool = True, *, capacity: int | None = None) -> None:
        with self._lock:
            self._tracing = enabled
            if capacity is not None and capacity != self._traces.maxlen:
                self._traces = deque(self._traces, maxlen=capacity)

    def recent_traces(self) -> List[TraceEntry]:
        with self._lock:
            return list(self._traces)

    def clear_traces(self) -> None:
        with self._lock:
            self._traces.clear()
