"""Service locator for the editor's shared collaborators.

Bootstrap registers the event bus, logging service, storage, observer,
style root and ``ThemeEditor``; the editor and the logging service fall
back to the registered bus when none was injected.

Keys are plain strings; ``ServiceKey`` names the ones bootstrap uses.

    services.register(ServiceKey.EVENT_BUS, EventBus())
    bus = services.get_typed(ServiceKey.EVENT_BUS, EventBus)

    with services.override_context(theme_storage=FailingStorage()):
        ...
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from threading import RLock
from typing import Any, Dict, Iterator, List, Tuple, Type, TypeVar

T = TypeVar("T")

__all__ = [
    "ServiceKey",
    "ServiceLocator",
    "services",
    "ServiceAlreadyRegisteredError",
    "ServiceNotFoundError",
]

_MISSING = object()


class ServiceKey(str, Enum):
    EVENT_BUS = "event_bus"
    LOGGING_SERVICE = "logging_service"
    EDITOR_CONFIG = "editor_config"
    THEME_OBSERVER = "theme_observer"
    THEME_STORAGE = "theme_storage"
    STYLE_ROOT = "style_root"
    THEME_EDITOR = "theme_editor"


class ServiceAlreadyRegisteredError(RuntimeError):
    """Raised when registering an existing key without allow_override."""


class ServiceNotFoundError(KeyError):
    """Raised when a requested service key is not present."""


def _name(key: str | ServiceKey) -> str:
    return key.value if isinstance(key, ServiceKey) else key


class ServiceLocator:
    """Thread-safe registry; each entry remembers who registered it."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: Dict[str, Tuple[Any, str | None]] = {}

    def register(
        self,
        key: str | ServiceKey,
        value: Any,
        *,
        allow_override: bool = False,
        origin: str | None = None,
    ) -> None:
        name = _name(key)
        with self._lock:
            if not allow_override and name in self._entries:
                raise ServiceAlreadyRegisteredError(f"Service '{name}' already registered")
            self._entries[name] = (value, origin)

    def get(self, key: str | ServiceKey) -> Any:
        value = self.try_get(key, _MISSING)
        if value is _MISSING:
            raise ServiceNotFoundError(_name(key))
        return value

    def get_typed(self, key: str | ServiceKey, expected_type: Type[T]) -> T:
        value = self.get(key)
        if isinstance(value, expected_type):
            return value
        raise TypeError(
            f"Service '{_name(key)}' is {type(value).__name__}, expected {expected_type.__name__}"
        )

    def try_get(self, key: str | ServiceKey, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(_name(key))
        return default if entry is None else entry[0]

    def origin(self, key: str | ServiceKey) -> str | None:
        with self._lock:
            entry = self._entries.get(_name(key))
        if entry is None:
            raise ServiceNotFoundError(_name(key))
        return entry[1]

    @contextmanager
    def override_context(self, **overrides: Any) -> Iterator["ServiceLocator"]:
        """Swap services in for the duration of the block, then restore."""
        with self._lock:
            saved = {name: self._entries.get(name) for name in overrides}
            for name, value in overrides.items():
                self._entries[name] = (value, "override")
        try:
            yield self
        finally:
            with self._lock:
                for name, entry in saved.items():
                    if entry is None:
                        self._entries.pop(name, None)
                    else:
                        self._entries[name] = entry

    def unregister(self, key: str | ServiceKey) -> None:
        with self._lock:
            self._entries.pop(_name(key), None)

    def list_keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


services = ServiceLocator()
