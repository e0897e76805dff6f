"""Service layer exports.

Responsibilities:
 - Dependency/service locator (`services`)
 - EventBus publish/subscribe core
 - The live theme editing engine (`ThemeEditor`)

``QtStyleRoot`` is not exported here; import it from
``studio.services.qt_style_root`` where PyQt6 is available.
"""

from .service_locator import services, ServiceKey, ServiceLocator  # noqa: F401
from .event_bus import EventBus, EditorEvent  # noqa: F401
from .theme_editor import ThemeEditor  # noqa: F401

__all__ = [
    "services",
    "ServiceKey",
    "ServiceLocator",
    "EventBus",
    "EditorEvent",
    "ThemeEditor",
]
