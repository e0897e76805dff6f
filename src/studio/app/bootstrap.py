"""Editor bootstrap.

Wires the editor's collaborators and registers them in the service locator:

 - editor config (``editor_state.json``) -> ``ConfigThemeObserver``
 - ``FileThemeStorage`` rooted at the configured themes directory
 - style root: ``QtStyleRoot`` when a Qt target is requested, else in-memory
 - a fresh ``EventBus`` and ``LoggingService`` per bootstrap
 - ``ThemeLayers``, which renders the active theme (base first) into the
   style root now and after every theme switch
 - the ``ThemeEditor`` itself

PyQt6 is imported lazily so headless use and test collection never need a
display.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from studio.app.config_store import EditorConfig, load_config
from studio.design.token_registry import REGISTRY_VERSION
from studio.services.event_bus import EditorEvent, Event, EventBus
from studio.services.logging_service import LoggingService
from studio.services.service_locator import ServiceKey, ServiceLocator, services
from studio.services.style_root import InMemoryStyleRoot, StyleRoot
from studio.services.theme_editor import ThemeEditor
from studio.services.theme_layers import ThemeLayers
from studio.services.theme_observer import ConfigThemeObserver
from studio.services.theme_storage import FileThemeStorage

_logger = logging.getLogger(__name__)

__all__ = ["EditorContext", "create_editor"]


@dataclass
class EditorContext:
    """References created during bootstrap.

    Attributes
    ----------
    editor: The wired ``ThemeEditor``
    observer: Active theme / color scheme holder backed by the config file
    storage: File-backed theme storage
    style_root: The style root previews are written to
    event_bus: Bus the editor and logging service publish on
    logging_service: Ring-buffer log capture (attached to the root logger)
    config: Loaded editor config
    services: Global service locator (post-initialization state)
    duration_s: Elapsed seconds for bootstrap
    layers: Theme layer loader, None when the host manages the style root
    metadata: Free-form details (qt usage, registry version, paths)
    """

    editor: ThemeEditor
    observer: ConfigThemeObserver
    storage: FileThemeStorage
    style_root: StyleRoot
    event_bus: EventBus
    logging_service: LoggingService
    config: EditorConfig
    services: ServiceLocator
    duration_s: float
    layers: ThemeLayers | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def shutdown(self) -> None:
        self.logging_service.detach_root()


def _themes_root(config: EditorConfig, config_dir: str | Path | None) -> Path:
    # Relative themes dirs resolve against the config directory
    root = Path(config.themes_dir)
    if not root.is_absolute() and config_dir is not None:
        root = Path(config_dir) / root
    return root


def _qt_style_root(target: Any) -> StyleRoot:
    from studio.services.qt_style_root import QtStyleRoot

    return QtStyleRoot(target)


def _reload_after_overwrite(layers: ThemeLayers, observer: ConfigThemeObserver):
    # the stored base changed under the loaded layer
    def handler(event: Event) -> None:
        if event.payload.get("mode") == "overwrite":
            layers.apply_theme(observer.current_theme_id)

    return handler


def create_editor(
    *,
    config_dir: str | Path | None = None,
    themes_dir: str | Path | None = None,
    style_root: StyleRoot | None = None,
    qt_target: Any = None,
    attach_logging: bool = True,
    log_capacity: int = 500,
    manage_layers: bool | None = None,
) -> EditorContext:
    """Create and register the editor services.

    Parameters
    ----------
    config_dir: Directory holding ``editor_state.json`` (defaults to CONFIG_DIR / CWD).
    themes_dir: Overrides the config's themes directory.
    style_root: Explicit style root; wins over ``qt_target``.
    qt_target: QObject/QWidget to mirror overrides onto (uses ``QtStyleRoot``).
    manage_layers: Load the active theme into the style root and reload it on
        every switch. Defaults to True unless ``style_root`` was given.
    """
    started = time.perf_counter()
    config = load_config(config_dir)
    if themes_dir is not None:
        config.themes_dir = os.fspath(themes_dir)
    observer = ConfigThemeObserver(config, config_dir)
    storage = FileThemeStorage(_themes_root(config, config_dir))
    if manage_layers is None:
        manage_layers = style_root is None
    use_qt = style_root is None and qt_target is not None
    if style_root is None:
        style_root = _qt_style_root(qt_target) if qt_target is not None else InMemoryStyleRoot()

    previous = services.try_get(ServiceKey.LOGGING_SERVICE)
    if isinstance(previous, LoggingService):
        previous.detach_root()
    bus = EventBus()
    logging_service = LoggingService(capacity=log_capacity, bus=bus)
    if attach_logging:
        logging_service.attach_root()
    layers = None
    if manage_layers:
        layers = ThemeLayers(style_root, storage)  # type: ignore[arg-type]
        layers.apply_theme(observer.current_theme_id)
        observer.add_theme_listener(layers.apply_theme)
        bus.subscribe(EditorEvent.THEME_SAVED, _reload_after_overwrite(layers, observer))
    editor = ThemeEditor(style_root, observer, storage, bus=bus)

    # Each bootstrap gets fresh instances (test isolation)
    for key, value in [
        (ServiceKey.EVENT_BUS, bus),
        (ServiceKey.LOGGING_SERVICE, logging_service),
        (ServiceKey.EDITOR_CONFIG, config),
        (ServiceKey.THEME_OBSERVER, observer),
        (ServiceKey.THEME_STORAGE, storage),
        (ServiceKey.STYLE_ROOT, style_root),
        (ServiceKey.THEME_EDITOR, editor),
    ]:
        services.register(key, value, allow_override=True, origin="bootstrap")

    duration = time.perf_counter() - started
    _logger.info(
        "editor ready: theme=%s scheme=%s themes_dir=%s (%.1fms)",
        observer.current_theme_id,
        observer.color_scheme.value,
        storage.root,
        duration * 1000.0,
    )
    return EditorContext(
        editor=editor,
        observer=observer,
        storage=storage,
        style_root=style_root,
        event_bus=bus,
        logging_service=logging_service,
        config=config,
        services=services,
        duration_s=duration,
        layers=layers,
        metadata={
            "qt_style_root": use_qt,
            "registry_version": REGISTRY_VERSION,
            "themes_dir": str(storage.root),
        },
    )
