"""Active theme observers.

The editor asks an observer which theme is active and which color scheme
is showing; it never reads global state. ``ThemeSelection`` is a plain
mutable holder; ``ConfigThemeObserver`` persists the choice through the
editor config file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol, runtime_checkable

from studio.app.config_store import EditorConfig, save_config
from studio.models import ColorScheme

_logger = logging.getLogger(__name__)

__all__ = ["ActiveThemeObserver", "ThemeSelection", "ConfigThemeObserver"]


@runtime_checkable
class ActiveThemeObserver(Protocol):
    @property
    def current_theme_id(self) -> Optional[str]: ...

    @property
    def color_scheme(self) -> ColorScheme: ...


class ThemeSelection:
    """In-memory active theme id and color scheme.

    Callbacks added with ``add_theme_listener`` run after every
    ``set_theme`` with the new id.
    """

    def __init__(
        self, theme_id: Optional[str] = None, color_scheme: ColorScheme | str = ColorScheme.LIGHT
    ) -> None:
        self._theme_id = theme_id
        self._scheme = ColorScheme.coerce(color_scheme)
        self._theme_listeners: List[Callable[[Optional[str]], None]] = []

    @property
    def current_theme_id(self) -> Optional[str]:
        return self._theme_id

    @property
    def color_scheme(self) -> ColorScheme:
        return self._scheme

    def add_theme_listener(self, callback: Callable[[Optional[str]], None]) -> None:
        self._theme_listeners.append(callback)

    def set_theme(self, theme_id: Optional[str]) -> None:
        self._theme_id = theme_id
        self._theme_changed(theme_id)

    def set_color_scheme(self, scheme: ColorScheme | str | bool) -> None:
        self._scheme = ColorScheme.coerce(scheme)

    def toggle_scheme(self) -> ColorScheme:
        self._scheme = self._scheme.other
        return self._scheme

    def _theme_changed(self, theme_id: Optional[str]) -> None:
        for callback in list(self._theme_listeners):
            callback(theme_id)


class ConfigThemeObserver(ThemeSelection):
    """ThemeSelection that writes every change back to ``editor_state.json``."""

    def __init__(self, config: EditorConfig, base_dir: str | Path | None = None) -> None:
        scheme = config.color_scheme
        try:
            coerced = ColorScheme.coerce(scheme)
        except ValueError:
            _logger.warning("ignoring unknown color scheme in config: %r", scheme)
            coerced = ColorScheme.LIGHT
        super().__init__(config.theme_id, coerced)
        self._config = config
        self._base_dir = base_dir

    @property
    def config(self) -> EditorConfig:
        return self._config

    def set_color_scheme(self, scheme: ColorScheme | str | bool) -> None:
        super().set_color_scheme(scheme)
        self._config.color_scheme = self.color_scheme.value
        self._persist()

    def toggle_scheme(self) -> ColorScheme:
        self.set_color_scheme(self.color_scheme.other)
        return self.color_scheme

    def _theme_changed(self, theme_id: Optional[str]) -> None:
        self._config.theme_id = theme_id
        self._persist()
        super()._theme_changed(theme_id)

    def _persist(self) -> None:
        path = save_config(self._config, self._base_dir)
        _logger.debug("active theme persisted to %s", path)
