"""Loads the active theme into a style root as cascading layers.

A derived theme only declares the tokens it changed, so rendering it means
loading its base first and the derived theme after it. ``ThemeLayers``
walks the ``base_id`` chain and rebuilds the style root's layers whenever
the active theme changes. Inline preview overrides are left alone; the
editor owns those.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from studio.design.theme_css import ThemeCssError
from studio.models import PersistedTheme

from .theme_storage import ThemeNotFoundError

_logger = logging.getLogger(__name__)

__all__ = ["LayeredStyleRoot", "ThemeSource", "ThemeLayers", "theme_chain"]


class LayeredStyleRoot(Protocol):
    def clear_layers(self) -> None: ...

    def load_theme(self, theme: PersistedTheme) -> int: ...


class ThemeSource(Protocol):
    def load_theme(self, theme_id: str) -> PersistedTheme: ...


def theme_chain(storage: ThemeSource, theme_id: Optional[str]) -> List[PersistedTheme]:
    """Themes to load for ``theme_id``, root base first.

    The walk stops at a missing theme or a cycle; whatever was found is kept.
    """
    chain: List[PersistedTheme] = []
    seen = set()
    current = theme_id
    while current and current not in seen:
        seen.add(current)
        try:
            theme = storage.load_theme(current)
        except ThemeNotFoundError:
            _logger.warning("theme %r not found while resolving %r", current, theme_id)
            break
        chain.append(theme)
        current = theme.base_id
    chain.reverse()
    return chain


class ThemeLayers:
    def __init__(self, style_root: LayeredStyleRoot, storage: ThemeSource) -> None:
        self._style_root = style_root
        self._storage = storage
        self._loaded: List[str] = []

    @property
    def loaded(self) -> List[str]:
        return list(self._loaded)

    def apply_theme(self, theme_id: Optional[str]) -> List[str]:
        """Replace the style root's layers with ``theme_id`` and its bases."""
        self._style_root.clear_layers()
        self._loaded = []
        for theme in theme_chain(self._storage, theme_id):
            try:
                count = self._style_root.load_theme(theme)
            except ThemeCssError as exc:
                _logger.warning("skipping unreadable theme %s: %s", theme.id, exc)
                continue
            self._loaded.append(theme.id)
            _logger.debug("theme layer %s: %d declarations", theme.id, count)
        _logger.info("active theme %s rendered from %s", theme_id, self._loaded or "no layers")
        return self.loaded
