"""Qt style root.

Mirrors token overrides onto a ``QObject``'s dynamic properties so style
sheets using property selectors pick them up, re-polishes the target widget
and emits ``tokenChanged(name, value)`` (value ``""`` on removal).

Resolution (layers plus inline overrides) is delegated to an
``InMemoryStyleRoot`` so the Qt adapter and headless tests agree.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtWidgets import QWidget

from studio.models import ColorScheme, PersistedTheme

from .style_root import InMemoryStyleRoot

_logger = logging.getLogger(__name__)

__all__ = ["QtStyleRoot"]


class QtStyleRoot(QObject):
    tokenChanged = pyqtSignal(str, str)

    def __init__(
        self,
        target: Optional[QObject] = None,
        parent: Optional[QObject] = None,
        *,
        base: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        super().__init__(parent)
        self._target = target if target is not None else self
        self._store = InMemoryStyleRoot(base)

    @property
    def target(self) -> QObject:
        return self._target

    # StyleRoot ----------------------------------------------------------
    def set_property(self, name: str, value: str, scheme: ColorScheme) -> None:
        self._store.set_property(name, value, scheme)
        self._target.setProperty(name, value)
        self._repolish()
        self.tokenChanged.emit(name, value)

    def remove_property(self, name: str) -> None:
        self._store.remove_property(name)
        self._target.setProperty(name, None)
        self._repolish()
        self.tokenChanged.emit(name, "")

    def computed_value(self, name: str, scheme: ColorScheme) -> str:
        return self._store.computed_value(name, scheme)

    # Layers -------------------------------------------------------------
    def load_css(self, css: str) -> int:
        return self._store.load_css(css)

    def load_theme(self, theme: PersistedTheme) -> int:
        return self._store.load_theme(theme)

    def clear_layers(self) -> None:
        self._store.clear_layers()

    def inline_overrides(self, scheme: ColorScheme | None = None):
        return self._store.inline_overrides(scheme)

    # Internal -------------------------------------------------------
    def _repolish(self) -> None:
        if not isinstance(self._target, QWidget):
            return
        style = self._target.style()
        if style is None:
            return
        style.unpolish(self._target)
        style.polish(self._target)
        self._target.update()
