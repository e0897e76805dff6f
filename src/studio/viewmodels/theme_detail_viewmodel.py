"""ViewModel for the token detail panel.

Holds no state of its own besides what ``ThemeEditor`` tracks: the selected
element (with its pre-edit values snapshotted at selection time) lives on
the editor so every view sees the same selection.

Two different undo levels exist:
 - ``revert_selected`` puts the selected token back to the value it had
   when it was selected (the token stays in the diff).
 - ``ThemeEditor.reset_preview`` drops the whole diff.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from studio.design.color_space import hex_to_oklch, to_hex
from studio.models import ColorPairPart, ColorScheme, ElementType, SelectedElement, TokenValue
from studio.services.theme_editor import ThemeEditor

__all__ = ["ThemeDetailViewModel"]


@dataclass
class ThemeDetailViewModel:
    editor: ThemeEditor

    @property
    def selected(self) -> Optional[SelectedElement]:
        return self.editor.selected_element

    # Selection -------------------------------------------------------
    def select_token(
        self,
        token_name: str,
        element_type: ElementType = "color",
        *,
        sub_type: Optional[ColorPairPart] = None,
        foreground_token_name: Optional[str] = None,
    ) -> SelectedElement:
        lookup = SelectedElement(
            type=element_type,
            token_name=token_name,
            sub_type=sub_type,
            foreground_token_name=foreground_token_name,
        )
        target = lookup.target_token_name
        # a token already edited this session keeps its pre-edit values
        recorded = self.editor.original_value(target)
        if recorded is not None:
            light, dark = recorded.light, recorded.dark
        else:
            light, dark = self._value(target, ColorScheme.LIGHT), self._value(target, ColorScheme.DARK)
        element = SelectedElement(
            type=element_type,
            token_name=token_name,
            original_value=light,
            sub_type=sub_type,
            foreground_token_name=foreground_token_name,
            original_dark_value=dark or None,
        )
        self.editor.set_selected_element(element)
        return element

    def clear(self) -> None:
        self.editor.set_selected_element(None)

    # Values ------------------------------------------------------------
    def current_value(self, scheme: ColorScheme | str | None = None) -> str:
        element = self.selected
        if element is None:
            return ""
        return self._value(element.target_token_name, self._scheme(scheme))

    def current_hex(self, scheme: ColorScheme | str | None = None) -> str:
        value = self.current_value(scheme)
        return to_hex(value) if value else ""

    # Editing -------------------------------------------------------------
    def apply_hex(
        self, hex_value: str, scheme: ColorScheme | str | None = None
    ) -> Optional[TokenValue]:
        """Preview a picked hex color on the active scheme's slot."""
        element = self.selected
        if element is None:
            return None
        oklch = hex_to_oklch(hex_value)
        active = self._scheme(scheme)
        if active is ColorScheme.DARK:
            return self.editor.preview_token(element.target_token_name, dark=oklch, scheme=active)
        return self.editor.preview_token(element.target_token_name, light=oklch, scheme=active)

    def revert_selected(self, scheme: ColorScheme | str | None = None) -> Optional[TokenValue]:
        """Preview the captured originals again; a side never captured is derived."""
        element = self.selected
        if element is None or not (element.original_value or element.original_dark_value):
            return None
        return self.editor.preview_token(
            element.target_token_name,
            element.original_value or None,
            element.original_dark_value or None,
            scheme=self._scheme(scheme),
        )

    # Internal -------------------------------------------------------
    def _scheme(self, scheme: ColorScheme | str | None) -> ColorScheme:
        return self.editor.resolve_scheme(scheme)

    def _value(self, token: str, scheme: ColorScheme) -> str:
        pending = self.editor.pending_changes.get(token)
        if pending is not None and pending.for_scheme(scheme):
            return pending.for_scheme(scheme)
        return self.editor.current_value(token, scheme=scheme)
