"""Value types shared by the design helpers and the editor services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Literal, Mapping, Optional

__all__ = [
    "ColorScheme",
    "TokenValue",
    "ElementType",
    "ColorPairPart",
    "SelectedElement",
    "ThemeDraft",
    "PersistedTheme",
]


class ColorScheme(str, Enum):
    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def coerce(cls, value: "ColorScheme | str | bool") -> "ColorScheme":
        """Accept enum members, their string values, or an ``is_dark`` bool."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.DARK if value else cls.LIGHT
        return cls(str(value).lower())

    @property
    def other(self) -> "ColorScheme":
        return ColorScheme.LIGHT if self is ColorScheme.DARK else ColorScheme.DARK


@dataclass(frozen=True)
class TokenValue:
    """Light and dark variants of one token; ``""`` means unknown/inherited."""

    light: str = ""
    dark: str = ""

    def for_scheme(self, scheme: ColorScheme) -> str:
        return self.dark if scheme is ColorScheme.DARK else self.light


ElementType = Literal["color", "colorPair", "font", "radius", "shadow"]
ColorPairPart = Literal["background", "foreground"]


@dataclass(frozen=True)
class SelectedElement:
    """Element currently open in a detail editor.

    ``original_value`` / ``original_dark_value`` are the pre-edit values,
    captured once when the element is selected and never recomputed. They
    back the "revert this one token" action.
    """

    type: ElementType
    token_name: str
    original_value: str = ""
    sub_type: Optional[ColorPairPart] = None
    foreground_token_name: Optional[str] = None
    original_dark_value: Optional[str] = None

    @property
    def target_token_name(self) -> str:
        if self.type == "colorPair" and self.sub_type == "foreground":
            return self.foreground_token_name or self.token_name
        return self.token_name

    def original_for(self, scheme: ColorScheme) -> str:
        if scheme is ColorScheme.DARK:
            return self.original_dark_value or self.original_value
        return self.original_value


@dataclass(frozen=True)
class ThemeDraft:
    base_theme_id: Optional[str]
    pending_changes: Mapping[str, TokenValue] = field(default_factory=dict)

    @property
    def is_dirty(self) -> bool:
        return bool(self.pending_changes)


@dataclass(frozen=True)
class PersistedTheme:
    """A saved theme record.

    Derived themes carry only the tokens that changed; they render
    correctly only when layered after their base theme, named by
    ``base_id`` (None for a standalone theme).
    """

    id: str
    name: str
    description: str
    light_css: str
    dark_css: str
    base_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)
