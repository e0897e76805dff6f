"""Editable design token registry.

Fixed, versioned list of the CSS custom properties the live editor reads
back through ``ThemeEditor.get_current_tokens``. Bump ``REGISTRY_VERSION``
whenever entries are added or removed so persisted tooling can detect the
change.
"""

from __future__ import annotations

from typing import Iterable, Literal, Tuple

__all__ = [
    "REGISTRY_VERSION",
    "EDITABLE_TOKENS",
    "TokenKind",
    "token_kind",
    "color_tokens",
    "is_registered",
]

REGISTRY_VERSION = 1

TokenKind = Literal["color", "radius", "spacing", "shadow"]

EDITABLE_TOKENS: Tuple[str, ...] = (
    "--primary",
    "--primary-foreground",
    "--secondary",
    "--secondary-foreground",
    "--background",
    "--foreground",
    "--card",
    "--card-foreground",
    "--popover",
    "--popover-foreground",
    "--muted",
    "--muted-foreground",
    "--accent",
    "--accent-foreground",
    "--destructive",
    "--destructive-foreground",
    "--border",
    "--input",
    "--ring",
    "--radius",
    "--spacing",
    "--chart-1",
    "--chart-2",
    "--chart-3",
    "--chart-4",
    "--chart-5",
    "--sidebar",
    "--sidebar-foreground",
    "--sidebar-primary",
    "--sidebar-primary-foreground",
    "--sidebar-accent",
    "--sidebar-accent-foreground",
    "--sidebar-border",
    "--sidebar-ring",
    "--shadow-2xs",
    "--shadow-xs",
    "--shadow-sm",
    "--shadow-md",
    "--shadow-lg",
    "--shadow-xl",
    "--shadow-2xl",
)


def token_kind(name: str) -> TokenKind:
    """Classify a token name by the kind of value it carries.

    Unknown names are treated as colors, which is what the editor assumes
    for free-form previews.
    """
    if name == "--radius":
        return "radius"
    if name == "--spacing":
        return "spacing"
    if name.startswith("--shadow"):
        return "shadow"
    return "color"


def color_tokens(tokens: Iterable[str] = EDITABLE_TOKENS) -> Tuple[str, ...]:
    return tuple(t for t in tokens if token_kind(t) == "color")


def is_registered(name: str, tokens: Iterable[str] = EDITABLE_TOKENS) -> bool:
    return name in tuple(tokens)
