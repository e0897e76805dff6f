"""Live style root abstraction.

The editor never touches a global document. It writes token overrides
through a ``StyleRoot`` supplied by the host:

 - ``set_property(name, value, scheme)`` writes an inline override
 - ``remove_property(name)`` drops the inline override (every scheme)
 - ``computed_value(name, scheme)`` resolves what is currently rendered

``InMemoryStyleRoot`` is the headless implementation. Besides inline
overrides it holds cascading theme layers so a base theme followed by a
sparse derived theme resolves the way a browser cascade would.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Protocol, runtime_checkable

from studio.design.theme_css import parse_theme_css, selector_scheme
from studio.models import ColorScheme, PersistedTheme

_logger = logging.getLogger(__name__)

__all__ = ["StyleRoot", "InMemoryStyleRoot"]


@runtime_checkable
class StyleRoot(Protocol):
    def set_property(self, name: str, value: str, scheme: ColorScheme) -> None: ...

    def remove_property(self, name: str) -> None: ...

    def computed_value(self, name: str, scheme: ColorScheme) -> str: ...


class InMemoryStyleRoot:
    """Scheme-scoped token store with theme layers and inline overrides.

    Resolution order for ``computed_value(name, scheme)``:
      1. inline override written for ``scheme``
      2. the last loaded layer declaring ``name`` for ``scheme``
      3. ``""``
    """

    def __init__(self, base: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._layers: List[Dict[ColorScheme, Dict[str, str]]] = []
        self._inline: Dict[ColorScheme, Dict[str, str]] = {s: {} for s in ColorScheme}
        if base:
            layer = {s: {} for s in ColorScheme}
            for key, decls in base.items():
                layer[ColorScheme.coerce(key)].update(decls)
            self._layers.append(layer)

    # StyleRoot ----------------------------------------------------------
    def set_property(self, name: str, value: str, scheme: ColorScheme) -> None:
        self._inline[ColorScheme.coerce(scheme)][name] = value

    def remove_property(self, name: str) -> None:
        for decls in self._inline.values():
            decls.pop(name, None)

    def computed_value(self, name: str, scheme: ColorScheme) -> str:
        scheme = ColorScheme.coerce(scheme)
        inline = self._inline[scheme]
        if name in inline:
            return inline[name]
        for layer in reversed(self._layers):
            if name in layer[scheme]:
                return layer[scheme][name]
        return ""

    # Layers -------------------------------------------------------------
    def load_css(self, css: str) -> int:
        """Append a layer built from CSS rule blocks; returns declarations read.

        Selectors targeting ``.dark`` populate the dark scheme, everything
        else the light scheme. Raises ThemeCssError on malformed CSS.
        """
        layer: Dict[ColorScheme, Dict[str, str]] = {s: {} for s in ColorScheme}
        count = 0
        for selector, decls in parse_theme_css(css).items():
            layer[selector_scheme(selector)].update(decls)
            count += len(decls)
        self._layers.append(layer)
        _logger.debug("style layer loaded: %d declarations", count)
        return count

    def load_theme(self, theme: PersistedTheme) -> int:
        return self.load_css(theme.light_css + "\n" + theme.dark_css)

    def clear_layers(self) -> None:
        self._layers.clear()

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    def inline_overrides(self, scheme: ColorScheme | None = None) -> Dict[str, str] | Dict[ColorScheme, Dict[str, str]]:
        """Copy of inline overrides for one scheme, or for all when omitted."""
        if scheme is None:
            return {s: dict(d) for s, d in self._inline.items()}
        return dict(self._inline[ColorScheme.coerce(scheme)])
