"""Live theme editing engine.

Responsibilities:
 - Preview token edits on an injected style root, deriving the counterpart
   color scheme value with a lightness inversion when only one is given.
 - Track the session diff (``pending_changes``) and expose the dirty flag.
 - Reset the preview without touching tokens this session never wrote.
 - Serialize the diff into a sparse derived theme and hand it to storage.
 - Discard the draft when the active theme changes underneath it.

The engine is synchronous. The color scheme is an explicit ``scheme``
argument on every call; when omitted it is read from the injected observer.
"""

from __future__ import annotations

import logging
import threading
from time import perf_counter
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from config.settings import DEFAULT_INVERSION_OFFSET, PREVIEW_WARN_THRESHOLD_MS
from studio.design.color_space import invert_lightness
from studio.design.theme_css import (
    ThemeCssError,
    build_theme_css,
    parse_theme_css,
    selector_scheme,
    slugify,
)
from studio.design.token_registry import EDITABLE_TOKENS
from studio.models import ColorScheme, PersistedTheme, SelectedElement, ThemeDraft, TokenValue

from .event_bus import EditorEvent, EventBus
from .service_locator import ServiceKey, services
from .style_root import StyleRoot
from .theme_observer import ActiveThemeObserver
from .theme_storage import SaveResult, ThemeNotFoundError, ThemeStorage

_logger = logging.getLogger(__name__)

__all__ = [
    "ThemeEditor",
    "ThemeEditorError",
    "NoBaseThemeError",
    "PersistenceError",
    "SaveInFlightError",
    "InvalidThemeNameError",
    "NothingToSaveError",
    "get_theme_editor",
]


class ThemeEditorError(RuntimeError):
    """Base class for theme editor failures."""


class NoBaseThemeError(ThemeEditorError):
    def __init__(self) -> None:
        super().__init__("No base theme selected")


class PersistenceError(ThemeEditorError):
    """Storage rejected or failed a save; ``message`` is the backend's text."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SaveInFlightError(ThemeEditorError):
    def __init__(self) -> None:
        super().__init__("A theme save is already in progress")


class InvalidThemeNameError(ThemeEditorError, ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Theme name {name!r} does not produce a usable id")
        self.name = name


class NothingToSaveError(ThemeEditorError):
    def __init__(self) -> None:
        super().__init__("No pending token changes to save")


class ThemeEditor:
    def __init__(
        self,
        style_root: StyleRoot,
        observer: ActiveThemeObserver,
        storage: ThemeStorage,
        *,
        tokens: Iterable[str] = EDITABLE_TOKENS,
        bus: EventBus | None = None,
        inversion_offset: float = DEFAULT_INVERSION_OFFSET,
    ) -> None:
        self._style_root = style_root
        self._observer = observer
        self._storage = storage
        self._tokens = tuple(tokens)
        self._bus = bus
        self._inversion_offset = inversion_offset
        self._pending: Dict[str, TokenValue] = {}
        self._originals: Dict[str, TokenValue] = {}
        self._base_theme_id: Optional[str] = observer.current_theme_id
        self._selected: Optional[SelectedElement] = None
        self._save_lock = threading.Lock()

    # State -------------------------------------------------------------
    @property
    def tokens(self) -> tuple[str, ...]:
        return self._tokens

    @property
    def base_theme_id(self) -> Optional[str]:
        self.sync_base_theme()
        return self._base_theme_id

    @property
    def pending_changes(self) -> Mapping[str, TokenValue]:
        self.sync_base_theme()
        return MappingProxyType(dict(self._pending))

    @property
    def is_dirty(self) -> bool:
        self.sync_base_theme()
        return len(self._pending) > 0

    def draft(self) -> ThemeDraft:
        self.sync_base_theme()
        return ThemeDraft(self._base_theme_id, MappingProxyType(dict(self._pending)))

    @property
    def selected_element(self) -> Optional[SelectedElement]:
        return self._selected

    def set_selected_element(self, element: Optional[SelectedElement]) -> None:
        self._selected = element
        self._publish(
            EditorEvent.SELECTION_CHANGED,
            None if element is None else {"type": element.type, "token": element.target_token_name},
        )

    def resolve_scheme(self, scheme: ColorScheme | str | None = None) -> ColorScheme:
        """Explicit scheme if given, else the observer's current scheme."""
        return ColorScheme.coerce(scheme if scheme is not None else self._observer.color_scheme)

    def original_value(self, name: str) -> Optional[TokenValue]:
        """Both schemes' values of ``name`` before its first preview this session.

        None when the token has not been previewed since the last reset or save.
        """
        self.sync_base_theme()
        return self._originals.get(name)

    def unknown_tokens(self) -> List[str]:
        """Pending token names that are not part of the editable registry."""
        self.sync_base_theme()
        return [name for name in self._pending if name not in self._tokens]

    # Base theme tracking ---------------------------------------------
    def sync_base_theme(self) -> bool:
        """Adopt the observer's theme id; discard the draft if it changed.

        Returns True when the base id changed.
        """
        current = self._observer.current_theme_id
        if current == self._base_theme_id:
            return False
        previous = self._base_theme_id
        discarded = self._clear_overrides()
        self._base_theme_id = current
        if discarded:
            _logger.info(
                "active theme changed %s -> %s; discarded %d pending token(s)",
                previous,
                current,
                len(discarded),
            )
            self._publish(
                EditorEvent.DRAFT_DISCARDED,
                {"previous": previous, "current": current, "tokens": discarded},
            )
        else:
            _logger.debug("base theme now %s", current)
        return True

    # Preview -------------------------------------------------------------
    def preview_token(
        self,
        name: str,
        light: str | None = None,
        dark: str | None = None,
        *,
        scheme: ColorScheme | str | None = None,
    ) -> Optional[TokenValue]:
        """Apply ``name`` to the style root and record it in the diff.

        A missing side is derived by inverting the other side's lightness.
        When both sides are empty nothing happens and None is returned.
        """
        self.sync_base_theme()
        if not light and not dark:
            _logger.debug("preview ignored for %s: no value given", name)
            return None
        if not dark:
            dark = invert_lightness(light, self._inversion_offset)
        elif not light:
            light = invert_lightness(dark, self._inversion_offset)
        active = self.resolve_scheme(scheme)
        value = TokenValue(light=light, dark=dark)
        if name not in self._originals:
            self._originals[name] = TokenValue(
                light=self._style_root.computed_value(name, ColorScheme.LIGHT).strip(),
                dark=self._style_root.computed_value(name, ColorScheme.DARK).strip(),
            )
        start = perf_counter()
        self._style_root.set_property(name, value.for_scheme(active), active)
        elapsed_ms = (perf_counter() - start) * 1000.0
        self._pending[name] = value
        self._maybe_log_slow(name, elapsed_ms)
        self._publish(
            EditorEvent.TOKEN_PREVIEWED,
            {"token": name, "light": value.light, "dark": value.dark, "scheme": active.value},
        )
        return value

    def reapply_preview(self, *, scheme: ColorScheme | str | None = None) -> int:
        """Rewrite every pending value for ``scheme`` (after a scheme switch)."""
        self.sync_base_theme()
        active = self.resolve_scheme(scheme)
        for name, value in self._pending.items():
            self._style_root.set_property(name, value.for_scheme(active), active)
        return len(self._pending)

    def reset_preview(self) -> None:
        """Remove this session's overrides from the style root and clear the diff."""
        self.sync_base_theme()
        removed = self._clear_overrides()
        if removed:
            _logger.debug("preview reset: %d token(s)", len(removed))
            self._publish(EditorEvent.PREVIEW_RESET, {"tokens": removed})

    def get_current_tokens(
        self, *, scheme: ColorScheme | str | None = None
    ) -> Dict[str, TokenValue]:
        """Computed value of every registry token for the active scheme.

        The inactive scheme's slot is left empty.
        """
        self.sync_base_theme()
        active = self.resolve_scheme(scheme)
        out: Dict[str, TokenValue] = {}
        for name in self._tokens:
            current = self._style_root.computed_value(name, active).strip()
            if active is ColorScheme.DARK:
                out[name] = TokenValue(dark=current)
            else:
                out[name] = TokenValue(light=current)
        return out

    def current_value(self, name: str, *, scheme: ColorScheme | str | None = None) -> str:
        """Computed value of one token, registered or not."""
        self.sync_base_theme()
        return self._style_root.computed_value(name, self.resolve_scheme(scheme)).strip()

    # Persistence ---------------------------------------------------------
    def save_as_new_theme(self, name: str, description: str | None = None) -> str:
        """Persist the diff as a sparse derived theme and return its id.

        The caller is expected to switch the active theme to the returned id.
        """
        self.sync_base_theme()
        if not self._save_lock.acquire(blocking=False):
            raise SaveInFlightError()
        try:
            base = self._base_theme_id
            if not base:
                raise NoBaseThemeError()
            theme_id = slugify(name)
            if not theme_id:
                raise InvalidThemeNameError(name)
            if not self._pending:
                raise NothingToSaveError()
            light_css, dark_css = build_theme_css(theme_id, self._pending)
            theme = PersistedTheme(
                id=theme_id,
                name=name.strip(),
                description=description or f"Based on {base}",
                light_css=light_css,
                dark_css=dark_css,
                base_id=base,
            )
            self._persist(theme_id, lambda: self._storage.save_theme(theme))
            count = len(self._clear_overrides())
            _logger.info("theme saved: id=%s base=%s tokens=%d", theme_id, base, count)
            self._publish(
                EditorEvent.THEME_SAVED,
                {"id": theme_id, "base": base, "tokens": count, "mode": "new"},
            )
            return theme_id
        finally:
            self._save_lock.release()

    def save_over_base_theme(self, description: str | None = None) -> str:
        """Write the full merged token set back to the base theme.

        Unlike ``save_as_new_theme`` this is not sparse. The stored base
        declarations are kept, the active scheme's computed values are laid
        over the active side (and fill tokens the other side lacks), then the
        pending changes win.
        """
        self.sync_base_theme()
        if not self._save_lock.acquire(blocking=False):
            raise SaveInFlightError()
        try:
            base = self._base_theme_id
            if not base:
                raise NoBaseThemeError()
            if not self._pending:
                raise NothingToSaveError()
            active = self.resolve_scheme(None)
            sides = self._stored_declarations(base)
            for token, value in self.get_current_tokens(scheme=active).items():
                current = value.for_scheme(active)
                if current:
                    sides[active][token] = current
                    sides[active.other].setdefault(token, current)
            light, dark = sides[ColorScheme.LIGHT], sides[ColorScheme.DARK]
            merged: Dict[str, TokenValue] = {
                token: TokenValue(light=light.get(token, ""), dark=dark.get(token, ""))
                for token in dict.fromkeys([*light, *dark])
            }
            merged.update(self._pending)
            light_css, dark_css = build_theme_css(base, merged, skip_empty=True)
            update = getattr(self._storage, "update_theme", None)
            if callable(update):
                call = lambda: update(  # noqa: E731
                    base, description=description, light_css=light_css, dark_css=dark_css
                )
            else:
                theme = PersistedTheme(
                    id=base,
                    name=base,
                    description=description or "",
                    light_css=light_css,
                    dark_css=dark_css,
                )
                call = lambda: self._storage.save_theme(theme)  # noqa: E731
            self._persist(base, call)
            count = len(self._clear_overrides())
            _logger.info("base theme overwritten: id=%s tokens=%d", base, len(merged))
            self._publish(
                EditorEvent.THEME_SAVED,
                {"id": base, "base": base, "tokens": count, "mode": "overwrite"},
            )
            return base
        finally:
            self._save_lock.release()

    # Internal ----------------------------------------------------------
    def _clear_overrides(self) -> List[str]:
        names = list(self._pending)
        for name in names:
            self._style_root.remove_property(name)
        self._pending.clear()
        self._originals.clear()
        return names

    def _stored_declarations(self, theme_id: str) -> Dict[ColorScheme, Dict[str, str]]:
        sides: Dict[ColorScheme, Dict[str, str]] = {s: {} for s in ColorScheme}
        load = getattr(self._storage, "load_theme", None)
        if not callable(load):
            return sides
        try:
            theme = load(theme_id)
            blocks = parse_theme_css(theme.light_css + "\n" + theme.dark_css)
        except ThemeNotFoundError:
            return sides
        except ThemeCssError as exc:
            _logger.warning("stored CSS for %s unreadable, merging computed values only: %s", theme_id, exc)
            return sides
        for selector, decls in blocks.items():
            sides[selector_scheme(selector)].update(decls)
        return sides

    def _persist(self, theme_id: str, call: Callable[[], SaveResult]) -> None:
        try:
            result = call()
        except Exception as exc:  # noqa: BLE001 - any backend failure becomes PersistenceError
            message = str(exc) or exc.__class__.__name__
            self._save_failed(theme_id, message)
            raise PersistenceError(message) from exc
        if not result.success:
            message = result.error or "Unknown storage error"
            self._save_failed(theme_id, message)
            raise PersistenceError(message)

    def _save_failed(self, theme_id: str, message: str) -> None:
        _logger.warning("theme save failed: id=%s error=%s", theme_id, message)
        self._publish(EditorEvent.SAVE_FAILED, {"id": theme_id, "error": message})

    def _maybe_log_slow(self, name: str, elapsed_ms: float) -> None:
        if elapsed_ms >= PREVIEW_WARN_THRESHOLD_MS:
            _logger.warning("token preview slow: token=%s time=%.2fms", name, elapsed_ms)
        else:
            _logger.debug("token preview: token=%s time=%.2fms", name, elapsed_ms)

    def _publish(self, event: EditorEvent, payload: object) -> None:
        bus = self._bus if self._bus is not None else services.try_get(ServiceKey.EVENT_BUS)
        if isinstance(bus, EventBus):
            bus.publish(event, payload)


def get_theme_editor() -> ThemeEditor:
    return services.get_typed(ServiceKey.THEME_EDITOR, ThemeEditor)
