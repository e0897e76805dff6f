import logging

import pytest

from studio.design.color_space import parse_oklch
from studio.design.token_registry import EDITABLE_TOKENS
from studio.models import ColorScheme, PersistedTheme, SelectedElement, TokenValue
from studio.services.event_bus import EditorEvent, EventBus
from studio.services.service_locator import services
from studio.services.style_root import InMemoryStyleRoot
from studio.services.theme_editor import (
    InvalidThemeNameError,
    NoBaseThemeError,
    NothingToSaveError,
    PersistenceError,
    SaveInFlightError,
    ThemeEditor,
    ThemeEditorError,
)
from studio.services.theme_observer import ThemeSelection
from studio.services.theme_storage import InMemoryThemeStorage, SaveResult

SUNSET_LIGHT = '[data-theme="sunset"] {\n  --primary: oklch(0.6 0.2 30);\n}'
SUNSET_DARK = '.dark[data-theme="sunset"] {\n  --primary: oklch(0.4 0.2 30);\n}'


def _record(bus: EventBus, event: EditorEvent):
    seen = []
    bus.subscribe(event, lambda e: seen.append(e.payload))
    return seen


# Preview / dirty ---------------------------------------------------------------
def test_preview_marks_dirty_and_reset_clears(editor, style_root):
    assert not editor.is_dirty
    editor.preview_token("--primary", "#ff0000")
    assert editor.is_dirty
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "#ff0000"
    editor.reset_preview()
    assert not editor.is_dirty
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "oklch(0.55 0.2 260)"


def test_reset_is_idempotent(editor, style_root, bus):
    resets = _record(bus, EditorEvent.PREVIEW_RESET)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.reset_preview()
    after_once = (dict(editor.pending_changes), style_root.inline_overrides())
    editor.reset_preview()
    assert (dict(editor.pending_changes), style_root.inline_overrides()) == after_once
    assert resets == [{"tokens": ["--primary"]}]


def test_reset_leaves_foreign_overrides_alone(editor, style_root):
    style_root.set_property("--foreground", "oklch(0.2 0 0)", ColorScheme.LIGHT)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.reset_preview()
    assert style_root.computed_value("--foreground", ColorScheme.LIGHT) == "oklch(0.2 0 0)"


def test_missing_dark_is_derived_by_inversion(editor):
    value = editor.preview_token("--border", "oklch(0.90 0.01 250)")
    assert value == TokenValue("oklch(0.90 0.01 250)", "oklch(0.10 0.01 250)")
    dark = parse_oklch(value.dark)
    assert dark.l == pytest.approx(0.10)
    assert (dark.c, dark.h) == (pytest.approx(0.01), pytest.approx(250))


def test_missing_light_is_derived_by_inversion(editor):
    value = editor.preview_token("--ring", dark="oklch(0.3 0.05 120)")
    assert value.light == "oklch(0.70 0.05 120)"
    assert editor.pending_changes["--ring"].dark == "oklch(0.3 0.05 120)"


def test_non_oklch_value_is_copied_to_other_side(editor):
    value = editor.preview_token("--primary", "#ff0000")
    assert value == TokenValue("#ff0000", "#ff0000")


def test_empty_preview_is_a_no_op(editor, bus):
    previews = _record(bus, EditorEvent.TOKEN_PREVIEWED)
    assert editor.preview_token("--primary") is None
    assert editor.preview_token("--primary", "", "") is None
    assert not editor.is_dirty
    assert previews == []


def test_preview_writes_only_active_scheme(style_root, storage):
    selection = ThemeSelection("default", ColorScheme.DARK)
    editor = ThemeEditor(style_root, selection, storage)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)")
    assert style_root.computed_value("--primary", ColorScheme.DARK) == "oklch(0.4 0.2 30)"
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "oklch(0.55 0.2 260)"


def test_explicit_scheme_overrides_observer(editor, style_root):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)", scheme="dark")
    assert style_root.computed_value("--primary", ColorScheme.DARK) == "oklch(0.4 0.2 30)"
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "oklch(0.55 0.2 260)"


def test_last_write_wins(editor):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.preview_token("--primary", "oklch(0.7 0.1 90)")
    assert list(editor.pending_changes) == ["--primary"]
    assert editor.pending_changes["--primary"].light == "oklch(0.7 0.1 90)"


def test_color_pair_halves_are_independent(editor):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.preview_token("--primary-foreground", "oklch(0.98 0 0)")
    assert set(editor.pending_changes) == {"--primary", "--primary-foreground"}


def test_reapply_preview_after_scheme_switch(editor, style_root, selection):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)")
    selection.set_color_scheme(ColorScheme.DARK)
    assert editor.reapply_preview() == 1
    assert style_root.computed_value("--primary", ColorScheme.DARK) == "oklch(0.4 0.2 30)"


def test_pending_changes_are_read_only(editor):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    with pytest.raises(TypeError):
        editor.pending_changes["--x"] = TokenValue("a", "b")  # type: ignore[index]
    draft = editor.draft()
    assert draft.base_theme_id == "default"
    assert draft.is_dirty
    with pytest.raises(TypeError):
        draft.pending_changes["--x"] = TokenValue("a", "b")  # type: ignore[index]


def test_unknown_tokens_are_accepted_and_reported(editor):
    editor.preview_token("--brand-glow", "oklch(0.8 0.1 200)")
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    assert editor.is_dirty
    assert editor.unknown_tokens() == ["--brand-glow"]


def test_slow_preview_logs_warning(editor, caplog, monkeypatch):
    monkeypatch.setattr("studio.services.theme_editor.PREVIEW_WARN_THRESHOLD_MS", 0.0)
    caplog.set_level(logging.WARNING, logger="studio.services.theme_editor")
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    assert any("token preview slow" in r.getMessage() for r in caplog.records)


# Current tokens ---------------------------------------------------------------
def test_get_current_tokens_fills_active_scheme_only(editor):
    tokens = editor.get_current_tokens()
    assert set(tokens) == set(EDITABLE_TOKENS)
    assert tokens["--primary"] == TokenValue(light="oklch(0.55 0.2 260)", dark="")
    assert tokens["--chart-1"] == TokenValue()
    dark = editor.get_current_tokens(scheme=ColorScheme.DARK)
    assert dark["--primary"] == TokenValue(light="", dark="oklch(0.7 0.18 260)")


def test_get_current_tokens_sees_preview(editor):
    editor.preview_token("--border", "oklch(0.8 0.02 250)")
    assert editor.get_current_tokens()["--border"].light == "oklch(0.8 0.02 250)"


# Base theme tracking ------------------------------------------------------------
def test_theme_change_discards_draft(editor, selection, style_root, bus):
    discarded = _record(bus, EditorEvent.DRAFT_DISCARDED)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    selection.set_theme("ocean")
    assert dict(editor.pending_changes) == {}
    assert editor.base_theme_id == "ocean"
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "oklch(0.55 0.2 260)"
    assert discarded == [{"previous": "default", "current": "ocean", "tokens": ["--primary"]}]


def test_theme_change_while_clean_publishes_nothing(editor, selection, bus):
    discarded = _record(bus, EditorEvent.DRAFT_DISCARDED)
    selection.set_theme("ocean")
    assert editor.sync_base_theme() is True
    assert editor.sync_base_theme() is False
    assert discarded == []


def test_preview_after_theme_change_starts_fresh_draft(editor, selection):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    selection.set_theme("ocean")
    editor.preview_token("--ring", "oklch(0.5 0.1 100)")
    assert list(editor.pending_changes) == ["--ring"]
    assert editor.draft().base_theme_id == "ocean"


# Save as new theme -------------------------------------------------------------
def test_save_as_new_theme_emits_sparse_css(editor, storage, bus):
    saved = _record(bus, EditorEvent.THEME_SAVED)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)")
    theme_id = editor.save_as_new_theme("Sunset")
    assert theme_id == "sunset"
    theme = storage.themes["sunset"]
    assert theme.light_css == SUNSET_LIGHT
    assert theme.dark_css == SUNSET_DARK
    assert theme.name == "Sunset"
    assert theme.description == "Based on default"
    assert not editor.is_dirty
    assert saved == [{"id": "sunset", "base": "default", "tokens": 1, "mode": "new"}]


def test_save_keeps_explicit_description(editor, storage):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.save_as_new_theme("  Spaced Theme  ", "Warm variant")
    assert storage.themes["spaced-theme"].description == "Warm variant"


def test_saved_theme_only_renders_layered_on_base(editor, storage, style_root):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)")
    editor.save_as_new_theme("Sunset")
    style_root.load_theme(storage.themes["sunset"])
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "oklch(0.6 0.2 30)"
    assert style_root.computed_value("--background", ColorScheme.LIGHT) == "oklch(1 0 0)"
    alone = InMemoryStyleRoot()
    alone.load_theme(storage.themes["sunset"])
    assert alone.computed_value("--background", ColorScheme.LIGHT) == ""


def test_caller_switches_theme_after_save(editor, selection, bus):
    discarded = _record(bus, EditorEvent.DRAFT_DISCARDED)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    selection.set_theme(editor.save_as_new_theme("Sunset"))
    assert editor.base_theme_id == "sunset"
    assert discarded == []


def test_save_without_base_theme(style_root, storage):
    editor = ThemeEditor(style_root, ThemeSelection(None), storage)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    with pytest.raises(NoBaseThemeError, match="No base theme selected"):
        editor.save_as_new_theme("Sunset")
    assert storage.save_calls == 0


def test_save_rejects_name_without_usable_characters(editor, storage):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    with pytest.raises(InvalidThemeNameError) as info:
        editor.save_as_new_theme("!!!")
    assert isinstance(info.value, ValueError)
    assert isinstance(info.value, ThemeEditorError)
    assert editor.is_dirty
    assert storage.save_calls == 0


def test_failed_save_keeps_draft_and_preview(style_root, selection, bus):
    failed = _record(bus, EditorEvent.SAVE_FAILED)
    storage = InMemoryThemeStorage(fail_with="bucket unavailable")
    editor = ThemeEditor(style_root, selection, storage, bus=bus)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    with pytest.raises(PersistenceError) as info:
        editor.save_as_new_theme("Sunset")
    assert info.value.message == "bucket unavailable"
    assert editor.is_dirty
    assert style_root.computed_value("--primary", ColorScheme.LIGHT) == "oklch(0.6 0.2 30)"
    assert failed == [{"id": "sunset", "error": "bucket unavailable"}]
    storage.fail_with = None
    assert editor.save_as_new_theme("Sunset") == "sunset"
    assert not editor.is_dirty


def test_raising_storage_becomes_persistence_error(style_root, selection):
    class Broken:
        def save_theme(self, theme):
            raise OSError("disk full")

    editor = ThemeEditor(style_root, selection, Broken())
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    with pytest.raises(PersistenceError) as info:
        editor.save_as_new_theme("Sunset")
    assert info.value.message == "disk full"
    assert isinstance(info.value.__cause__, OSError)
    assert editor.is_dirty


def test_second_save_while_in_flight_is_rejected(style_root, selection):
    class Reentrant:
        def __init__(self):
            self.editor = None
            self.inner_error = None

        def save_theme(self, theme):
            try:
                self.editor.save_as_new_theme("Other")
            except SaveInFlightError as exc:
                self.inner_error = exc
            return SaveResult.ok()

    storage = Reentrant()
    editor = ThemeEditor(style_root, selection, storage)
    storage.editor = editor
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    assert editor.save_as_new_theme("Sunset") == "sunset"
    assert isinstance(storage.inner_error, SaveInFlightError)
    # the guard is released afterwards
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    assert editor.save_as_new_theme("Again") == "again"


# Overwrite base ------------------------------------------------------------------
def test_save_over_base_requires_changes(editor):
    with pytest.raises(NothingToSaveError):
        editor.save_over_base_theme()


def test_save_over_base_writes_full_blocks(editor, storage):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)")
    assert editor.save_over_base_theme() == "default"
    theme = storage.themes["default"]
    assert theme.light_css.startswith('[data-theme="default"] {')
    assert "  --primary: oklch(0.6 0.2 30);" in theme.light_css
    assert "  --background: oklch(1 0 0);" in theme.light_css
    assert "  --primary: oklch(0.4 0.2 30);" in theme.dark_css
    # untouched tokens reuse the active scheme's value on both sides
    assert "  --background: oklch(1 0 0);" in theme.dark_css
    assert "--chart-1" not in theme.light_css
    assert not editor.is_dirty


def test_save_over_base_prefers_update_theme(style_root, selection):
    class Updating(InMemoryThemeStorage):
        def __init__(self):
            super().__init__()
            self.updates = []

        def update_theme(self, theme_id, **fields):
            self.updates.append((theme_id, fields))
            return SaveResult.ok()

    storage = Updating()
    editor = ThemeEditor(style_root, selection, storage)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.save_over_base_theme("Tweaked")
    assert storage.save_calls == 0
    theme_id, fields = storage.updates[0]
    assert theme_id == "default"
    assert fields["description"] == "Tweaked"
    assert "--primary: oklch(0.6 0.2 30);" in fields["light_css"]


# Selection / events ----------------------------------------------------------------
def test_selection_is_independent_of_diff(editor, bus):
    changes = _record(bus, EditorEvent.SELECTION_CHANGED)
    element = SelectedElement(type="color", token_name="--primary", original_value="oklch(0.55 0.2 260)")
    editor.set_selected_element(element)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.reset_preview()
    assert editor.selected_element is element
    editor.set_selected_element(None)
    assert changes == [{"type": "color", "token": "--primary"}, None]


def test_events_use_registered_bus_when_none_injected(style_root, selection, storage):
    bus = EventBus()
    services.register("event_bus", bus)
    previews = _record(bus, EditorEvent.TOKEN_PREVIEWED)
    editor = ThemeEditor(style_root, selection, storage)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    assert previews[0]["token"] == "--primary"
    assert previews[0]["scheme"] == "light"


def test_no_bus_is_fine(style_root, selection, storage):
    editor = ThemeEditor(style_root, selection, storage)
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.reset_preview()
    assert not editor.is_dirty


# Empty saves / originals ---------------------------------------------------------
def test_save_as_new_theme_requires_changes(editor, storage):
    with pytest.raises(NothingToSaveError):
        editor.save_as_new_theme("Sunset")
    assert storage.save_calls == 0


def test_saved_theme_records_its_base(editor, storage):
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.save_as_new_theme("Sunset")
    assert storage.themes["sunset"].base_id == "default"


def test_original_value_is_captured_before_first_preview(editor):
    assert editor.original_value("--primary") is None
    editor.preview_token("--primary", "oklch(0.6 0.2 30)")
    editor.preview_token("--primary", "oklch(0.3 0.2 30)")
    assert editor.original_value("--primary") == TokenValue("oklch(0.55 0.2 260)", "oklch(0.7 0.18 260)")
    editor.reset_preview()
    assert editor.original_value("--primary") is None


def test_current_value_reads_unregistered_tokens(style_root, selection, storage):
    style_root.set_property("--sidebar-ring", "oklch(0.4 0 0)", ColorScheme.LIGHT)
    editor = ThemeEditor(style_root, selection, storage)
    assert editor.current_value("--sidebar-ring") == "oklch(0.4 0 0)"
    assert editor.current_value("--sidebar-ring", scheme="dark") == ""


def test_save_over_base_keeps_stored_declarations(editor, storage):
    storage.themes["default"] = PersistedTheme(
        id="default",
        name="Default",
        description="Shipped theme",
        light_css='[data-theme="default"] {\n  --chart-1: oklch(0.6 0.1 40);\n  --border: oklch(0.9 0.01 250);\n}',
        dark_css='.dark[data-theme="default"] {\n  --chart-1: oklch(0.5 0.1 40);\n  --border: oklch(0.3 0.01 250);\n}',
    )
    editor.preview_token("--primary", "oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)")
    editor.save_over_base_theme()
    theme = storage.themes["default"]
    assert "  --chart-1: oklch(0.6 0.1 40);" in theme.light_css
    assert "  --chart-1: oklch(0.5 0.1 40);" in theme.dark_css
    # stored dark value wins over the active light value
    assert "  --border: oklch(0.3 0.01 250);" in theme.dark_css
    # tokens the store lacks are filled from the active scheme
    assert "  --background: oklch(1 0 0);" in theme.dark_css
    assert "  --primary: oklch(0.4 0.2 30);" in theme.dark_css
