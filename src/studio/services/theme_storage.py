"""Theme persistence backends.

The editor only needs ``save_theme(theme) -> SaveResult``. Failures are
reported through the result rather than raised so a backend can carry a
human-readable reason back to the caller unchanged.

``FileThemeStorage`` keeps one ``<id>.css`` file per theme plus a
``themes.json`` metadata index in a single directory. Builtin themes are
registered by the host and cannot be overwritten, renamed or deleted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from studio.design.theme_css import validate_theme_css
from studio.models import PersistedTheme

_logger = logging.getLogger(__name__)

__all__ = [
    "SaveResult",
    "ThemeStorage",
    "ThemeRecord",
    "ThemeNotFoundError",
    "BuiltinThemeError",
    "InMemoryThemeStorage",
    "FileThemeStorage",
    "render_theme_file",
    "split_theme_file",
]

INDEX_FILENAME = "themes.json"
_LIGHT_MARKER = "/* Light Mode */"
_DARK_MARKER = "/* Dark Mode */"


class ThemeNotFoundError(KeyError):
    """Raised when a theme id is not present in storage."""


class BuiltinThemeError(RuntimeError):
    """Raised when a builtin theme would be modified or deleted."""


@dataclass(frozen=True)
class SaveResult:
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "SaveResult":
        return cls(True)

    @classmethod
    def failed(cls, error: str) -> "SaveResult":
        return cls(False, error)


@runtime_checkable
class ThemeStorage(Protocol):
    def save_theme(self, theme: PersistedTheme) -> SaveResult: ...


@dataclass
class ThemeRecord:
    """Metadata index row for one stored theme."""

    id: str
    name: str
    description: str = ""
    is_builtin: bool = False
    created_at: str = ""
    updated_at: str = ""
    base_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ThemeRecord":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            description=str(data.get("description") or ""),
            is_builtin=bool(data.get("is_builtin", False)),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
            base_id=str(data["base_id"]) if data.get("base_id") else None,
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def render_theme_file(theme: PersistedTheme) -> str:
    return (
        f"/* Theme: {theme.name} */\n\n"
        f"{_LIGHT_MARKER}\n{theme.light_css}\n\n"
        f"{_DARK_MARKER}\n{theme.dark_css}"
    )


def split_theme_file(text: str) -> tuple[str, str]:
    """Inverse of ``render_theme_file``: return ``(light_css, dark_css)``."""
    head, sep, dark = text.partition(_DARK_MARKER)
    if not sep:
        return text.strip(), ""
    _, sep, light = head.partition(_LIGHT_MARKER)
    return (light if sep else head).strip(), dark.strip()


class InMemoryThemeStorage:
    """Dict-backed storage; ``fail_with`` makes every write fail with that message."""

    def __init__(self, *, fail_with: str | None = None) -> None:
        self.themes: Dict[str, PersistedTheme] = {}
        self.fail_with = fail_with
        self.save_calls = 0

    def save_theme(self, theme: PersistedTheme) -> SaveResult:
        self.save_calls += 1
        if self.fail_with is not None:
            return SaveResult.failed(self.fail_with)
        self.themes[theme.id] = theme
        return SaveResult.ok()

    def theme_exists(self, theme_id: str) -> bool:
        return theme_id in self.themes

    def fetch_theme_css(self, theme_id: str) -> str:
        return render_theme_file(self.load_theme(theme_id))

    def load_theme(self, theme_id: str) -> PersistedTheme:
        try:
            return self.themes[theme_id]
        except KeyError:
            raise ThemeNotFoundError(theme_id) from None


class FileThemeStorage:
    """Directory-backed storage: ``<id>.css`` files plus a ``themes.json`` index."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    # Paths ---------------------------------------------------------------
    @property
    def index_path(self) -> Path:
        return self.root / INDEX_FILENAME

    def css_path(self, theme_id: str) -> Path:
        return self.root / f"{theme_id}.css"

    # Index ---------------------------------------------------------------
    def _read_index(self) -> Dict[str, ThemeRecord]:
        if not self.index_path.exists():
            return {}
        try:
            raw = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            _logger.warning("theme index unreadable (%s): %s", self.index_path, exc)
            return {}
        records: Dict[str, ThemeRecord] = {}
        for row in raw.get("themes", []) if isinstance(raw, dict) else []:
            try:
                rec = ThemeRecord.from_dict(row)
            except (KeyError, TypeError) as exc:
                _logger.warning("skipping malformed theme index row %r: %s", row, exc)
                continue
            records[rec.id] = rec
        return records

    def _write_index(self, records: Dict[str, ThemeRecord]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        payload = {"version": 1, "themes": [asdict(r) for r in records.values()]}
        tmp = self.index_path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.index_path)

    # Writes ----------------------------------------------------------------
    def save_theme(self, theme: PersistedTheme) -> SaveResult:
        """Upsert a user theme (CSS file first, then the index row)."""
        records = self._read_index()
        existing = records.get(theme.id)
        if existing is not None and existing.is_builtin:
            return SaveResult.failed(str(BuiltinThemeError(f"Builtin theme '{theme.id}' cannot be overwritten")))
        problems = validate_theme_css(theme.id, theme.light_css, theme.dark_css)
        if problems:
            return SaveResult.failed("Invalid theme CSS: " + "; ".join(problems))
        now = _now()
        records[theme.id] = ThemeRecord(
            id=theme.id,
            name=theme.name,
            description=theme.description,
            is_builtin=False,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            base_id=theme.base_id,
        )
        return self._write(theme, records)

    def register_builtin(self, theme: PersistedTheme) -> None:
        """Add or refresh a builtin theme (host setup, not user editing)."""
        records = self._read_index()
        existing = records.get(theme.id)
        now = _now()
        records[theme.id] = ThemeRecord(
            id=theme.id,
            name=theme.name,
            description=theme.description,
            is_builtin=True,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            base_id=theme.base_id,
        )
        result = self._write(theme, records)
        if not result.success:
            raise OSError(result.error)

    def update_theme(
        self,
        theme_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        light_css: str | None = None,
        dark_css: str | None = None,
    ) -> SaveResult:
        records = self._read_index()
        record = records.get(theme_id)
        if record is None:
            return SaveResult.failed(f"Theme '{theme_id}' not found")
        if record.is_builtin:
            return SaveResult.failed(str(BuiltinThemeError(f"Builtin theme '{theme_id}' cannot be modified")))
        current = self.load_theme(theme_id)
        theme = PersistedTheme(
            id=theme_id,
            name=name if name is not None else record.name,
            description=description if description is not None else record.description,
            light_css=light_css if light_css is not None else current.light_css,
            dark_css=dark_css if dark_css is not None else current.dark_css,
            base_id=record.base_id,
        )
        problems = validate_theme_css(theme_id, theme.light_css, theme.dark_css)
        if problems:
            return SaveResult.failed("Invalid theme CSS: " + "; ".join(problems))
        record.name = theme.name
        record.description = theme.description
        record.updated_at = _now()
        return self._write(theme, records)

    def delete_theme(self, theme_id: str) -> SaveResult:
        records = self._read_index()
        record = records.get(theme_id)
        if record is not None and record.is_builtin:
            return SaveResult.failed(str(BuiltinThemeError(f"Builtin theme '{theme_id}' cannot be deleted")))
        try:
            self.css_path(theme_id).unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            _logger.warning("could not remove CSS for theme %s: %s", theme_id, exc)
        if record is None:
            return SaveResult.ok()
        del records[theme_id]
        try:
            self._write_index(records)
        except OSError as exc:
            return SaveResult.failed(f"Metadata delete failed: {exc}")
        _logger.info("theme deleted: %s", theme_id)
        return SaveResult.ok()

    def _write(self, theme: PersistedTheme, records: Dict[str, ThemeRecord]) -> SaveResult:
        path = self.css_path(theme.id)
        previous = path.read_text(encoding="utf-8") if path.exists() else None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_text(render_theme_file(theme), encoding="utf-8")
        except OSError as exc:
            _logger.warning("theme CSS write failed for %s: %s", theme.id, exc)
            return SaveResult.failed(f"CSS write failed: {exc}")
        try:
            self._write_index(records)
        except OSError as exc:
            _logger.warning("theme index write failed for %s, rolling back: %s", theme.id, exc)
            if previous is None:
                path.unlink(missing_ok=True)
            else:
                path.write_text(previous, encoding="utf-8")
            return SaveResult.failed(f"Metadata write failed: {exc}")
        _logger.info("theme stored: %s (%s)", theme.id, path)
        return SaveResult.ok()

    # Queries -----------------------------------------------------------------
    def fetch_themes(self) -> List[ThemeRecord]:
        """All records, builtin themes first, then by name."""
        return sorted(self._read_index().values(), key=lambda r: (not r.is_builtin, r.name.lower()))

    def fetch_theme(self, theme_id: str) -> ThemeRecord:
        record = self._read_index().get(theme_id)
        if record is None:
            raise ThemeNotFoundError(theme_id)
        return record

    def fetch_theme_css(self, theme_id: str) -> str:
        try:
            return self.css_path(theme_id).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ThemeNotFoundError(theme_id) from None

    def load_theme(self, theme_id: str) -> PersistedTheme:
        record = self.fetch_theme(theme_id)
        light, dark = split_theme_file(self.fetch_theme_css(theme_id))
        return PersistedTheme(
            id=record.id,
            name=record.name,
            description=record.description,
            light_css=light,
            dark_css=dark,
            base_id=record.base_id,
        )

    def theme_exists(self, theme_id: str) -> bool:
        return theme_id in self._read_index()
