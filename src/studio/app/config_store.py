"""Editor state persistence.

Stores the small amount of state the editor needs across sessions: which
theme is active, which color scheme is showing and where theme files live.

- Pure logic (no Qt import) so it can be unit-tested headless.
- Explicit schema version for migrations.
- Corrupt or incompatible files produce defaults instead of raising.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from config.settings import CONFIG_DIR, THEMES_DIR

_logger = logging.getLogger(__name__)

__all__ = ["EditorConfig", "load_config", "save_config", "CONFIG_VERSION", "DEFAULT_FILENAME"]

CONFIG_VERSION = 1  # Increment when structure changes

DEFAULT_FILENAME = "editor_state.json"


@dataclass(slots=True)
class EditorConfig:
    """Serializable editor state.

    Attributes
    ----------
    version: Schema version for migration handling.
    theme_id: Active theme id, or None before one is chosen.
    color_scheme: ``"light"`` or ``"dark"``.
    themes_dir: Directory holding saved theme CSS and the index file.
    """

    version: int = CONFIG_VERSION
    theme_id: Optional[str] = None
    color_scheme: str = "light"
    themes_dir: str = THEMES_DIR

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        theme_id = data.get("theme_id")
        return cls(
            version=int(data.get("version", CONFIG_VERSION)),
            theme_id=str(theme_id) if theme_id else None,
            color_scheme=str(data.get("color_scheme") or "light"),
            themes_dir=str(data.get("themes_dir") or THEMES_DIR),
        )


def _resolve_path(base_dir: str | Path | None) -> Path:
    base = Path(base_dir) if base_dir else Path(CONFIG_DIR or Path.cwd())
    return base / DEFAULT_FILENAME


def load_config(base_dir: str | Path | None = None) -> EditorConfig:
    """Load editor config from ``base_dir`` (defaults to CONFIG_DIR or CWD)."""
    path = _resolve_path(base_dir)
    if not path.exists():
        return EditorConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        cfg = EditorConfig.from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        _logger.warning("editor config unreadable, using defaults: %s (%s)", path, exc)
        return EditorConfig()
    if cfg.version != CONFIG_VERSION:
        # Reset but keep the theme directory so saved themes stay reachable
        _logger.info("editor config version %s != %s; resetting", cfg.version, CONFIG_VERSION)
        return EditorConfig(themes_dir=cfg.themes_dir)
    return cfg


def save_config(cfg: EditorConfig, base_dir: str | Path | None = None) -> Path:
    """Persist editor config; returns the path written."""
    path = _resolve_path(base_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(cfg.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)
    return path
