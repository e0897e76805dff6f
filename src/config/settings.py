"""Global configuration and constants for the theme editing engine."""

from __future__ import annotations

import os
from typing import Final

THEMES_DIR: Final = os.environ.get("THEME_STUDIO_THEMES_DIR", "themes")
CONFIG_DIR: Final = os.environ.get("THEME_STUDIO_CONFIG_DIR", "")

# Neutral values returned when a color cannot be parsed
FALLBACK_HEX: Final = "#808080"
FALLBACK_OKLCH: Final = "oklch(0.5 0 0)"

# Counterpart-mode heuristic: L' = 1 - L + offset
DEFAULT_INVERSION_OFFSET: Final = float(os.environ.get("THEME_STUDIO_INVERSION_OFFSET", "0"))

SLUG_MAX_LENGTH: Final = 50
PREVIEW_WARN_THRESHOLD_MS: Final = 16.0  # one frame at 60Hz
