"""Design system package.

Pure, Qt-free helpers: color space conversion, the editable token registry
and theme CSS text handling.
"""

from .color_space import (  # noqa: F401
    ColorParseError,
    Oklch,
    OklchPrecision,
    hex_to_oklch,
    oklch_to_hex,
    invert_lightness,
    parse_oklch,
    to_hex,
)
from .token_registry import EDITABLE_TOKENS, REGISTRY_VERSION, token_kind  # noqa: F401
from .theme_css import (  # noqa: F401
    ThemeCssError,
    slugify,
    build_theme_css,
    parse_theme_css,
    validate_theme_css,
)

__all__ = [
    "ColorParseError",
    "Oklch",
    "OklchPrecision",
    "hex_to_oklch",
    "oklch_to_hex",
    "invert_lightness",
    "parse_oklch",
    "to_hex",
    "EDITABLE_TOKENS",
    "REGISTRY_VERSION",
    "token_kind",
    "ThemeCssError",
    "slugify",
    "build_theme_css",
    "parse_theme_css",
    "validate_theme_css",
]
