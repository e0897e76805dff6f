"""sRGB hex <-> OKLCH conversion.

Theme tokens are authored as ``oklch(L C H)`` strings but edited through
conventional hex pickers, so both directions must be deterministic and the
round trip must stay within one 8-bit step per channel.

Pipeline (hex -> oklch):
 - parse ``#RRGGBB`` (or ``#RGB``) into [0, 1] channels
 - inverse sRGB transfer function (piecewise, 0.04045 knee)
 - linear sRGB -> LMS -> cube root -> OKLab (Ottosson's published matrices)
 - OKLab -> polar OKLCH, hue normalized to [0, 360)

The public converters never raise. Malformed input yields a neutral gray
(``FALLBACK_HEX`` / ``FALLBACK_OKLCH``) and a logged warning so a broken
intermediate value cannot crash an editing session. The strict ``parse_*``
helpers raise ``ColorParseError`` for callers that want to validate.
"""

from __future__ import annotations

import logging
import math
import re
from typing import NamedTuple, Tuple

from config.settings import DEFAULT_INVERSION_OFFSET, FALLBACK_HEX, FALLBACK_OKLCH

_logger = logging.getLogger(__name__)

__all__ = [
    "ColorParseError",
    "Oklch",
    "OklchPrecision",
    "DEFAULT_PRECISION",
    "COMPACT_PRECISION",
    "hex_to_rgb",
    "rgb_to_hex",
    "parse_hex",
    "parse_oklch",
    "format_oklch",
    "srgb_to_oklab",
    "oklab_to_srgb",
    "is_in_srgb_gamut",
    "hex_to_oklch",
    "oklch_to_hex",
    "to_hex",
    "invert_lightness",
]

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_OKLCH_RE = re.compile(
    r"^oklch\(\s*"
    r"(?P<l>[+-]?(?:\d+\.?\d*|\.\d+))(?P<pct>%?)\s+"
    r"(?P<c>[+-]?(?:\d+\.?\d*|\.\d+))\s+"
    r"(?P<h>[+-]?(?:\d+\.?\d*|\.\d+))(?:deg)?"
    r"\s*(?:/\s*[^)]*)?\)$",
    re.IGNORECASE,
)
# Only the plain three-number form takes part in lightness inversion
_INVERTIBLE_RE = re.compile(r"oklch\(([0-9.]+)\s+([0-9.]+)\s+([0-9.]+)\)")


class ColorParseError(ValueError):
    """Raised by the strict parsers when a color string is malformed."""


class Oklch(NamedTuple):
    l: float  # noqa: E741 - conventional component name
    c: float
    h: float


class OklchPrecision(NamedTuple):
    """Decimal places used when emitting L, C and H."""

    lightness: int
    chroma: int
    hue: int


# Fine enough that every 8-bit hex survives the trip within one step.
DEFAULT_PRECISION = OklchPrecision(lightness=4, chroma=4, hue=2)
# Two/three/zero decimals: compact display form, lossy for saturated colors.
COMPACT_PRECISION = OklchPrecision(lightness=2, chroma=3, hue=0)


# --- Hex ---------------------------------------------------------------------
def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Convert ``#rrggbb`` / ``#rgb`` (``#`` optional) into an 8-bit RGB tuple.

    Raises ColorParseError on malformed input.
    """
    if not isinstance(value, str):
        raise ColorParseError(f"Invalid hex color: {value!r}")
    match = _HEX_RE.match(value.strip())
    if not match:
        raise ColorParseError(f"Invalid hex color: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    r, g, b = (max(0, min(255, int(ch))) for ch in rgb)
    return f"#{r:02X}{g:02X}{b:02X}"


def parse_hex(value: str) -> Tuple[float, float, float]:
    """Return the sRGB channels of a hex color scaled to [0, 1]."""
    r, g, b = hex_to_rgb(value)
    return r / 255.0, g / 255.0, b / 255.0


# --- OKLCH text ----------------------------------------------------------------
def parse_oklch(value: str) -> Oklch:
    """Parse ``oklch(L C H)``.

    Accepts a percentage lightness (``62.8%``), a ``deg`` hue suffix and an
    ignored ``/ alpha`` part. Raises ColorParseError on anything else,
    including non-finite numbers.
    """
    if not isinstance(value, str):
        raise ColorParseError(f"Invalid oklch color: {value!r}")
    match = _OKLCH_RE.match(value.strip())
    if not match:
        raise ColorParseError(f"Invalid oklch color: {value!r}")
    lightness = float(match.group("l"))
    if match.group("pct"):
        lightness /= 100.0
    chroma = float(match.group("c"))
    hue = float(match.group("h"))
    if not all(math.isfinite(v) for v in (lightness, chroma, hue)):
        raise ColorParseError(f"Non-finite oklch component: {value!r}")
    return Oklch(lightness, max(0.0, chroma), hue % 360.0)


def _fmt(value: float, digits: int) -> str:
    text = f"{round(value, digits):.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def format_oklch(color: Oklch, precision: OklchPrecision = DEFAULT_PRECISION) -> str:
    """Render an Oklch triple as CSS text.

    Hue is forced to 0 when the rounded chroma is 0 so achromatic colors
    never carry a meaningless (or NaN) hue.
    """
    lightness = min(1.0, max(0.0, color.l))
    chroma = round(max(0.0, color.c), precision.chroma)
    hue = 0.0 if chroma == 0 or not math.isfinite(color.h) else round(color.h, precision.hue) % 360.0
    return (
        f"oklch({_fmt(lightness, precision.lightness)} "
        f"{_fmt(chroma, precision.chroma)} {_fmt(hue, precision.hue)})"
    )


# --- Color math ----------------------------------------------------------------
def _srgb_to_linear(c: float) -> float:
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def _linear_to_srgb(c: float) -> float:
    if c <= 0.0031308:
        return c * 12.92
    return 1.055 * (c ** (1.0 / 2.4)) - 0.055


def srgb_to_oklab(rgb: Tuple[float, float, float]) -> Tuple[float, float, float]:
    """Gamma-encoded sRGB in [0, 1] -> OKLab (L, a, b)."""
    r, g, b = (_srgb_to_linear(ch) for ch in rgb)
    lms_l = 0.4122214708 * r + 0.5363325363 * g + 0.0514459929 * b
    lms_m = 0.2119034982 * r + 0.6806995451 * g + 0.1073969566 * b
    lms_s = 0.0883024619 * r + 0.2817188376 * g + 0.6299787005 * b
    l_ = math.copysign(abs(lms_l) ** (1.0 / 3.0), lms_l)
    m_ = math.copysign(abs(lms_m) ** (1.0 / 3.0), lms_m)
    s_ = math.copysign(abs(lms_s) ** (1.0 / 3.0), lms_s)
    return (
        0.2104542553 * l_ + 0.7936177850 * m_ - 0.0040720468 * s_,
        1.9779984951 * l_ - 2.4285922050 * m_ + 0.4505937099 * s_,
        0.0259040371 * l_ + 0.7827717662 * m_ - 0.8086757660 * s_,
    )


def oklab_to_linear_srgb(lab: Tuple[float, float, float]) -> Tuple[float, float, float]:
    lightness, a, b = lab
    l_ = lightness + 0.3963377774 * a + 0.2158037573 * b
    m_ = lightness - 0.1055613458 * a - 0.0638541728 * b
    s_ = lightness - 0.0894841775 * a - 1.2914855480 * b
    lms_l, lms_m, lms_s = l_**3, m_**3, s_**3
    return (
        4.0767416621 * lms_l - 3.3077115913 * lms_m + 0.2309699292 * lms_s,
        -1.2684380046 * lms_l + 2.6097574011 * lms_m - 0.3413193965 * lms_s,
        -0.0041960863 * lms_l - 0.7034186147 * lms_m + 1.7076147010 * lms_s,
    )


def oklab_to_srgb(lab: Tuple[float, float, float]) -> Tuple[float, float, float]:
    """OKLab -> gamma-encoded sRGB, clamped to [0, 1]."""
    out = []
    for ch in oklab_to_linear_srgb(lab):
        ch = min(1.0, max(0.0, ch))
        out.append(min(1.0, max(0.0, _linear_to_srgb(ch))))
    return out[0], out[1], out[2]


def is_in_srgb_gamut(oklch: str, *, tolerance: float = 1e-4) -> bool:
    """True when ``oklch`` maps into sRGB without clamping."""
    color = parse_oklch(oklch)
    lab = _polar_to_lab(color)
    return all(-tolerance <= ch <= 1.0 + tolerance for ch in oklab_to_linear_srgb(lab))


def _polar_to_lab(color: Oklch) -> Tuple[float, float, float]:
    rad = math.radians(color.h)
    return color.l, color.c * math.cos(rad), color.c * math.sin(rad)


def _lab_to_polar(lab: Tuple[float, float, float]) -> Oklch:
    lightness, a, b = lab
    chroma = math.hypot(a, b)
    hue = math.degrees(math.atan2(b, a)) % 360.0 if chroma > 0 else 0.0
    return Oklch(lightness, chroma, hue)


# --- Public converters -----------------------------------------------------------
def hex_to_oklch(value: str, precision: OklchPrecision = DEFAULT_PRECISION) -> str:
    """Convert ``#RRGGBB`` to ``oklch(L C H)``; never raises."""
    try:
        lab = srgb_to_oklab(parse_hex(value))
    except ColorParseError as exc:
        _logger.warning("hex_to_oklch fallback for %r: %s", value, exc)
        return FALLBACK_OKLCH
    return format_oklch(_lab_to_polar(lab), precision)


def oklch_to_hex(value: str) -> str:
    """Convert ``oklch(L C H)`` to uppercase ``#RRGGBB``; never raises.

    Out-of-gamut colors are clamped per channel rather than rejected.
    """
    try:
        color = parse_oklch(value)
    except ColorParseError as exc:
        _logger.warning("oklch_to_hex fallback for %r: %s", value, exc)
        return FALLBACK_HEX
    rgb = oklab_to_srgb(_polar_to_lab(color))
    return rgb_to_hex(tuple(int(round(ch * 255.0)) for ch in rgb))  # type: ignore[arg-type]


def to_hex(value: str) -> str:
    """Display helper: hex passes through (normalized), oklch is converted."""
    text = (value or "").strip()
    if _HEX_RE.match(text):
        return rgb_to_hex(hex_to_rgb(text))
    return oklch_to_hex(text)


def invert_lightness(value: str, offset: float = DEFAULT_INVERSION_OFFSET) -> str:
    """Cheap counterpart-scheme value: ``L' = clamp(1 - L + offset, 0, 1)``.

    Chroma and hue are carried over verbatim. This is a heuristic, not a
    contrast-aware derivation. Values that are not plain ``oklch(L C H)``
    (hex, var() references, ...) are returned unchanged.
    """
    match = _INVERTIBLE_RE.search(value or "")
    if not match:
        return value
    try:
        lightness = float(match.group(1))
    except ValueError:
        return value
    inverted = max(0.0, min(1.0, 1.0 - lightness + offset))
    return f"oklch({inverted:.2f} {match.group(2)} {match.group(3)})"
