"""Theme CSS text helpers.

Responsibilities:
 - Derive a URL-friendly theme id from a display name (``slugify``).
 - Emit the sparse light/dark rule blocks of a derived theme.
 - Parse rule blocks back into declarations (cascade rendering, validation).
 - Validate that a theme ships both a light and a dark block.

Block format (two-space indent, one declaration per line)::

    [data-theme="sunset"] {
      --primary: oklch(0.6 0.2 30);
    }
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Mapping, Tuple

from config.settings import SLUG_MAX_LENGTH
from studio.models import ColorScheme, TokenValue

__all__ = [
    "ThemeCssError",
    "slugify",
    "light_selector",
    "dark_selector",
    "render_block",
    "build_theme_css",
    "parse_theme_css",
    "selector_scheme",
    "validate_theme_css",
]

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_BLOCK_RE = re.compile(r"([^{}]+)\{([^{}]*)\}")
_THEME_ATTR_RE = re.compile(r'\[data-theme="([^"]*)"\]')


class ThemeCssError(ValueError):
    """Raised when theme CSS text cannot be parsed."""


def slugify(name: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Return a lowercase, hyphen-separated id for ``name``.

    Characters outside ``[a-z0-9\\s_-]`` are dropped and act as word
    separators; whitespace/underscore/hyphen runs collapse to one hyphen;
    edge hyphens are trimmed before truncation. Accented letters are folded
    to ASCII first. Collisions with existing ids are not checked here.
    """
    text = unicodedata.normalize("NFKD", name or "").encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9\s_-]+", "-", text)
    text = re.sub(r"[\s_-]+", "-", text)
    text = text.strip("-")
    return text[:max_length]


def light_selector(theme_id: str) -> str:
    return f'[data-theme="{theme_id}"]'


def dark_selector(theme_id: str) -> str:
    return f'.dark[data-theme="{theme_id}"]'


def render_block(selector: str, declarations: Mapping[str, str]) -> str:
    lines = [f"  {name}: {value};" for name, value in declarations.items()]
    return f"{selector} {{\n" + "\n".join(lines) + "\n}"


def build_theme_css(
    theme_id: str, changes: Mapping[str, TokenValue], *, skip_empty: bool = False
) -> Tuple[str, str]:
    """Return ``(light_css, dark_css)`` for the given token changes.

    Only the supplied tokens are emitted. With ``skip_empty`` a side whose
    value is ``""`` is left out of that scheme's block.
    """
    light: Dict[str, str] = {}
    dark: Dict[str, str] = {}
    for name, value in changes.items():
        if value.light or not skip_empty:
            light[name] = value.light
        if value.dark or not skip_empty:
            dark[name] = value.dark
    return (
        render_block(light_selector(theme_id), light),
        render_block(dark_selector(theme_id), dark),
    )


def parse_theme_css(css: str) -> Dict[str, Dict[str, str]]:
    """Parse rule blocks into ``{selector: {property: value}}``.

    Comments are ignored, selectors keep source order and a repeated
    selector merges with later declarations winning. Raises ThemeCssError
    on unbalanced braces or declarations without a colon.
    """
    text = _COMMENT_RE.sub("", css or "")
    if text.count("{") != text.count("}"):
        raise ThemeCssError("Unbalanced braces in theme CSS")
    blocks: Dict[str, Dict[str, str]] = {}
    consumed = 0
    for match in _BLOCK_RE.finditer(text):
        if text[consumed : match.start()].strip():
            raise ThemeCssError(f"Unexpected text before block: {text[consumed:match.start()].strip()!r}")
        consumed = match.end()
        selector = " ".join(match.group(1).split())
        decls = blocks.setdefault(selector, {})
        for raw in match.group(2).split(";"):
            raw = raw.strip()
            if not raw:
                continue
            if ":" not in raw:
                raise ThemeCssError(f"Malformed declaration in {selector!r}: {raw!r}")
            prop, value = raw.split(":", 1)
            decls[prop.strip()] = value.strip()
    if text[consumed:].strip():
        raise ThemeCssError(f"Trailing text after last block: {text[consumed:].strip()!r}")
    return blocks


def selector_scheme(selector: str) -> ColorScheme:
    """Dark when the selector targets the ``.dark`` class, otherwise light."""
    return ColorScheme.DARK if re.search(r"\.dark(?![\w-])", selector) else ColorScheme.LIGHT


def validate_theme_css(theme_id: str, light_css: str, dark_css: str) -> List[str]:
    """Return a list of problems (empty when the theme is well formed).

    Checks: non-empty id, a light block and a dark block scoped to the id,
    parseable CSS and custom-property names only.
    """
    problems: List[str] = []
    if not theme_id:
        problems.append("theme id is empty")
    for label, css, scheme in (
        ("light", light_css, ColorScheme.LIGHT),
        ("dark", dark_css, ColorScheme.DARK),
    ):
        try:
            blocks = parse_theme_css(css)
        except ThemeCssError as exc:
            problems.append(f"{label} CSS: {exc}")
            continue
        scoped = [
            sel
            for sel in blocks
            if theme_id in _THEME_ATTR_RE.findall(sel) and selector_scheme(sel) is scheme
        ]
        if not scoped:
            problems.append(f"missing {label} block for theme '{theme_id}'")
        for sel in scoped:
            for prop in blocks[sel]:
                if not prop.startswith("--"):
                    problems.append(f"{label} CSS: '{prop}' is not a custom property")
    return problems
