"""Theme tool CLI.

Small command line front end over the color converter, the slug helper,
theme CSS validation and the save-as-new-theme flow.

Commands:
 - ``to-oklch HEX``                      hex -> oklch(L C H)
 - ``to-hex OKLCH``                      oklch(L C H) -> #RRGGBB
 - ``invert OKLCH [--offset X]``         counterpart-scheme lightness
 - ``slugify NAME``                      theme id for a display name
 - ``validate CSSFILE --id ID``          check a stored theme file
 - ``save NAME --changes JSON [--base ID] [--dir DIR]``
                                         write a sparse derived theme

Exit codes: 0 success, 1 validation/save failure, 2 usage or input error.

Example:
  python -m cli.theme_tool save "Sunset" --base default \\
      --changes '{"--primary": ["oklch(0.6 0.2 30)", "oklch(0.4 0.2 30)"]}'
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Tuple

from config.settings import DEFAULT_INVERSION_OFFSET, THEMES_DIR
from studio.design.color_space import hex_to_oklch, invert_lightness, oklch_to_hex
from studio.design.theme_css import slugify, validate_theme_css
from studio.services.style_root import InMemoryStyleRoot
from studio.services.theme_editor import ThemeEditor, ThemeEditorError
from studio.services.theme_observer import ThemeSelection
from studio.services.theme_storage import FileThemeStorage, split_theme_file


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Theme token conversion and theme file utilities")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("to-oklch", help="Convert a hex color to oklch()")
    s.add_argument("value")

    s = sub.add_parser("to-hex", help="Convert an oklch() color to hex")
    s.add_argument("value")

    s = sub.add_parser("invert", help="Invert the lightness of an oklch() color")
    s.add_argument("value")
    s.add_argument("--offset", type=float, default=DEFAULT_INVERSION_OFFSET)

    s = sub.add_parser("slugify", help="Print the theme id for a display name")
    s.add_argument("name")

    s = sub.add_parser("validate", help="Validate a theme CSS file")
    s.add_argument("path")
    s.add_argument("--id", required=True, dest="theme_id", help="Theme id the blocks must target")

    s = sub.add_parser("save", help="Save token changes as a new derived theme")
    s.add_argument("name")
    s.add_argument(
        "--changes",
        required=True,
        help='JSON object (or path to a JSON file): {"--token": "light" | ["light", "dark"] | {"light":..,"dark":..}}',
    )
    s.add_argument("--base", default="default", help="Base theme id (default: default)")
    s.add_argument("--description", default=None)
    s.add_argument("--dir", default=THEMES_DIR, help=f"Themes directory (default: {THEMES_DIR})")
    s.add_argument("--json", action="store_true", help="Emit JSON instead of plain text")
    return p.parse_args(argv)


def _load_changes(raw: str) -> Dict[str, Tuple[str | None, str | None]]:
    text = raw if raw.lstrip().startswith("{") else Path(raw).read_text(encoding="utf-8")
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("changes must be a JSON object")
    out: Dict[str, Tuple[str | None, str | None]] = {}
    for token, value in data.items():
        if isinstance(value, str):
            out[token] = (value, None)
        elif isinstance(value, (list, tuple)) and 1 <= len(value) <= 2:
            light = value[0] or None
            dark = value[1] if len(value) == 2 else None
            out[token] = (light, dark or None)
        elif isinstance(value, dict):
            out[token] = (value.get("light") or None, value.get("dark") or None)
        else:
            raise ValueError(f"unsupported value for {token}: {value!r}")
    return out


def _cmd_validate(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2
    light, dark = split_theme_file(path.read_text(encoding="utf-8"))
    problems = validate_theme_css(args.theme_id, light, dark)
    if problems:
        for problem in problems:
            print(f"  ! {problem}")
        return 1
    print(f"{args.theme_id}: OK")
    return 0


def _cmd_save(args: argparse.Namespace) -> int:
    try:
        changes = _load_changes(args.changes)
    except (OSError, ValueError) as exc:
        print(f"Invalid --changes: {exc}", file=sys.stderr)
        return 2
    editor = ThemeEditor(
        InMemoryStyleRoot(), ThemeSelection(args.base), FileThemeStorage(args.dir)
    )
    for token, (light, dark) in changes.items():
        editor.preview_token(token, light, dark)
    pending = len(editor.pending_changes)
    try:
        theme_id = editor.save_as_new_theme(args.name, args.description)
    except ThemeEditorError as exc:
        print(f"Save failed: {exc}", file=sys.stderr)
        return 1
    payload: Dict[str, Any] = {"id": theme_id, "base": args.base, "tokens": pending, "dir": str(args.dir)}
    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(f"Saved theme '{theme_id}' ({pending} token(s), based on {args.base}) in {args.dir}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if args.command == "to-oklch":
        print(hex_to_oklch(args.value))
    elif args.command == "to-hex":
        print(oklch_to_hex(args.value))
    elif args.command == "invert":
        print(invert_lightness(args.value, args.offset))
    elif args.command == "slugify":
        slug = slugify(args.name)
        if not slug:
            print(f"Name {args.name!r} has no usable characters", file=sys.stderr)
            return 2
        print(slug)
    elif args.command == "validate":
        return _cmd_validate(args)
    elif args.command == "save":
        return _cmd_save(args)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
