"""
Prompt UI Build

Produces the three artifacts the launcher checks before every prompt:
- window.py: entry script the launcher runs with the current interpreter
- renderer.tcss: every stylesheet under input_tui/styles bundled into one
- index.json: manifest (version, panels, bundled stylesheets), written last
  so a half-finished build never looks complete

Run with: python -m input_tui.build_ui <output dir>
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from . import __version__
from .constants import INPUT_KINDS, UI_ENTRY_SCRIPT, UI_STYLESHEET, UI_MANIFEST, CACHE_UI_SUBDIR

STYLES_DIR = Path(__file__).parent / "styles"
PACKAGE_ROOT = Path(__file__).parent.parent.resolve()

ENTRY_TEMPLATE = '''#!/usr/bin/env python3
"""Prompt window entry point. Generated by input_tui.build_ui, do not edit."""

import sys
from pathlib import Path

sys.path.insert(0, {package_root!r})

from input_tui.prompt_app import main

if __name__ == "__main__":
    sys.exit(main(stylesheet=Path(__file__).with_name({stylesheet!r})))
'''


def stylesheet_sources() -> list[Path]:
    return sorted(STYLES_DIR.glob("*.tcss"))


def bundle_stylesheets(sources: list[Path]) -> str:
    parts = []
    for source in sources:
        parts.append(f"/* {source.name} */\n{source.read_text().strip()}\n")
    return "\n".join(parts)


def build(out_dir: Path) -> list[Path]:
    """Write all artifacts into out_dir. Returns their paths."""
    out_dir.mkdir(parents=True, exist_ok=True)
    sources = stylesheet_sources()

    entry = out_dir / UI_ENTRY_SCRIPT
    entry.write_text(ENTRY_TEMPLATE.format(
        package_root=str(PACKAGE_ROOT),
        stylesheet=UI_STYLESHEET,
    ))

    stylesheet = out_dir / UI_STYLESHEET
    stylesheet.write_text(bundle_stylesheets(sources))

    manifest = out_dir / UI_MANIFEST
    manifest.write_text(json.dumps({
        "version": __version__,
        "built_at": datetime.now().isoformat(timespec="seconds"),
        "panels": list(INPUT_KINDS),
        "stylesheets": [source.name for source in sources],
    }, indent=2))

    return [entry, stylesheet, manifest]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build the input prompt UI")
    parser.add_argument("out_dir", nargs="?", help="Output directory (default: <cache>/ui)")
    args = parser.parse_args(argv)

    if args.out_dir:
        out_dir = Path(args.out_dir).expanduser()
    else:
        from .cache import get_cache_dir
        out_dir = get_cache_dir() / CACHE_UI_SUBDIR

    try:
        build(out_dir)
    except OSError as e:
        print(f"UI build failed: {e}", file=sys.stderr)
        return 1

    print(f"Built prompt UI in {out_dir}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
