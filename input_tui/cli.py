"""
input-tui command line

Shows one prompt on the terminal and prints the answer on stdout: the text
for text prompts, the cached file path for drawings and pixel art.
Exit status is 0 on submit, 1 when cancelled or failed.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from .cache import ImageCache
from .constants import INPUT_KINDS, TEXT_FORMATS
from .errors import InputError, InputCancelledError
from .launcher import LaunchConfig
from .collect import collect_input


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="input-tui",
        description="Collect text, a drawing or pixel art from the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Ask a question
    input-tui --message "What should the README say?" --lines 5

    # 8x8 pixel art, printed as a cached PNG path
    input-tui --kind pixelart --grid-width 8 --grid-height 8

    # Edit an existing picture
    input-tui --kind image --initial-image sketch.png
        """,
    )
    parser.add_argument("--kind", choices=INPUT_KINDS, default=None,
                        help="What to collect (default: text)")
    parser.add_argument("--message", help="Prompt shown above the input")
    parser.add_argument("--submit-label", help="Label of the submit button")
    parser.add_argument("--placeholder", help="Placeholder for text input")
    parser.add_argument("--lines", type=int, help="Text input height (1-20)")
    parser.add_argument("--format", choices=TEXT_FORMATS, help="Text format (json is validated)")
    parser.add_argument("--width", type=int, help="Drawing width in pixels (32-4096)")
    parser.add_argument("--height", type=int, help="Drawing height in pixels (32-4096)")
    parser.add_argument("--grid-width", type=int, help="Pixel art columns (4-128)")
    parser.add_argument("--grid-height", type=int, help="Pixel art rows (4-128)")
    parser.add_argument("--cell-size", type=int, help="Pixel art cell size (4-64)")
    parser.add_argument("--palette", nargs="+", metavar="COLOR", help="Pixel art palette")
    parser.add_argument("--background-color", help="Canvas background color")
    parser.add_argument("--mime-type", help="Image format (default: image/png)")
    parser.add_argument("--initial-image", metavar="PATH",
                        help="Start from this picture (file path or data URL)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Give up after this many seconds")
    parser.add_argument("--json", action="store_true",
                        help="Print the full result as JSON")
    parser.add_argument("--list-cache", action="store_true",
                        help="List cached images and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


OVERRIDE_OPTIONS = (
    "message", "submit_label", "placeholder", "lines", "format",
    "width", "height", "grid_width", "grid_height", "cell_size",
    "palette", "background_color", "mime_type", "initial_image",
)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cache = ImageCache()
    if args.list_cache:
        for name in cache.list_images():
            print(cache.image_path(name))
        return 0

    config = LaunchConfig.from_env()
    if args.timeout is not None:
        config = replace(config, timeout=args.timeout if args.timeout > 0 else None)

    # Options left unset keep their defaults
    overrides = {name: getattr(args, name) for name in OVERRIDE_OPTIONS}

    try:
        collected = asyncio.run(collect_input(args.kind, config=config, cache=cache, **overrides))
    except InputCancelledError:
        print("Cancelled", file=sys.stderr)
        return 1
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        output = collected.result.to_dict()
        if collected.path is not None:
            output["path"] = str(collected.path)
        print(json.dumps(output))
    elif collected.path is not None:
        print(collected.path)
    else:
        print(collected.text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
