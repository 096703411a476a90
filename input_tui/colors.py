"""
Color helpers shared by spec normalization and the canvases.

Colors travel as strings. Anything Pillow's ImageColor understands is
accepted ("#FFF", "#f28478", "red", "rgb(10, 20, 30)") and stored in one
canonical form so that equal colors compare equal:
"#RRGGBB" for opaque colors, "#RRGGBBAA" otherwise.
"""

from typing import Tuple

from PIL import ImageColor


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Convert RGB tuple to hex color string"""
    return f"#{r:02X}{g:02X}{b:02X}"


def to_rgba(color: str) -> Tuple[int, int, int, int]:
    """Parse any supported color string into an RGBA tuple.

    Raises ValueError for strings Pillow cannot parse.
    """
    value = ImageColor.getrgb(color.strip())
    if len(value) == 3:
        return (*value, 255)
    return value


def rgba_to_color(rgba: Tuple[int, ...]) -> str:
    """Canonical string for an RGB or RGBA tuple."""
    if len(rgba) == 3 or rgba[3] == 255:
        return rgb_to_hex(*rgba[:3])
    r, g, b, a = rgba
    return f"#{r:02X}{g:02X}{b:02X}{a:02X}"


def normalize_color(color: str) -> str:
    """Canonical form of a color string. Raises ValueError if unparseable."""
    return rgba_to_color(to_rgba(color))


def is_opaque(color: str) -> bool:
    return to_rgba(color)[3] == 255


def display_color(color: str) -> str:
    """Opaque "#RRGGBB" for terminal rendering (alpha is dropped)."""
    return rgb_to_hex(*to_rgba(color)[:3])


def contrast_color(color: str, dark: str = "#1E1033", light: str = "#FFFFFF") -> str:
    """Get a text color that stays readable on top of the given color."""
    r, g, b, _ = to_rgba(color)
    # Perceived luminance (human eye is more sensitive to green)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return dark if luminance > 0.5 else light
