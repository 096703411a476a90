"""
Pixel Grid Editor

The model behind the pixel-art panel, kept free of any widget code:
- PixelGrid: a width x height matrix of colors
- PixelGridEditor: tool selection and pointer handling on top of a grid

Pointer handling follows a small state machine:
- pointer down with draw/erase: start painting and paint that cell
- pointer move while painting: paint the cell under the pointer
- pointer down with fill: flood fill once, no painting state
- pointer up (or cancel, or leaving the canvas): stop painting

Export always produces one source pixel per grid cell, whatever the
on-screen cell size.
"""

import io
from enum import Enum
from typing import Iterator, Optional

from PIL import Image

from .colors import normalize_color, to_rgba, rgba_to_color, is_opaque
from .constants import MIME_FORMATS
from .protocol import ImageResult, encode_data_url, decode_data_url
from .spec import PixelArtInputSpec


class Tool(Enum):
    DRAW = "draw"
    ERASE = "erase"
    FILL = "fill"


# =============================================================================
# GRID
# =============================================================================

class PixelGrid:
    """
    A rectangular grid of canonical color strings.

    Coordinates are (x, y) with the origin at the top-left. Writes outside
    the grid are ignored rather than raised, because pointer positions near
    the edges are imprecise.
    """

    def __init__(self, width: int, height: int, background: str) -> None:
        self.width = width
        self.height = height
        self.background = normalize_color(background)
        self._cells: list[list[str]] = [
            [self.background] * width for _ in range(height)
        ]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Optional[str]:
        if not self.in_bounds(x, y):
            return None
        return self._cells[y][x]

    def set(self, x: int, y: int, color: str) -> bool:
        """Set one cell. Returns False if (x, y) is outside the grid."""
        if not self.in_bounds(x, y):
            return False
        self._cells[y][x] = color
        return True

    def fill_all(self, color: str) -> None:
        for row in self._cells:
            for x in range(self.width):
                row[x] = color

    def row(self, y: int) -> list[str]:
        return list(self._cells[y])

    def cells(self) -> Iterator[tuple[int, int, str]]:
        """Yield (x, y, color) in row-major order."""
        for y, row in enumerate(self._cells):
            for x, color in enumerate(row):
                yield x, y, color

    def flood_fill(self, x: int, y: int, color: str) -> int:
        """
        Replace the 4-connected region of (x, y)'s color with `color`.

        Iterative (explicit stack) so large grids cannot hit the recursion
        limit. Returns the number of cells changed; 0 when the start is out
        of range or the region already has the replacement color.
        """
        target = self.get(x, y)
        if target is None or target == color:
            return 0

        stack = [(x, y)]
        visited: set[tuple[int, int]] = set()
        changed = 0

        while stack:
            cx, cy = stack.pop()
            if (cx, cy) in visited:
                continue
            visited.add((cx, cy))

            if not self.in_bounds(cx, cy) or self._cells[cy][cx] != target:
                continue

            self._cells[cy][cx] = color
            changed += 1
            stack.extend(((cx + 1, cy), (cx - 1, cy), (cx, cy + 1), (cx, cy - 1)))

        return changed

    def to_image(self) -> Image.Image:
        """Render the grid at one pixel per cell."""
        opaque = all(is_opaque(color) for _, _, color in self.cells())
        mode = "RGB" if opaque else "RGBA"
        image = Image.new(mode, (self.width, self.height))
        pixels = [to_rgba(color) for _, _, color in self.cells()]
        if opaque:
            pixels = [rgba[:3] for rgba in pixels]
        image.putdata(pixels)
        return image

    def load_image(self, image: Image.Image) -> None:
        """Resample a picture onto the grid (nearest neighbour)."""
        resized = image.convert("RGBA").resize(
            (self.width, self.height), Image.Resampling.NEAREST
        )
        pixels = resized.load()
        for y in range(self.height):
            for x in range(self.width):
                self._cells[y][x] = rgba_to_color(pixels[x, y])


# =============================================================================
# ENCODING
# =============================================================================

def encode_image(image: Image.Image, mime_type: str) -> str:
    """Encode a Pillow image as a data URL of the given media type."""
    image_format = MIME_FORMATS[mime_type]
    if image_format in ("JPEG", "BMP") and image.mode not in ("RGB", "L"):
        # No alpha channel in these formats
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return encode_data_url(buffer.getvalue(), mime_type)


def decode_image(data_url: str) -> Image.Image:
    """Open the picture embedded in a data URL. Raises ValueError or OSError."""
    _, raw = decode_data_url(data_url)
    image = Image.open(io.BytesIO(raw))
    image.load()
    return image


# =============================================================================
# EDITOR
# =============================================================================

class PixelGridEditor:
    """
    Tool and pointer state on top of a PixelGrid.

    Holds the active color, the active tool and whether a stroke is in
    progress. Coordinates come from the canvas widget; anything outside the
    grid is ignored.
    """

    def __init__(self, spec: PixelArtInputSpec) -> None:
        self.spec = spec
        self.grid = PixelGrid(spec.grid_width, spec.grid_height, spec.background_color)
        self.color = normalize_color(spec.palette[0])
        self.tool = Tool.DRAW
        self.is_painting = False

    @property
    def background(self) -> str:
        return self.grid.background

    def select_tool(self, tool: Tool) -> None:
        self.tool = tool
        self.is_painting = False

    def select_color(self, color: str) -> None:
        """Pick a color. Picking a color always goes back to drawing."""
        self.color = normalize_color(color)
        self.tool = Tool.DRAW

    def select_palette_index(self, index: int) -> bool:
        if not 0 <= index < len(self.spec.palette):
            return False
        self.select_color(self.spec.palette[index])
        return True

    def _paint(self, x: int, y: int) -> None:
        color = self.background if self.tool is Tool.ERASE else self.color
        self.grid.set(x, y, color)

    def pointer_down(self, x: int, y: int) -> None:
        if self.tool is Tool.FILL:
            # Fill is a single discrete action, never a drag
            self.grid.flood_fill(x, y, self.color)
            self.is_painting = False
            return
        self.is_painting = True
        self._paint(x, y)

    def pointer_move(self, x: int, y: int) -> None:
        if not self.is_painting or self.tool is Tool.FILL:
            return
        self._paint(x, y)

    def pointer_up(self) -> None:
        self.is_painting = False

    def clear(self) -> None:
        self.grid.fill_all(self.background)

    def load_data_url(self, data_url: str) -> None:
        self.grid.load_image(decode_image(data_url))

    def export(self) -> ImageResult:
        data_url = encode_image(self.grid.to_image(), self.spec.mime_type)
        return ImageResult(kind=self.spec.kind, data_url=data_url, mime_type=self.spec.mime_type)
