"""
Draw Panel - Freehand sketching

The picture lives in a Pillow image at the requested size. The terminal
shows a scaled-down preview using half blocks (each character cell shows
two vertically stacked pixels: foreground on top, background below).

Drawing:
- Mouse: press and drag
- Keyboard: arrows move the brush cursor, Space lifts/lowers the brush
- Delete/Backspace clears, Enter submits
"""

import math
from typing import Optional

from PIL import Image, ImageDraw
from rich.segment import Segment
from rich.style import Style
from textual import events
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.message import Message
from textual.strip import Strip
from textual.widget import Widget
from textual.widgets import Button

from ..colors import to_rgba, rgba_to_color
from ..constants import (
    BRUSH_COLOR, BRUSH_WIDTH, MIME_FORMATS,
    DRAW_PREVIEW_MAX_COLS, DRAW_PREVIEW_MAX_ROWS,
)
from ..pixel_grid import encode_image, decode_image
from ..protocol import ImageResult
from .base import PromptPanel

# Shown under transparent parts of the preview
PREVIEW_BACKDROP = "#FFFFFF"
CURSOR_UP = "#F28478"
CURSOR_DOWN = "#DA7060"

# Formats without an alpha channel get flattened onto white
OPAQUE_FORMATS = ("JPEG", "BMP")


# =============================================================================
# SKETCH MODEL
# =============================================================================

class Sketch:
    """A freehand picture at full resolution."""

    def __init__(self, width: int, height: int, background: Optional[str] = None) -> None:
        self.width = width
        self.height = height
        self.background = background
        self.image = self._blank()

    def _blank(self) -> Image.Image:
        fill = to_rgba(self.background) if self.background else (0, 0, 0, 0)
        return Image.new("RGBA", (self.width, self.height), fill)

    def clear(self) -> None:
        self.image = self._blank()

    def stroke(self, points: list[tuple[int, int]]) -> None:
        """Draw a round-capped line through the points (a dot for one point)."""
        draw = ImageDraw.Draw(self.image)
        color = to_rgba(BRUSH_COLOR)
        if len(points) > 1:
            draw.line(points, fill=color, width=BRUSH_WIDTH, joint="curve")
        radius = BRUSH_WIDTH / 2
        for x, y in (points[0], points[-1]):
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color)

    def load(self, image: Image.Image) -> None:
        """Stretch a picture over the canvas, on top of the background."""
        picture = image.convert("RGBA").resize((self.width, self.height))
        self.image = self._blank()
        self.image.alpha_composite(picture)

    def export(self, mime_type: str) -> str:
        image = self.image
        if MIME_FORMATS[mime_type] in OPAQUE_FORMATS:
            backdrop = Image.new("RGBA", image.size, to_rgba(PREVIEW_BACKDROP))
            image = Image.alpha_composite(backdrop, image).convert("RGB")
        return encode_image(image, mime_type)

    def preview_size(self, max_cols: int, max_rows: int) -> tuple[int, int]:
        """(columns, rows) of a preview that fits, keeping the aspect ratio."""
        scale = min(max_cols / self.width, (max_rows * 2) / self.height)
        cols = max(1, round(self.width * scale))
        rows = max(1, math.ceil(self.height * scale / 2))
        return cols, rows

    def preview(self, cols: int, rows: int) -> list[list[tuple[str, str]]]:
        """Rows of (top, bottom) display colors for a cols x rows preview."""
        backdrop = Image.new("RGBA", (cols, rows * 2), to_rgba(PREVIEW_BACKDROP))
        small = self.image.resize((cols, rows * 2), Image.Resampling.BOX)
        pixels = Image.alpha_composite(backdrop, small).load()
        return [
            [
                (rgba_to_color(pixels[x, y * 2]), rgba_to_color(pixels[x, y * 2 + 1]))
                for x in range(cols)
            ]
            for y in range(rows)
        ]


# =============================================================================
# CANVAS WIDGET
# =============================================================================

class DrawCanvas(Widget, can_focus=True):
    """Half-block preview of a Sketch that turns pointer drags into strokes."""

    DEFAULT_CSS = """
    DrawCanvas {
        width: auto;
        height: auto;
    }
    """

    class Changed(Message):
        """Posted after every stroke or clear."""

    class SubmitRequested(Message):
        """Posted when Enter is pressed on the canvas."""

    def __init__(self, sketch: Sketch, **kwargs) -> None:
        super().__init__(**kwargs)
        self.sketch = sketch
        self.preview_cols, self.preview_rows = sketch.preview_size(DRAW_PREVIEW_MAX_COLS, DRAW_PREVIEW_MAX_ROWS)
        self._preview = sketch.preview(self.preview_cols, self.preview_rows)
        self._last_point: Optional[tuple[int, int]] = None
        self._cursor = (self.preview_cols // 2, self.preview_rows // 2)
        self._brush_down = False

    def on_mount(self) -> None:
        self.styles.width = self.preview_cols
        self.styles.height = self.preview_rows

    def _to_image(self, col: int, row: int) -> tuple[int, int]:
        """Centre of a terminal cell in image pixels (clamped to the canvas)."""
        col = max(0, min(self.preview_cols - 1, col))
        row = max(0, min(self.preview_rows - 1, row))
        x = int((col + 0.5) * self.sketch.width / self.preview_cols)
        y = int((row + 0.5) * self.sketch.height / self.preview_rows)
        return x, y

    def redraw(self) -> None:
        self._preview = self.sketch.preview(self.preview_cols, self.preview_rows)
        self.refresh()
        self.post_message(self.Changed())

    def _stroke_to(self, col: int, row: int) -> None:
        point = self._to_image(col, row)
        if self._last_point is None:
            self.sketch.stroke([point])
        else:
            self.sketch.stroke([self._last_point, point])
        self._last_point = point
        self.redraw()

    def clear_sketch(self) -> None:
        self.sketch.clear()
        self._last_point = None
        self._brush_down = False
        self.redraw()

    def render_line(self, y: int) -> Strip:
        if y >= self.preview_rows:
            return Strip([])

        segments = []
        for x, (top, bottom) in enumerate(self._preview[y]):
            if self.has_focus and (x, y) == self._cursor:
                cursor = CURSOR_DOWN if self._brush_down else CURSOR_UP
                segments.append(Segment("▀", Style(color=cursor, bgcolor=bottom)))
            else:
                segments.append(Segment("▀", Style(color=top, bgcolor=bottom)))
        return Strip(segments)

    # Mouse

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self.focus()
        self.capture_mouse()
        self._last_point = None
        self._stroke_to(event.x, event.y)

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self._last_point is not None and not self._brush_down:
            self._stroke_to(event.x, event.y)

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if not self._brush_down:
            self._last_point = None
        self.release_mouse()

    # Keyboard

    def on_key(self, event: events.Key) -> None:
        key = event.key
        moves = {"up": (0, -1), "down": (0, 1), "left": (-1, 0), "right": (1, 0)}

        if key in moves:
            event.stop()
            dx, dy = moves[key]
            col = max(0, min(self.preview_cols - 1, self._cursor[0] + dx))
            row = max(0, min(self.preview_rows - 1, self._cursor[1] + dy))
            self._cursor = (col, row)
            if self._brush_down:
                self._stroke_to(col, row)
            else:
                self.refresh()
            return

        if key == "space":
            event.stop()
            self._brush_down = not self._brush_down
            self._last_point = None
            if self._brush_down:
                self._stroke_to(*self._cursor)
            else:
                self.refresh()
            return

        if key in ("delete", "backspace"):
            event.stop()
            self.clear_sketch()
            return

        if key == "enter":
            event.stop()
            self.post_message(self.SubmitRequested())


# =============================================================================
# PANEL
# =============================================================================

class DrawPanel(PromptPanel):
    """Freehand drawing with clear and submit."""

    def __init__(self, spec, **kwargs) -> None:
        super().__init__(spec, **kwargs)
        self.sketch = Sketch(spec.width, spec.height, spec.background_color)

    def compose(self) -> ComposeResult:
        yield DrawCanvas(self.sketch, id="draw-canvas")
        with Horizontal(id="prompt-actions"):
            yield Button("Clear", id="clear-button")
            yield Button(self.spec.submit_label, id="submit-button", variant="primary")

    def on_mount(self) -> None:
        canvas = self.query_one(DrawCanvas)
        canvas.focus()
        if not self.spec.initial_image:
            return
        try:
            self.sketch.load(decode_image(self.spec.initial_image))
        except (ValueError, OSError) as e:
            self.set_status(f"Could not load initial image: {e}")
            return
        canvas.redraw()

    def action_submit(self) -> None:
        data_url = self.sketch.export(self.spec.mime_type)
        self.submit(ImageResult(kind=self.spec.kind, data_url=data_url, mime_type=self.spec.mime_type))

    def on_draw_canvas_changed(self, event: DrawCanvas.Changed) -> None:
        event.stop()
        self.clear_status()

    def on_draw_canvas_submit_requested(self, event: DrawCanvas.SubmitRequested) -> None:
        event.stop()
        self.action_submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "clear-button":
            self.query_one(DrawCanvas).clear_sketch()
        elif event.button.id == "submit-button":
            self.action_submit()
