"""
Pixel Panel - Grid-based pixel art

Each grid cell is drawn as a small block of terminal characters sized from
the requested cell size. All editing goes through PixelGridEditor; this
module only maps pointer and key events onto grid coordinates.

Controls:
- Mouse: click or drag to paint, click to fill
- Arrow keys move the cursor, Space applies the current tool
- d / e / f: draw, erase, fill
- 1-9: pick a palette color
- Delete/Backspace: clear
- Enter: submit
"""

from rich.segment import Segment
from rich.style import Style
from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.message import Message
from textual.strip import Strip
from textual.widget import Widget
from textual.widgets import Button, Input, Static

from ..colors import normalize_color, display_color, contrast_color
from ..constants import PIXELS_PER_COLUMN, TOOL_ICONS, ICON_PALETTE
from ..pixel_grid import PixelGridEditor, Tool
from .base import PromptPanel

TOOL_KEYS = {
    "d": Tool.DRAW,
    "e": Tool.ERASE,
    "f": Tool.FILL,
}

ARROW_MOVES = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}


# =============================================================================
# PALETTE BAR
# =============================================================================

class PaletteBar(Static):
    """Palette swatches (numbered 1-9) plus the active tool and color."""

    def show_state(self, editor: PixelGridEditor) -> None:
        text = Text()
        for index, color in enumerate(editor.spec.palette):
            label = f" {index + 1} " if index < 9 else "   "
            style = Style(color=contrast_color(color), bgcolor=display_color(color))
            if color == editor.color:
                style += Style(bold=True, underline=True)
            text.append(label, style)
            text.append(" ")

        text.append(f"  {TOOL_ICONS[editor.tool.value]} {editor.tool.value}  {ICON_PALETTE} ")
        text.append("   ", Style(bgcolor=display_color(editor.color)))
        text.append(f" {editor.color}")
        self.update(text)


# =============================================================================
# CANVAS WIDGET
# =============================================================================

class PixelCanvas(Widget, can_focus=True):
    """
    Renders the editor's grid and forwards pointer/key input to it.

    One grid cell is cell_cols characters wide and cell_rows lines tall,
    which keeps cells roughly square on a typical terminal font.
    """

    DEFAULT_CSS = """
    PixelCanvas {
        width: auto;
        height: auto;
    }
    """

    class Changed(Message):
        """Posted when the grid, tool or color changed."""

    class SubmitRequested(Message):
        """Posted when Enter is pressed on the canvas."""

    def __init__(self, editor: PixelGridEditor, **kwargs) -> None:
        super().__init__(**kwargs)
        self.editor = editor
        self.cell_cols = max(1, round(editor.spec.cell_size / PIXELS_PER_COLUMN))
        self.cell_rows = max(1, self.cell_cols // 2)
        self.cursor_x = 0
        self.cursor_y = 0

    def on_mount(self) -> None:
        self.styles.width = self.editor.grid.width * self.cell_cols
        self.styles.height = self.editor.grid.height * self.cell_rows

    def notify_changed(self) -> None:
        self.refresh()
        self.post_message(self.Changed())

    def _cell_at(self, x: int, y: int) -> tuple[int, int]:
        """Grid cell under a widget offset, clamped to the grid."""
        grid = self.editor.grid
        gx = max(0, min(grid.width - 1, x // self.cell_cols))
        gy = max(0, min(grid.height - 1, y // self.cell_rows))
        return gx, gy

    def render_line(self, y: int) -> Strip:
        grid = self.editor.grid
        gy = y // self.cell_rows
        if gy >= grid.height:
            return Strip([])

        # Cursor dot goes on the middle line of the cell
        mid_line = y % self.cell_rows == self.cell_rows // 2
        segments = []
        for gx, color in enumerate(grid.row(gy)):
            bg = display_color(color)
            if self.has_focus and mid_line and (gx, gy) == (self.cursor_x, self.cursor_y):
                mark = "•".center(self.cell_cols)
                segments.append(Segment(mark, Style(color=contrast_color(bg), bgcolor=bg, bold=True)))
            else:
                segments.append(Segment(" " * self.cell_cols, Style(bgcolor=bg)))
        return Strip(segments)

    # Mouse

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self.focus()
        self.capture_mouse()
        self.cursor_x, self.cursor_y = self._cell_at(event.x, event.y)
        self.editor.pointer_down(self.cursor_x, self.cursor_y)
        self.notify_changed()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if not self.editor.is_painting:
            return
        self.cursor_x, self.cursor_y = self._cell_at(event.x, event.y)
        self.editor.pointer_move(self.cursor_x, self.cursor_y)
        self.notify_changed()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self.editor.pointer_up()
        self.release_mouse()

    def on_leave(self, event: events.Leave) -> None:
        self.editor.pointer_up()

    # Keyboard

    def on_key(self, event: events.Key) -> None:
        key = event.key
        char = event.character

        if key in ARROW_MOVES:
            event.stop()
            dx, dy = ARROW_MOVES[key]
            grid = self.editor.grid
            self.cursor_x = max(0, min(grid.width - 1, self.cursor_x + dx))
            self.cursor_y = max(0, min(grid.height - 1, self.cursor_y + dy))
            self.refresh()
            return

        if key == "space":
            event.stop()
            self.editor.pointer_down(self.cursor_x, self.cursor_y)
            self.editor.pointer_up()
            self.notify_changed()
            return

        if key in TOOL_KEYS:
            event.stop()
            self.editor.select_tool(TOOL_KEYS[key])
            self.notify_changed()
            return

        if char and char.isdigit() and char != "0":
            event.stop()
            if self.editor.select_palette_index(int(char) - 1):
                self.notify_changed()
            return

        if key in ("delete", "backspace"):
            event.stop()
            self.editor.clear()
            self.notify_changed()
            return

        if key == "enter":
            event.stop()
            self.post_message(self.SubmitRequested())


# =============================================================================
# PANEL
# =============================================================================

class PixelPanel(PromptPanel):
    """Pixel art editor with palette, custom color, clear and submit."""

    def __init__(self, spec, **kwargs) -> None:
        super().__init__(spec, **kwargs)
        self.editor = PixelGridEditor(spec)

    def compose(self) -> ComposeResult:
        yield PaletteBar(id="palette-bar")
        yield PixelCanvas(self.editor, id="pixel-canvas")
        with Horizontal(id="prompt-actions"):
            yield Input(placeholder="Custom color", id="custom-color")
            yield Button("Clear", id="clear-button")
            yield Button(self.spec.submit_label, id="submit-button", variant="primary")

    def on_mount(self) -> None:
        canvas = self.query_one(PixelCanvas)
        canvas.focus()
        self.query_one(PaletteBar).show_state(self.editor)

        if self.spec.initial_image:
            try:
                self.editor.load_data_url(self.spec.initial_image)
            except (ValueError, OSError) as e:
                self.set_status(f"Could not load initial image: {e}")
                return
            canvas.refresh()

    def action_submit(self) -> None:
        self.submit(self.editor.export())

    def on_pixel_canvas_changed(self, event: PixelCanvas.Changed) -> None:
        event.stop()
        self.query_one(PaletteBar).show_state(self.editor)
        self.clear_status()

    def on_pixel_canvas_submit_requested(self, event: PixelCanvas.SubmitRequested) -> None:
        event.stop()
        self.action_submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        value = event.value.strip()
        try:
            color = normalize_color(value)
        except ValueError:
            self.set_status(f"Unrecognised color: {value}")
            return

        self.editor.select_color(color)
        canvas = self.query_one(PixelCanvas)
        canvas.focus()
        canvas.notify_changed()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        canvas = self.query_one(PixelCanvas)
        if event.button.id == "clear-button":
            self.editor.clear()
            canvas.notify_changed()
            canvas.focus()
        elif event.button.id == "submit-button":
            self.action_submit()
