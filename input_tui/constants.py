"""
Input TUI - Shared Constants

Central location for defaults, ranges and environment variable names used
across the launcher, the UI subprocess and the cache.
"""

# =============================================================================
# INPUT KINDS
# =============================================================================

KIND_TEXT = "text"
KIND_IMAGE = "image"
KIND_PIXELART = "pixelart"

INPUT_KINDS = (KIND_TEXT, KIND_IMAGE, KIND_PIXELART)
DEFAULT_KIND = KIND_TEXT

TEXT_FORMATS = ("text", "json")

# =============================================================================
# RANGES (inclusive)
# =============================================================================

TEXT_LINES_RANGE = (1, 20)
IMAGE_SIZE_RANGE = (32, 4096)
GRID_SIZE_RANGE = (4, 128)
CELL_SIZE_RANGE = (4, 64)

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_SUBMIT_LABEL = "Send"

DEFAULT_TEXT_MESSAGE = "Enter your input:"
DEFAULT_PLACEHOLDER = "Type something here..."
DEFAULT_TEXT_LINES = 1

DEFAULT_IMAGE_MESSAGE = "Draw your input:"
DEFAULT_IMAGE_SIZE = 512

DEFAULT_PIXELART_MESSAGE = "Create your pixel art:"
DEFAULT_GRID_SIZE = 16
DEFAULT_CELL_SIZE = 20
DEFAULT_PIXELART_BACKGROUND = "#FFFFFF"
DEFAULT_PALETTE = (
    "#000000",
    "#FFFFFF",
    "#F28478",
    "#A8E6CF",
    "#80B7FF",
    "#FFD89B",
    "#DDA0DD",
    "#B0E0E6",
)

DEFAULT_MIME_TYPE = "image/png"

# Media types the UI can encode, mapped to Pillow format names
MIME_FORMATS = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/gif": "GIF",
    "image/webp": "WEBP",
    "image/bmp": "BMP",
}

# File extensions recognised when loading an initial image from disk
EXTENSION_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
}

# Freehand brush (matches the stroke the drawing panel has always used)
BRUSH_COLOR = "#222222"
BRUSH_WIDTH = 4

# =============================================================================
# CACHE
# =============================================================================

CACHE_APP_NAME = "input-mcp"
CACHE_IMAGES_SUBDIR = "images"
CACHE_UI_SUBDIR = "ui"
DEFAULT_RETENTION_DAYS = 7

# =============================================================================
# UI BUILD ARTIFACTS
# =============================================================================

UI_ENTRY_SCRIPT = "window.py"
UI_STYLESHEET = "renderer.tcss"
UI_MANIFEST = "index.json"

# =============================================================================
# ENVIRONMENT
# =============================================================================

ENV_SPEC = "INPUT_TUI_SPEC"
ENV_CACHE_DIR = "INPUT_TUI_CACHE_DIR"
ENV_UI_DIR = "INPUT_TUI_UI_DIR"
ENV_TERMINAL = "INPUT_TUI_TERMINAL"
ENV_TIMEOUT = "INPUT_TUI_TIMEOUT"
ENV_RETENTION_DAYS = "INPUT_TUI_RETENTION_DAYS"
ENV_LOG = "INPUT_TUI_LOG"

DEFAULT_TERMINAL = "/dev/tty"

# =============================================================================
# TERMINAL LAYOUT
# =============================================================================

# Pixels of on-screen cell size represented by one terminal column.
# The default cell size (20) draws each grid cell two columns wide.
PIXELS_PER_COLUMN = 10

# Freehand canvas preview is capped so large images still fit a terminal
DRAW_PREVIEW_MAX_COLS = 96
DRAW_PREVIEW_MAX_ROWS = 28

# Nerd Font icons (https://www.nerdfonts.com/cheat-sheet)
ICON_PENCIL = "󰏬"           # nf-md-pencil
ICON_ERASER = "󰇾"           # nf-md-eraser
ICON_BUCKET = "󰉦"           # nf-md-format_color_fill
ICON_PALETTE = "󰏘"          # nf-md-palette

TOOL_ICONS = {
    "draw": ICON_PENCIL,
    "erase": ICON_ERASER,
    "fill": ICON_BUCKET,
}
