"""
Input Specs

Turns a caller's partial request into one of three canonical, fully
defaulted specs:
- TextInputSpec: a text field (single or multi-line, plain or JSON)
- ImageInputSpec: a freehand drawing canvas
- PixelArtInputSpec: a pixel grid with a palette

Normalization is a pure function. Missing fields get their defaults,
integers outside their range are clamped, and structurally invalid values
(wrong types, unknown fields, bad colors) raise ValidationError naming the
offending field. Normalizing an already normalized spec returns it unchanged.

Attributes are snake_case in Python; the JSON handed to the UI subprocess
uses the camelCase names in WIRE_NAMES.
"""

import base64
import logging
import math
from dataclasses import dataclass, field, replace
from functools import partial
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .colors import normalize_color
from .constants import (
    KIND_TEXT, KIND_IMAGE, KIND_PIXELART, INPUT_KINDS, DEFAULT_KIND,
    TEXT_FORMATS, TEXT_LINES_RANGE, IMAGE_SIZE_RANGE, GRID_SIZE_RANGE, CELL_SIZE_RANGE,
    DEFAULT_SUBMIT_LABEL, DEFAULT_TEXT_MESSAGE, DEFAULT_PLACEHOLDER, DEFAULT_TEXT_LINES,
    DEFAULT_IMAGE_MESSAGE, DEFAULT_IMAGE_SIZE,
    DEFAULT_PIXELART_MESSAGE, DEFAULT_GRID_SIZE, DEFAULT_CELL_SIZE,
    DEFAULT_PIXELART_BACKGROUND, DEFAULT_PALETTE, DEFAULT_MIME_TYPE,
    MIME_FORMATS, EXTENSION_MIME_TYPES,
)
from .errors import ValidationError, InputFailedError

logger = logging.getLogger(__name__)


# Python attribute -> JSON key
WIRE_NAMES = {
    "submit_label": "submitLabel",
    "grid_width": "gridWidth",
    "grid_height": "gridHeight",
    "cell_size": "cellSize",
    "mime_type": "mimeType",
    "background_color": "backgroundColor",
    "initial_image": "initialImage",
}

# JSON key -> Python attribute
ATTRIBUTE_NAMES = {wire: attr for attr, wire in WIRE_NAMES.items()}


# =============================================================================
# SPEC TYPES
# =============================================================================

@dataclass(frozen=True)
class TextInputSpec:
    message: str = DEFAULT_TEXT_MESSAGE
    submit_label: str = DEFAULT_SUBMIT_LABEL
    placeholder: str = DEFAULT_PLACEHOLDER
    lines: int = DEFAULT_TEXT_LINES
    format: str = "text"
    kind: str = field(default=KIND_TEXT, init=False)

    @property
    def is_multiline(self) -> bool:
        return self.lines > 1

    def to_dict(self) -> dict:
        return spec_to_dict(self)


@dataclass(frozen=True)
class ImageInputSpec:
    message: str = DEFAULT_IMAGE_MESSAGE
    submit_label: str = DEFAULT_SUBMIT_LABEL
    width: int = DEFAULT_IMAGE_SIZE
    height: int = DEFAULT_IMAGE_SIZE
    mime_type: str = DEFAULT_MIME_TYPE
    background_color: Optional[str] = None
    initial_image: Optional[str] = None
    kind: str = field(default=KIND_IMAGE, init=False)

    def to_dict(self) -> dict:
        return spec_to_dict(self)


@dataclass(frozen=True)
class PixelArtInputSpec:
    message: str = DEFAULT_PIXELART_MESSAGE
    submit_label: str = DEFAULT_SUBMIT_LABEL
    grid_width: int = DEFAULT_GRID_SIZE
    grid_height: int = DEFAULT_GRID_SIZE
    cell_size: int = DEFAULT_CELL_SIZE
    palette: tuple[str, ...] = DEFAULT_PALETTE
    background_color: str = DEFAULT_PIXELART_BACKGROUND
    mime_type: str = DEFAULT_MIME_TYPE
    initial_image: Optional[str] = None
    kind: str = field(default=KIND_PIXELART, init=False)

    def to_dict(self) -> dict:
        return spec_to_dict(self)


InputSpec = Union[TextInputSpec, ImageInputSpec, PixelArtInputSpec]


# =============================================================================
# FIELD PARSERS
# =============================================================================
# Each parser takes (name, value) where name is what the caller used, so the
# error message points at the caller's own spelling.

def _string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError(name, f"expected a string, got {type(value).__name__}")
    return value


def _clamped_int(name: str, value: Any, bounds: tuple[int, int]) -> int:
    # bool is an int subclass but never a meaningful size
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(name, f"expected an integer, got {type(value).__name__}")
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(name, f"expected an integer, got {value!r}")
        value = int(value)
    low, high = bounds
    return max(low, min(high, value))


def _choice(name: str, value: Any, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(name, f"expected one of {', '.join(choices)}, got {value!r}")
    return value


def _color(name: str, value: Any) -> str:
    value = _string(name, value)
    try:
        return normalize_color(value)
    except ValueError:
        raise ValidationError(name, f"unrecognised color {value!r}") from None


def _palette(name: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValidationError(name, "expected a list of color strings")
    if not value:
        raise ValidationError(name, "palette must not be empty")
    return tuple(_color(f"{name}[{i}]", color) for i, color in enumerate(value))


def _mime_type(name: str, value: Any) -> str:
    value = _string(name, value).lower()
    if value not in MIME_FORMATS:
        raise ValidationError(name, f"unsupported media type {value!r}")
    return value


_COMMON_PARSERS = {
    "message": _string,
    "submit_label": _string,
}

TEXT_PARSERS: dict[str, Callable[[str, Any], Any]] = {
    **_COMMON_PARSERS,
    "placeholder": _string,
    "lines": partial(_clamped_int, bounds=TEXT_LINES_RANGE),
    "format": partial(_choice, choices=TEXT_FORMATS),
}

IMAGE_PARSERS: dict[str, Callable[[str, Any], Any]] = {
    **_COMMON_PARSERS,
    "width": partial(_clamped_int, bounds=IMAGE_SIZE_RANGE),
    "height": partial(_clamped_int, bounds=IMAGE_SIZE_RANGE),
    "mime_type": _mime_type,
    "background_color": _color,
    "initial_image": _string,
}

PIXELART_PARSERS: dict[str, Callable[[str, Any], Any]] = {
    **_COMMON_PARSERS,
    "grid_width": partial(_clamped_int, bounds=GRID_SIZE_RANGE),
    "grid_height": partial(_clamped_int, bounds=GRID_SIZE_RANGE),
    "cell_size": partial(_clamped_int, bounds=CELL_SIZE_RANGE),
    "palette": _palette,
    "background_color": _color,
    "mime_type": _mime_type,
    "initial_image": _string,
}

SPEC_TYPES = {
    KIND_TEXT: (TextInputSpec, TEXT_PARSERS),
    KIND_IMAGE: (ImageInputSpec, IMAGE_PARSERS),
    KIND_PIXELART: (PixelArtInputSpec, PIXELART_PARSERS),
}

ALL_FIELDS = set(TEXT_PARSERS) | set(IMAGE_PARSERS) | set(PIXELART_PARSERS)


def _attribute_name(name: str) -> str:
    return ATTRIBUTE_NAMES.get(name, name)


def _build(kind: str, fields: dict, strict: bool) -> InputSpec:
    spec_cls, parsers = SPEC_TYPES[kind]
    values = {}
    for name, value in fields.items():
        if value is None:
            continue
        attr = _attribute_name(name)
        if attr not in ALL_FIELDS:
            raise ValidationError(name, "unknown field")
        if attr not in parsers:
            if strict:
                raise ValidationError(name, f"not a field of {kind} input")
            logger.debug(f"Ignoring {name} for {kind} input")
            continue
        values[attr] = parsers[attr](name, value)
    return spec_cls(**values)


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize_spec(kind: Optional[str] = None, **overrides: Any) -> InputSpec:
    """
    Build a fully defaulted spec from an optional kind and field overrides.

    Overrides may use snake_case or camelCase names. None values count as
    omitted. Fields that belong to another kind are ignored (a text request
    carrying gridWidth is still a text request).
    """
    if kind is None or kind == "":
        kind = DEFAULT_KIND
    elif not isinstance(kind, str):
        raise ValidationError("kind", f"expected a string, got {type(kind).__name__}")
    elif kind not in SPEC_TYPES:
        logger.warning(f"Unknown input kind {kind!r}, falling back to {DEFAULT_KIND}")
        kind = DEFAULT_KIND
    return _build(kind, overrides, strict=False)


def spec_from_dict(data: dict) -> InputSpec:
    """
    Validate a wire-format spec (as produced by spec_to_dict).

    Stricter than normalize_spec: the kind must be one of the known literals
    and every key must belong to that kind.
    """
    if not isinstance(data, dict):
        raise ValidationError("spec", "expected a JSON object")
    fields = dict(data)
    kind = fields.pop("kind", DEFAULT_KIND)
    if kind not in INPUT_KINDS:
        raise ValidationError("kind", f"expected one of {', '.join(INPUT_KINDS)}, got {kind!r}")
    return _build(kind, fields, strict=True)


def spec_to_dict(spec: InputSpec) -> dict:
    """Wire form of a spec: camelCase keys, optional fields left out when unset."""
    data: dict[str, Any] = {"kind": spec.kind}
    _, parsers = SPEC_TYPES[spec.kind]
    for attr in parsers:
        value = getattr(spec, attr)
        if value is None:
            continue
        if isinstance(value, tuple):
            value = list(value)
        data[WIRE_NAMES.get(attr, attr)] = value
    return data


# =============================================================================
# INITIAL IMAGE
# =============================================================================

def load_image_as_data_url(image_path: str) -> str:
    """Return a data URL for a data URL or a path to an image file."""
    if image_path.startswith("data:"):
        return image_path

    path = Path(image_path).expanduser()
    extension = path.suffix.lower().lstrip(".")
    mime_type = EXTENSION_MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InputFailedError(f"Failed to load image from path: {image_path}") from e

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def resolve_initial_image(spec: InputSpec) -> InputSpec:
    """Return a copy of the input spec whose initial image is embeddable."""
    initial_image = getattr(spec, "initial_image", None)
    if not initial_image:
        return spec
    return replace(spec, initial_image=load_image_as_data_url(initial_image))
