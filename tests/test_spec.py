#!/usr/bin/env python3
"""Tests for input spec normalization.

Run with: pytest tests/test_spec.py -v
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from PIL import Image

from input_tui.constants import DEFAULT_PALETTE
from input_tui.errors import ValidationError, InputFailedError
from input_tui.spec import (
    TextInputSpec,
    ImageInputSpec,
    PixelArtInputSpec,
    normalize_spec,
    spec_from_dict,
    spec_to_dict,
    load_image_as_data_url,
    resolve_initial_image,
)


class TestDefaults:
    """Omitted fields get their documented defaults."""

    def test_no_kind_is_text(self):
        spec = normalize_spec()
        assert isinstance(spec, TextInputSpec)
        assert spec.message == "Enter your input:"
        assert spec.submit_label == "Send"
        assert spec.placeholder == "Type something here..."
        assert spec.lines == 1
        assert spec.format == "text"
        assert not spec.is_multiline

    def test_image_defaults(self):
        spec = normalize_spec("image")
        assert isinstance(spec, ImageInputSpec)
        assert spec.message == "Draw your input:"
        assert (spec.width, spec.height) == (512, 512)
        assert spec.mime_type == "image/png"
        assert spec.background_color is None
        assert spec.initial_image is None

    def test_pixelart_defaults(self):
        spec = normalize_spec("pixelart")
        assert isinstance(spec, PixelArtInputSpec)
        assert spec.message == "Create your pixel art:"
        assert (spec.grid_width, spec.grid_height) == (16, 16)
        assert spec.cell_size == 20
        assert spec.palette == DEFAULT_PALETTE
        assert spec.background_color == "#FFFFFF"

    def test_empty_kind_is_text(self):
        assert normalize_spec("").kind == "text"

    def test_unknown_kind_falls_back_to_text(self):
        assert normalize_spec("hologram").kind == "text"

    def test_none_overrides_are_omitted(self):
        spec = normalize_spec("text", message=None, lines=None)
        assert spec == normalize_spec("text")


class TestOverrides:
    """Caller overrides, in either naming style."""

    def test_snake_case(self):
        spec = normalize_spec("pixelart", grid_width=8, grid_height=10)
        assert (spec.grid_width, spec.grid_height) == (8, 10)

    def test_camel_case(self):
        spec = normalize_spec("pixelart", gridWidth=8, submitLabel="Done")
        assert spec.grid_width == 8
        assert spec.submit_label == "Done"

    def test_other_kinds_fields_are_ignored(self):
        spec = normalize_spec("text", gridWidth=8)
        assert spec == normalize_spec("text")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_spec("text", colour="red")
        assert exc_info.value.field == "colour"

    def test_colors_are_canonical(self):
        spec = normalize_spec("pixelart", palette=["red", "#0f0", "#0000ff"], backgroundColor="white")
        assert spec.palette == ("#FF0000", "#00FF00", "#0000FF")
        assert spec.background_color == "#FFFFFF"

    def test_translucent_color_keeps_alpha(self):
        spec = normalize_spec("image", background_color="#11223380")
        assert spec.background_color == "#11223380"

    def test_mime_type_lowercased(self):
        assert normalize_spec("image", mimeType="IMAGE/JPEG").mime_type == "image/jpeg"

    def test_integral_float_accepted(self):
        assert normalize_spec("text", lines=3.0).lines == 3


class TestClamping:
    """Out-of-range integers are clamped, never rejected."""

    @pytest.mark.parametrize("value,expected", [(0, 1), (-5, 1), (7, 7), (21, 20), (1000, 20)])
    def test_text_lines(self, value, expected):
        assert normalize_spec("text", lines=value).lines == expected

    @pytest.mark.parametrize("value,expected", [(1, 32), (100, 100), (10000, 4096)])
    def test_image_size(self, value, expected):
        spec = normalize_spec("image", width=value, height=value)
        assert spec.width == expected
        assert spec.height == expected

    @pytest.mark.parametrize("value,expected", [(2, 4), (64, 64), (500, 128)])
    def test_grid_size(self, value, expected):
        spec = normalize_spec("pixelart", gridWidth=value, gridHeight=value)
        assert spec.grid_width == expected
        assert spec.grid_height == expected

    @pytest.mark.parametrize("value,expected", [(1, 4), (20, 20), (65, 64)])
    def test_cell_size(self, value, expected):
        assert normalize_spec("pixelart", cellSize=value).cell_size == expected


class TestRejections:
    """Structurally invalid values raise ValidationError naming the field."""

    @pytest.mark.parametrize("overrides,field", [
        ({"lines": True}, "lines"),
        ({"lines": "3"}, "lines"),
        ({"lines": 2.5}, "lines"),
        ({"lines": float("nan")}, "lines"),
        ({"message": 42}, "message"),
        ({"format": "yaml"}, "format"),
    ])
    def test_text_fields(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            normalize_spec("text", **overrides)
        assert exc_info.value.field == field

    def test_empty_palette(self):
        with pytest.raises(ValidationError):
            normalize_spec("pixelart", palette=[])

    def test_palette_must_be_a_list(self):
        with pytest.raises(ValidationError):
            normalize_spec("pixelart", palette="#000000")

    def test_bad_palette_entry_names_index(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_spec("pixelart", palette=["#000000", "not-a-color"])
        assert exc_info.value.field == "palette[1]"

    def test_bad_background(self):
        with pytest.raises(ValidationError):
            normalize_spec("image", background_color="blurple")

    def test_unsupported_mime_type(self):
        with pytest.raises(ValidationError):
            normalize_spec("pixelart", mime_type="image/tiff")

    def test_non_string_kind(self):
        with pytest.raises(ValidationError):
            normalize_spec(3)


class TestWireForm:
    """spec_to_dict / spec_from_dict."""

    def test_camel_case_keys(self):
        data = spec_to_dict(normalize_spec("pixelart"))
        assert data["kind"] == "pixelart"
        assert data["gridWidth"] == 16
        assert data["cellSize"] == 20
        assert data["palette"] == list(DEFAULT_PALETTE)
        assert "initialImage" not in data

    @pytest.mark.parametrize("kind", ["text", "image", "pixelart"])
    def test_normalization_is_idempotent(self, kind):
        spec = normalize_spec(kind, message="Hi")
        assert spec_from_dict(spec_to_dict(spec)) == spec
        assert spec_from_dict(spec.to_dict()).to_dict() == spec.to_dict()

    def test_strict_about_kind(self):
        with pytest.raises(ValidationError):
            spec_from_dict({"kind": "hologram"})

    def test_strict_about_foreign_fields(self):
        with pytest.raises(ValidationError):
            spec_from_dict({"kind": "text", "gridWidth": 8})

    def test_rejects_non_object(self):
        with pytest.raises(ValidationError):
            spec_from_dict(["text"])


class TestInitialImage:
    """Initial images given as paths become data URLs."""

    @pytest.fixture
    def png_file(self, tmp_path):
        path = tmp_path / "start.png"
        Image.new("RGB", (4, 4), "red").save(path)
        return path

    def test_data_url_passes_through(self):
        url = "data:image/png;base64,AAAA"
        assert load_image_as_data_url(url) == url

    def test_path_is_encoded(self, png_file):
        url = load_image_as_data_url(str(png_file))
        assert url.startswith("data:image/png;base64,")

    def test_mime_from_extension(self, tmp_path):
        path = tmp_path / "photo.JPG"
        Image.new("RGB", (4, 4)).save(path, format="JPEG")
        assert load_image_as_data_url(str(path)).startswith("data:image/jpeg;base64,")

    def test_unknown_extension_defaults_to_png(self, tmp_path):
        path = tmp_path / "picture.img"
        path.write_bytes(b"\x89PNG")
        assert load_image_as_data_url(str(path)).startswith("data:image/png;base64,")

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputFailedError) as exc_info:
            load_image_as_data_url(str(tmp_path / "nope.png"))
        assert "Failed to load image from path" in str(exc_info.value)

    def test_resolve_returns_copy(self, png_file):
        spec = normalize_spec("pixelart", initialImage=str(png_file))
        resolved = resolve_initial_image(spec)
        assert resolved.initial_image.startswith("data:image/png;base64,")
        assert spec.initial_image == str(png_file)

    def test_resolve_without_image(self):
        spec = normalize_spec("text")
        assert resolve_initial_image(spec) is spec
