"""Prompt panels, one per input kind."""

from ..constants import KIND_TEXT, KIND_IMAGE, KIND_PIXELART
from .base import PromptPanel, SubmissionReady, StatusChanged
from .draw_panel import DrawPanel
from .pixel_panel import PixelPanel
from .text_panel import TextPanel

PANELS = {
    KIND_TEXT: TextPanel,
    KIND_IMAGE: DrawPanel,
    KIND_PIXELART: PixelPanel,
}


def create_panel(spec) -> PromptPanel:
    return PANELS[spec.kind](spec, id="prompt-panel")


__all__ = [
    "PANELS",
    "create_panel",
    "PromptPanel",
    "SubmissionReady",
    "StatusChanged",
    "TextPanel",
    "DrawPanel",
    "PixelPanel",
]
