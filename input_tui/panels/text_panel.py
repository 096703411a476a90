"""
Text Panel

A single-line Input, or a TextArea when the prompt asks for more than one
line. Enter submits a single line; Ctrl+S (or the submit button) submits
either. JSON-format prompts refuse to submit until the text parses.
"""

import json

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, Input, Static, TextArea

from ..protocol import TextResult
from .base import PromptPanel


class TextPanel(PromptPanel):
    """Collects free text."""

    BINDINGS = [Binding("ctrl+s", "submit", "Send")]

    def compose(self) -> ComposeResult:
        if self.spec.is_multiline:
            yield Static(self.spec.placeholder, id="text-hint")
            yield TextArea(id="text-field", soft_wrap=True)
        else:
            yield Input(placeholder=self.spec.placeholder, id="text-field")
        with Horizontal(id="prompt-actions"):
            yield Button(self.spec.submit_label, id="submit-button", variant="primary")

    def on_mount(self) -> None:
        field = self.query_one("#text-field")
        if self.spec.is_multiline:
            # Room for the requested lines plus the border
            field.styles.height = self.spec.lines + 2
        field.focus()

    @property
    def value(self) -> str:
        field = self.query_one("#text-field")
        if isinstance(field, TextArea):
            return field.text
        return field.value

    def action_submit(self) -> None:
        value = self.value

        if self.spec.format == "json":
            try:
                json.loads(value)
            except json.JSONDecodeError:
                self.set_status("Input must be valid JSON.")
                self.query_one("#text-field").focus()
                return

        self.submit(TextResult(value=value, format=self.spec.format))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.action_submit()

    def on_input_changed(self, event: Input.Changed) -> None:
        self.clear_status()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        self.clear_status()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "submit-button":
            event.stop()
            self.action_submit()
