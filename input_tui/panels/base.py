"""
Shared plumbing for prompt panels.

A panel never talks to the reply channel itself. It posts messages that
bubble up to the app, which owns the one-shot reply.
"""

from textual.containers import Container
from textual.message import Message

from ..protocol import SubmissionResult


class SubmissionReady(Message):
    """Message sent when a panel has a result to hand back."""

    def __init__(self, result: SubmissionResult) -> None:
        self.result = result
        super().__init__()


class StatusChanged(Message):
    """Message sent when a panel wants to show (or clear) a status line."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__()


class PromptPanel(Container):
    """Base class for the text, drawing and pixel-art panels."""

    DEFAULT_CSS = """
    PromptPanel {
        width: auto;
        height: auto;
    }
    """

    def __init__(self, spec, **kwargs) -> None:
        super().__init__(**kwargs)
        self.spec = spec

    def submit(self, result: SubmissionResult) -> None:
        self.post_message(SubmissionReady(result))

    def set_status(self, text: str) -> None:
        self.post_message(StatusChanged(text))

    def clear_status(self) -> None:
        self.set_status("")
