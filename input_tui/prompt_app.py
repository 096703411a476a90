"""
Prompt Window - the UI subprocess

Hosts one panel (text, freehand drawing or pixel art) and answers the
launcher with exactly one envelope on stdout. Textual draws on stderr, so
stdout carries nothing but that reply.

Entry point is main(), called by the generated window.py. It is the only
place that reads the input spec from the environment; the app itself receives
the spec as a constructor argument.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import IO, Mapping, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.theme import Theme
from textual.widgets import Footer, Static

from .constants import ENV_SPEC, ENV_LOG
from .errors import ValidationError
from .panels import create_panel, SubmissionReady, StatusChanged
from .protocol import (
    SubmissionResult, ReplyGate,
    submit_envelope, cancel_envelope, error_envelope, encode_envelope,
)
from .spec import InputSpec, normalize_spec, spec_from_dict

logger = logging.getLogger(__name__)

STYLES_DIR = Path(__file__).parent / "styles"


def default_stylesheets() -> list[Path]:
    return sorted(STYLES_DIR.glob("*.tcss"))


class InputPromptApp(App):
    """
    One-shot input prompt.

    Escape: Cancel
    Ctrl+Q: Cancel (quitting never leaves the caller without a reply)

    Whatever happens first (submit, cancel, a failure) becomes the reply;
    everything after that is ignored.
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", priority=True),
    ]

    def __init__(self, spec: InputSpec, stylesheet: Optional[Path] = None):
        super().__init__(css_path=stylesheet or default_stylesheets())
        self.spec = spec
        self.gate = ReplyGate()

        self.register_theme(
            Theme(
                name="prompt-dark",
                primary="#9b7bc4",
                secondary="#7a5ca8",
                warning="#c4a060",
                error="#c46b7b",
                success="#7bc48a",
                accent="#c4a0e8",
                background="#1e1033",
                surface="#2a1845",
                panel="#2a1845",
                dark=True,
            )
        )
        self.theme = "prompt-dark"

    def compose(self) -> ComposeResult:
        with Vertical(id="prompt-window"):
            yield Static(self.spec.message, id="prompt-message", markup=False)
            yield create_panel(self.spec)
            yield Static("", id="prompt-status", markup=False)
        yield Footer()

    # Replies

    def _respond(self, envelope: dict) -> None:
        if self.gate.respond(envelope):
            self.exit(envelope)
        else:
            logger.debug(f"Ignoring {envelope.get('action')}: already responded")

    def submit(self, result: SubmissionResult) -> None:
        if result.kind != self.spec.kind:
            self.fail(f"Panel produced a {result.kind} result for a {self.spec.kind} prompt")
            return
        self._respond(submit_envelope(result))

    def cancel(self) -> None:
        self._respond(cancel_envelope())

    def fail(self, message: str) -> None:
        self._respond(error_envelope(message))

    # Events

    def action_cancel(self) -> None:
        self.cancel()

    async def action_quit(self) -> None:
        self.cancel()

    def on_submission_ready(self, event: SubmissionReady) -> None:
        self.submit(event.result)

    def on_status_changed(self, event: StatusChanged) -> None:
        self.query_one("#prompt-status", Static).update(event.text)


# =============================================================================
# ENTRY POINT
# =============================================================================

def read_spec_from_environment(environ: Mapping[str, str]) -> InputSpec:
    """
    Read the input spec handed over by the launcher.

    The environment holds the path of a JSON file written by the launcher.
    A missing spec falls back to the default text prompt. A spec file that
    cannot be read or parsed raises ValidationError.
    """
    spec_path = environ.get(ENV_SPEC)
    if not spec_path:
        logger.warning(f"{ENV_SPEC} not set, using the default text prompt")
        return normalize_spec()

    try:
        raw = Path(spec_path).read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError("spec", f"could not read {spec_path} ({e})") from None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("spec", f"not valid JSON ({e})") from None
    return spec_from_dict(data)


def write_envelope(envelope: dict, stream: Optional[IO[str]] = None) -> None:
    stream = stream or sys.stdout
    stream.write(encode_envelope(envelope))
    stream.flush()


def _configure_logging(log_path: Optional[str]) -> None:
    # Never log to stdout or stderr: one is the reply, the other is the screen
    if not log_path:
        logging.getLogger().addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=log_path,
        level=logging.DEBUG,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )


def main(stylesheet: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """Run one prompt and write its envelope. Always exits 0 once a reply is written."""
    environ = os.environ if environ is None else environ
    _configure_logging(environ.get(ENV_LOG))

    try:
        spec = read_spec_from_environment(environ)
    except ValidationError as e:
        logger.warning(f"Rejected spec: {e}")
        write_envelope(error_envelope(str(e)))
        return 0

    app = InputPromptApp(spec, stylesheet=stylesheet)
    try:
        envelope = app.run()
    except Exception as e:
        logger.exception("Prompt window crashed")
        envelope = error_envelope(f"Prompt window failed: {e}")

    if envelope is None:
        # Exited without answering: a clean close is a cancel, anything else a failure
        if app.return_code:
            envelope = error_envelope(f"Prompt window exited with code {app.return_code}")
        else:
            envelope = cancel_envelope()

    write_envelope(envelope)
    return 0


if __name__ == "__main__":
    sys.exit(main())
