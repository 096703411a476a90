"""
Prompt Reply Protocol

The UI subprocess answers with exactly one line of JSON on stdout, the
envelope:

    {"action": "submit", "result": {...}}
    {"action": "cancel"}
    {"action": "error", "message": "..."}

This module builds envelopes (subprocess side), parses and classifies them
(launcher side), and holds the small state machine that makes sure a
subprocess never answers twice.
"""

import base64
import binascii
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .constants import KIND_TEXT, KIND_IMAGE, KIND_PIXELART, TEXT_FORMATS
from .errors import (
    EmptyReplyError, MalformedReplyError, InputCancelledError, InputFailedError,
)


ACTION_SUBMIT = "submit"
ACTION_CANCEL = "cancel"
ACTION_ERROR = "error"


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class TextResult:
    value: str
    format: str = "text"
    kind: str = KIND_TEXT

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": self.value, "format": self.format}


@dataclass(frozen=True)
class ImageResult:
    kind: str
    data_url: str
    mime_type: str

    def to_dict(self) -> dict:
        return {"kind": self.kind, "dataUrl": self.data_url, "mimeType": self.mime_type}

    def decode(self) -> tuple[str, bytes]:
        """(media type, raw bytes) of the embedded image."""
        return decode_data_url(self.data_url)


SubmissionResult = Union[TextResult, ImageResult]


def result_from_dict(data: Any) -> SubmissionResult:
    """Validate a wire-format submission result. Raises MalformedReplyError."""
    if not isinstance(data, dict):
        raise MalformedReplyError("Submit envelope has no result object")

    kind = data.get("kind")
    if kind == KIND_TEXT:
        value = data.get("value")
        fmt = data.get("format", "text")
        if not isinstance(value, str) or fmt not in TEXT_FORMATS:
            raise MalformedReplyError("Text result needs a string value and a known format")
        return TextResult(value=value, format=fmt)

    if kind in (KIND_IMAGE, KIND_PIXELART):
        data_url = data.get("dataUrl")
        mime_type = data.get("mimeType")
        if not isinstance(data_url, str) or not isinstance(mime_type, str):
            raise MalformedReplyError("Image result needs dataUrl and mimeType strings")
        return ImageResult(kind=kind, data_url=data_url, mime_type=mime_type)

    raise MalformedReplyError(f"Unknown result kind: {kind!r}")


# =============================================================================
# DATA URLS
# =============================================================================

_DATA_URL_RE = re.compile(r"^data:([^;,]*)((?:;[^;,]*)*),(.*)$", re.DOTALL)


def encode_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into (media type, bytes). Raises ValueError."""
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ValueError("Not a data URL")
    mime_type, params, payload = match.groups()
    if ";base64" not in params:
        raise ValueError("Data URL is not base64 encoded")
    payload = re.sub(r"\s+", "", payload)
    try:
        raw = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return mime_type or "text/plain", raw


# =============================================================================
# ENVELOPES
# =============================================================================

def submit_envelope(result: SubmissionResult) -> dict:
    return {"action": ACTION_SUBMIT, "result": result.to_dict()}


def cancel_envelope() -> dict:
    return {"action": ACTION_CANCEL}


def error_envelope(message: str) -> dict:
    return {"action": ACTION_ERROR, "message": message}


def encode_envelope(envelope: dict) -> str:
    """One line of JSON, newline terminated."""
    return json.dumps(envelope, separators=(",", ":")) + "\n"


def parse_reply(text: str) -> dict:
    """
    Parse everything the subprocess wrote to its reply channel.

    The buffer must hold exactly one JSON object with an "action" key.
    """
    stripped = text.strip()
    if not stripped:
        raise EmptyReplyError()

    try:
        envelope = json.loads(stripped)
    except json.JSONDecodeError:
        preview = stripped if len(stripped) <= 200 else stripped[:200] + "..."
        raise MalformedReplyError(f"Invalid JSON response: {preview}") from None

    if not isinstance(envelope, dict):
        raise MalformedReplyError("Reply is not a JSON object")
    if "action" not in envelope:
        raise MalformedReplyError("Reply has no action")
    return envelope


def classify_response(envelope: dict, expected_kind: Optional[str] = None) -> SubmissionResult:
    """
    Map a parsed envelope to a result, or raise the matching error.

    submit -> the result (its kind must match the input spec that was sent)
    cancel -> InputCancelledError
    error  -> InputFailedError with the subprocess's message
    other  -> InputFailedError naming the action
    """
    action = envelope.get("action")

    if action == ACTION_SUBMIT:
        result = result_from_dict(envelope.get("result"))
        if expected_kind is not None and result.kind != expected_kind:
            raise MalformedReplyError(
                f"Prompt for {expected_kind} input answered with a {result.kind} result"
            )
        return result

    if action == ACTION_CANCEL:
        raise InputCancelledError()

    if action == ACTION_ERROR:
        message = envelope.get("message")
        raise InputFailedError(str(message) if message else "Prompt reported an error")

    raise InputFailedError(f"Unknown action: {action}")


# =============================================================================
# REPLY GATE
# =============================================================================

class ReplyState(Enum):
    AWAITING_INPUT = "awaiting_input"
    RESPONDED = "responded"


class ReplyGate:
    """
    One-way latch in front of the reply channel.

    Submit, escape, window close and crashes can all try to answer; only
    the first envelope is kept and the gate never reopens.
    """

    def __init__(self) -> None:
        self.state = ReplyState.AWAITING_INPUT
        self.envelope: Optional[dict] = None

    @property
    def responded(self) -> bool:
        return self.state is ReplyState.RESPONDED

    def respond(self, envelope: dict) -> bool:
        """Record the envelope. Returns False if an answer was already given."""
        if self.responded:
            return False
        self.envelope = envelope
        self.state = ReplyState.RESPONDED
        return True
