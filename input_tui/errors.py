"""
Input TUI - Error Types

Every failure a caller can see derives from InputError. A cancelled prompt
is reported with InputCancelledError, which deliberately sits outside the
InputFailedError branch so "the user declined" can be told apart from a
broken prompt.
"""


class InputError(Exception):
    """Base class for all input prompt errors."""


class ValidationError(InputError):
    """A spec field is outside its contract."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class BuildError(InputError):
    """UI artifacts are missing and no build toolchain could produce them."""


class LaunchError(InputError):
    """The prompt subprocess could not deliver a usable reply."""


class SpawnError(LaunchError):
    """The prompt subprocess failed to start."""


class NonZeroExitError(LaunchError):
    """The prompt subprocess exited with a non-zero code."""

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        super().__init__(f"Prompt process exited with code {returncode}")


class EmptyReplyError(LaunchError):
    """The prompt subprocess exited cleanly but wrote nothing."""

    def __init__(self) -> None:
        super().__init__("No response from prompt process")


class MalformedReplyError(LaunchError):
    """The reply is not a single JSON envelope."""


class PromptTimeoutError(LaunchError):
    """The prompt subprocess outlived the caller's deadline."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Prompt did not answer within {timeout:g} seconds")


class InputCancelledError(InputError):
    """The user closed or escaped the prompt without submitting."""

    def __init__(self) -> None:
        super().__init__("User cancelled the input")


class InputFailedError(InputError):
    """The prompt reported a failure, or answered with an unknown action."""

    def __init__(self, message: str) -> None:
        self.reason = message
        super().__init__(f"Input collection failed: {message}")


class CacheWriteError(InputError):
    """An exported image could not be persisted."""
