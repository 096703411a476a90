"""
Prompt Launcher

Runs one prompt subprocess per call and returns its single reply:

    ensure_ui_built()      make sure the built UI artifacts exist
    launch_input_prompt()  spawn the UI, wait for it, classify its reply

The input spec reaches the subprocess out of band, never through argv or
stdin: it is written to a temp file whose path goes in INPUT_TUI_SPEC.
The subprocess answers on stdout; everything human-facing (the Textual
screen itself, tracebacks) goes to the terminal on stdin/stderr, so the
caller's own stdio is never touched.
"""

import asyncio
import json
import logging
import os
import subprocess
import sys
import tempfile
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Optional

from . import __version__
from .cache import get_cache_dir
from .constants import (
    CACHE_UI_SUBDIR, UI_ENTRY_SCRIPT, UI_STYLESHEET, UI_MANIFEST,
    ENV_SPEC, ENV_UI_DIR, ENV_TERMINAL, ENV_TIMEOUT, DEFAULT_TERMINAL,
)
from .errors import BuildError, SpawnError, NonZeroExitError, PromptTimeoutError
from .protocol import SubmissionResult, parse_reply, classify_response
from .spec import InputSpec, spec_to_dict, resolve_initial_image

logger = logging.getLogger(__name__)

# Where the package lives (a checkout or site-packages)
PROJECT_ROOT = Path(__file__).parent.parent.resolve()

BUILD_MODULE = "input_tui.build_ui"

SPEC_FILE_PREFIX = "input-tui-spec-"


def default_build_commands(ui_dir: Path) -> tuple[tuple[str, ...], ...]:
    """Build toolchains in order of preference: uv first, then this interpreter."""
    return (
        ("uv", "run", "python", "-m", BUILD_MODULE, str(ui_dir)),
        (sys.executable, "-m", BUILD_MODULE, str(ui_dir)),
    )


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    try:
        timeout = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {ENV_TIMEOUT}={raw!r}: not a number")
        return None
    return timeout if timeout > 0 else None


@dataclass(frozen=True)
class LaunchConfig:
    """Everything the launcher needs to know, gathered up front."""

    ui_dir: Path
    python: str = sys.executable
    terminal: Optional[str] = None
    timeout: Optional[float] = None
    build_commands: tuple[tuple[str, ...], ...] = ()

    @classmethod
    def from_env(cls) -> "LaunchConfig":
        ui_dir = os.environ.get(ENV_UI_DIR)
        return cls(
            ui_dir=Path(ui_dir).expanduser() if ui_dir else get_cache_dir() / CACHE_UI_SUBDIR,
            # An empty INPUT_TUI_TERMINAL means "inherit stdio"
            terminal=os.environ.get(ENV_TERMINAL, DEFAULT_TERMINAL) or None,
            timeout=_parse_timeout(os.environ.get(ENV_TIMEOUT)),
        )

    @property
    def entry_script(self) -> Path:
        return self.ui_dir / UI_ENTRY_SCRIPT

    def toolchains(self) -> tuple[tuple[str, ...], ...]:
        return self.build_commands or default_build_commands(self.ui_dir)


# =============================================================================
# BUILD ON DEMAND
# =============================================================================

# One lock per event loop: asyncio locks cannot be shared between loops
_build_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


def _build_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _build_locks.get(loop)
    if lock is None:
        lock = _build_locks[loop] = asyncio.Lock()
    return lock


def required_artifacts(ui_dir: Path) -> list[Path]:
    """Entry script, stylesheet bundle and manifest."""
    return [ui_dir / UI_ENTRY_SCRIPT, ui_dir / UI_STYLESHEET, ui_dir / UI_MANIFEST]


def ui_is_built(ui_dir: Path) -> bool:
    """True if every artifact exists and was built by this version."""
    if not all(path.exists() for path in required_artifacts(ui_dir)):
        return False
    try:
        manifest = json.loads((ui_dir / UI_MANIFEST).read_text())
    except (OSError, json.JSONDecodeError):
        return False
    return isinstance(manifest, dict) and manifest.get("version") == __version__


async def _run_build_command(command: tuple[str, ...]) -> None:
    """Run one build toolchain. Its stdout is discarded, stderr inherited."""
    logger.debug(f"Building prompt UI: {' '.join(command)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            cwd=PROJECT_ROOT,
        )
    except OSError as e:
        raise BuildError(f"{command[0]} could not be started: {e}") from e

    returncode = await process.wait()
    if returncode != 0:
        raise BuildError(f"{' '.join(command)} exited with code {returncode}")


async def ensure_ui_built(config: LaunchConfig) -> None:
    """
    Build the UI artifacts if any are missing.

    Tries each toolchain in turn and raises BuildError when none succeeds.
    Concurrent callers wait for a build already in progress instead of
    starting their own.
    """
    async with _build_lock():
        if ui_is_built(config.ui_dir):
            return

        failures = []
        for command in config.toolchains():
            try:
                await _run_build_command(command)
                break
            except BuildError as e:
                logger.warning(f"UI build failed: {e}")
                failures.append(str(e))
        else:
            raise BuildError("Could not build the prompt UI: " + "; ".join(failures))

        if not ui_is_built(config.ui_dir):
            raise BuildError(f"UI build finished but artifacts are missing in {config.ui_dir}")
        logger.info(f"Prompt UI built in {config.ui_dir}")


# =============================================================================
# SPAWN AND REPLY
# =============================================================================

def _open_terminal(path: Optional[str]) -> Optional[IO[bytes]]:
    """Open the terminal the UI should draw on, or None to inherit stdio."""
    if not path:
        return None
    try:
        return open(path, "r+b", buffering=0)
    except OSError as e:
        logger.debug(f"No usable terminal at {path}: {e}")
        return None


def _write_spec_file(spec: InputSpec) -> Path:
    """
    Write the spec JSON to a private temp file and return its path.

    An initial image can be far larger than a single environment string may
    be, so only the file's path goes into the environment.
    """
    handle = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        prefix=SPEC_FILE_PREFIX,
        suffix=".json",
        delete=False,
    )
    with handle:
        json.dump(spec_to_dict(spec), handle)
    return Path(handle.name)


async def _run_prompt_process(spec: InputSpec, config: LaunchConfig) -> str:
    """Spawn the UI, buffer its reply channel until exit, return the text."""
    try:
        spec_file = _write_spec_file(spec)
    except OSError as e:
        raise SpawnError(f"Could not hand the spec to the prompt process: {e}") from e

    env = dict(os.environ)
    env[ENV_SPEC] = str(spec_file)

    terminal = _open_terminal(config.terminal)
    try:
        try:
            process = await asyncio.create_subprocess_exec(
                config.python, str(config.entry_script),
                stdin=terminal,
                stdout=subprocess.PIPE,
                stderr=terminal,
                env=env,
            )
        except OSError as e:
            raise SpawnError(f"Failed to start prompt process: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=config.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise PromptTimeoutError(config.timeout) from None
        except asyncio.CancelledError:
            process.kill()
            await asyncio.shield(process.wait())
            raise
    finally:
        if terminal is not None:
            terminal.close()
        spec_file.unlink(missing_ok=True)

    if process.returncode != 0:
        raise NonZeroExitError(process.returncode)
    return stdout.decode("utf-8", errors="replace")


async def launch_input_prompt(spec: InputSpec, config: Optional[LaunchConfig] = None) -> SubmissionResult:
    """
    Show one prompt and return what the user submitted.

    Raises InputCancelledError if the user backed out, InputFailedError if
    the prompt reported a failure, and a LaunchError subclass when the
    subprocess could not be run or its reply could not be trusted.
    """
    config = config or LaunchConfig.from_env()
    await ensure_ui_built(config)
    spec = resolve_initial_image(spec)

    reply = await _run_prompt_process(spec, config)
    envelope = parse_reply(reply)
    return classify_response(envelope, expected_kind=spec.kind)
