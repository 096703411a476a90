#!/usr/bin/env python3
"""Tests for the prompt launcher and collect_input.

The real prompt window needs a terminal, so these tests point the launcher
at a throwaway UI directory whose window.py is a scripted stand-in that
answers immediately.

Run with: pytest tests/test_launcher.py -v
"""

import asyncio
import base64
import json
import os
import sys
import textwrap
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from PIL import Image

from input_tui import __version__
from input_tui.cache import ImageCache
from input_tui.collect import collect_input, CollectedInput
from input_tui.errors import (
    BuildError,
    SpawnError,
    NonZeroExitError,
    EmptyReplyError,
    MalformedReplyError,
    PromptTimeoutError,
    InputCancelledError,
    InputFailedError,
)
from input_tui.launcher import (
    LaunchConfig,
    ensure_ui_built,
    launch_input_prompt,
    required_artifacts,
    ui_is_built,
)
from input_tui.protocol import TextResult, ImageResult
from input_tui.spec import normalize_spec

ECHO_MESSAGE = """
    import json, os
    spec = json.loads(open(os.environ["INPUT_TUI_SPEC"]).read())
    print(json.dumps({"action": "submit", "result": {"kind": "text", "value": spec["message"], "format": "text"}}))
"""

SUBMIT_HELLO = """
    print('{"action": "submit", "result": {"kind": "text", "value": "hello", "format": "text"}}')
"""

CANCEL = """
    print('{"action": "cancel"}')
"""

ERROR = """
    print('{"action": "error", "message": "window exploded"}')
"""

CRASH = """
    import sys
    sys.exit(1)
"""

CRASH_AFTER_REPLY = """
    import sys
    print('{"action": "cancel"}')
    sys.exit(2)
"""

SILENT = """
    pass
"""

GARBAGE = """
    print("Traceback (most recent call last):")
"""

SLOW = """
    import time
    time.sleep(30)
"""

# Replies with the path it was handed, so the test can check it was removed
SPEC_PATH = """
    import json, os
    print(json.dumps({"action": "submit", "result": {"kind": "text", "value": os.environ["INPUT_TUI_SPEC"], "format": "text"}}))
"""

# Records its pid in the file named by the message, then hangs
HANG_WITH_PID = """
    import json, os, time
    spec = json.loads(open(os.environ["INPUT_TUI_SPEC"]).read())
    with open(spec["message"], "w") as f:
        f.write(str(os.getpid()))
    time.sleep(30)
"""

# Answers with an 8x8 black PNG, or echoes the initial image if one was sent
PIXELART = """
    import base64, io, json, os
    from PIL import Image
    spec = json.loads(open(os.environ["INPUT_TUI_SPEC"]).read())
    url = spec.get("initialImage")
    if url is None:
        buffer = io.BytesIO()
        Image.new("RGB", (spec["gridWidth"], spec["gridHeight"]), "black").save(buffer, format="PNG")
        url = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()
    print(json.dumps({"action": "submit", "result": {"kind": "pixelart", "dataUrl": url, "mimeType": "image/png"}}))
"""


def make_ui(ui_dir: Path, script: str, version: str = __version__) -> None:
    ui_dir.mkdir(parents=True, exist_ok=True)
    (ui_dir / "window.py").write_text(textwrap.dedent(script))
    (ui_dir / "renderer.tcss").write_text("")
    (ui_dir / "index.json").write_text(json.dumps({"version": version}))


@pytest.fixture
def ui_dir(tmp_path):
    return tmp_path / "ui"


def config_for(ui_dir: Path, **kwargs) -> LaunchConfig:
    kwargs.setdefault("terminal", None)
    # Any rebuild attempt fails loudly instead of touching the real toolchain
    kwargs.setdefault("build_commands", ((sys.executable, "-c", "import sys; sys.exit(9)"),))
    return LaunchConfig(ui_dir=ui_dir, **kwargs)


def launch(spec, config):
    return asyncio.run(launch_input_prompt(spec, config))


class TestLaunchReplies:
    """Each kind of reply maps to a result or a typed error."""

    def test_text_submit(self, ui_dir):
        make_ui(ui_dir, SUBMIT_HELLO)
        result = launch(normalize_spec("text"), config_for(ui_dir))
        assert result == TextResult(value="hello", format="text")

    def test_spec_travels_in_environment(self, ui_dir):
        make_ui(ui_dir, ECHO_MESSAGE)
        result = launch(normalize_spec("text", message="What is your name?"), config_for(ui_dir))
        assert result.value == "What is your name?"

    def test_cancel(self, ui_dir):
        make_ui(ui_dir, CANCEL)
        with pytest.raises(InputCancelledError):
            launch(normalize_spec("text"), config_for(ui_dir))

    def test_error(self, ui_dir):
        make_ui(ui_dir, ERROR)
        with pytest.raises(InputFailedError) as exc_info:
            launch(normalize_spec("text"), config_for(ui_dir))
        assert exc_info.value.reason == "window exploded"

    def test_exit_code_without_output(self, ui_dir):
        make_ui(ui_dir, CRASH)
        with pytest.raises(NonZeroExitError) as exc_info:
            launch(normalize_spec("text"), config_for(ui_dir))
        assert exc_info.value.returncode == 1

    def test_exit_code_wins_over_output(self, ui_dir):
        make_ui(ui_dir, CRASH_AFTER_REPLY)
        with pytest.raises(NonZeroExitError):
            launch(normalize_spec("text"), config_for(ui_dir))

    def test_empty_output(self, ui_dir):
        make_ui(ui_dir, SILENT)
        with pytest.raises(EmptyReplyError):
            launch(normalize_spec("text"), config_for(ui_dir))

    def test_malformed_output(self, ui_dir):
        make_ui(ui_dir, GARBAGE)
        with pytest.raises(MalformedReplyError):
            launch(normalize_spec("text"), config_for(ui_dir))

    def test_kind_mismatch(self, ui_dir):
        make_ui(ui_dir, SUBMIT_HELLO)
        with pytest.raises(MalformedReplyError):
            launch(normalize_spec("pixelart"), config_for(ui_dir))

    def test_timeout_kills_prompt(self, ui_dir):
        make_ui(ui_dir, SLOW)
        with pytest.raises(PromptTimeoutError):
            launch(normalize_spec("text"), config_for(ui_dir, timeout=0.5))

    def test_spawn_failure(self, ui_dir, tmp_path):
        make_ui(ui_dir, SUBMIT_HELLO)
        config = config_for(ui_dir, python=str(tmp_path / "no-such-python"))
        with pytest.raises(SpawnError):
            launch(normalize_spec("text"), config)

    def test_initial_image_is_sent_as_data_url(self, ui_dir, tmp_path):
        make_ui(ui_dir, PIXELART)
        picture = tmp_path / "start.png"
        Image.new("RGB", (8, 8), "red").save(picture)

        spec = normalize_spec("pixelart", gridWidth=8, gridHeight=8, initialImage=str(picture))
        result = launch(spec, config_for(ui_dir))

        assert isinstance(result, ImageResult)
        assert result.data_url == "data:image/png;base64," + base64.b64encode(picture.read_bytes()).decode()

    def test_missing_initial_image(self, ui_dir, tmp_path):
        make_ui(ui_dir, PIXELART)
        spec = normalize_spec("pixelart", initialImage=str(tmp_path / "missing.png"))
        with pytest.raises(InputFailedError):
            launch(spec, config_for(ui_dir))

    def test_large_initial_image(self, ui_dir, tmp_path):
        make_ui(ui_dir, PIXELART)
        picture = tmp_path / "noise.png"
        # Random pixels barely compress, so the data URL runs to a few hundred KB
        Image.frombytes("RGB", (300, 300), os.urandom(300 * 300 * 3)).save(picture)
        assert picture.stat().st_size > 200 * 1024

        spec = normalize_spec("pixelart", gridWidth=8, gridHeight=8, initialImage=str(picture))
        result = launch(spec, config_for(ui_dir))

        assert result.data_url == "data:image/png;base64," + base64.b64encode(picture.read_bytes()).decode()

    def test_spec_file_is_removed(self, ui_dir):
        make_ui(ui_dir, SPEC_PATH)
        result = launch(normalize_spec("text"), config_for(ui_dir))

        spec_file = Path(result.value)
        assert spec_file.name.startswith("input-tui-spec-")
        assert not spec_file.exists()

    def test_cancelled_launch_reaps_prompt(self, ui_dir, tmp_path):
        make_ui(ui_dir, HANG_WITH_PID)
        pid_file = tmp_path / "prompt.pid"
        spec = normalize_spec("text", message=str(pid_file))

        async def start_then_cancel():
            task = asyncio.create_task(launch_input_prompt(spec, config_for(ui_dir)))
            for _ in range(200):
                if pid_file.exists() and pid_file.read_text():
                    break
                await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return int(pid_file.read_text())

        pid = asyncio.run(start_then_cancel())
        # Killed and waited for, so not even a zombie is left
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestBuildOnDemand:
    """Missing artifacts trigger a build with toolchain fallback."""

    def test_required_artifacts(self, ui_dir):
        names = [path.name for path in required_artifacts(ui_dir)]
        assert names == ["window.py", "renderer.tcss", "index.json"]

    def test_built_ui_is_left_alone(self, ui_dir):
        make_ui(ui_dir, SUBMIT_HELLO)
        asyncio.run(ensure_ui_built(config_for(ui_dir)))
        assert "hello" in (ui_dir / "window.py").read_text()

    def test_missing_artifact_means_unbuilt(self, ui_dir):
        make_ui(ui_dir, SUBMIT_HELLO)
        (ui_dir / "renderer.tcss").unlink()
        assert not ui_is_built(ui_dir)

    def test_stale_version_means_unbuilt(self, ui_dir):
        make_ui(ui_dir, SUBMIT_HELLO, version="0.0.0")
        assert not ui_is_built(ui_dir)

    def test_falls_back_to_second_toolchain(self, ui_dir):
        config = config_for(ui_dir, build_commands=(
            ("definitely-not-a-build-tool",),
            (sys.executable, "-m", "input_tui.build_ui", str(ui_dir)),
        ))
        asyncio.run(ensure_ui_built(config))
        assert ui_is_built(ui_dir)

    def test_all_toolchains_fail(self, ui_dir):
        config = config_for(ui_dir, build_commands=(
            ("definitely-not-a-build-tool",),
            (sys.executable, "-c", "import sys; sys.exit(3)"),
        ))
        with pytest.raises(BuildError):
            asyncio.run(ensure_ui_built(config))

    def test_build_that_writes_nothing(self, ui_dir):
        config = config_for(ui_dir, build_commands=((sys.executable, "-c", "pass"),))
        with pytest.raises(BuildError):
            asyncio.run(ensure_ui_built(config))

    def test_concurrent_first_launches_build_once(self, ui_dir, tmp_path):
        counter = tmp_path / "builds.txt"
        build_script = (
            "import sys, pathlib; "
            f"pathlib.Path({str(counter)!r}).open('a').write('x'); "
            "from input_tui.build_ui import main; sys.exit(main([sys.argv[1]]))"
        )
        config = config_for(ui_dir, build_commands=((sys.executable, "-c", build_script, str(ui_dir)),))

        async def run_both():
            await asyncio.gather(ensure_ui_built(config), ensure_ui_built(config))

        asyncio.run(run_both())
        assert counter.read_text() == "x"


class TestLaunchConfig:
    """Environment overrides."""

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("INPUT_TUI_UI_DIR", str(tmp_path))
        monkeypatch.setenv("INPUT_TUI_TERMINAL", "")
        monkeypatch.setenv("INPUT_TUI_TIMEOUT", "12.5")
        config = LaunchConfig.from_env()
        assert config.ui_dir == tmp_path
        assert config.terminal is None
        assert config.timeout == 12.5
        assert config.entry_script == tmp_path / "window.py"

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("INPUT_TUI_CACHE_DIR", str(tmp_path))
        monkeypatch.delenv("INPUT_TUI_UI_DIR", raising=False)
        monkeypatch.delenv("INPUT_TUI_TERMINAL", raising=False)
        monkeypatch.delenv("INPUT_TUI_TIMEOUT", raising=False)
        config = LaunchConfig.from_env()
        assert config.ui_dir == tmp_path / "ui"
        assert config.terminal == "/dev/tty"
        assert config.timeout is None
        assert config.toolchains()[0][:2] == ("uv", "run")
        assert config.toolchains()[1][0] == sys.executable

    @pytest.mark.parametrize("raw", ["soon", "0", "-3"])
    def test_unusable_timeout_is_ignored(self, monkeypatch, raw):
        monkeypatch.setenv("INPUT_TUI_TIMEOUT", raw)
        assert LaunchConfig.from_env().timeout is None


class TestCollectInput:
    """End to end: normalize, launch, classify, cache."""

    def test_text(self, ui_dir, tmp_path):
        make_ui(ui_dir, SUBMIT_HELLO)
        collected = asyncio.run(collect_input(
            config=config_for(ui_dir), cache=ImageCache(tmp_path / "cache"),
        ))
        assert collected == CollectedInput(result=TextResult("hello"))
        assert collected.text == "hello"

    def test_pixelart_is_cached(self, ui_dir, tmp_path):
        make_ui(ui_dir, PIXELART)
        cache = ImageCache(tmp_path / "cache")
        collected = asyncio.run(collect_input(
            "pixelart", config=config_for(ui_dir), cache=cache, gridWidth=8, gridHeight=8,
        ))

        assert collected.path is not None
        assert collected.path.parent == cache.images_dir.resolve()
        with Image.open(collected.path) as image:
            assert image.size == (8, 8)
            assert set(image.convert("RGB").getdata()) == {(0, 0, 0)}

    def test_cancel_propagates(self, ui_dir, tmp_path):
        make_ui(ui_dir, CANCEL)
        with pytest.raises(InputCancelledError):
            asyncio.run(collect_input(config=config_for(ui_dir), cache=ImageCache(tmp_path / "cache")))
