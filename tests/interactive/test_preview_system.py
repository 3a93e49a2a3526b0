"""PreviewSystem（キー操作・録画・キャプション）のテスト。pyglet は使わない。"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from spiromint.core.render_settings import RenderSettings
from spiromint.core.renderer import PatternRenderer
from spiromint.core.runtime_config import set_config_path
from spiromint.export import image
from spiromint.interactive import preview_system
from spiromint.interactive.preview_system import PreviewSystem


@pytest.fixture(autouse=True)
def _reset_runtime_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    set_config_path(None)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    yield
    set_config_path(None)


class _FakeRecorder:
    instances: list["_FakeRecorder"] = []

    def __init__(self, *, output_path: Path, size: tuple[int, int], fps: float) -> None:
        self.path = Path(output_path)
        self.size = size
        self.fps = fps
        self.frames = 0
        self.closed = False
        _FakeRecorder.instances.append(self)

    def write_frame(self, pixels) -> None:
        assert pixels.shape == (self.size[1], self.size[0], 4)
        self.frames += 1

    def close(self) -> None:
        self.closed = True


def _system() -> PreviewSystem:
    settings = RenderSettings(canvas_size=(100, 100), margin=10.0, tick_step=0.1, sub_steps=4)
    system: PreviewSystem

    def on_complete(final, meta) -> None:
        system.on_render_complete(final, meta)

    renderer = PatternRenderer(settings=settings, on_render_complete=on_complete)
    system = PreviewSystem(renderer, fps=settings.fps)
    return system


def test_caption_shows_seed_family_palette_and_progress() -> None:
    system = _system()
    assert system.caption() == "Spiromint"

    system.new_pattern(42)
    r = system.renderer
    assert r.spec is not None and r.palette is not None
    assert system.caption() == f"Spirograph #42 | {r.spec.family.value} | {r.palette.name} | 0%"

    for _ in range(5):
        system.update()
    assert system.caption().endswith(f"{r.state.progress}%")


def test_completion_keeps_final_image_and_metadata() -> None:
    system = _system()
    system.new_pattern(8)
    while not system.renderer.is_complete:
        system.update()
    assert system.last_final is system.renderer.final_image
    assert system.last_metadata is not None
    assert system.last_metadata["id"] == 8

    system.new_pattern(9)
    assert system.last_final is None
    assert system.last_metadata is None


def test_save_svg_uses_default_output_path() -> None:
    system = _system()
    assert system.save_svg() is None

    system.new_pattern(123)
    for _ in range(3):
        system.update()
    path = system.save_svg()
    assert path == Path("data") / "output" / "svg" / "spiro_00123.svg"
    assert path.exists()
    assert "<path" in path.read_text(encoding="utf-8")


def test_save_png_invokes_resvg(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        seen.append(list(cmd))
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout="", stderr="")

    monkeypatch.setattr(image.subprocess, "run", fake_run)

    system = _system()
    system.new_pattern(5)
    system.renderer.run_to_completion()
    path = system.save_png()
    assert path == Path("data") / "output" / "png" / "spiro_00005.png"
    assert seen and seen[0][0] == "resvg"


def test_toggle_recording_writes_frames_and_stops(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeRecorder.instances.clear()
    monkeypatch.setattr(preview_system, "VideoRecorder", _FakeRecorder)

    system = _system()
    system.new_pattern(77)
    system.toggle_recording()
    assert system.recording.is_recording
    assert system.caption().endswith("| REC")

    for _ in range(4):
        system.update()
    system.toggle_recording()
    assert not system.recording.is_recording

    (rec,) = _FakeRecorder.instances
    assert rec.path == Path("data") / "output" / "video" / "spiro_00077.mp4"
    assert rec.size == (100, 100)
    assert rec.frames == 4
    assert rec.closed


def test_new_pattern_stops_active_recording(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeRecorder.instances.clear()
    monkeypatch.setattr(preview_system, "VideoRecorder", _FakeRecorder)

    system = _system()
    system.new_pattern(1)
    system.toggle_recording()
    system.new_pattern(2)
    assert not system.recording.is_recording
    assert _FakeRecorder.instances[0].closed
