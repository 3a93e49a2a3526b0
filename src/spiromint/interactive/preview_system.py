# どこで: `src/spiromint/interactive/preview_system.py`。
# 何を: プレビューの 1 tick 更新、キー操作（新規生成 / SVG / PNG / 録画）、キャプション組み立てを担当する。
# なぜ: pyglet ウィンドウから状態とファイル出力を分離し、表示なしで検証できるようにするため。

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from spiromint.core.renderer import PatternRenderer
from spiromint.core.surface import Surface
from spiromint.export.image import default_output_path, export_png
from spiromint.export.svg import export_svg
from spiromint.export.video import VideoRecorder, default_video_output_path

_logger = logging.getLogger(__name__)


class VideoRecordingSystem:
    """V キー録画の最小ステートマシン。"""

    def __init__(self, *, fps: float) -> None:
        self._fps = float(fps)
        self._recorder: VideoRecorder | None = None

    @property
    def is_recording(self) -> bool:
        """録画中なら True を返す。"""

        return self._recorder is not None

    @property
    def path(self) -> Path | None:
        recorder = self._recorder
        return None if recorder is None else recorder.path

    def start(self, *, output_path: Path, size: tuple[int, int]) -> None:
        """録画を開始する（録画中なら何もしない）。"""

        if self._recorder is not None:
            return
        if self._fps <= 0:
            raise ValueError("録画には fps > 0 が必要です")
        self._recorder = VideoRecorder(output_path=output_path, size=size, fps=self._fps)

    def write_frame(self, surface: Surface) -> None:
        """描画面の現在内容を 1 フレームとして書き込む。"""

        recorder = self._recorder
        if recorder is None:
            return
        recorder.write_frame(surface.pixels)

    def stop(self) -> Path | None:
        """録画を終了し、保存先を返す。"""

        recorder = self._recorder
        if recorder is None:
            return None
        self._recorder = None
        recorder.close()
        return recorder.path


class PreviewSystem:
    """PatternRenderer をプレビュー操作へ結び付ける。

    Notes
    -----
    完成時には最終合成を `last_final` / `last_metadata` に保持し、
    S / P キーは完成済みなら最終合成（透明）、描画中ならその時点のレイヤー面を保存する。
    """

    def __init__(self, renderer: PatternRenderer, *, fps: float) -> None:
        self.renderer = renderer
        self.recording = VideoRecordingSystem(fps=fps)
        self.last_final: Surface | None = None
        self.last_metadata: dict[str, Any] | None = None

    def on_render_complete(self, final: Surface, metadata: dict[str, Any]) -> None:
        """PatternRenderer の完成通知を受け取る。"""

        self.last_final = final
        self.last_metadata = metadata
        _logger.info("%s (%s)", metadata["name"], metadata["combinedRarity"])

    def new_pattern(self, seed: int | None = None) -> int:
        """新しい図柄を開始する（録画中なら録画を止める）。"""

        if self.recording.is_recording:
            self.toggle_recording()
        self.last_final = None
        self.last_metadata = None
        return self.renderer.regenerate(seed)

    def update(self) -> None:
        """1 tick 進め、録画中ならメイン面をフレームとして書き込む。"""

        self.renderer.tick()
        main = self.renderer.main_buffer
        if main is not None:
            self.recording.write_frame(main)

    def _export_surfaces(self) -> list[Surface]:
        if self.last_final is not None:
            return [self.last_final]
        return self.renderer.layer_buffers

    def save_svg(self) -> Path | None:
        seed = self.renderer.seed
        if seed is None:
            return None
        path = export_svg(self._export_surfaces(), default_output_path("svg", seed, "svg"))
        _logger.info("Saved SVG: %s", path)
        return path

    def save_png(self) -> Path | None:
        seed = self.renderer.seed
        if seed is None:
            return None
        return export_png(self._export_surfaces(), default_output_path("png", seed, "png"))

    def toggle_recording(self) -> None:
        """録画の開始/停止を切り替える。"""

        if self.recording.is_recording:
            self.recording.stop()
            return
        seed = self.renderer.seed
        main = self.renderer.main_buffer
        if seed is None or main is None:
            return
        self.recording.start(output_path=default_video_output_path(seed), size=main.size)

    def caption(self) -> str:
        """ウィンドウキャプション（seed / 曲線 / パレット / 進捗）を返す。"""

        r = self.renderer
        if r.spec is None or r.palette is None:
            return "Spiromint"
        text = (
            f"Spirograph #{r.seed} | {r.spec.family.value} | {r.palette.name} | "
            f"{r.state.progress}%"
        )
        if self.recording.is_recording:
            text += " | REC"
        return text

    def close(self) -> None:
        self.recording.stop()
