# どこで: `src/spiromint/export/video.py`。
# 何を: ffmpeg に raw RGBA フレームを流し、描画アニメーションを動画として保存する録画器を提供する。
# なぜ: 図柄が描かれていく過程を mp4 / gif として残せるようにするため。

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import numpy as np

from spiromint.export.image import default_output_path

_logger = logging.getLogger(__name__)

VIDEO_FORMATS = ("mp4", "gif")


def default_video_output_path(seed: int, *, ext: str = "mp4") -> Path:
    """seed に基づく動画の既定保存パス `{output_root}/video/spiro_{seed:05d}.{ext}` を返す。"""

    suffix = str(ext).lstrip(".") or "mp4"
    return default_output_path("video", seed, suffix)


def _ffmpeg_command(
    *,
    output_path: Path,
    size: tuple[int, int],
    fps: float,
) -> list[str]:
    width, height = size
    fmt = output_path.suffix.lower().lstrip(".")
    if fmt not in VIDEO_FORMATS:
        raise ValueError(f"未対応の動画フォーマット: {output_path.suffix!r}")

    cmd = [
        "ffmpeg",
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgba",
        "-video_size",
        f"{int(width)}x{int(height)}",
        "-framerate",
        str(float(fps)),
        "-i",
        "-",
        "-an",
    ]
    if fmt == "gif":
        cmd += ["-c:v", "gif"]
    else:
        cmd += ["-c:v", "libx264", "-pix_fmt", "yuv420p"]
    cmd.append(str(output_path))
    return cmd


class VideoRecorder:
    """RGBA フレーム列（Surface.pixels）を動画へ保存する録画器。"""

    def __init__(
        self,
        *,
        output_path: Path,
        size: tuple[int, int],
        fps: float,
    ) -> None:
        """録画器を初期化して ffmpeg を起動する。"""

        _output_path = Path(output_path)

        _fps = float(fps)
        if _fps <= 0:
            raise ValueError("fps は正の値である必要がある")

        width, height = size
        if int(width) <= 0 or int(height) <= 0:
            raise ValueError("size は正の (width, height) である必要がある")

        self.path = _output_path
        self.size = (int(width), int(height))
        self.fps = _fps
        self.frame_count = 0
        self._proc: subprocess.Popen[bytes] | None = None

        cmd = _ffmpeg_command(output_path=self.path, size=self.size, fps=self.fps)
        _output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise RuntimeError("ffmpeg が見つかりません（PATH を確認してください）") from e

        if self._proc.stdin is None:
            raise RuntimeError("ffmpeg stdin pipe の作成に失敗しました")
        _logger.info("Recording started: %s", self.path)

    @property
    def is_recording(self) -> bool:
        return self._proc is not None

    def write_frame(self, pixels: np.ndarray) -> None:
        """1 フレーム分の RGBA 配列 shape (H, W, 4) を書き込む。"""

        proc = self._proc
        if proc is None:
            raise RuntimeError("録画は終了しています")
        expected = (self.size[1], self.size[0], 4)
        if tuple(pixels.shape) != expected:
            raise ValueError(
                f"frame shape が想定と一致しません: got={tuple(pixels.shape)}, expected={expected}"
            )
        stdin = proc.stdin
        if stdin is None:
            raise RuntimeError("ffmpeg stdin pipe が閉じられています")
        stdin.write(np.ascontiguousarray(pixels, dtype=np.uint8).tobytes())
        self.frame_count += 1

    def close(self) -> None:
        """録画を終了し、ffmpeg を待つ。"""

        proc = self._proc
        if proc is None:
            return

        try:
            # communicate() は stdin を flush してから close する。
            _stdout, stderr = proc.communicate(input=b"")
        finally:
            self._proc = None

        if proc.returncode != 0:
            details = ""
            if stderr:
                details = stderr.decode("utf-8", errors="replace").strip()
            raise RuntimeError(
                f"ffmpeg が失敗しました (code={proc.returncode}). {details}".strip()
            )
        _logger.info("Saved video: %s (%d frames)", self.path, self.frame_count)


__all__ = ["VIDEO_FORMATS", "VideoRecorder", "default_video_output_path"]
