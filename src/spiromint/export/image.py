"""
どこで: `src/spiromint/export/image.py`。
何を: SVG を外部ラスタライザ（resvg）で PNG に変換して保存する関数を提供する。
なぜ: SVG を正（ソース）として保存し、PNG は高解像度・透明背景で再生成できる導線を用意するため。
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from spiromint.core.palettes import ColorRGB, rgb01_to_hex
from spiromint.core.runtime_config import output_root_dir, runtime_config
from spiromint.core.surface import Surface
from spiromint.export.svg import export_svg

_logger = logging.getLogger(__name__)


def default_output_path(kind: str, seed: int, ext: str) -> Path:
    """出力ファイルの既定保存パスを返す。

    Notes
    -----
    パスは `{output_root}/{kind}/spiro_{seed:05d}.{ext}`。
    """

    suffix = str(ext).lstrip(".")
    if not suffix:
        raise ValueError("ext が空")
    return output_root_dir() / str(kind) / f"spiro_{int(seed):05d}.{suffix}"


def export_png(
    surfaces: Sequence[Surface],
    path: str | Path,
    *,
    canvas_size: tuple[int, int] | None = None,
    background: ColorRGB | None = None,
) -> Path:
    """描画面列を PNG として保存する。

    Notes
    -----
    同名の SVG を隣に保存し、それを resvg でラスタライズする。
    background=None なら透明背景の PNG になる。
    """

    _path = Path(path)
    if _path.suffix.lower() != ".png":
        raise ValueError(f"PNG 以外の拡張子は未対応: {_path.suffix!r}")
    if canvas_size is None:
        if not surfaces:
            raise ValueError("surfaces が空のときは canvas_size が必須")
        canvas_size = surfaces[0].size

    svg_path = _path.with_suffix(".svg")
    export_svg(surfaces, svg_path, canvas_size=canvas_size, background=background)
    return rasterize_svg_to_png(
        svg_path,
        _path,
        output_size=png_output_size(canvas_size),
        background_color_rgb01=background,
    )


def png_output_size(canvas_size: tuple[int, int]) -> tuple[int, int]:
    """canvas_size を基準に PNG 出力ピクセルサイズを返す。"""

    canvas_w, canvas_h = canvas_size
    if int(canvas_w) <= 0 or int(canvas_h) <= 0:
        raise ValueError("canvas_size は正の (width, height) である必要がある")
    scale = float(runtime_config().png_scale)
    return int(int(canvas_w) * scale), int(int(canvas_h) * scale)


def _resvg_command(
    *,
    input_svg: Path,
    output_png: Path,
    output_size: tuple[int, int],
    background_color_rgb01: ColorRGB | None,
) -> list[str]:
    out_w, out_h = output_size
    if int(out_w) <= 0 or int(out_h) <= 0:
        raise ValueError("output_size は正の (width, height) である必要がある")
    cmd = [
        "resvg",
        "--width",
        str(int(out_w)),
        "--height",
        str(int(out_h)),
    ]
    if background_color_rgb01 is not None:
        cmd += ["--background", rgb01_to_hex(background_color_rgb01)]
    cmd += [str(input_svg), str(output_png)]
    return cmd


def rasterize_svg_to_png(
    svg_path: str | Path,
    png_path: str | Path,
    *,
    output_size: tuple[int, int],
    background_color_rgb01: ColorRGB | None = None,
) -> Path:
    """SVG を PNG として保存する。

    Parameters
    ----------
    svg_path : str or Path
        入力 SVG パス。
    png_path : str or Path
        出力 PNG パス。
    output_size : tuple[int, int]
        出力 PNG の (width, height) ピクセルサイズ。
    background_color_rgb01 : ColorRGB or None
        背景色 RGB（0..1）。None なら透明。

    Returns
    -------
    Path
        出力 PNG パス（正規化済み）。

    Raises
    ------
    RuntimeError
        resvg が見つからない、またはラスタライズに失敗した場合。
    """

    _svg_path = Path(svg_path)
    _png_path = Path(png_path)
    _png_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = _resvg_command(
        input_svg=_svg_path,
        output_png=_png_path,
        output_size=output_size,
        background_color_rgb01=background_color_rgb01,
    )
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise RuntimeError(
            "resvg が見つかりません（`resvg` をインストールして PATH を通してください）"
        ) from e

    if proc.returncode != 0:
        details = (proc.stderr or proc.stdout or "").strip()
        raise RuntimeError(f"resvg が失敗しました (code={proc.returncode}). {details}".strip())

    _logger.info("Saved PNG: %s", _png_path)
    return _png_path


__all__ = [
    "default_output_path",
    "export_png",
    "png_output_size",
    "rasterize_svg_to_png",
]
