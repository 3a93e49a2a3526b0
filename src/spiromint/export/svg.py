"""
どこで: `src/spiromint/export/svg.py`。
何を: 描画面（Surface）に記録された線分を SVG として保存する関数を提供する。
なぜ: ウィンドウ依存なしの headless export（SVG）を用意し、PNG の正（ソース）とするため。
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from spiromint.core.palettes import ColorRGB, rgb01_to_hex
from spiromint.core.surface import Point, Surface

_SVG_NS = "http://www.w3.org/2000/svg"
_FLOAT_DECIMALS = 3


def _fmt(value: float, *, decimals: int = _FLOAT_DECIMALS) -> str:
    """SVG 出力向けに float を決定的な文字列へ変換して返す。"""
    text = f"{float(value):.{int(decimals)}f}"
    if text.startswith("-0") and float(text) == 0.0:
        return text[1:]
    return text


def _polyline_to_d(points: Sequence[Point], *, origin: Point) -> str:
    """中心原点の点列を SVG path の d 属性へ変換して返す。"""
    ox, oy = origin
    x0, y0 = points[0]
    parts = [f"M {_fmt(x0 + ox)} {_fmt(y0 + oy)}"]
    for x, y in points[1:]:
        parts.append(f"L {_fmt(x + ox)} {_fmt(y + oy)}")
    return " ".join(parts)


def export_svg(
    surfaces: Sequence[Surface],
    path: str | Path,
    *,
    canvas_size: tuple[int, int] | None = None,
    background: ColorRGB | None = None,
) -> Path:
    """描画面の線分記録を SVG として保存する。

    Parameters
    ----------
    surfaces : Sequence[Surface]
        合成順（奥 → 手前）の描画面列。
    path : str or Path
        出力先パス。
    canvas_size : tuple[int, int] or None, optional
        キャンバス寸法。None の場合は先頭の描画面の寸法を使う。
    background : ColorRGB or None, optional
        背景色 RGB（0..1）。None なら透明（背景 rect を出さない）。

    Returns
    -------
    Path
        保存先パス（正規化済み）。

    Raises
    ------
    ValueError
        描画面が空で canvas_size も無い場合、または寸法が正でない場合。
    """
    _path = Path(path)
    if canvas_size is None:
        if not surfaces:
            raise ValueError("surfaces が空のときは canvas_size が必須")
        canvas_size = surfaces[0].size

    canvas_w, canvas_h = canvas_size
    if canvas_w <= 0 or canvas_h <= 0:
        raise ValueError("canvas_size は正の値である必要がある")
    origin = (canvas_w / 2.0, canvas_h / 2.0)

    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        (
            f'<svg xmlns="{_SVG_NS}" viewBox="0 0 {int(canvas_w)} {int(canvas_h)}" '
            f'width="{int(canvas_w)}" height="{int(canvas_h)}">'
        )
    )
    if background is not None:
        lines.append(
            f'  <rect width="100%" height="100%" fill="{rgb01_to_hex(background)}" />'
        )

    for surface in surfaces:
        stroke_width = _fmt(surface.stroke_weight)
        for color, points in surface.polylines():
            d = _polyline_to_d(points, origin=origin)
            lines.append(
                (
                    f'  <path d="{d}" fill="none" stroke="{rgb01_to_hex(color)}" '
                    f'stroke-width="{stroke_width}" stroke-linecap="round" '
                    f'stroke-linejoin="round" />'
                )
            )

    lines.append("</svg>")

    _path.parent.mkdir(parents=True, exist_ok=True)
    with _path.open("w", encoding="utf-8", newline="\n") as f:
        f.write("\n".join(lines) + "\n")

    return _path
