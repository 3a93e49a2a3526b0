"""
どこで: `src/spiromint/core/surface.py`。
何を: RGBA ラスタと描画済み線分の記録を束ねた描画面 Surface、線分ラスタライズ、合成を提供する。
なぜ: レイヤー面・メイン面・最終合成を同じ表現で扱い、ウィンドウ無しでも検証できるようにするため。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numba import njit  # type: ignore[import-untyped]

from spiromint.core.palettes import ColorRGB, rgb01_to_rgb255

Point = tuple[float, float]


@dataclass(frozen=True, slots=True)
class Segment:
    """1 サブステップで描かれる線分。

    Parameters
    ----------
    start, end : Point
        キャンバス中心原点・y 下向きの座標（スケール・回転適用済み）。
    t : float
        終点の曲線位置。
    layer_index : int
        描き込み先レイヤー面のインデックス。
    color : ColorRGB
        線色 RGB（0..1）。
    """

    start: Point
    end: Point
    t: float
    layer_index: int
    color: ColorRGB


@njit(cache=True)
def _mix_channel(sc, dc, sa, da, oa):
    v = (float(sc) * sa + float(dc) * da * (1.0 - sa)) / oa
    return np.uint8(min(255.0, max(0.0, v + 0.5)))


@njit(cache=True)
def _blend_pixel(pixels, px, py, r, g, b, a):
    """1 ピクセルへ source-over で書き込む。"""
    h = pixels.shape[0]
    w = pixels.shape[1]
    if px < 0 or py < 0 or px >= w or py >= h:
        return
    if a >= 255:
        pixels[py, px, 0] = r
        pixels[py, px, 1] = g
        pixels[py, px, 2] = b
        pixels[py, px, 3] = 255
        return
    sa = a / 255.0
    da = pixels[py, px, 3] / 255.0
    oa = sa + da * (1.0 - sa)
    if oa <= 0.0:
        return
    pixels[py, px, 0] = _mix_channel(r, pixels[py, px, 0], sa, da, oa)
    pixels[py, px, 1] = _mix_channel(g, pixels[py, px, 1], sa, da, oa)
    pixels[py, px, 2] = _mix_channel(b, pixels[py, px, 2], sa, da, oa)
    pixels[py, px, 3] = np.uint8(min(255.0, oa * 255.0 + 0.5))


@njit(cache=True)
def _draw_segment_kernel(pixels, x0, y0, x1, y1, r, g, b, a, radius):
    """線分を DDA で標本化して描く（radius>=0.5 なら円盤スタンプ）。"""
    dx = x1 - x0
    dy = y1 - y0
    steps = int(max(abs(dx), abs(dy)) * 2.0) + 1
    stamp = int(np.ceil(radius - 0.5))
    r2 = radius * radius
    last_x = -(1 << 30)
    last_y = -(1 << 30)
    for i in range(steps + 1):
        f = i / steps
        fx = x0 + dx * f
        fy = y0 + dy * f
        px = int(np.floor(fx))
        py = int(np.floor(fy))
        if px == last_x and py == last_y:
            continue
        last_x = px
        last_y = py
        if stamp <= 0:
            _blend_pixel(pixels, px, py, r, g, b, a)
            continue
        for oy in range(-stamp, stamp + 1):
            for ox in range(-stamp, stamp + 1):
                if ox * ox + oy * oy <= r2:
                    _blend_pixel(pixels, px + ox, py + oy, r, g, b, a)


class Surface:
    """RGBA uint8 ラスタと線分記録を持つ描画面。

    Notes
    -----
    - ラスタは shape (H, W, 4)、行 0 が画像上端。
    - `segments` には描いた順に線分を記録する（SVG 出力やテストで参照）。
    """

    def __init__(
        self,
        size: tuple[int, int],
        *,
        background: ColorRGB | None = None,
        stroke_weight: float = 1.0,
    ) -> None:
        w, h = size
        if int(w) <= 0 or int(h) <= 0:
            raise ValueError("size は正の (width, height) である必要がある")
        if float(stroke_weight) <= 0:
            raise ValueError("stroke_weight は正の値である必要がある")
        self.size = (int(w), int(h))
        self.background = background
        self.stroke_weight = float(stroke_weight)
        self.pixels = np.zeros((self.size[1], self.size[0], 4), dtype=np.uint8)
        self.segments: list[Segment] = []
        self.clear()

    @property
    def center(self) -> Point:
        """キャンバス中心のピクセル座標を返す。"""

        return self.size[0] / 2.0, self.size[1] / 2.0

    def clear(self) -> None:
        """背景色（None なら透明）で塗り直し、線分記録を空にする。"""

        if self.background is None:
            self.pixels[...] = 0
        else:
            r, g, b = rgb01_to_rgb255(self.background)
            self.pixels[..., 0] = r
            self.pixels[..., 1] = g
            self.pixels[..., 2] = b
            self.pixels[..., 3] = 255
        self.segments.clear()

    def draw_segment(self, segment: Segment, *, alpha: int = 255) -> None:
        """線分をラスタへ描き、記録に追加する。"""

        cx, cy = self.center
        r, g, b = rgb01_to_rgb255(segment.color)
        _draw_segment_kernel(
            self.pixels,
            float(segment.start[0] + cx),
            float(segment.start[1] + cy),
            float(segment.end[0] + cx),
            float(segment.end[1] + cy),
            np.uint8(r),
            np.uint8(g),
            np.uint8(b),
            int(alpha),
            self.stroke_weight / 2.0,
        )
        self.segments.append(segment)

    def polylines(self) -> list[tuple[ColorRGB, list[Point]]]:
        """端点が連続し同色の線分をまとめた (色, 点列) のリストを返す。"""

        out: list[tuple[ColorRGB, list[Point]]] = []
        color: ColorRGB | None = None
        current: list[Point] = []
        for seg in self.segments:
            if current and color == seg.color and current[-1] == seg.start:
                current.append(seg.end)
                continue
            if color is not None and len(current) >= 2:
                out.append((color, current))
            color = seg.color
            current = [seg.start, seg.end]
        if color is not None and len(current) >= 2:
            out.append((color, current))
        return out

    def copy(self) -> Surface:
        """ラスタと記録を複製した Surface を返す。"""

        dup = Surface(self.size, background=self.background, stroke_weight=self.stroke_weight)
        dup.pixels[...] = self.pixels
        dup.segments = list(self.segments)
        return dup


def composite(
    layers: Sequence[Surface],
    *,
    background: ColorRGB | None = None,
) -> Surface:
    """レイヤー面を順に source-over 合成した新しい Surface を返す。

    Parameters
    ----------
    layers : Sequence[Surface]
        合成順（奥 → 手前）に並んだレイヤー面。寸法は揃っている必要がある。
    background : ColorRGB | None
        合成先の背景色。None なら透明背景。

    Raises
    ------
    ValueError
        レイヤーが空、または寸法が揃っていない場合。
    """

    if not layers:
        raise ValueError("合成するレイヤーが無い")
    size = layers[0].size
    for layer in layers:
        if layer.size != size:
            raise ValueError(f"レイヤー寸法が揃っていない: {layer.size} != {size}")

    out = Surface(size, background=background, stroke_weight=layers[0].stroke_weight)
    dst = out.pixels.astype(np.float32) / 255.0
    for layer in layers:
        src = layer.pixels.astype(np.float32) / 255.0
        sa = src[..., 3:4]
        da = dst[..., 3:4]
        oa = sa + da * (1.0 - sa)
        rgb = src[..., :3] * sa + dst[..., :3] * da * (1.0 - sa)
        safe = np.where(oa > 0.0, oa, 1.0)
        dst = np.concatenate([np.where(oa > 0.0, rgb / safe, 0.0), oa], axis=-1)
        out.segments.extend(layer.segments)
    out.pixels[...] = np.clip(np.rint(dst * 255.0), 0, 255).astype(np.uint8)
    return out


__all__ = ["Point", "Segment", "Surface", "composite"]
