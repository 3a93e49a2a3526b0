"""
どこで: `src/spiromint/core/compositor.py`。
何を: 曲線位置 t を 1 tick ずつ進めて線分を生成する純関数 `tick()` と、
      それをレイヤー面・メイン面へ適用して最終合成を作る Compositor を提供する。
なぜ: 描画状態を明示的な値（RenderState）として扱い、表示面なしで決定的に検証できるようにするため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum

import numpy as np

from spiromint.core.curves import TWO_PI, CurveSpec
from spiromint.core.evaluator import positions, scale_factor
from spiromint.core.palettes import ColorRGB, Palette, hex_to_rgb01
from spiromint.core.render_settings import LayerPolicy, RenderSettings
from spiromint.core.surface import Point, Segment, Surface, composite

_logger = logging.getLogger(__name__)


class RenderPhase(str, Enum):
    """Compositor の状態。"""

    IDLE = "idle"
    DRAWING = "drawing"
    COMPLETE = "complete"


def layer_breakpoints(max_t: float, n: int) -> tuple[float, ...]:
    """[0, maxT] を n 等分した切り替え位置列を返す。

    Notes
    -----
    `breakpoints[i] = (i+1)/n * maxT`。末尾は maxT 自身（切り替えには使わない番兵）。
    """

    count = int(n)
    if count < 1:
        raise ValueError("n は 1 以上である必要がある")
    mt = float(max_t)
    points = [(i + 1) / count * mt for i in range(count - 1)]
    points.append(mt)
    return tuple(points)


@dataclass(frozen=True, slots=True)
class RenderPlan:
    """1 seed 分の描画計画（生成時に 1 度だけ作る不変値）。"""

    spec: CurveSpec
    palette: Palette
    scale: float
    breakpoints: tuple[float, ...]
    tick_step: float
    sub_steps: int
    policy: LayerPolicy
    canvas_size: tuple[int, int]
    stroke_weight: float
    background_color: ColorRGB
    colors_rgb: tuple[ColorRGB, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.colors_rgb:
            rgb = tuple(hex_to_rgb01(c) for c in self.palette.colors)
            object.__setattr__(self, "colors_rgb", rgb)

    @property
    def max_t(self) -> float:
        return float(self.spec.max_t)

    @property
    def layer_count(self) -> int:
        """レイヤー面の枚数（COLOR_LERP は 1 枚）。"""

        if self.policy is LayerPolicy.COLOR_LERP:
            return 1
        return len(self.palette.colors)


def build_plan(spec: CurveSpec, palette: Palette, settings: RenderSettings) -> RenderPlan:
    """CurveSpec / Palette / 設定から RenderPlan を組み立てる（スケール算出を含む）。"""

    scale = scale_factor(spec, max_allowed_extent=settings.max_allowed_extent)
    return RenderPlan(
        spec=spec,
        palette=palette,
        scale=float(scale),
        breakpoints=layer_breakpoints(spec.max_t, len(palette.colors)),
        tick_step=float(settings.tick_step),
        sub_steps=int(settings.sub_steps),
        policy=LayerPolicy.parse(settings.layer_policy),
        canvas_size=(int(settings.canvas_size[0]), int(settings.canvas_size[1])),
        stroke_weight=float(settings.stroke_weight),
        background_color=settings.background_color,
    )


@dataclass(frozen=True, slots=True)
class RenderState:
    """1 生成サイクルの描画状態（tick ごとに新しい値へ置き換える）。

    Notes
    -----
    `t` は `step_index * tick_step` で求め、加算誤差を溜めない。
    """

    t: float = 0.0
    previous_point: Point | None = None
    layer_index: int = 0
    layer_breakpoints: tuple[float, ...] = ()
    progress: int = 0
    phase: RenderPhase = RenderPhase.IDLE
    step_index: int = 0
    tick_count: int = 0


@dataclass(frozen=True, slots=True)
class TickResult:
    """`tick()` の結果（次状態と、この tick で描く線分列）。"""

    state: RenderState
    segments: tuple[Segment, ...]


def initial_state(plan: RenderPlan) -> RenderState:
    """新しい生成サイクルの初期状態（t=0, 前点なし, レイヤー 0, 進捗 0）を返す。"""

    return RenderState(
        t=0.0,
        previous_point=None,
        layer_index=0,
        layer_breakpoints=plan.breakpoints,
        progress=0,
        phase=RenderPhase.DRAWING,
        step_index=0,
        tick_count=0,
    )


def lerp_palette_color(colors: tuple[ColorRGB, ...], fraction: float) -> ColorRGB:
    """t/maxT に沿ってパレット色を巡回補間した色を返す。

    Notes
    -----
    fraction=0 と fraction=1 はどちらも先頭色になる（1 周で元の色に戻る）。
    """

    n = len(colors)
    if n == 0:
        raise ValueError("colors が空")
    f = min(max(float(fraction), 0.0), 1.0)
    p = f * n
    i = int(math.floor(p)) % n
    w = p - math.floor(p)
    a = colors[i]
    b = colors[(i + 1) % n]
    return (
        a[0] + (b[0] - a[0]) * w,
        a[1] + (b[1] - a[1]) * w,
        a[2] + (b[2] - a[2]) * w,
    )


def _plot_points(plan: RenderPlan, ts: np.ndarray) -> np.ndarray:
    """t 列をスケール・回転済みのキャンバス座標 shape (N, 2) へ変換する。"""

    xy = positions(plan.spec, ts) * float(plan.scale)
    # 描画が進むにつれて図柄全体が 1 回転する。
    angles = ts / plan.max_t * TWO_PI
    c = np.cos(angles)
    s = np.sin(angles)
    x = xy[:, 0] * c - xy[:, 1] * s
    y = xy[:, 0] * s + xy[:, 1] * c
    return np.stack([x, y], axis=1)


def progress_percent(t: float, max_t: float) -> int:
    """進捗 [%]（0..100 の整数）を返す。"""

    return int(round(100.0 * min(1.0, float(t) / float(max_t))))


def tick(state: RenderState, plan: RenderPlan) -> TickResult:
    """描画状態を 1 tick 進める純関数。

    Parameters
    ----------
    state : RenderState
        現在の状態。COMPLETE / IDLE の場合は何もせずそのまま返す。
    plan : RenderPlan
        描画計画。

    Returns
    -------
    TickResult
        次状態と、この tick で描く線分列（t 昇順）。

    Notes
    -----
    - 1 tick で `sub_steps` 回 t を `tick_step` ずつ進め、各サブステップで 1 線分を出す。
    - 生成サイクル最初の tick は t=0 の点を前点として用意してから進める。
    - 線分を描いた後で t が breakpoints[layer_index] に達していれば、以降の線分から
      次のレイヤーへ移る（末尾でクランプ）。
    - tick 終了時に t > maxT なら COMPLETE へ遷移する。
    """

    if state.phase is not RenderPhase.DRAWING:
        return TickResult(state=state, segments=())

    sub_steps = int(plan.sub_steps)
    step = float(plan.tick_step)
    breakpoints = state.layer_breakpoints or plan.breakpoints
    last_layer = len(breakpoints) - 1

    prev = state.previous_point
    if prev is None:
        p0 = _plot_points(plan, np.array([0.0], dtype=np.float64))
        prev = (float(p0[0, 0]), float(p0[0, 1]))

    indices = state.step_index + 1 + np.arange(sub_steps, dtype=np.int64)
    ts = indices.astype(np.float64) * step
    pts = _plot_points(plan, ts)

    layer = int(state.layer_index)
    segments: list[Segment] = []
    for i in range(sub_steps):
        t_i = float(ts[i])
        if plan.policy is LayerPolicy.COLOR_LERP:
            color = lerp_palette_color(plan.colors_rgb, t_i / plan.max_t)
            target = 0
        else:
            color = plan.colors_rgb[min(layer, len(plan.colors_rgb) - 1)]
            target = min(layer, plan.layer_count - 1)

        point = (float(pts[i, 0]), float(pts[i, 1]))
        segments.append(
            Segment(start=prev, end=point, t=t_i, layer_index=target, color=color)
        )
        prev = point
        while layer < last_layer and t_i >= breakpoints[layer]:
            layer += 1

    step_index = state.step_index + sub_steps
    t = step_index * step
    phase = RenderPhase.COMPLETE if t > plan.max_t else RenderPhase.DRAWING
    next_state = replace(
        state,
        t=t,
        previous_point=prev,
        layer_index=layer,
        layer_breakpoints=breakpoints,
        progress=progress_percent(t, plan.max_t),
        phase=phase,
        step_index=step_index,
        tick_count=state.tick_count + 1,
    )
    return TickResult(state=next_state, segments=tuple(segments))


def expected_tick_count(plan: RenderPlan) -> int:
    """COMPLETE に達するまでの tick 数を返す（`tick()` と同じ t 算出規則）。"""

    per_tick = int(plan.sub_steps)
    step = float(plan.tick_step)
    k = max(1, int(math.ceil(plan.max_t / (per_tick * step))))
    while (k * per_tick) * step <= plan.max_t:
        k += 1
    while k > 1 and ((k - 1) * per_tick) * step > plan.max_t:
        k -= 1
    return k


class Compositor:
    """RenderState と描画面を所有し、tick 結果を面へ適用する。

    Notes
    -----
    - メイン面は不透明背景（ライブプレビュー用）、レイヤー面は透明背景。
    - COMPLETE 遷移時にレイヤー面をパレット順に透明背景へ合成し `final` に保持する。
    """

    def __init__(self, plan: RenderPlan) -> None:
        self.plan = plan
        self.main = Surface(
            plan.canvas_size,
            background=plan.background_color,
            stroke_weight=plan.stroke_weight,
        )
        self.layers = [
            Surface(plan.canvas_size, background=None, stroke_weight=plan.stroke_weight)
            for _ in range(plan.layer_count)
        ]
        self.state = initial_state(plan)
        self.final: Surface | None = None

    @property
    def phase(self) -> RenderPhase:
        return self.state.phase

    @property
    def is_complete(self) -> bool:
        return self.state.phase is RenderPhase.COMPLETE

    def step(self) -> TickResult:
        """1 tick 進めて面へ描き込み、結果を返す。"""

        if self.state.phase is not RenderPhase.DRAWING:
            return TickResult(state=self.state, segments=())

        result = tick(self.state, self.plan)
        for seg in result.segments:
            self.main.draw_segment(seg)
            self.layers[seg.layer_index].draw_segment(seg)
        self.state = result.state

        if result.state.phase is RenderPhase.COMPLETE:
            self.final = composite(self.layers)
            _logger.info(
                "Pattern #%d complete: ticks=%d segments=%d",
                self.plan.spec.seed,
                result.state.tick_count,
                len(self.main.segments),
            )
        return result


__all__ = [
    "Compositor",
    "RenderPhase",
    "RenderPlan",
    "RenderState",
    "TickResult",
    "build_plan",
    "expected_tick_count",
    "initial_state",
    "layer_breakpoints",
    "lerp_palette_color",
    "progress_percent",
    "tick",
]
