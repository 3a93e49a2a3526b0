"""tick 純関数・レイヤー切り替え・完了判定・Compositor 合成のテスト。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from spiromint.core.compositor import (
    Compositor,
    RenderPhase,
    RenderState,
    build_plan,
    expected_tick_count,
    initial_state,
    layer_breakpoints,
    lerp_palette_color,
    progress_percent,
    tick,
)
from spiromint.core.curves import CurveFamily, build_curve_spec, generate
from spiromint.core.palettes import PALETTES, hex_to_rgb01
from spiromint.core.render_settings import LayerPolicy, RenderSettings


def _fast_settings(**overrides) -> RenderSettings:
    base = dict(canvas_size=(160, 160), margin=10.0, tick_step=0.05, sub_steps=4)
    base.update(overrides)
    return RenderSettings(**base)


def _rose_plan(settings: RenderSettings | None = None):
    spec = build_curve_spec(CurveFamily.ROSE, {"k": 5}, seed=42)
    return build_plan(spec, PALETTES[0], settings or RenderSettings())


def _run(plan):
    state = initial_state(plan)
    segments = []
    ticks = 0
    while state.phase is RenderPhase.DRAWING:
        result = tick(state, plan)
        segments.extend(result.segments)
        state = result.state
        ticks += 1
        assert ticks < 100_000
    return state, segments, ticks


def test_layer_breakpoints_for_rose_are_four_pi_steps() -> None:
    got = layer_breakpoints(20.0 * math.pi, 5)
    expected = [4.0 * math.pi * (i + 1) for i in range(5)]
    assert got == pytest.approx(expected)
    assert got[-1] == 20.0 * math.pi


def test_layer_breakpoints_rejects_empty_palette() -> None:
    with pytest.raises(ValueError):
        layer_breakpoints(10.0, 0)


def test_initial_state_is_drawing_at_origin() -> None:
    plan = _rose_plan()
    state = initial_state(plan)
    assert state.phase is RenderPhase.DRAWING
    assert state.t == 0.0
    assert state.previous_point is None
    assert state.layer_index == 0
    assert state.progress == 0
    assert state.layer_breakpoints == plan.breakpoints


def test_first_tick_starts_from_t_zero_point() -> None:
    plan = _rose_plan()
    result = tick(initial_state(plan), plan)
    assert len(result.segments) == plan.sub_steps
    first = result.segments[0]
    # Rose k=5 の t=0 は (250, 0)、回転角も 0。
    assert first.start == pytest.approx((250.0 * plan.scale, 0.0))
    assert first.t == pytest.approx(plan.tick_step)
    for a, b in zip(result.segments[:-1], result.segments[1:]):
        assert a.end == b.start
        assert a.t < b.t
    assert result.state.t == pytest.approx(plan.sub_steps * plan.tick_step)


def test_tick_is_pure() -> None:
    plan = _rose_plan()
    state = initial_state(plan)
    a = tick(state, plan)
    b = tick(state, plan)
    assert a == b
    assert state.t == 0.0


def test_rose_completes_after_expected_tick_count() -> None:
    plan = _rose_plan()
    assert plan.max_t == pytest.approx(20.0 * math.pi)
    assert expected_tick_count(plan) == 2095

    state, segments, ticks = _run(plan)
    assert ticks == 2095
    assert state.phase is RenderPhase.COMPLETE
    assert state.t > plan.max_t
    assert state.progress == 100
    assert len(segments) == 2095 * plan.sub_steps


def test_expected_tick_count_matches_run_for_generated_seeds() -> None:
    settings = _fast_settings()
    for seed in (3, 42, 101, 2024):
        spec, palette = generate(seed)
        plan = build_plan(spec, palette, settings)
        _state, _segments, ticks = _run(plan)
        assert ticks == expected_tick_count(plan)


def test_tick_is_noop_once_complete() -> None:
    plan = _rose_plan(_fast_settings())
    state, _segments, _ticks = _run(plan)
    result = tick(state, plan)
    assert result.state is state
    assert result.segments == ()

    idle = RenderState()
    assert tick(idle, plan).segments == ()


def test_multi_buffer_layers_follow_breakpoints() -> None:
    plan = _rose_plan(_fast_settings())
    _state, segments, _ticks = _run(plan)

    layers = [s.layer_index for s in segments]
    assert layers == sorted(layers)
    assert set(layers) == set(range(len(PALETTES[0].colors)))

    for seg in segments:
        # 境界をまたいだ線分は旧色のまま、次の線分から切り替わる。
        t_prev = seg.t - plan.tick_step
        expected = 0
        while expected < len(plan.breakpoints) - 1 and t_prev >= plan.breakpoints[expected]:
            expected += 1
        assert seg.layer_index == expected
        assert seg.color == hex_to_rgb01(PALETTES[0].colors[expected])


def test_layer_index_clamps_to_last_layer_past_max_t() -> None:
    plan = _rose_plan(_fast_settings())
    state, segments, _ticks = _run(plan)
    last = len(plan.breakpoints) - 1
    assert state.layer_index == last
    assert segments[-1].t > plan.max_t
    assert segments[-1].layer_index == last


@pytest.mark.parametrize("seed", [3, 42, 777, 1234])
def test_layers_partition_main_segments_exactly(seed: int) -> None:
    spec, palette = generate(seed)
    compositor = Compositor(build_plan(spec, palette, _fast_settings()))
    while not compositor.is_complete:
        compositor.step()

    # 各線分はちょうど 1 枚のレイヤー面に、メイン面と同じ順序で載る。
    merged = sorted((s for layer in compositor.layers for s in layer.segments), key=lambda s: s.t)
    assert merged == compositor.main.segments
    for index, layer in enumerate(compositor.layers):
        assert all(s.layer_index == index for s in layer.segments)

    final = compositor.final
    assert final is not None
    assert sorted(final.segments, key=lambda s: s.t) == compositor.main.segments


def test_color_lerp_uses_single_layer_and_cycles_palette() -> None:
    plan = _rose_plan(_fast_settings(layer_policy=LayerPolicy.COLOR_LERP))
    assert plan.layer_count == 1
    _state, segments, _ticks = _run(plan)
    assert {s.layer_index for s in segments} == {0}
    colors = {s.color for s in segments}
    assert len(colors) > 5

    first = hex_to_rgb01(PALETTES[0].colors[0])
    assert segments[0].color == pytest.approx(first, abs=0.05)


def test_lerp_palette_color_endpoints() -> None:
    colors = tuple(hex_to_rgb01(c) for c in PALETTES[1].colors)
    assert lerp_palette_color(colors, 0.0) == pytest.approx(colors[0])
    assert lerp_palette_color(colors, 1.0) == pytest.approx(colors[0])
    assert lerp_palette_color(colors, 0.2) == pytest.approx(colors[1])
    mid = lerp_palette_color(colors, 0.1)
    expected = tuple((a + b) / 2.0 for a, b in zip(colors[0], colors[1]))
    assert mid == pytest.approx(expected)
    with pytest.raises(ValueError):
        lerp_palette_color((), 0.5)


def test_progress_percent_is_clamped() -> None:
    assert progress_percent(0.0, 10.0) == 0
    assert progress_percent(5.0, 10.0) == 50
    assert progress_percent(12.0, 10.0) == 100


def test_points_rotate_once_over_full_range() -> None:
    plan = _rose_plan(_fast_settings())
    _state, segments, _ticks = _run(plan)
    # 回転込みでも中心からの距離はスケール後の曲線半径に等しい。
    for seg in segments[:: max(1, len(segments) // 50)]:
        r_expected = abs(250.0 * math.cos(5 * seg.t)) * plan.scale
        assert math.hypot(*seg.end) == pytest.approx(r_expected, abs=1e-6)


def test_compositor_draws_main_and_layers_and_composites() -> None:
    plan = _rose_plan(_fast_settings())
    compositor = Compositor(plan)
    assert compositor.main.pixels[0, 0, 3] == 255
    assert all(layer.pixels[..., 3].max() == 0 for layer in compositor.layers)

    while not compositor.is_complete:
        compositor.step()

    final = compositor.final
    assert final is not None
    assert final.background is None
    assert final.pixels[0, 0, 3] == 0
    assert final.pixels[..., 3].max() == 255
    assert len(final.segments) == len(compositor.main.segments)
    for layer in compositor.layers:
        assert layer.segments
        assert np.count_nonzero(layer.pixels[..., 3]) > 0

    before = compositor.final
    compositor.step()
    assert compositor.final is before
