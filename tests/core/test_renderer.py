"""PatternRenderer のコールバック・再生成・ヘッドレス完走のテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from spiromint.core.compositor import RenderPhase, expected_tick_count
from spiromint.core.curves import generate
from spiromint.core.render_settings import LayerPolicy, RenderSettings
from spiromint.core.renderer import PatternRenderer


def _settings(**overrides) -> RenderSettings:
    base = dict(canvas_size=(120, 120), margin=10.0, tick_step=0.1, sub_steps=4)
    base.update(overrides)
    return RenderSettings(**base)


def test_regenerate_fires_callbacks_in_order() -> None:
    events: list[tuple[str, object]] = []
    renderer = PatternRenderer(
        settings=_settings(),
        on_seed_chosen=lambda s: events.append(("seed", s)),
        on_pattern_generated=lambda p: events.append(("pattern", p)),
        on_palette_chosen=lambda p: events.append(("palette", p)),
    )

    chosen = renderer.regenerate(42)
    spec, palette = generate(42)
    assert chosen == 42
    assert [name for name, _ in events] == ["seed", "pattern", "palette"]
    assert events[0][1] == 42
    assert events[1][1] == spec.to_event()
    assert events[2][1] == palette.to_event()
    assert renderer.spec == spec
    assert renderer.palette == palette
    assert renderer.phase is RenderPhase.DRAWING


def test_render_complete_fires_exactly_once() -> None:
    completed: list[tuple[object, dict]] = []
    renderer = PatternRenderer(
        settings=_settings(),
        on_render_complete=lambda final, meta: completed.append((final, meta)),
    )
    renderer.regenerate(7)
    plan = renderer.plan
    assert plan is not None

    ticks = 0
    while not renderer.is_complete:
        renderer.tick()
        ticks += 1
    assert ticks == expected_tick_count(plan)

    for _ in range(5):
        renderer.tick()

    assert len(completed) == 1
    final, meta = completed[0]
    assert final is renderer.final_image
    assert meta["id"] == 7
    assert meta["name"] == "Spirograph #7"


def test_regenerate_mid_render_resets_state() -> None:
    completed: list[dict] = []
    renderer = PatternRenderer(
        settings=_settings(),
        on_render_complete=lambda _final, meta: completed.append(meta),
    )
    renderer.regenerate(11)
    for _ in range(10):
        renderer.tick()
    assert renderer.state.progress > 0

    renderer.regenerate(12)
    state = renderer.state
    assert state.t == 0.0
    assert state.progress == 0
    assert state.layer_index == 0
    assert state.previous_point is None
    main = renderer.main_buffer
    assert main is not None
    assert main.segments == []

    renderer.run_to_completion()
    assert [m["id"] for m in completed] == [12]


def test_seed_source_is_used_when_seed_is_omitted() -> None:
    renderer = PatternRenderer(settings=_settings(), seed_source=lambda: 321)
    assert renderer.regenerate() == 321
    assert renderer.regenerate(5) == 5


def test_random_seed_falls_back_to_rng_within_cap() -> None:
    renderer = PatternRenderer(
        settings=_settings(seed_cap=20),
        seed_source=lambda: None,
        rng=np.random.default_rng(0),
    )
    for _ in range(20):
        assert 1 <= renderer.regenerate() <= 20


def test_run_to_completion_returns_transparent_final_image() -> None:
    renderer = PatternRenderer(settings=_settings(layer_policy=LayerPolicy.COLOR_LERP))
    renderer.regenerate(99)
    final = renderer.run_to_completion()
    assert final.pixels[0, 0, 3] == 0
    assert final.pixels[..., 3].max() == 255
    assert len(renderer.layer_buffers) == 1


def test_run_to_completion_honors_max_ticks() -> None:
    renderer = PatternRenderer(settings=_settings())
    renderer.regenerate(3)
    with pytest.raises(RuntimeError, match="tick"):
        renderer.run_to_completion(max_ticks=2)


def test_operations_before_regenerate() -> None:
    renderer = PatternRenderer(settings=_settings())
    assert renderer.tick() is None
    assert renderer.state.phase is RenderPhase.IDLE
    assert renderer.main_buffer is None
    with pytest.raises(RuntimeError):
        renderer.run_to_completion()
    with pytest.raises(RuntimeError):
        renderer.metadata()
