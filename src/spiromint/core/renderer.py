"""
どこで: `src/spiromint/core/renderer.py`。
何を: seed 選択 → 生成 → 逐次描画 → 完成通知までを束ねる PatternRenderer を提供する。
なぜ: 周辺アプリ（プレビュー・発行 UI・CLI）へ公開する面を `regenerate()` / `tick()` と
      4 つのコールバックに限定し、描画コアを I/O から切り離すため。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np

from spiromint.core.compositor import (
    Compositor,
    RenderPhase,
    RenderPlan,
    RenderState,
    TickResult,
    build_plan,
)
from spiromint.core.curves import SEED_MIN, CurveSpec, generate
from spiromint.core.metadata import pattern_metadata
from spiromint.core.palettes import Palette
from spiromint.core.render_settings import RenderSettings
from spiromint.core.runtime_config import runtime_config
from spiromint.core.surface import Surface

_logger = logging.getLogger(__name__)

SeedSource = Callable[[], "int | None"]
RenderCompleteCallback = Callable[[Surface, dict[str, Any]], None]


class PatternRenderer:
    """1 つの図柄を生成して逐次描画するレンダラ。

    Parameters
    ----------
    settings : RenderSettings | None
        描画設定。None なら実行時設定（config.yaml）から組み立てる。
    seed_source : Callable[[], int | None] | None
        `regenerate()` で seed が省略されたときに参照する seed 供給元。
        None を返した場合はランダムな seed を選ぶ。
    on_seed_chosen, on_pattern_generated, on_palette_chosen, on_render_complete
        生成・完成時に呼ばれるコールバック。
    rng : np.random.Generator | None
        ランダム seed 選択用の乱数生成器。

    Notes
    -----
    - `regenerate()` は描画途中でも呼べる。旧サイクルの状態・描画面は破棄される。
    - `on_render_complete` は 1 サイクルにつき 1 回だけ呼ばれる。
    """

    def __init__(
        self,
        *,
        settings: RenderSettings | None = None,
        seed_source: SeedSource | None = None,
        on_seed_chosen: Callable[[int], None] | None = None,
        on_pattern_generated: Callable[[dict[str, Any]], None] | None = None,
        on_palette_chosen: Callable[[dict[str, Any]], None] | None = None,
        on_render_complete: RenderCompleteCallback | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.settings = (
            settings if settings is not None else RenderSettings.from_config(runtime_config())
        )
        self._seed_source = seed_source
        self._on_seed_chosen = on_seed_chosen
        self._on_pattern_generated = on_pattern_generated
        self._on_palette_chosen = on_palette_chosen
        self._on_render_complete = on_render_complete
        self._rng = rng if rng is not None else np.random.default_rng()

        self._seed: int | None = None
        self._spec: CurveSpec | None = None
        self._palette: Palette | None = None
        self._compositor: Compositor | None = None

    # --- 読み取り専用ビュー ---

    @property
    def seed(self) -> int | None:
        return self._seed

    @property
    def spec(self) -> CurveSpec | None:
        return self._spec

    @property
    def palette(self) -> Palette | None:
        return self._palette

    @property
    def plan(self) -> RenderPlan | None:
        c = self._compositor
        return None if c is None else c.plan

    @property
    def state(self) -> RenderState:
        """現在の描画状態を返す（未生成なら IDLE）。"""

        c = self._compositor
        return RenderState() if c is None else c.state

    @property
    def phase(self) -> RenderPhase:
        return self.state.phase

    @property
    def is_complete(self) -> bool:
        return self.state.phase is RenderPhase.COMPLETE

    @property
    def main_buffer(self) -> Surface | None:
        """ライブプレビュー用メイン面（不透明背景）を返す。"""

        c = self._compositor
        return None if c is None else c.main

    @property
    def layer_buffers(self) -> list[Surface]:
        c = self._compositor
        return [] if c is None else list(c.layers)

    @property
    def final_image(self) -> Surface | None:
        """完成後の最終合成（透明背景）を返す。未完成なら None。"""

        c = self._compositor
        return None if c is None else c.final

    def metadata(self) -> dict[str, Any]:
        """現在の図柄のメタデータを返す。

        Raises
        ------
        RuntimeError
            まだ生成していない場合。
        """

        if self._spec is None or self._palette is None:
            raise RuntimeError("図柄が未生成です（regenerate() を先に呼んでください）")
        return pattern_metadata(
            self._spec,
            self._palette,
            stroke_weight=self.settings.stroke_weight,
        )

    # --- 操作 ---

    def _choose_seed(self, seed: int | None) -> int:
        if seed is not None:
            return int(seed)
        source = self._seed_source
        if source is not None:
            supplied = source()
            if supplied is not None:
                return int(supplied)
        return int(self._rng.integers(SEED_MIN, int(self.settings.seed_cap) + 1))

    def regenerate(self, seed: int | None = None) -> int:
        """新しい生成サイクルを開始し、選ばれた seed を返す。

        Notes
        -----
        seed の検証（範囲・整数性）は呼び出し側の責務。
        """

        chosen = self._choose_seed(seed)
        spec, palette = generate(chosen)
        plan = build_plan(spec, palette, self.settings)

        self._seed = chosen
        self._spec = spec
        self._palette = palette
        self._compositor = Compositor(plan)
        _logger.debug("Pattern #%d scale=%.4f", chosen, plan.scale)

        if self._on_seed_chosen is not None:
            self._on_seed_chosen(chosen)
        if self._on_pattern_generated is not None:
            self._on_pattern_generated(spec.to_event())
        if self._on_palette_chosen is not None:
            self._on_palette_chosen(palette.to_event())
        return chosen

    def tick(self) -> TickResult | None:
        """1 アニメーション tick 進める。未生成なら None を返す。"""

        c = self._compositor
        if c is None:
            return None
        was_drawing = c.phase is RenderPhase.DRAWING
        result = c.step()
        if was_drawing and c.is_complete:
            final = c.final
            if final is not None and self._on_render_complete is not None:
                self._on_render_complete(final, self.metadata())
        return result

    def run_to_completion(self, *, max_ticks: int | None = None) -> Surface:
        """COMPLETE まで tick を回して最終合成を返す（ヘッドレス用）。

        Raises
        ------
        RuntimeError
            未生成、または max_ticks 以内に完成しなかった場合。
        """

        if self._compositor is None:
            raise RuntimeError("図柄が未生成です（regenerate() を先に呼んでください）")
        ticks = 0
        while not self.is_complete:
            if max_ticks is not None and ticks >= int(max_ticks):
                raise RuntimeError(f"{int(max_ticks)} tick 以内に描画が完了しませんでした")
            self.tick()
            ticks += 1
        final = self.final_image
        if final is None:
            raise RuntimeError("完了したのに最終合成がありません")
        return final


__all__ = ["PatternRenderer"]
