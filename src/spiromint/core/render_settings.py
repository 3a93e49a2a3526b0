# どこで: `src/spiromint/core/render_settings.py`。
# 何を: 描画設定（キャンバス寸法・余白・ステップ幅・レイヤー方針など）の束を表すデータクラスを定義する。
# なぜ: PatternRenderer / プレビュー / CLI の引数を簡潔に保ちつつ、設定を一元管理するため。

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from spiromint.core.runtime_config import RuntimeConfig


class LayerPolicy(str, Enum):
    """線色の切り替え方針。"""

    # パレット色ごとに別レイヤー面へ描き、区間境界で色を離散的に切り替える。
    MULTI_BUFFER = "multi_buffer"
    # 1 枚のレイヤー面へ描き、t/maxT に沿ってパレット色を連続補間する。
    COLOR_LERP = "color_lerp"

    @classmethod
    def parse(cls, value: str | LayerPolicy) -> LayerPolicy:
        """文字列（`multi_buffer` / `color_lerp` / 短縮形 `multi` / `lerp`）から方針を返す。"""

        if isinstance(value, LayerPolicy):
            return value
        text = str(value).strip().lower()
        aliases = {"multi": cls.MULTI_BUFFER, "lerp": cls.COLOR_LERP}
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError as exc:
            raise ValueError(f"未知の layer_policy: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class RenderSettings:
    """描画に用いる設定値の集合。"""

    canvas_size: tuple[int, int] = (600, 600)
    margin: float = 50.0
    tick_step: float = 0.015
    sub_steps: int = 2
    layer_policy: LayerPolicy = LayerPolicy.MULTI_BUFFER
    stroke_weight: float = 1.0
    background_color: tuple[float, float, float] = (0.0, 0.0, 0.0)
    fps: float = 60.0
    seed_cap: int = 10_000

    def __post_init__(self) -> None:
        w, h = self.canvas_size
        if int(w) <= 0 or int(h) <= 0:
            raise ValueError("canvas_size は正の (width, height) である必要がある")
        if float(self.margin) < 0 or 2.0 * float(self.margin) >= min(int(w), int(h)):
            raise ValueError(f"margin がキャンバスに収まらない: {self.margin}")
        if float(self.tick_step) <= 0:
            raise ValueError("tick_step は正の値である必要がある")
        if int(self.sub_steps) < 1:
            raise ValueError("sub_steps は 1 以上である必要がある")
        if float(self.stroke_weight) <= 0:
            raise ValueError("stroke_weight は正の値である必要がある")

    @property
    def max_allowed_extent(self) -> float:
        """中心から許容される最大距離（キャンバス半径 - 余白）を返す。"""

        w, h = self.canvas_size
        return float(min(int(w), int(h))) / 2.0 - float(self.margin)

    @classmethod
    def from_config(cls, cfg: RuntimeConfig) -> RenderSettings:
        """RuntimeConfig から設定を組み立てる。"""

        return cls(
            canvas_size=cfg.canvas_size,
            margin=float(cfg.canvas_margin),
            tick_step=float(cfg.tick_step),
            sub_steps=int(cfg.sub_steps),
            layer_policy=LayerPolicy.parse(cfg.layer_policy),
            stroke_weight=float(cfg.stroke_weight),
            fps=float(cfg.fps),
            seed_cap=int(cfg.seed_cap),
        )


__all__ = ["LayerPolicy", "RenderSettings"]
