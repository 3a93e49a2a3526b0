# どこで: `src/spiromint/__init__.py`。
# 何を: ルート `spiromint` パッケージを定義する。
# なぜ: import 起点を `spiromint` に統一するため（pyglet はここでは読み込まない）。

from __future__ import annotations

from spiromint.core.compositor import RenderPhase, RenderState, expected_tick_count, tick
from spiromint.core.curves import CurveFamily, CurveSpec, generate, validate_seed
from spiromint.core.evaluator import position, scale_factor
from spiromint.core.palettes import PALETTES, Palette
from spiromint.core.rarity import Rarity
from spiromint.core.render_settings import LayerPolicy, RenderSettings
from spiromint.core.renderer import PatternRenderer

__all__ = [
    "PALETTES",
    "CurveFamily",
    "CurveSpec",
    "LayerPolicy",
    "Palette",
    "PatternRenderer",
    "Rarity",
    "RenderPhase",
    "RenderSettings",
    "RenderState",
    "expected_tick_count",
    "generate",
    "position",
    "scale_factor",
    "tick",
    "validate_seed",
]
