"""完成した図柄に添えるメタデータ（発行記録用）を組み立てる。"""

from __future__ import annotations

from typing import Any

from spiromint.core.curves import CurveFamily, CurveSpec
from spiromint.core.palettes import Palette
from spiromint.core.rarity import Rarity, rarer


def combined_rarity(spec: CurveSpec, palette: Palette) -> Rarity:
    """ファミリーとパレットのうち希少な方のレア度を返す。"""

    return rarer(spec.rarity, palette.rarity)


def pattern_metadata(
    spec: CurveSpec,
    palette: Palette,
    *,
    stroke_weight: float = 1.0,
) -> dict[str, Any]:
    """JSON 化可能なメタデータ dict を返す。

    Notes
    -----
    トロコイド系（Epitrochoid / Hypotrochoid）は旧形式の
    `fixedRadius` / `movingRadius` / `offset` も併記する。
    """

    params: dict[str, Any] = {
        "shape": spec.family.value,
        "rarity": spec.rarity.value,
        "curve": spec.as_dict(),
        "maxT": float(spec.max_t),
        "colors": list(palette.colors),
        "strokeWeight": float(stroke_weight),
    }
    if spec.family in (CurveFamily.EPITROCHOID, CurveFamily.HYPOTROCHOID):
        params["fixedRadius"] = spec.param("R")
        params["movingRadius"] = spec.param("r")
        params["offset"] = spec.param("d")

    return {
        "id": int(spec.seed),
        "name": f"Spirograph #{int(spec.seed)}",
        "palette": palette.to_event(),
        "combinedRarity": combined_rarity(spec, palette).value,
        "params": params,
    }


__all__ = ["combined_rarity", "pattern_metadata"]
