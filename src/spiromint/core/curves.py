"""
どこで: `src/spiromint/core/curves.py`。
何を: 曲線ファミリーと CurveSpec を定義し、seed から曲線・パレットを決定的に生成する。
なぜ: 同じ seed から常に同じ図柄（ファミリー・パラメータ・パレット・maxT）を再現するため。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from spiromint.core.palettes import PALETTES, Palette
from spiromint.core.rarity import RARITY_ORDER, Rarity, rarity_index

_logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi

# どのファミリーでも最低 10 周ぶんの曲線位置を描く。
MIN_MAX_T = TWO_PI * 10.0

SEED_MIN = 1
SEED_MAX = 10_000


class CurveFamily(str, Enum):
    """曲線ファミリー（レア度順）。"""

    ROSE = "Rose"
    EPITROCHOID = "Epitrochoid"
    HYPOTROCHOID = "Hypotrochoid"
    ORGANIC_FLOW = "OrganicFlow"
    LISSAJOUS = "Lissajous"

    @property
    def rarity(self) -> Rarity:
        """ファミリーに紐づくレア度を返す。"""

        return RARITY_ORDER[FAMILY_ORDER.index(self)]


FAMILY_ORDER: tuple[CurveFamily, ...] = (
    CurveFamily.ROSE,
    CurveFamily.EPITROCHOID,
    CurveFamily.HYPOTROCHOID,
    CurveFamily.ORGANIC_FLOW,
    CurveFamily.LISSAJOUS,
)

# 各ファミリーのパラメータ名（乱数消費順）。
FAMILY_PARAM_NAMES: dict[CurveFamily, tuple[str, ...]] = {
    CurveFamily.ROSE: ("k",),
    CurveFamily.EPITROCHOID: ("R", "r", "d"),
    CurveFamily.HYPOTROCHOID: ("R", "r", "d"),
    CurveFamily.ORGANIC_FLOW: ("complexity", "speed", "waves", "amplitude", "noiseScale"),
    CurveFamily.LISSAJOUS: ("A", "B", "a", "b", "delta"),
}


@dataclass(frozen=True, slots=True)
class CurveSpec:
    """seed から生成された曲線の不変記述。

    Parameters
    ----------
    family : CurveFamily
        曲線ファミリー。
    params : tuple[tuple[str, float | int], ...]
        ファミリー固有パラメータ（消費順の (name, value) 列）。
    max_t : float
        描画する曲線位置 t の総範囲（`>= 20π`）。
    seed : int
        生成元 seed。OrganicFlow のノイズ場もこの seed から決まる。
    """

    family: CurveFamily
    params: tuple[tuple[str, float | int], ...]
    max_t: float
    seed: int

    @property
    def rarity(self) -> Rarity:
        """ファミリー由来のレア度を返す。"""

        return self.family.rarity

    def param(self, name: str) -> float | int:
        """パラメータ値を返す。

        Raises
        ------
        KeyError
            ファミリーに存在しない名前が指定された場合。
        """

        for k, v in self.params:
            if k == name:
                return v
        raise KeyError(f"{self.family.value} にパラメータ {name!r} は無い")

    def as_dict(self) -> dict[str, float | int]:
        """パラメータを dict として返す。"""

        return dict(self.params)

    def to_event(self) -> dict[str, Any]:
        """`on_pattern_generated` に渡す payload を返す。"""

        return {
            "family": self.family.value,
            "rarityLabel": self.rarity.value,
            "params": self.as_dict(),
        }


class SeededRandom:
    """seed 固定の一様乱数列（numpy PCG64）。

    Notes
    -----
    draw の順序がそのまま生成結果を決めるため、呼び出し順を変えてはならない。
    """

    def __init__(self, seed: int) -> None:
        self._rng = np.random.default_rng(int(seed))

    def random(self, lo: float, hi: float) -> float:
        """[lo, hi) の一様実数を返す。"""

        u = float(self._rng.random())
        return float(lo) + u * (float(hi) - float(lo))

    def integer(self, lo: int, hi: int) -> int:
        """[lo, hi) の一様実数を切り捨てた整数を返す。"""

        return int(math.floor(self.random(lo, hi)))


def gcd(a: float, b: float) -> int:
    """四捨五入した a, b の最大公約数（ユークリッドの互除法）を返す。"""

    x = int(round(float(a)))
    y = int(round(float(b)))
    x, y = abs(x), abs(y)
    while y != 0:
        x, y = y, x % y
    return x


def lcm(a: int, b: int) -> int:
    """a, b の最小公倍数を返す。"""

    g = gcd(a, b)
    if g == 0:
        return 0
    return abs(int(a) * int(b)) // g


def family_max_t(family: CurveFamily, params: dict[str, float | int]) -> float:
    """ファミリー固有の周期 maxT（下限適用前）を返す。"""

    if family is CurveFamily.ROSE:
        k = int(params["k"])
        return TWO_PI if k % 2 == 0 else math.pi
    if family in (CurveFamily.EPITROCHOID, CurveFamily.HYPOTROCHOID):
        r = float(params["r"])
        g = gcd(params["R"], r)
        if g == 0:
            return MIN_MAX_T
        return TWO_PI * (r / g)
    if family is CurveFamily.ORGANIC_FLOW:
        return TWO_PI * 20.0
    if family is CurveFamily.LISSAJOUS:
        return TWO_PI * lcm(int(params["a"]), int(params["b"]))
    raise ValueError(f"未知の曲線ファミリー: {family!r}")


def build_curve_spec(
    family: CurveFamily,
    params: dict[str, float | int],
    *,
    seed: int = 0,
) -> CurveSpec:
    """パラメータ辞書から CurveSpec を組み立てる（maxT 下限を適用）。

    Raises
    ------
    ValueError
        ファミリーのパラメータ名が揃っていない場合。
    """

    names = FAMILY_PARAM_NAMES[family]
    missing = [n for n in names if n not in params]
    if missing:
        raise ValueError(f"{family.value} のパラメータが不足している: {missing}")
    ordered = tuple((n, params[n]) for n in names)
    max_t = max(family_max_t(family, params), MIN_MAX_T)
    return CurveSpec(family=family, params=ordered, max_t=float(max_t), seed=int(seed))


def _draw_family_params(family: CurveFamily, rnd: SeededRandom) -> dict[str, float | int]:
    # draw 順は FAMILY_PARAM_NAMES と一致させる。
    if family is CurveFamily.ROSE:
        return {"k": rnd.integer(4, 9)}
    if family is CurveFamily.EPITROCHOID:
        return {
            "R": rnd.random(200, 300),
            "r": rnd.random(20, 60),
            "d": rnd.random(80, 160),
        }
    if family is CurveFamily.HYPOTROCHOID:
        return {
            "R": rnd.random(250, 400),
            "r": rnd.random(20, 60),
            "d": rnd.random(100, 180),
        }
    if family is CurveFamily.ORGANIC_FLOW:
        return {
            "complexity": rnd.random(0.5, 2.5),
            "speed": rnd.random(0.01, 0.05),
            "waves": rnd.integer(3, 7),
            "amplitude": rnd.random(100, 250),
            "noiseScale": rnd.random(0.005, 0.02),
        }
    return {
        "A": rnd.random(200, 350),
        "B": rnd.random(200, 350),
        "a": rnd.integer(3, 7),
        "b": rnd.integer(3, 7),
        "delta": rnd.random(0.0, math.pi),
    }


def generate(seed: int) -> tuple[CurveSpec, Palette]:
    """seed から曲線とパレットを決定的に生成する。

    Parameters
    ----------
    seed : int
        1..10000 の整数 seed。範囲検証は呼び出し側（`validate_seed`）の責務。

    Returns
    -------
    tuple[CurveSpec, Palette]
        生成された曲線とパレット。

    Notes
    -----
    乱数消費順は (1) ファミリー選択 (2) ファミリーパラメータ (3) パレット選択。
    ファミリーとパレットは独立に引くため、両者のレア度は無相関。
    """

    rnd = SeededRandom(seed)
    family = FAMILY_ORDER[rarity_index(rnd.random(0, 100))]
    params = _draw_family_params(family, rnd)
    palette = PALETTES[rarity_index(rnd.random(0, 100))]
    spec = build_curve_spec(family, params, seed=int(seed))

    _logger.info(
        "Pattern #%d: %s (%s), palette=%s (%s)",
        int(seed),
        family.value,
        family.rarity.value,
        palette.name,
        palette.rarity.value,
    )
    _logger.debug("Pattern #%d params=%s max_t=%.4f", int(seed), spec.as_dict(), spec.max_t)
    return spec, palette


def validate_seed(seed: object, *, cap: int = SEED_MAX) -> int:
    """seed が 1..cap の整数であることを検証して int で返す。

    Raises
    ------
    ValueError
        整数でない、または範囲外の場合。
    """

    if isinstance(seed, bool):
        raise ValueError(f"seed は整数である必要がある: got={seed!r}")
    if isinstance(seed, float):
        if not seed.is_integer():
            raise ValueError(f"seed は整数である必要がある: got={seed!r}")
        seed = int(seed)
    if not isinstance(seed, (int, np.integer)):
        raise ValueError(f"seed は整数である必要がある: got={seed!r}")
    s = int(seed)
    if s < SEED_MIN or s > int(cap):
        raise ValueError(f"seed は {SEED_MIN}..{int(cap)} の範囲である必要がある: got={s}")
    return s


__all__ = [
    "FAMILY_ORDER",
    "FAMILY_PARAM_NAMES",
    "MIN_MAX_T",
    "SEED_MAX",
    "SEED_MIN",
    "TWO_PI",
    "CurveFamily",
    "CurveSpec",
    "SeededRandom",
    "build_curve_spec",
    "family_max_t",
    "gcd",
    "generate",
    "lcm",
    "validate_seed",
]
