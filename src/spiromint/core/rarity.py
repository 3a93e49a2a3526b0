# どこで: `src/spiromint/core/rarity.py`。
# 何を: レア度ラベルと、0..100 の一様乱数を 40/30/20/8/2% の重みで区分けする規則を定義する。
# なぜ: 曲線ファミリーとパレットの選択で同一の分布を共有し、母集団上の出現率を固定するため。

from __future__ import annotations

from enum import Enum


class Rarity(str, Enum):
    """レア度ラベル（出現率の高い順）。"""

    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    SUPER_RARE = "Super Rare"
    LEGENDARY = "Legendary"

    @property
    def rank(self) -> int:
        """0（Common）〜4（Legendary）の順位を返す。"""

        return RARITY_ORDER.index(self)


RARITY_ORDER: tuple[Rarity, ...] = (
    Rarity.COMMON,
    Rarity.UNCOMMON,
    Rarity.RARE,
    Rarity.SUPER_RARE,
    Rarity.LEGENDARY,
)

# 累積しきい値（roll < 値 で該当）。最後の Legendary は残り全部。
RARITY_THRESHOLDS: tuple[float, ...] = (40.0, 70.0, 90.0, 98.0)

# 各レア度の期待出現率 [%]。
RARITY_WEIGHTS: dict[Rarity, float] = {
    Rarity.COMMON: 40.0,
    Rarity.UNCOMMON: 30.0,
    Rarity.RARE: 20.0,
    Rarity.SUPER_RARE: 8.0,
    Rarity.LEGENDARY: 2.0,
}


def rarity_index(roll: float) -> int:
    """[0, 100) の roll を 0..4 の区分インデックスへ写して返す。"""

    r = float(roll)
    for i, threshold in enumerate(RARITY_THRESHOLDS):
        if r < threshold:
            return i
    return len(RARITY_THRESHOLDS)


def rarity_for_roll(roll: float) -> Rarity:
    """[0, 100) の roll に対応するレア度を返す。"""

    return RARITY_ORDER[rarity_index(roll)]


def rarer(a: Rarity, b: Rarity) -> Rarity:
    """2 つのレア度のうち希少な方を返す。"""

    return a if a.rank >= b.rank else b


__all__ = [
    "RARITY_ORDER",
    "RARITY_THRESHOLDS",
    "RARITY_WEIGHTS",
    "Rarity",
    "rarer",
    "rarity_for_roll",
    "rarity_index",
]
