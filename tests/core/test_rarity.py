from __future__ import annotations

import pytest

from spiromint.core.palettes import PALETTES, hex_to_rgb01, palette_by_name, rgb01_to_hex
from spiromint.core.rarity import Rarity, rarer, rarity_for_roll, rarity_index


@pytest.mark.parametrize(
    ("roll", "expected"),
    [
        (0.0, Rarity.COMMON),
        (39.999, Rarity.COMMON),
        (40.0, Rarity.UNCOMMON),
        (69.9, Rarity.UNCOMMON),
        (70.0, Rarity.RARE),
        (89.99, Rarity.RARE),
        (90.0, Rarity.SUPER_RARE),
        (97.99, Rarity.SUPER_RARE),
        (98.0, Rarity.LEGENDARY),
        (99.999, Rarity.LEGENDARY),
    ],
)
def test_rarity_for_roll_uses_cumulative_thresholds(roll: float, expected: Rarity) -> None:
    assert rarity_for_roll(roll) is expected
    assert rarity_index(roll) == expected.rank


def test_rarer_returns_less_common_label() -> None:
    assert rarer(Rarity.COMMON, Rarity.RARE) is Rarity.RARE
    assert rarer(Rarity.LEGENDARY, Rarity.UNCOMMON) is Rarity.LEGENDARY
    assert rarer(Rarity.SUPER_RARE, Rarity.SUPER_RARE) is Rarity.SUPER_RARE


def test_palettes_have_five_colors_each() -> None:
    assert len(PALETTES) == 5
    for palette in PALETTES:
        assert len(palette.colors) == 5
        assert palette_by_name(palette.name) is palette


def test_hex_roundtrip_and_validation() -> None:
    assert hex_to_rgb01("#FF0000") == (1.0, 0.0, 0.0)
    assert rgb01_to_hex((0.0, 1.0, 0.0)) == "#00FF00"
    assert rgb01_to_hex(hex_to_rgb01("#4ECDC4")) == "#4ECDC4"
    with pytest.raises(ValueError):
        hex_to_rgb01("red")


def test_palette_rgb_clamps_index() -> None:
    palette = PALETTES[0]
    assert palette.rgb(99) == hex_to_rgb01(palette.colors[-1])
    assert palette.rgb(-3) == hex_to_rgb01(palette.colors[0])
    assert palette.to_event()["rarityLabel"] == "Common"
