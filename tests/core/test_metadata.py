from __future__ import annotations

import json
import math

from spiromint.core.curves import CurveFamily, build_curve_spec
from spiromint.core.metadata import combined_rarity, pattern_metadata
from spiromint.core.palettes import PALETTES
from spiromint.core.rarity import Rarity


def test_combined_rarity_takes_rarer_label() -> None:
    spec = build_curve_spec(CurveFamily.ROSE, {"k": 4}, seed=1)
    assert combined_rarity(spec, PALETTES[0]) is Rarity.COMMON
    assert combined_rarity(spec, PALETTES[4]) is Rarity.LEGENDARY

    lis = build_curve_spec(
        CurveFamily.LISSAJOUS, {"A": 200.0, "B": 200.0, "a": 3, "b": 4, "delta": 0.0}, seed=2
    )
    assert combined_rarity(lis, PALETTES[1]) is Rarity.LEGENDARY


def test_pattern_metadata_for_trochoid_includes_legacy_fields() -> None:
    spec = build_curve_spec(CurveFamily.EPITROCHOID, {"R": 250.0, "r": 40.0, "d": 90.0}, seed=77)
    meta = pattern_metadata(spec, PALETTES[2], stroke_weight=1.5)

    assert meta["id"] == 77
    assert meta["name"] == "Spirograph #77"
    assert meta["combinedRarity"] == "Rare"
    assert meta["palette"]["name"] == "Crystal Sunset"
    params = meta["params"]
    assert params["shape"] == "Epitrochoid"
    assert params["rarity"] == "Uncommon"
    assert params["fixedRadius"] == 250.0
    assert params["movingRadius"] == 40.0
    assert params["offset"] == 90.0
    assert params["strokeWeight"] == 1.5
    assert params["colors"] == list(PALETTES[2].colors)
    json.dumps(meta)


def test_pattern_metadata_for_rose_omits_trochoid_fields() -> None:
    spec = build_curve_spec(CurveFamily.ROSE, {"k": 5}, seed=42)
    meta = pattern_metadata(spec, PALETTES[0])
    assert "fixedRadius" not in meta["params"]
    assert meta["params"]["curve"] == {"k": 5}
    assert math.isclose(meta["params"]["maxT"], 20.0 * math.pi)
