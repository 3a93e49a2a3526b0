"""
どこで: `src/spiromint/core/evaluator.py`。
何を: CurveSpec と曲線位置 t から 2D 座標を求め、図柄の外接範囲からスケール係数を算出する。
なぜ: 曲線の式を 1 箇所に集約し、描画とスケール計算で同じ評価を使うため。
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit  # type: ignore[import-untyped]

from spiromint.core.curves import CurveFamily, CurveSpec
from spiromint.core.noise import NOISE_GRADIENTS_3D, noise01, noise_table

ROSE_RADIUS = 250.0
ORGANIC_BASE_RADIUS = 150.0
ORGANIC_WOBBLE = 20.0

# 600x600 キャンバスで 50px の余白を残した半径。
DEFAULT_MAX_ALLOWED_EXTENT = 250.0
EXTENT_SAMPLE_STEP = 0.1


@njit(fastmath=True, cache=True)
def _organic_flow_kernel(
    ts: np.ndarray,
    complexity: float,
    speed: float,
    waves: int,
    amplitude: float,
    noise_scale: float,
    perm_table: np.ndarray,
    grad3_array: np.ndarray,
) -> np.ndarray:
    """OrganicFlow の座標列 shape (N, 2) を返す。"""
    n = ts.shape[0]
    out = np.empty((n, 2), dtype=np.float64)
    for j in range(n):
        t = ts[j]
        noise_time = t * speed
        radius = ORGANIC_BASE_RADIUS
        for i in range(waves):
            nf = noise01(
                math.cos(t + i) * noise_scale,
                math.sin(t + i) * noise_scale,
                noise_time,
                perm_table,
                grad3_array,
            )
            radius += math.sin(t * (i + 1) * complexity) * amplitude * nf

        x = radius * math.cos(t)
        y = radius * math.sin(t)

        # 2 次のゆらぎ（2 引数ノイズは z=0 とする）。
        x += math.sin(t * 3.5) * ORGANIC_WOBBLE * noise01(
            noise_time * 2.0, 0.0, 0.0, perm_table, grad3_array
        )
        y += math.cos(t * 2.7) * ORGANIC_WOBBLE * noise01(
            0.0, noise_time * 2.0, 0.0, perm_table, grad3_array
        )
        out[j, 0] = x
        out[j, 1] = y
    return out


def positions(spec: CurveSpec, ts: np.ndarray) -> np.ndarray:
    """曲線位置列 ts に対する座標列を返す。

    Parameters
    ----------
    spec : CurveSpec
        評価対象の曲線。
    ts : np.ndarray
        曲線位置 t の 1 次元配列。任意の実数を受け付ける。

    Returns
    -------
    np.ndarray
        float64 shape (N, 2) の (x, y) 配列。スケール・回転は含まない。
    """

    t = np.asarray(ts, dtype=np.float64).reshape(-1)
    p = spec.as_dict()
    family = spec.family

    if family is CurveFamily.ROSE:
        radius = ROSE_RADIUS * np.cos(float(p["k"]) * t)
        x = radius * np.cos(t)
        y = radius * np.sin(t)
    elif family is CurveFamily.EPITROCHOID:
        R, r, d = float(p["R"]), float(p["r"]), float(p["d"])
        ratio = (R + r) / r
        x = (R + r) * np.cos(t) - d * np.cos(ratio * t)
        y = (R + r) * np.sin(t) - d * np.sin(ratio * t)
    elif family is CurveFamily.HYPOTROCHOID:
        R, r, d = float(p["R"]), float(p["r"]), float(p["d"])
        ratio = (R - r) / r
        x = (R - r) * np.cos(t) + d * np.cos(ratio * t)
        y = (R - r) * np.sin(t) - d * np.sin(ratio * t)
    elif family is CurveFamily.LISSAJOUS:
        x = float(p["A"]) * np.sin(float(p["a"]) * t + float(p["delta"]))
        y = float(p["B"]) * np.sin(float(p["b"]) * t)
    elif family is CurveFamily.ORGANIC_FLOW:
        return _organic_flow_kernel(
            t,
            float(p["complexity"]),
            float(p["speed"]),
            int(p["waves"]),
            float(p["amplitude"]),
            float(p["noiseScale"]),
            noise_table(spec.seed),
            NOISE_GRADIENTS_3D,
        )
    else:
        raise ValueError(f"未知の曲線ファミリー: {family!r}")

    return np.stack([x, y], axis=1)


def position(spec: CurveSpec, t: float) -> tuple[float, float]:
    """曲線位置 t の座標 (x, y) を返す（純関数）。"""

    xy = positions(spec, np.array([float(t)], dtype=np.float64))
    return float(xy[0, 0]), float(xy[0, 1])


def pattern_extent(spec: CurveSpec, *, step: float = EXTENT_SAMPLE_STEP) -> tuple[float, float]:
    """[0, maxT) を固定刻みで標本化し、(max|x|, max|y|) を返す。"""

    _step = float(step)
    if _step <= 0:
        raise ValueError("step は正の値である必要がある")
    ts = np.arange(0.0, float(spec.max_t), _step, dtype=np.float64)
    if ts.size == 0:
        return 0.0, 0.0
    xy = positions(spec, ts)
    return float(np.max(np.abs(xy[:, 0]))), float(np.max(np.abs(xy[:, 1])))


def scale_factor(
    spec: CurveSpec,
    *,
    max_allowed_extent: float = DEFAULT_MAX_ALLOWED_EXTENT,
    step: float = EXTENT_SAMPLE_STEP,
) -> float:
    """図柄をキャンバス内に収める一様スケール係数を返す。

    Notes
    -----
    外接範囲が許容範囲以下なら 1.0（拡大はしない）。
    """

    allowed = float(max_allowed_extent)
    if allowed <= 0:
        raise ValueError("max_allowed_extent は正の値である必要がある")
    max_x, max_y = pattern_extent(spec, step=step)
    max_extent = max(max_x, max_y)
    if max_extent > allowed:
        return allowed / max_extent
    return 1.0


__all__ = [
    "DEFAULT_MAX_ALLOWED_EXTENT",
    "EXTENT_SAMPLE_STEP",
    "pattern_extent",
    "position",
    "positions",
    "scale_factor",
]
