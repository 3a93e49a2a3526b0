"""3D Perlin ノイズ（improved noise）と、seed ごとの置換テーブル生成。"""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from numba import njit  # type: ignore[import-untyped]

# パラメータ用乱数列とは別系統の SeedSequence を使い、draw 順に干渉しない。
_NOISE_STREAM_ID = 0x5E1D

_GRAD3_12 = [
    [1, 1, 0],
    [-1, 1, 0],
    [1, -1, 0],
    [-1, -1, 0],
    [1, 0, 1],
    [-1, 0, 1],
    [1, 0, -1],
    [-1, 0, -1],
    [0, 1, 1],
    [0, -1, 1],
    [0, 1, -1],
    [0, -1, -1],
]

NOISE_GRADIENTS_3D = np.asarray(_GRAD3_12, dtype=np.float64)
NOISE_GRADIENTS_3D.setflags(write=False)


@lru_cache(maxsize=32)
def noise_table(seed: int) -> np.ndarray:
    """seed から決まる置換テーブル（int32, shape (512,)）を返す。

    Notes
    -----
    0..255 の置換を 2 回連結した標準形式。返り値は writeable=False。
    """

    rng = np.random.default_rng([int(seed), _NOISE_STREAM_ID])
    perm = rng.permutation(256).astype(np.int32)
    table = np.concatenate([perm, perm]).astype(np.int32, copy=False)
    table.setflags(write=False)
    return table


@njit(fastmath=True, cache=True)
def fade(t):
    """Perlin ノイズ用のフェード関数。"""
    return t * t * t * (t * (t * 6 - 15) + 10)


@njit(fastmath=True, cache=True)
def lerp(a, b, t):
    """線形補間。"""
    return a + t * (b - a)


@njit(fastmath=True, cache=True)
def grad(hash_val, x, y, z, grad3_array):
    """勾配ベクトル計算。"""
    idx = int(hash_val) % 12
    g = grad3_array[idx]
    return g[0] * x + g[1] * y + g[2] * z


@njit(fastmath=True, cache=True)
def perlin_noise_3d(x, y, z, perm_table, grad3_array):
    """3 次元 Perlin ノイズ（おおよそ [-1, 1]）。"""
    X = int(np.floor(x)) & 255
    Y = int(np.floor(y)) & 255
    Z = int(np.floor(z)) & 255

    x -= np.floor(x)
    y -= np.floor(y)
    z -= np.floor(z)

    u = fade(x)
    v = fade(y)
    w = fade(z)

    A = perm_table[X] + Y
    AA = perm_table[A & 511] + Z
    AB = perm_table[(A + 1) & 511] + Z
    B = perm_table[(X + 1) & 255] + Y
    BA = perm_table[B & 511] + Z
    BB = perm_table[(B + 1) & 511] + Z

    gAA = grad(perm_table[AA & 511], x, y, z, grad3_array)
    gBA = grad(perm_table[BA & 511], x - 1, y, z, grad3_array)
    gAB = grad(perm_table[AB & 511], x, y - 1, z, grad3_array)
    gBB = grad(perm_table[BB & 511], x - 1, y - 1, z, grad3_array)
    gAA1 = grad(perm_table[(AA + 1) & 511], x, y, z - 1, grad3_array)
    gBA1 = grad(perm_table[(BA + 1) & 511], x - 1, y, z - 1, grad3_array)
    gAB1 = grad(perm_table[(AB + 1) & 511], x, y - 1, z - 1, grad3_array)
    gBB1 = grad(perm_table[(BB + 1) & 511], x - 1, y - 1, z - 1, grad3_array)

    return lerp(
        lerp(lerp(gAA, gBA, u), lerp(gAB, gBB, u), v),
        lerp(lerp(gAA1, gBA1, u), lerp(gAB1, gBB1, u), v),
        w,
    )


@njit(fastmath=True, cache=True)
def noise01(x, y, z, perm_table, grad3_array):
    """Perlin ノイズを [0, 1] に写した値を返す（変調係数として使う）。"""
    n = (perlin_noise_3d(x, y, z, perm_table, grad3_array) + 1.0) * 0.5
    if n < 0.0:
        return 0.0
    if n > 1.0:
        return 1.0
    return n


def noise(x: float, y: float, z: float = 0.0, *, seed: int) -> float:
    """seed のノイズ場における [0, 1] のノイズ値を返す（スカラー用ヘルパ）。"""

    return float(
        noise01(float(x), float(y), float(z), noise_table(int(seed)), NOISE_GRADIENTS_3D)
    )


__all__ = ["NOISE_GRADIENTS_3D", "noise", "noise01", "noise_table", "perlin_noise_3d"]
