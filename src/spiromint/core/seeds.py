# どこで: `src/spiromint/core/seeds.py`。
# 何を: 発行済み seed の台帳（空き確認・予約・件数）と、その JSON 永続化を提供する。
# なぜ: 描画コアを永続化の仕組みから切り離し、台帳を差し替え可能な能力として注入するため。

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

import numpy as np

from spiromint.core.curves import SEED_MAX, SEED_MIN
from spiromint.core.runtime_config import output_root_dir

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reservation:
    """予約結果。失敗時は message に理由を入れる。"""

    success: bool
    message: str = ""


class SeedAllocator(Protocol):
    """発行済み seed 台帳のインターフェース。"""

    def is_available(self, seed: int) -> bool: ...

    def reserve(self, seed: int) -> Reservation: ...

    def count(self) -> int: ...


class InMemorySeedAllocator:
    """プロセス内だけで保持する seed 台帳。"""

    def __init__(self, *, cap: int = SEED_MAX, minted: Iterable[int] = ()) -> None:
        if int(cap) < 1:
            raise ValueError("cap は 1 以上である必要がある")
        self.cap = int(cap)
        self._minted: set[int] = {int(s) for s in minted}

    @property
    def minted(self) -> frozenset[int]:
        """発行済み seed 集合を返す。"""

        return frozenset(self._minted)

    def is_available(self, seed: int) -> bool:
        return int(seed) not in self._minted

    def count(self) -> int:
        return len(self._minted)

    def reserve(self, seed: int) -> Reservation:
        """seed を発行済みにする。上限到達・重複時は失敗を返す。"""

        s = int(seed)
        if len(self._minted) >= self.cap:
            return Reservation(False, f"All {self.cap:,} designs have been minted!")
        if s in self._minted:
            return Reservation(False, "This design has already been minted!")
        self._minted.add(s)
        self._on_reserved(s)
        return Reservation(True)

    def _on_reserved(self, seed: int) -> None:
        """予約成立後のフック（永続化用）。"""

        return


def default_ledger_path() -> Path:
    """台帳 JSON の既定保存パス `{output_root}/ledger/minted_seeds.json` を返す。"""

    return output_root_dir() / "ledger" / "minted_seeds.json"


def load_minted_seeds(path: Path) -> set[int]:
    """JSON ファイルから発行済み seed 集合をロードする。無い・壊れている場合は空集合。"""

    try:
        payload = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return set()
    except OSError:
        _logger.warning("台帳を読み込めないため空として扱います: %s", path)
        return set()

    try:
        data = json.loads(payload)
        return {int(s) for s in data}
    except Exception:
        _logger.warning("台帳 JSON が壊れているため空として扱います: %s", path)
        return set()


def save_minted_seeds(seeds: Iterable[int], path: Path) -> None:
    """発行済み seed を昇順の JSON 配列として保存する（親ディレクトリは作成する）。"""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(sorted(int(s) for s in seeds)) + "\n", encoding="utf-8")


class JsonSeedAllocator(InMemorySeedAllocator):
    """JSON ファイルへ永続化する seed 台帳。"""

    def __init__(self, path: str | Path | None = None, *, cap: int = SEED_MAX) -> None:
        self.path = Path(path) if path is not None else default_ledger_path()
        super().__init__(cap=cap, minted=load_minted_seeds(self.path))

    def _on_reserved(self, seed: int) -> None:
        save_minted_seeds(self._minted, self.path)
        _logger.info("Reserved seed %d (%d/%d)", seed, len(self._minted), self.cap)


def find_available_seed(
    allocator: SeedAllocator,
    *,
    rng: np.random.Generator | None = None,
    cap: int = SEED_MAX,
    attempts: int = 100,
) -> int | None:
    """未発行の seed を 1 つ返す。全件発行済みなら None。

    Notes
    -----
    まず `attempts` 回ランダムに探し、見つからなければ 1 から順に走査する。
    """

    if allocator.count() >= int(cap):
        return None

    _rng = rng if rng is not None else np.random.default_rng()
    for _ in range(int(attempts)):
        candidate = int(_rng.integers(SEED_MIN, int(cap) + 1))
        if allocator.is_available(candidate):
            return candidate

    for candidate in range(SEED_MIN, int(cap) + 1):
        if allocator.is_available(candidate):
            return candidate
    return None


__all__ = [
    "InMemorySeedAllocator",
    "JsonSeedAllocator",
    "Reservation",
    "SeedAllocator",
    "default_ledger_path",
    "find_available_seed",
    "load_minted_seeds",
    "save_minted_seeds",
]
