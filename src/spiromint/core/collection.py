# どこで: `src/spiromint/core/collection.py`。
# 何を: 発行に成功した図柄の記録（メタデータ・出力先・発行日時）を JSON 配列として保存・一覧する。
# なぜ: seed 台帳は番号だけを持つため、発行済み図柄の中身を後から振り返れるようにするため。

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from spiromint.core.runtime_config import output_root_dir

_logger = logging.getLogger(__name__)


def default_collection_path() -> Path:
    """コレクション JSON の既定保存パス `{output_root}/ledger/collection.json` を返す。"""

    return output_root_dir() / "ledger" / "collection.json"


def collection_record(
    metadata: dict[str, Any],
    *,
    image_path: Path | None = None,
    svg_path: Path | None = None,
    animation_path: Path | None = None,
    mint_date: datetime | None = None,
) -> dict[str, Any]:
    """メタデータへ出力先と発行日時（ISO 8601, UTC）を加えた記録を返す。

    Parameters
    ----------
    metadata : dict[str, Any]
        `pattern_metadata()` が返す dict。
    image_path, svg_path, animation_path : Path | None
        保存済みの PNG / SVG / 動画。保存していなければ None。
    mint_date : datetime | None
        発行日時。None なら現在時刻。
    """

    when = mint_date if mint_date is not None else datetime.now(timezone.utc)
    record = dict(metadata)
    record["imagePath"] = None if image_path is None else str(image_path)
    record["svgPath"] = None if svg_path is None else str(svg_path)
    record["animationPath"] = None if animation_path is None else str(animation_path)
    record["mintDate"] = when.isoformat()
    return record


def load_collection(path: Path) -> list[dict[str, Any]]:
    """JSON ファイルから記録一覧をロードする。無い・壊れている場合は空リスト。"""

    try:
        payload = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError:
        _logger.warning("コレクションを読み込めないため空として扱います: %s", path)
        return []

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        _logger.warning("コレクション JSON が壊れているため空として扱います: %s", path)
        return []
    if not isinstance(data, list):
        _logger.warning("コレクション JSON が配列ではないため空として扱います: %s", path)
        return []
    return [dict(item) for item in data if isinstance(item, dict)]


def save_collection(records: list[dict[str, Any]], path: Path) -> None:
    """記録一覧を JSON 配列として保存する（親ディレクトリは作成する）。"""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(records, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def append_collection_record(record: dict[str, Any], path: Path | None = None) -> Path:
    """記録を 1 件末尾に追加して保存し、保存先を返す。"""

    _path = path if path is not None else default_collection_path()
    records = load_collection(_path)
    records.append(record)
    save_collection(records, _path)
    _logger.info("Saved %s to collection (%d items)", record.get("name", record.get("id")), len(records))
    return _path


__all__ = [
    "append_collection_record",
    "collection_record",
    "default_collection_path",
    "load_collection",
    "save_collection",
]
