# どこで: `src/spiromint/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: キャンバス寸法や描画ステップ、出力先をコード変更なしで調整できるようにするため。

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

LAYER_POLICY_NAMES = ("multi_buffer", "color_lerp")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """spiromint の実行時設定。"""

    config_path: Path | None
    output_dir: Path
    canvas_size: tuple[int, int]
    canvas_margin: int
    tick_step: float
    sub_steps: int
    fps: float
    layer_policy: str
    stroke_weight: float
    seed_cap: int
    png_scale: float
    window_position: tuple[int, int]
    render_scale: float


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """以降の設定探索で使う明示 config パスを設定する。

    Notes
    -----
    `path` を None にすると明示指定を解除し、既定の探索に戻る。
    """

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    if path is None:
        _EXPLICIT_CONFIG_PATH = None
        _CONFIG_CACHE = None
        return
    _EXPLICIT_CONFIG_PATH = Path(str(path)).expanduser()
    _CONFIG_CACHE = None


def _default_config_candidates() -> tuple[Path, ...]:
    cwd = Path.cwd()
    home = Path.home()
    return (
        cwd / ".spiromint" / "config.yaml",
        home / ".config" / "spiromint" / "config.yaml",
    )


def _expand_path_text(text: str) -> str:
    return os.path.expandvars(os.path.expanduser(str(text)))


def _as_optional_path(value: Any) -> Path | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    return Path(_expand_path_text(s))


def _as_mapping(value: Any, *, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")


def _as_int_pair(value: Any, *, key: str) -> tuple[int, int] | None:
    if value is None:
        return None
    try:
        seq = list(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は [x, y] の配列である必要があります: got={value!r}") from exc
    if len(seq) != 2:
        raise RuntimeError(f"{key} は [x, y] の配列である必要があります: got={value!r}")
    try:
        x = int(seq[0])
        y = int(seq[1])
    except Exception as exc:
        raise RuntimeError(f"{key} は [x, y] の整数配列である必要があります: got={value!r}") from exc
    return (x, y)


def _as_float(value: Any, *, key: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}") from exc


def _as_int(value: Any, *, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        return int(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc


def _require(value: Any, *, key: str) -> Any:
    if value is None:
        raise RuntimeError(
            f"{key} が未設定です（同梱 default_config.yaml を確認してください）"
        )
    return value


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """mapping を再帰的に後勝ちでマージした新しい dict を返す。"""

    out = dict(base)
    for k, v in override.items():
        current = out.get(k)
        if isinstance(current, dict) and isinstance(v, dict):
            out[k] = _merge(current, v)
        else:
            out[k] = v
    return out


def _load_yaml_text(text: str, *, source: str) -> dict[str, Any]:
    import yaml

    try:
        data = yaml.safe_load(text)
    except Exception as exc:
        raise RuntimeError(f"config.yaml の読み込みに失敗しました: source={source}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml は mapping である必要があります: source={source}")

    return dict(data)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    return _load_yaml_text(text, source=str(path))


def _load_packaged_default_config() -> dict[str, Any]:
    """同梱デフォルト config をロードして dict を返す。"""

    try:
        blob = (
            resources.files("spiromint")
            .joinpath("resource", "default_config.yaml")
            .read_text(encoding="utf-8")
        )
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "同梱 default_config.yaml の読み込みに失敗しました"
            "（パッケージ配布物の package-data を確認してください）"
        ) from exc

    return _load_yaml_text(blob, source="spiromint/resource/default_config.yaml")


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（キャッシュ）。"""

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")

    discovered_path: Path | None = None
    for p in _default_config_candidates():
        if p.is_file():
            discovered_path = p
            break

    payload = _load_packaged_default_config()
    if discovered_path is not None:
        payload = _merge(payload, _load_yaml_config(discovered_path))
    if explicit_path is not None:
        payload = _merge(payload, _load_yaml_config(explicit_path))

    version = _as_int(payload.get("version"), key="version")
    if _require(version, key="version") != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version}")

    paths = _as_mapping(payload.get("paths"), key="paths")
    output_dir = _require(_as_optional_path(paths.get("output_dir")), key="paths.output_dir")

    canvas = _as_mapping(payload.get("canvas"), key="canvas")
    canvas_size = _require(_as_int_pair(canvas.get("size"), key="canvas.size"), key="canvas.size")
    if canvas_size[0] <= 0 or canvas_size[1] <= 0:
        raise ValueError(f"canvas.size は正の (width, height) である必要があります: got={canvas_size}")
    canvas_margin = _require(_as_int(canvas.get("margin"), key="canvas.margin"), key="canvas.margin")
    if canvas_margin < 0 or 2 * canvas_margin >= min(canvas_size):
        raise ValueError(f"canvas.margin がキャンバスに収まりません: got={canvas_margin}")

    render = _as_mapping(payload.get("render"), key="render")
    tick_step = _require(_as_float(render.get("tick_step"), key="render.tick_step"), key="render.tick_step")
    if tick_step <= 0:
        raise ValueError(f"render.tick_step は正の値である必要があります: got={tick_step}")
    sub_steps = _require(_as_int(render.get("sub_steps"), key="render.sub_steps"), key="render.sub_steps")
    if sub_steps < 1:
        raise ValueError(f"render.sub_steps は 1 以上である必要があります: got={sub_steps}")
    fps = _require(_as_float(render.get("fps"), key="render.fps"), key="render.fps")
    if fps <= 0:
        raise ValueError(f"render.fps は正の値である必要があります: got={fps}")
    # render_settings が本モジュールを import するため関数内で読む。
    from spiromint.core.render_settings import LayerPolicy

    raw_policy = _require(render.get("layer_policy"), key="render.layer_policy")
    try:
        layer_policy = LayerPolicy.parse(str(raw_policy)).value
    except ValueError as exc:
        raise ValueError(
            f"render.layer_policy は {LAYER_POLICY_NAMES}（短縮形 multi / lerp）のいずれかである必要があります: "
            f"got={raw_policy!r}"
        ) from exc
    stroke_weight = _require(
        _as_float(render.get("stroke_weight"), key="render.stroke_weight"),
        key="render.stroke_weight",
    )
    if stroke_weight <= 0:
        raise ValueError(f"render.stroke_weight は正の値である必要があります: got={stroke_weight}")

    seeds = _as_mapping(payload.get("seeds"), key="seeds")
    seed_cap = _require(_as_int(seeds.get("cap"), key="seeds.cap"), key="seeds.cap")
    if seed_cap < 1:
        raise ValueError(f"seeds.cap は 1 以上である必要があります: got={seed_cap}")

    export = _as_mapping(payload.get("export"), key="export")
    png = _as_mapping(export.get("png"), key="export.png")
    png_scale = _require(_as_float(png.get("scale"), key="export.png.scale"), key="export.png.scale")
    if png_scale <= 0:
        raise ValueError(f"export.png.scale は正の値である必要があります: got={png_scale}")

    ui = _as_mapping(payload.get("ui"), key="ui")
    window_position = _require(
        _as_int_pair(ui.get("window_position"), key="ui.window_position"),
        key="ui.window_position",
    )
    render_scale = _require(_as_float(ui.get("render_scale"), key="ui.render_scale"), key="ui.render_scale")
    if render_scale <= 0:
        raise ValueError(f"ui.render_scale は正の値である必要があります: got={render_scale}")

    cfg = RuntimeConfig(
        config_path=explicit_path or discovered_path,
        output_dir=output_dir,
        canvas_size=canvas_size,
        canvas_margin=int(canvas_margin),
        tick_step=float(tick_step),
        sub_steps=int(sub_steps),
        fps=float(fps),
        layer_policy=layer_policy,
        stroke_weight=float(stroke_weight),
        seed_cap=int(seed_cap),
        png_scale=float(png_scale),
        window_position=window_position,
        render_scale=float(render_scale),
    )
    _CONFIG_CACHE = cfg
    return cfg


def output_root_dir() -> Path:
    """出力ファイルを保存する既定ルートディレクトリを返す。

    上書き順（後勝ち）:
    1) 同梱 default_config.yaml
    2) `./.spiromint/config.yaml` / `~/.config/spiromint/config.yaml`
    3) `set_config_path()`（CLI の `--config`）
    """

    return Path(runtime_config().output_dir)


__all__ = [
    "LAYER_POLICY_NAMES",
    "RuntimeConfig",
    "output_root_dir",
    "runtime_config",
    "set_config_path",
]
