# どこで: `src/spiromint/cli.py`。
# 何を: `python -m spiromint` / `spiromint` コマンドの引数解析とサブコマンド（render / preview / collection / stats）を提供する。
# なぜ: ヘッドレス描画・発行・分布確認をスクリプトから反復実行できるようにするため。

from __future__ import annotations

import argparse
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any

from spiromint.core.collection import (
    append_collection_record,
    collection_record,
    default_collection_path,
    load_collection,
)
from spiromint.core.curves import SEED_MAX, generate, validate_seed
from spiromint.core.metadata import combined_rarity
from spiromint.core.rarity import RARITY_ORDER
from spiromint.core.render_settings import LayerPolicy, RenderSettings
from spiromint.core.renderer import PatternRenderer
from spiromint.core.runtime_config import runtime_config, set_config_path
from spiromint.core.seeds import JsonSeedAllocator, find_available_seed
from spiromint.export.image import default_output_path, export_png
from spiromint.export.svg import export_svg
from spiromint.export.video import VideoRecorder, default_video_output_path

_logger = logging.getLogger(__name__)


def _seed_arg(text: str) -> int:
    try:
        return validate_seed(int(text), cap=SEED_MAX)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid seed: {text!r} (1..{SEED_MAX})") from e


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="spiromint", description="seed 決定的なスピログラフ生成器")
    p.add_argument("--config", type=Path, default=None, help="明示的な config.yaml のパス")
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("render", help="ヘッドレスで 1 図柄を最後まで描画して保存する")
    r.add_argument("--seed", type=_seed_arg, default=None, help="1..10000 の seed（省略時はランダム）")
    r.add_argument(
        "--policy",
        choices=("multi", "lerp"),
        default=None,
        help="レイヤー方式（multi: 色ごとのレイヤー面 / lerp: 単一面で色補間）",
    )
    r.add_argument("--svg", action="store_true", help="SVG を保存する")
    r.add_argument("--png", action="store_true", help="PNG を保存する（resvg が必要）")
    r.add_argument("--video", action="store_true", help="描画過程を mp4 で保存する（ffmpeg が必要）")
    r.add_argument("--mint", action="store_true", help="seed を発行台帳に予約する")

    v = sub.add_parser("preview", help="pyglet ウィンドウで描画過程をプレビューする")
    v.add_argument("--seed", type=_seed_arg, default=None, help="最初に表示する seed")

    c = sub.add_parser("collection", help="発行済み図柄の記録を一覧する")
    c.add_argument("--json", action="store_true", help="記録を JSON 配列のまま出力する")

    s = sub.add_parser("stats", help="seed 1..N のレア度分布を集計する")
    s.add_argument("--samples", type=int, default=SEED_MAX, help="集計する seed 数")
    return p


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> RenderSettings:
    settings = RenderSettings.from_config(runtime_config())
    if args.policy is None:
        return settings
    return RenderSettings(
        canvas_size=settings.canvas_size,
        margin=settings.margin,
        tick_step=settings.tick_step,
        sub_steps=settings.sub_steps,
        layer_policy=LayerPolicy.parse(args.policy),
        stroke_weight=settings.stroke_weight,
        background_color=settings.background_color,
        fps=settings.fps,
        seed_cap=settings.seed_cap,
    )


def _cmd_render(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    seed: int | None = args.seed
    if seed is not None and seed > settings.seed_cap:
        _logger.error("seed %d exceeds seeds.cap=%d", seed, settings.seed_cap)
        return 2

    # 台帳への予約は描画と全出力が成功した後に行う。
    ledger: JsonSeedAllocator | None = None
    if args.mint:
        ledger = JsonSeedAllocator(cap=settings.seed_cap)
        if seed is None:
            seed = find_available_seed(ledger, cap=settings.seed_cap)
            if seed is None:
                _logger.error("All %s designs have been minted!", f"{settings.seed_cap:,}")
                return 1
        elif not ledger.is_available(seed):
            _logger.error("This design has already been minted!")
            return 1

    result: dict[str, Any] = {}

    def on_complete(_final: object, metadata: dict[str, Any]) -> None:
        result.update(metadata)

    renderer = PatternRenderer(settings=settings, on_render_complete=on_complete)
    chosen = renderer.regenerate(seed)

    main = renderer.main_buffer
    if main is None:
        raise RuntimeError("メイン面が初期化されていません")
    recorder: VideoRecorder | None = None
    video_path: Path | None = None
    if args.video:
        video_path = default_video_output_path(chosen)
        recorder = VideoRecorder(output_path=video_path, size=main.size, fps=settings.fps)
    try:
        while not renderer.is_complete:
            renderer.tick()
            if recorder is not None:
                recorder.write_frame(main.pixels)
    finally:
        if recorder is not None:
            recorder.close()

    final = renderer.final_image
    if final is None:
        raise RuntimeError("描画が完了していません")
    svg_path: Path | None = None
    png_path: Path | None = None
    if args.svg:
        svg_path = export_svg([final], default_output_path("svg", chosen, "svg"))
    if args.png:
        png_path = export_png([final], default_output_path("png", chosen, "png"))

    if ledger is not None:
        reservation = ledger.reserve(chosen)
        if not reservation.success:
            _logger.error("%s", reservation.message)
            return 1
        append_collection_record(
            collection_record(
                result,
                image_path=png_path,
                svg_path=svg_path,
                animation_path=video_path,
            )
        )

    print(json.dumps(result, ensure_ascii=False, indent=2))  # noqa: T201
    return 0


def _cmd_preview(args: argparse.Namespace) -> int:
    # pyglet はプレビュー時だけ読み込む。
    from spiromint.interactive.preview_window import run_preview

    run_preview(seed=args.seed)
    return 0


def _cmd_collection(args: argparse.Namespace) -> int:
    records = load_collection(default_collection_path())
    if args.json:
        print(json.dumps(records, ensure_ascii=False, indent=2))  # noqa: T201
        return 0
    if not records:
        print("No minted patterns yet.")  # noqa: T201
        return 0
    for rec in records:
        params = rec.get("params", {})
        print(  # noqa: T201
            f"#{rec.get('id')!s:>5}  {params.get('shape', '?'):<12} "
            f"{rec.get('combinedRarity', '?'):<10}  {rec.get('mintDate', '')}"
        )
    return 0


def rarity_histogram(samples: int) -> dict[str, dict[str, int]]:
    """seed 1..samples のファミリー / パレット / 複合レア度の件数を返す。"""

    n = int(samples)
    if n < 1:
        raise ValueError("samples は 1 以上である必要がある")
    families: Counter[str] = Counter()
    palettes: Counter[str] = Counter()
    combined: Counter[str] = Counter()
    for seed in range(1, n + 1):
        spec, palette = generate(seed)
        families[spec.rarity.value] += 1
        palettes[palette.rarity.value] += 1
        combined[combined_rarity(spec, palette).value] += 1

    def ordered(counter: Counter[str]) -> dict[str, int]:
        return {r.value: int(counter.get(r.value, 0)) for r in RARITY_ORDER}

    return {"family": ordered(families), "palette": ordered(palettes), "combined": ordered(combined)}


def _cmd_stats(args: argparse.Namespace) -> int:
    hist = rarity_histogram(args.samples)
    n = int(args.samples)
    for kind, counts in hist.items():
        print(f"[{kind}]")  # noqa: T201
        for label, count in counts.items():
            print(f"  {label:<12} {count:>6}  {100.0 * count / n:6.2f}%")  # noqa: T201
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI エントリポイント。終了コードを返す。"""

    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if args.config is not None:
        set_config_path(args.config)

    if args.command == "render":
        try:
            return _cmd_render(args)
        except (RuntimeError, OSError) as e:
            _logger.error("%s", e)
            return 1
    if args.command == "preview":
        return _cmd_preview(args)
    if args.command == "collection":
        return _cmd_collection(args)
    if args.command == "stats":
        try:
            return _cmd_stats(args)
        except ValueError as e:
            _logger.error("%s", e)
            return 2
    raise AssertionError(f"unknown command: {args.command!r}")


if __name__ == "__main__":
    raise SystemExit(main())
