# どこで: `src/spiromint/interactive/preview_window.py`。
# 何を: pyglet ウィンドウでメイン面を逐次表示し、キー操作を PreviewSystem へ配送する。
# なぜ: pyglet 依存をこの層に閉じ込め、core/export をヘッドレスに保つため。

from __future__ import annotations

import logging

import pyglet
from pyglet.window import Window, key

from spiromint.core.render_settings import RenderSettings
from spiromint.core.renderer import PatternRenderer
from spiromint.core.runtime_config import runtime_config
from spiromint.core.surface import Surface
from spiromint.interactive.preview_system import PreviewSystem

_logger = logging.getLogger(__name__)


def create_preview_window(settings: RenderSettings, *, render_scale: float = 1.0) -> Window:
    """設定に基づきプレビューウィンドウを生成する。"""
    canvas_w, canvas_h = settings.canvas_size
    window = pyglet.window.Window(  # type: ignore[abstract]
        width=int(canvas_w * render_scale),
        height=int(canvas_h * render_scale),
        resizable=False,
        caption="Spiromint",
    )
    return window


def _to_image(surface: Surface) -> pyglet.image.ImageData:
    w, h = surface.size
    # 負の pitch は行 0 が上端であることを示す。
    return pyglet.image.ImageData(w, h, "RGBA", surface.pixels.tobytes(), pitch=-w * 4)


def run_preview(
    *,
    seed: int | None = None,
    settings: RenderSettings | None = None,
) -> None:
    """プレビューウィンドウを開き、閉じられるまで描画を続ける。"""

    cfg = runtime_config()
    _settings = settings if settings is not None else RenderSettings.from_config(cfg)

    system: PreviewSystem | None = None

    def on_complete(final: Surface, metadata: dict) -> None:
        if system is None:
            raise RuntimeError("PreviewSystem の初期化前に完成通知を受け取りました")
        system.on_render_complete(final, metadata)

    renderer = PatternRenderer(settings=_settings, on_render_complete=on_complete)
    system = PreviewSystem(renderer, fps=_settings.fps)

    window = create_preview_window(_settings, render_scale=cfg.render_scale)
    x, y = cfg.window_position
    window.set_location(int(x), int(y))

    def on_draw() -> None:
        window.clear()
        main = renderer.main_buffer
        if main is not None:
            _to_image(main).blit(0, 0, width=window.width, height=window.height)

    def on_key_press(symbol: int, modifiers: int) -> None:
        if symbol == key.N:
            system.new_pattern()
        elif symbol == key.S:
            system.save_svg()
        elif symbol == key.P:
            try:
                system.save_png()
            except RuntimeError as e:
                _logger.error("%s", e)
        elif symbol == key.V:
            try:
                system.toggle_recording()
            except RuntimeError as e:
                _logger.error("%s", e)
        elif symbol == key.ESCAPE:
            window.close()

    def on_close() -> None:
        pyglet.app.exit()

    window.push_handlers(on_draw=on_draw, on_key_press=on_key_press, on_close=on_close)

    def update(dt: float) -> None:
        system.update()
        window.set_caption(system.caption())

    system.new_pattern(seed)
    fps = float(_settings.fps)
    pyglet.clock.schedule_interval(update, 1.0 / fps)
    try:
        pyglet.app.run(interval=1.0 / fps)
    finally:
        pyglet.clock.unschedule(update)
        system.close()
