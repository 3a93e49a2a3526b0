"""
どこで: `src/spiromint/core/palettes.py`。
何を: 5 色パレットのモデルと、レア度順に並んだ固定パレット表を定義する。
なぜ: パレット選択をレア度区分インデックスだけで決定的に引けるようにするため。
"""

from __future__ import annotations

from dataclasses import dataclass

from spiromint.core.rarity import Rarity

ColorRGB = tuple[float, float, float]


def hex_to_rgb01(text: str) -> ColorRGB:
    """`#RRGGBB` を 0..1 float の RGB に変換して返す。

    Raises
    ------
    ValueError
        `#RRGGBB` 形式でない場合。
    """

    s = str(text).strip()
    if s.startswith("#"):
        s = s[1:]
    if len(s) != 6:
        raise ValueError(f"色は #RRGGBB 形式である必要がある: {text!r}")
    try:
        r = int(s[0:2], 16)
        g = int(s[2:4], 16)
        b = int(s[4:6], 16)
    except ValueError as exc:
        raise ValueError(f"色は #RRGGBB 形式である必要がある: {text!r}") from exc
    return r / 255.0, g / 255.0, b / 255.0


def rgb01_to_rgb255(rgb: ColorRGB) -> tuple[int, int, int]:
    """0..1 float の RGB を 0..255 int の RGB に変換して返す。"""

    out: list[int] = []
    for v in rgb:
        fv = float(v)
        fv = 0.0 if fv < 0.0 else 1.0 if fv > 1.0 else fv
        out.append(int(round(fv * 255.0)))
    return out[0], out[1], out[2]


def rgb01_to_hex(rgb: ColorRGB) -> str:
    """0..1 float RGB を #RRGGBB に変換して返す。"""

    r, g, b = rgb01_to_rgb255(rgb)
    return f"#{r:02X}{g:02X}{b:02X}"


@dataclass(frozen=True, slots=True)
class Palette:
    """名前付きの 5 色パレット。

    Parameters
    ----------
    name : str
        表示名。
    colors : tuple[str, ...]
        描画順に並んだ `#RRGGBB` 色列。色数がそのままレイヤー数になる。
    rarity : Rarity
        パレットのレア度。
    """

    name: str
    colors: tuple[str, ...]
    rarity: Rarity

    def __post_init__(self) -> None:
        if not self.colors:
            raise ValueError("palette.colors は少なくとも 1 色を含む必要がある")
        for c in self.colors:
            hex_to_rgb01(c)

    def rgb(self, index: int) -> ColorRGB:
        """index 番目の色を RGB01 で返す（範囲外は末尾にクランプ）。"""

        i = min(max(int(index), 0), len(self.colors) - 1)
        return hex_to_rgb01(self.colors[i])

    def to_event(self) -> dict[str, object]:
        """`on_palette_chosen` に渡す payload を返す。"""

        return {
            "name": self.name,
            "rarityLabel": self.rarity.value,
            "colors": list(self.colors),
        }


PALETTES: tuple[Palette, ...] = (
    Palette(
        name="Neon Mirage",
        colors=("#FF6B6B", "#4ECDC4", "#45B7D1", "#FDCB6E", "#6C5CE7"),
        rarity=Rarity.COMMON,
    ),
    Palette(
        name="Digital Dream",
        colors=("#FF00CC", "#3333FF", "#00FFF7", "#FFD6E8", "#BAFFC9"),
        rarity=Rarity.UNCOMMON,
    ),
    Palette(
        name="Crystal Sunset",
        colors=("#9B5DE5", "#F15BB5", "#FEE440", "#00BBF9", "#00F5D4"),
        rarity=Rarity.RARE,
    ),
    Palette(
        name="Cyber Haze",
        colors=("#F72585", "#B5179E", "#7209B7", "#3A0CA3", "#4361EE"),
        rarity=Rarity.SUPER_RARE,
    ),
    Palette(
        name="Pastel Vapor",
        colors=("#FF6EC7", "#FFC8DD", "#A0C4FF", "#BDB2FF", "#FFADAD"),
        rarity=Rarity.LEGENDARY,
    ),
)


def palette_by_name(name: str) -> Palette:
    """名前からパレットを引く。

    Raises
    ------
    KeyError
        未知の名前が指定された場合。
    """

    for p in PALETTES:
        if p.name == name:
            return p
    raise KeyError(name)


__all__ = [
    "ColorRGB",
    "PALETTES",
    "Palette",
    "hex_to_rgb01",
    "palette_by_name",
    "rgb01_to_hex",
    "rgb01_to_rgb255",
]
