from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from PIL import Image

from .errors import MalformedHeader, NotSupported
from .reader import Reader

# set: a single mip level is stored; clear: four
SINGLE_MIP_FLAG = 0x40


@dataclass
class TextureAsset:
    flags: int
    palette: List[int]
    palette_dark: List[int]
    width: int
    height: int
    mips: List[bytes] = field(default_factory=list)

    @property
    def mip_count(self) -> int:
        return len(self.mips)

    @classmethod
    def read(cls, flags: int, r: Reader) -> "TextureAsset":
        color_count = r.s32()
        if color_count < 0 or color_count * 8 > r.remaining:
            raise MalformedHeader(f"bad palette size {color_count} at {r.tell() - 4:#x}")
        if color_count > 256:
            raise NotSupported(f"palette of {color_count} colors does not fit 8-bit indices")
        palette = list(r.array("I", color_count))
        palette_dark = list(r.array("I", color_count))
        width = r.s32()
        height = r.s32()
        if width <= 0 or height <= 0:
            raise MalformedHeader(f"bad texture size {width}x{height}")

        mip_count = 1 if flags & SINGLE_MIP_FLAG else 4
        mips: List[bytes] = []
        for i in range(mip_count):
            size = r.s32()
            if size < 0:
                raise MalformedHeader(f"negative mip {i} size {size} at {r.tell() - 4:#x}")
            mips.append(r.bytes(size))
        if len(mips[0]) < width * height:
            raise MalformedHeader(f"mip 0 holds {len(mips[0])} byte(s), need {width * height}")
        return cls(flags, palette, palette_dark, width, height, mips)


@dataclass(frozen=True)
class Sprite:
    id: int
    name: str


def read_sprites(r: Reader) -> List[Sprite]:
    count = r.s32()
    if count < 0 or count * 8 > r.remaining:
        raise MalformedHeader(f"bad sprite count {count} at {r.tell() - 4:#x}")
    out: List[Sprite] = []
    for _ in range(count):
        sprite_id = r.s32()
        name_len = r.s32()
        if name_len < 0:
            raise MalformedHeader(f"negative sprite name length {name_len} at {r.tell() - 4:#x}")
        out.append(Sprite(sprite_id, r.fixed_str(name_len)))
    return out


def palette_to_rgba(palette: List[int]) -> bytes:
    """
    Convert ABGR dwords (red in the low byte) to an RGBA byte palette.

    Alpha is stored on a 0..128 scale.
    """
    out = bytearray()
    for abgr in palette:
        r = abgr & 0xFF
        g = (abgr >> 8) & 0xFF
        b = (abgr >> 16) & 0xFF
        a = min(255, int((abgr >> 24) / 128.0 * 255))
        out += bytes((r, g, b, a))
    return bytes(out)


def to_image(tex: TextureAsset, palette: List[int]) -> Image.Image:
    img = Image.frombytes("P", (tex.width, tex.height), tex.mips[0][: tex.width * tex.height])
    img.putpalette(palette_to_rgba(palette), rawmode="RGBA")
    # rows are stored bottom-up
    return img.convert("RGBA").transpose(Image.Transpose.FLIP_TOP_BOTTOM)


def save_texture_pngs(tex: TextureAsset, out_base: Path) -> List[Path]:
    """Write <out_base>_a.png (main palette) and <out_base>_b.png (dark palette)."""
    out_base.parent.mkdir(parents=True, exist_ok=True)
    written = []
    for suffix, palette in (("a", tex.palette), ("b", tex.palette_dark)):
        dst = out_base.parent / f"{out_base.name}_{suffix}.png"
        to_image(tex, palette).save(dst, format="PNG")
        written.append(dst)
    return written
