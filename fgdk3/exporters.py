from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from . import collada
from .errors import FormatError, MalformedHeader
from .preload import AssetGroup
from .reader import LITTLE, BIG, Reader
from .resources import ResourcesHeader
from .shape import Shape, ShapeHeader, decode_shape
from .texture import TextureAsset, read_sprites, save_texture_pngs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportOptions:
    endian: str = LITTLE
    bone_index_order: str = "little"
    write_metadata_comments: bool = True

    def __post_init__(self) -> None:
        if self.endian not in (LITTLE, BIG):
            raise ValueError(f"bad endian: {self.endian!r}")
        if self.bone_index_order not in ("little", "big"):
            raise ValueError(f"bad bone index order: {self.bone_index_order!r}")


# (asset group, cursor at the group's data, options, output dir, written) -> written
# paths are appended to `written` as each file lands
AssetExporter = Callable[[AssetGroup, Reader, ExportOptions, Path, Optional[List[Path]]], List[Path]]


def shape_comments(shape: Shape, lod: int) -> List[str]:
    h = shape.header
    out = [f"header.unknown{i}={getattr(h, f'unknown{i}')}" for i in (0, 1, 2, 3, 4, 5, 6)]
    out.append(f"header.lod_count={h.lod_count} header.aux_scalar_count={h.aux_scalar_count}")
    out.extend(f"header.unknown{i}={getattr(h, f'unknown{i}')}" for i in range(9, 17))
    out.extend(f"aux[{i}]={v}" for i, v in enumerate(shape.aux_scalars))
    out.extend(shape.lods[lod].metadata())
    return out


def export_shapes(
    group: AssetGroup, r: Reader, options: ExportOptions, out_dir: Path, written: Optional[List[Path]] = None
) -> List[Path]:
    """
    Shape asset group:
      resources header (shape i's 68-byte header is resource 0, subresource 1 + 2*i)
      element_count * shape body (aux scalars, then one shape object per LOD)

    A shape that fails to decode writes nothing.
    """

    resources = ResourcesHeader.read(r)
    if written is None:
        written = []
    for i in range(group.element_count):
        try:
            header = ShapeHeader.from_bytes(resources.get(0, 1 + i * 2), options.endian)
            shape = decode_shape(header, r, bone_index_order=options.bone_index_order)
        except FormatError as e:
            raise type(e)(f"shape {i}: {e}") from e

        for lod, ctx in enumerate(shape.lods):
            comments = shape_comments(shape, lod) if options.write_metadata_comments else []
            dst = out_dir / f"shape_{i}_lod{lod}.dae"
            collada.write_document(ctx, dst, comments)
            written.append(dst)
        logger.debug("shape %d: %d lod(s)", i, len(shape.lods))
    return written


def export_textures(
    group: AssetGroup, r: Reader, options: ExportOptions, out_dir: Path, written: Optional[List[Path]] = None
) -> List[Path]:
    """
    Texture asset group:
      s32 texture_count
      resources header (texture i's flags byte is resource 2, subresource 2*i, byte 0)
      texture_count * texture
      sprite table
    """

    texture_count = r.s32()
    if texture_count < 0:
        raise MalformedHeader(f"negative texture count {texture_count}")
    resources = ResourcesHeader.read(r)
    if written is None:
        written = []
    for i in range(texture_count):
        try:
            flags_blob = resources.get(2, i * 2)
            if not flags_blob:
                raise MalformedHeader("empty flags subresource")
            tex = TextureAsset.read(flags_blob[0], r)
        except FormatError as e:
            raise type(e)(f"texture {i}: {e}") from e
        written.extend(save_texture_pngs(tex, out_dir / f"texture_{i}"))

    sprites = read_sprites(r)
    logger.debug("%d texture(s), %d sprite(s)", texture_count, len(sprites))
    return written
