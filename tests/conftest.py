from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from builders import SHAPE, TEXT, TEXTURE, ZOO_TYPES, overlay_blob, preload_blob, shape_segment, texture_segment


@pytest.fixture
def zoo_game(tmp_path: Path) -> Path:
    """
    A small Project Zoo install:
      overlay 5: shapes in '5.ovl' (loose), textures in '5d0.ovl' (zip only)
      overlay 7: text before shapes in '7.ovl' -> nothing exported
      overlay 9: localized shapes whose files do not exist
    """
    game = tmp_path / "game"
    (game / "OVERLAY").mkdir(parents=True)
    (game / "ZOO.DGF").write_bytes(b"")

    o5 = overlay_blob(5, ZOO_TYPES, {(0, SHAPE): 1, (1, TEXTURE): 1})
    o7 = overlay_blob(7, ZOO_TYPES, {(0, TEXT): 3, (0, SHAPE): 1})
    o9 = overlay_blob(9, ZOO_TYPES, {(2, SHAPE): 1})
    nested = bytes([1, 2, 0]) + o7 + bytes([0]) + o9
    (game / "PRELOAD.DAT").write_bytes(preload_blob(ZOO_TYPES, [bytes([0]) + o5, nested]))

    (game / "OVERLAY" / "5.ovl").write_bytes(shape_segment())
    (game / "OVERLAY" / "7.ovl").write_bytes(shape_segment())
    with zipfile.ZipFile(game / "OVERLAY.ZIP", "w") as zf:
        zf.writestr("OVERLAY/5D0.OVL", texture_segment())
    return game
