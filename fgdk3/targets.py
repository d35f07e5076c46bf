from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from .errors import MissingAsset
from .exporters import AssetExporter, export_shapes, export_textures


@dataclass(frozen=True)
class Target:
    """Per-game constants that the archive itself does not store."""

    name: str
    asset_type_count: int
    localization_count: int
    marker_file: str
    asset_types: Dict[int, Tuple[str, Optional[AssetExporter]]] = field(default_factory=dict)

    def type_name(self, asset_type: int) -> str:
        return self.asset_types.get(asset_type, (f"type#{asset_type}", None))[0]

    def exporter_for(self, asset_type: int) -> AssetExporter:
        name, exporter = self.asset_types.get(asset_type, (None, None))
        if exporter is None:
            raise MissingAsset(asset_type, name)
        return exporter


DOGS = Target(
    name="dogs",
    asset_type_count=11,
    localization_count=11,
    marker_file="DOGS.DGF",
    asset_types={
        0: ("Text", None),
        1: ("Texture", export_textures),
        2: ("Font", None),
        3: ("Shape", export_shapes),
        4: ("Sound", None),
        5: ("Creature", None),
        6: ("DogsTaleLand", None),
        7: ("Animation", None),
        8: ("Script", None),
        9: ("NavGraph", None),
        10: ("Music", None),
    },
)

ZOO = Target(
    name="zoo",
    asset_type_count=10,
    localization_count=5,
    marker_file="ZOO.DGF",
    asset_types={
        0: ("Text", None),
        1: ("Texture", export_textures),
        2: ("Shape", export_shapes),
    },
)

TARGETS: Dict[str, Target] = {t.name: t for t in (DOGS, ZOO)}


def get_target(name: str) -> Target:
    try:
        return TARGETS[name.lower()]
    except KeyError:
        raise ValueError("invalid target") from None


def detect_target(game_dir: Path) -> Optional[Target]:
    for target in TARGETS.values():
        if (game_dir / target.marker_file).exists():
            return target
    return None
