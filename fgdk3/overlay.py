from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Iterator, Optional, Tuple

from .preload import AssetGroup, Overlay

logger = logging.getLogger(__name__)


def segment_names(overlay: Overlay, localization_count: int) -> Iterator[Tuple[str, Tuple[AssetGroup, ...]]]:
    """
    (segment name, asset groups) for every file an overlay can own:
      <id>, <id>d0, <id>l<n>..., <id>d0l<n>...
    """
    main, dark, local, dark_local = overlay.asset_groups
    yield f"{overlay.id}", main
    yield f"{overlay.id}d0", dark
    for n in range(localization_count):
        yield f"{overlay.id}l{n}", local
    for n in range(localization_count):
        yield f"{overlay.id}d0l{n}", dark_local


class OverlaySource:
    """Finds <name>.ovl in a loose OVERLAY directory, then in OVERLAY.ZIP."""

    def __init__(self, base_dir: Path, zip_path: Optional[Path] = None):
        self.base_dir = base_dir
        self.zip_path = zip_path

    @classmethod
    def beside(cls, preload_path: Path) -> "OverlaySource":
        parent = preload_path.parent
        return cls(parent / "OVERLAY", parent / "OVERLAY.ZIP")

    def load(self, name: str) -> Optional[bytes]:
        path = self.base_dir / name
        if path.is_file():
            return path.read_bytes()

        if self.zip_path is not None and self.zip_path.is_file():
            try:
                with zipfile.ZipFile(self.zip_path, "r") as zf:
                    # entry names are matched case-insensitively, ignoring folders
                    for info in zf.infolist():
                        if Path(info.filename).name.lower() == name.lower():
                            return zf.read(info)
            except zipfile.BadZipFile as e:
                logger.warning("Cannot read '%s' from %s: %s", name, self.zip_path, e)
                return None
        logger.debug("'%s' not found in %s or %s", name, self.base_dir, self.zip_path)
        return None
