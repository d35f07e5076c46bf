#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import FormatError, MissingAsset
from .exporters import ExportOptions
from .overlay import OverlaySource, segment_names
from .preload import AssetGroup, PreloadFile
from .reader import BIG, LITTLE, Reader
from .targets import TARGETS, Target, detect_target, get_target

logger = logging.getLogger(__name__)


def export_overlay_segment(
    name: str,
    groups: Sequence[AssetGroup],
    data: bytes,
    target: Target,
    options: ExportOptions,
    out_root: Path,
) -> List[Path]:
    """
    Export every asset type present in one .ovl segment.

    Asset groups are stored back to back with no sizes, so the first group
    that cannot be decoded ends the segment. Files already written stay.
    """

    file_name = f"{name}.ovl"
    out_dir = out_root / name
    r = Reader(data, endian=options.endian)
    written: List[Path] = []
    for asset_type in range(target.asset_type_count):
        group = groups[asset_type]
        if group.element_count <= 0:
            continue
        type_name = target.type_name(asset_type)
        try:
            export = target.exporter_for(asset_type)
        except MissingAsset:
            logger.warning(
                "Exporter for type#%d (%s) unavailable, aborting export for '%s'.", asset_type, type_name, file_name
            )
            break
        logger.info("Exporting type#%d (%s) assets from '%s'...", asset_type, type_name, file_name)
        try:
            export(group, r, options, out_dir, written)
        except FormatError as e:
            logger.error("Failed: '%s' type#%d (%s) at %#x: %s", file_name, asset_type, type_name, r.tell(), e)
            break
    return written


def export_preload(preload_path: Path, out_root: Path, target: Target, options: ExportOptions) -> List[Path]:
    preload = PreloadFile.read(
        target.asset_type_count, Reader(preload_path.read_bytes(), endian=options.endian)
    )
    source = OverlaySource.beside(preload_path)
    written: List[Path] = []
    for overlay in preload.overlays:
        for name, groups in segment_names(overlay, target.localization_count):
            if not any(groups):
                continue
            data = source.load(f"{name}.ovl")
            if data is None:
                logger.info("'%s.ovl' not found, skipping", name)
                continue
            written.extend(export_overlay_segment(name, groups, data, target, options, out_root))
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="fgdk3-export", description="Export shapes and textures from a PRELOAD.DAT and its overlays."
    )
    ap.add_argument("preload", type=Path, help="PRELOAD.DAT")
    ap.add_argument("output_dir", type=Path, nargs="?", help="Output folder (default: OVERLAY_unpack beside PRELOAD)")
    ap.add_argument("-t", "--target", choices=sorted(TARGETS), help="Game (default: auto-detect)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Be verbose")
    ap.add_argument("--big-endian", action="store_true", help="Read multi-byte fields big-endian")
    ap.add_argument("--bone-order", choices=("little", "big"), default="little", help="Byte order of packed bone indices")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(message)s")

    preload_path: Path = args.preload
    if not preload_path.is_file():
        raise SystemExit(f"not a file: {preload_path}")
    out_root: Path = args.output_dir or (preload_path.parent / "OVERLAY_unpack")

    if args.target:
        target = get_target(args.target)
    else:
        logger.info("Unknown target, attempting to auto-detect...")
        target = detect_target(preload_path.parent)
        if target is None:
            logger.error("Could not detect target. Please specify target.")
            return 1
        logger.info("Detected %s.", target.name)

    options = ExportOptions(endian=BIG if args.big_endian else LITTLE, bone_index_order=args.bone_order)
    try:
        export_preload(preload_path, out_root, target, options)
    except FormatError as e:
        logger.error("Failed: %s (%s)", preload_path, e)
        return 1
    print(f"Wrote: {out_root}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
