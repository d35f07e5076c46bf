#!/usr/bin/env python3
# Batch validator for overlay lookup.
# Strict: walks every PRELOAD.DAT catalog and reports segments with assets but no .ovl file.

from __future__ import annotations

import argparse
from pathlib import Path

from fgdk3.errors import FormatError
from fgdk3.overlay import OverlaySource, segment_names
from fgdk3.preload import PreloadFile
from fgdk3.reader import Reader
from fgdk3.targets import detect_target


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("root", type=Path, nargs="?", default=Path("in"))
    args = ap.parse_args()

    bad = 0
    total = 0
    for p in args.root.rglob("PRELOAD.DAT"):
        target = detect_target(p.parent)
        if target is None:
            print(f"[skip] {p} unknown target")
            continue
        try:
            pf = PreloadFile.read(target.asset_type_count, Reader(p.read_bytes()))
        except FormatError as e:
            bad += 1
            print(f"[bad] {p} catalog: {e}")
            continue
        source = OverlaySource.beside(p)
        for overlay in pf.overlays:
            for name, groups in segment_names(overlay, target.localization_count):
                if not any(groups):
                    continue
                total += 1
                if source.load(f"{name}.ovl") is None:
                    bad += 1
                    print(f"[bad] {p} overlay {overlay.id}: '{name}.ovl' missing")

    print(f"[preload_validate] checked={total} bad={bad}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
