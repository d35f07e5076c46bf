#!/usr/bin/env python3
# Overlay segment dumper: prints the resources header of the first asset group present.
# Research tool: needs the PRELOAD.DAT to know which asset types a segment holds.

from __future__ import annotations

import argparse
from pathlib import Path

from fgdk3.overlay import OverlaySource, segment_names
from fgdk3.preload import PreloadFile
from fgdk3.reader import Reader
from fgdk3.resources import ResourcesHeader
from fgdk3.targets import TARGETS, detect_target, get_target


def dump_resources(rh: ResourcesHeader) -> None:
    for ri, res in enumerate(rh.resources):
        print(f"[ovl]   resource[{ri}] subresources={len(res.subresources)}")
        for si, sub in enumerate(res.subresources):
            head = rh.resource_bytes[ri][si][:16].hex()
            print(f"[ovl]     sub[{si}] size=0x{sub.data_size:X} annotations={len(sub.annotations)} head={head}")
            for a0, a1, a2 in sub.annotations:
                print(f"[ovl]       ann 0x{a0:08X} 0x{a1:08X} 0x{a2:08X}")
    for di, (d0, d1) in enumerate(rh.dependencies):
        print(f"[ovl]   dependency[{di}] 0x{d0:08X} 0x{d1:08X}")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("preload", type=Path)
    ap.add_argument("segment", help="segment name, e.g. 12 or 12d0l3")
    ap.add_argument("-t", "--target", choices=sorted(TARGETS))
    args = ap.parse_args()

    target = get_target(args.target) if args.target else detect_target(args.preload.parent)
    if target is None:
        raise SystemExit("could not detect target, pass -t")
    pf = PreloadFile.read(target.asset_type_count, Reader(args.preload.read_bytes()))

    groups = None
    for overlay in pf.overlays:
        for name, g in segment_names(overlay, target.localization_count):
            if name == args.segment:
                groups = g
    if groups is None:
        raise SystemExit(f"no segment named {args.segment}")

    data = OverlaySource.beside(args.preload).load(f"{args.segment}.ovl")
    if data is None:
        raise SystemExit(f"{args.segment}.ovl not found")
    print(f"[ovl] {args.segment}.ovl size=0x{len(data):X}")

    for t, g in enumerate(groups):
        if not g:
            continue
        print(f"[ovl] first group: type#{t} ({target.type_name(t)}) count={g.element_count}")
        r = Reader(data)
        if target.type_name(t) == "Texture":
            print(f"[ovl]   texture_count={r.s32()}")
        dump_resources(ResourcesHeader.read(r))
        print(f"[ovl]   group data starts at 0x{r.tell():X}")
        break
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
