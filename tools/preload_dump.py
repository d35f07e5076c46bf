#!/usr/bin/env python3
# PRELOAD.DAT catalog dumper for reverse-engineering.
# Prints the node tree and every overlay's per-type asset groups; does not touch overlays.

from __future__ import annotations

import argparse
from pathlib import Path

from fgdk3.preload import Group, Node, Overlay, PreloadFile
from fgdk3.reader import Reader
from fgdk3.targets import TARGETS, detect_target, get_target


def dump_node(node: Node, depth: int, type_names: list[str]) -> None:
    pad = "  " * depth
    if isinstance(node, Group):
        print(f"[preload] {pad}group kind={node.kind.name} children={len(node.children)}")
        for child in node.children:
            dump_node(child, depth + 1, type_names)
        return
    assert isinstance(node, Overlay)
    print(f"[preload] {pad}overlay id={node.id}")
    for seg, groups in enumerate(node.asset_groups):
        for t, g in enumerate(groups):
            if not g and not g.aux_records:
                continue
            aux = " ".join(f"({a},{b})" for a, b in g.aux_records)
            print(f"[preload] {pad}  seg{seg} {type_names[t]}: count={g.element_count} aux=[{aux}]")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("path", type=Path)
    ap.add_argument("-t", "--target", choices=sorted(TARGETS))
    args = ap.parse_args()

    target = get_target(args.target) if args.target else detect_target(args.path.parent)
    if target is None:
        raise SystemExit("could not detect target, pass -t")

    pf = PreloadFile.read(target.asset_type_count, Reader(args.path.read_bytes()))
    type_names = [target.type_name(i) for i in range(target.asset_type_count)]
    print(f"[preload] target={target.name} unk0=0x{pf.unknown0:02X} unk1=0x{pf.unknown1:02X} unk3=0x{pf.unknown3:02X}")
    for i, total in enumerate(pf.total_asset_counts):
        print(f"[preload] total[{i}] {type_names[i]}={total}")
    dump_node(pf.root, 0, type_names)
    print(f"[preload] overlays={len(pf.overlays)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
