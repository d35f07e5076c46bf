from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, Tuple, Union

from .errors import NotSupported
from .reader import Reader

# Overlay segments, in the order their asset group arrays are stored.
SEGMENT_COUNT = 4


class NodeType(IntEnum):
    OVERLAY = 0
    GROUP_A = 1
    GROUP_B = 2


@dataclass(frozen=True)
class AssetGroup:
    element_count: int
    # (u16, u16) pairs, meaning unknown
    aux_records: Tuple[Tuple[int, int], ...] = ()

    def __bool__(self) -> bool:
        return self.element_count > 0


@dataclass(frozen=True)
class Overlay:
    id: int
    # SEGMENT_COUNT arrays, each with one AssetGroup per asset type
    asset_groups: Tuple[Tuple[AssetGroup, ...], ...]


@dataclass(frozen=True)
class Group:
    kind: NodeType
    children: Tuple["Node", ...] = ()


Node = Union[Overlay, Group]


@dataclass
class PreloadFile:
    unknown0: int
    unknown1: int
    total_asset_counts: List[int]
    unknown3: int
    root: Group
    overlays: List[Overlay] = field(default_factory=list)

    @classmethod
    def read(cls, asset_type_count: int, r: Reader) -> "PreloadFile":
        unknown0 = r.u8()
        unknown1 = r.u8()
        totals = list(r.array("H", asset_type_count))
        unknown3 = r.u8()
        # the root is a GROUP_B body without a leading tag
        root = read_group(r, NodeType.GROUP_B, asset_type_count)
        return cls(unknown0, unknown1, totals, unknown3, root, list(iter_overlays(root)))


def read_node(r: Reader, asset_type_count: int) -> Node:
    at = r.tell()
    tag = r.u8()
    if tag == NodeType.OVERLAY:
        return read_overlay(r, asset_type_count)
    if tag in (NodeType.GROUP_A, NodeType.GROUP_B):
        return read_group(r, NodeType(tag), asset_type_count)
    raise NotSupported(f"unknown catalog node type {tag} at {at:#x}")


def read_group(r: Reader, kind: NodeType, asset_type_count: int) -> Group:
    count = r.u8()
    return Group(kind, tuple(read_node(r, asset_type_count) for _ in range(count)))


def read_overlay(r: Reader, asset_type_count: int) -> Overlay:
    overlay_id = r.u8()
    groups = tuple(
        tuple(read_asset_group(r) for _ in range(asset_type_count)) for _ in range(SEGMENT_COUNT)
    )
    return Overlay(overlay_id, groups)


def read_asset_group(r: Reader) -> AssetGroup:
    element_count = r.u16()
    aux_count = r.u16()
    aux = tuple((r.u16(), r.u16()) for _ in range(aux_count))
    return AssetGroup(element_count, aux)


def iter_overlays(root: Node) -> Iterator[Overlay]:
    """Breadth-first walk yielding every Overlay leaf once."""
    queue: deque = deque([root])
    while queue:
        node = queue.popleft()
        if isinstance(node, Overlay):
            yield node
        else:
            queue.extend(node.children)
