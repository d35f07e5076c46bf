import struct

import pytest

from builders import asset_group_blob, overlay_blob, preload_blob
from fgdk3.errors import NotSupported, UnexpectedEndOfData
from fgdk3.preload import (
    AssetGroup,
    Group,
    NodeType,
    Overlay,
    PreloadFile,
    iter_overlays,
    read_asset_group,
    read_node,
)
from fgdk3.reader import Reader

TYPES = 3


def test_group_of_two_overlays_flattens_in_order():
    a = overlay_blob(10, TYPES, {(0, 1): 4})
    b = overlay_blob(11, TYPES)
    data = bytes([1, 2, 0]) + a + bytes([0]) + b
    r = Reader(data)
    node = read_node(r, TYPES)
    assert isinstance(node, Group) and node.kind == NodeType.GROUP_A
    assert r.remaining == 0
    overlays = list(iter_overlays(node))
    assert [o.id for o in overlays] == [10, 11]
    assert overlays[0].asset_groups[0][1].element_count == 4


def test_overlay_has_four_arrays_of_asset_type_count():
    r = Reader(bytes([0]) + overlay_blob(3, TYPES))
    ov = read_node(r, TYPES)
    assert isinstance(ov, Overlay)
    assert len(ov.asset_groups) == 4
    assert all(len(arr) == TYPES for arr in ov.asset_groups)


def test_breadth_first_visits_every_leaf_once():
    leaf = lambda i: bytes([0]) + overlay_blob(i, TYPES)
    # root(B): [overlay 1, group A: [group B: [overlay 4], overlay 3], overlay 2]
    inner = bytes([2, 1]) + leaf(4)
    group_a = bytes([1, 2]) + inner + leaf(3)
    data = bytes([2, 3]) + leaf(1) + group_a + leaf(2)
    root = read_node(Reader(data), TYPES)
    ids = [o.id for o in iter_overlays(root)]
    assert ids == [1, 2, 3, 4]


def test_asset_group_aux_records():
    g = read_asset_group(Reader(asset_group_blob(2, [(1, 2), (3, 4)])))
    assert g == AssetGroup(2, ((1, 2), (3, 4)))
    assert g
    assert not AssetGroup(0)


def test_unknown_tag_not_supported():
    with pytest.raises(NotSupported):
        read_node(Reader(bytes([3])), TYPES)
    with pytest.raises(NotSupported):
        read_node(Reader(bytes([1, 1, 9])), TYPES)


def test_truncated_overlay():
    data = bytes([0]) + overlay_blob(1, TYPES)[:-1]
    with pytest.raises(UnexpectedEndOfData):
        read_node(Reader(data), TYPES)


def test_preload_file_header_and_untagged_root():
    a = bytes([0]) + overlay_blob(1, TYPES)
    nested = bytes([1, 1, 0]) + overlay_blob(2, TYPES)
    data = preload_blob(TYPES, [a, nested])
    r = Reader(data)
    pf = PreloadFile.read(TYPES, r)
    assert (pf.unknown0, pf.unknown1, pf.unknown3) == (0xA0, 0xA1, 0xA3)
    assert pf.total_asset_counts == [0, 1, 2]
    assert pf.root.kind == NodeType.GROUP_B
    assert [o.id for o in pf.overlays] == [1, 2]
    assert r.remaining == 0


def test_empty_root():
    data = bytes([0, 0]) + struct.pack("<3H", 0, 0, 0) + bytes([0, 0])
    pf = PreloadFile.read(TYPES, Reader(data))
    assert pf.overlays == []
