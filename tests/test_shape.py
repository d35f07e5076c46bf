import struct

import pytest

from builders import mesh_blob, quad_mesh, shape_header_blob, shape_object_blob, vertex
from fgdk3.errors import MalformedShape, UnexpectedEndOfData
from fgdk3.reader import Reader
from fgdk3.shape import (
    SHAPE_HEADER_SIZE,
    WEIGHTED_FORMAT,
    MeshFace,
    ShapeHeader,
    SkinBuildContext,
    decode_shape,
    decompose_strips,
    read_shape_mesh,
    read_shape_object,
)


@pytest.mark.parametrize("strips", [[3], [4], [5, 3], [1, 2, 6], [0, 7, 4, 2]])
def test_triangle_count_matches_strip_lengths(strips):
    indices = list(range(sum(strips)))
    faces = decompose_strips(strips, indices)
    assert len(faces) == sum(max(0, n - 2) for n in strips)


def test_winding_restarts_per_strip():
    faces = decompose_strips([4, 4], [0, 1, 2, 3, 10, 11, 12, 13])
    assert [tuple(f) for f in faces] == [(0, 1, 2), (1, 3, 2), (10, 11, 12), (11, 13, 12)]


def test_strip_overrunning_indices_is_malformed():
    with pytest.raises(MalformedShape):
        decompose_strips([4], [0, 1, 2])


def test_quad_strip_decodes_to_two_triangles():
    ctx = SkinBuildContext()
    r = Reader(quad_mesh())
    mesh = read_shape_mesh(r, ctx)
    assert r.remaining == 0
    assert not mesh.weighted
    assert mesh.faces == [MeshFace(0, 1, 2, False), MeshFace(1, 3, 2, False)]
    assert mesh.vertices[3].position == (1.0, 1.0, 0.0)
    assert mesh.vertices[3].uv == (1.0, 1.0)
    assert mesh.vertices[0].normal == (0.0, 0.0, 1.0)
    assert mesh.vertices[0].bone_ids is None
    assert list(ctx.bone_to_joint) == [0]


def test_even_parity_has_no_padding():
    verts = [vertex() for _ in range(3)]
    blob = mesh_blob([3], [0, 1, 2], verts)
    assert len(blob) == 12 + 8 + 3 * 32
    r = Reader(blob + b"next")
    read_shape_mesh(r, SkinBuildContext())
    assert r.tell() == 116


def test_odd_parity_skips_two_bytes():
    verts = [vertex() for _ in range(3)]
    blob = mesh_blob([3], [0, 1, 2, 1], verts)
    assert len(blob) == 12 + 10 + 2 + 3 * 32
    r = Reader(blob + b"next")
    mesh = read_shape_mesh(r, SkinBuildContext())
    assert r.tell() == 120
    assert len(mesh.faces) == 1


def test_weighted_vertices_create_joints_lazily():
    verts = [
        vertex((1.0, 2.0, 3.0), bones=(0, 5, 5, 9), weights=(0.5, 0.25, 0.25, 0.0)),
        vertex(bones=(9, 2, 0, 0), weights=(1.0, 0.0, 0.0, 0.0)),
        vertex(bones=(0, 0, 0, 0), weights=(1.0, 0.0, 0.0, 0.0)),
    ]
    ctx = SkinBuildContext()
    r = Reader(mesh_blob([3], [0, 1, 2], verts, fmt=WEIGHTED_FORMAT))
    mesh = read_shape_mesh(r, ctx)
    assert r.remaining == 0
    assert mesh.weighted and all(f.weighted for f in mesh.faces)
    assert mesh.vertices[0].bone_ids == (0, 5, 5, 9)
    assert mesh.vertices[0].bone_weights == (0.5, 0.25, 0.25, 0.0)
    assert mesh.vertices[0].position == (1.0, 2.0, 3.0)
    assert list(ctx.bone_to_joint) == [0, 5, 9, 2]
    assert ctx.bone_to_joint[0] is ctx.root
    assert [j.name for j in ctx.root.children] == ["AutoExporterJoint5", "AutoExporterJoint9", "AutoExporterJoint2"]
    assert all(not j.children for j in ctx.root.children)


def test_bone_zero_is_root_without_any_weights():
    ctx = SkinBuildContext()
    assert ctx.bone_to_joint[0] is ctx.root
    assert ctx.root.name == "Root"
    assert ctx.ensure_bone(0) is ctx.root


def test_big_bone_index_order_reverses_bytes():
    verts = [vertex(bones=(1, 2, 3, 4), weights=(0.25, 0.25, 0.25, 0.25)) for _ in range(3)]
    blob = mesh_blob([3], [0, 1, 2], verts, fmt=WEIGHTED_FORMAT)
    mesh = read_shape_mesh(Reader(blob), SkinBuildContext(), bone_index_order="big")
    assert mesh.vertices[0].bone_ids == (4, 3, 2, 1)


def test_unknown_format_marker_is_unweighted():
    blob = quad_mesh(fmt=0x1234)
    mesh = read_shape_mesh(Reader(blob), SkinBuildContext())
    assert mesh.format_marker == 0x1234
    assert not mesh.weighted


def test_shape_object_keeps_opaque_fields():
    blob = shape_object_blob([quad_mesh(), quad_mesh()], bone_list=[7, 8], unknown=0xCAFE)
    r = Reader(blob)
    ctx = read_shape_object(r)
    assert r.remaining == 0
    assert ctx.object_unknown == 0xCAFE
    assert ctx.bone_list == [7, 8]
    assert len(ctx.meshes) == 2
    assert "unknown1_2=51966" in ctx.metadata()


def test_header_fields():
    h = ShapeHeader.from_bytes(shape_header_blob(lod_count=2, aux_scalar_count=3))
    assert (h.unknown0, h.unknown3) == (1.0, 4.0)
    assert (h.unknown4, h.unknown6) == (5, 7)
    assert (h.lod_count, h.aux_scalar_count) == (2, 3)
    assert (h.unknown9, h.unknown16) == (9, 16)
    with pytest.raises(MalformedShape):
        ShapeHeader.from_bytes(b"\x00" * (SHAPE_HEADER_SIZE - 1))


def test_decode_shape_lods_have_separate_contexts():
    header = ShapeHeader.from_bytes(shape_header_blob(lod_count=2, aux_scalar_count=2))
    weighted = mesh_blob(
        [3], [0, 1, 2], [vertex(bones=(3, 0, 0, 0), weights=(1.0, 0, 0, 0)) for _ in range(3)], fmt=WEIGHTED_FORMAT
    )
    data = struct.pack("<2I", 11, 22) + shape_object_blob([weighted]) + shape_object_blob([quad_mesh()])
    r = Reader(data)
    shape = decode_shape(header, r)
    assert r.remaining == 0
    assert shape.aux_scalars == [11, 22]
    assert len(shape.lods) == 2
    assert list(shape.lods[0].bone_to_joint) == [0, 3]
    assert list(shape.lods[1].bone_to_joint) == [0]


@pytest.mark.parametrize(
    "lods, aux, body",
    [
        (-1, 0, b""),
        (1, -1, b""),
        (1, 0, struct.pack("<iiI", -1, 0, 0)),
        (1, 0, struct.pack("<iiI", 0, -3, 0)),
        (1, 0, struct.pack("<iiI", 0, 1000, 0)),
        (1000, 0, struct.pack("<iiI", 0, 0, 0)),
    ],
)
def test_implausible_counts_are_malformed(lods, aux, body):
    header = ShapeHeader.from_bytes(shape_header_blob(lod_count=lods, aux_scalar_count=aux))
    with pytest.raises(MalformedShape):
        decode_shape(header, Reader(body))


def test_error_names_the_lod():
    header = ShapeHeader.from_bytes(shape_header_blob(lod_count=2))
    data = shape_object_blob([quad_mesh()]) + shape_object_blob([quad_mesh()])[:24]
    with pytest.raises(UnexpectedEndOfData, match="lod 1"):
        decode_shape(header, Reader(data))
