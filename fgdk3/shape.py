from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import FormatError, MalformedShape
from .reader import Reader

logger = logging.getLogger(__name__)

# format marker of meshes whose vertices carry 4 bone indices + 4 weights
WEIGHTED_FORMAT = 0x411C

ROOT_JOINT_NAME = "Root"
AUTO_JOINT_PREFIX = "AutoExporterJoint"

SHAPE_HEADER_SIZE = 68

# smallest possible on-disk sizes, used to reject counts before allocating
_MIN_MESH_SIZE = 12
_MIN_OBJECT_SIZE = 12
_UNWEIGHTED_VERTEX_SIZE = 32
_WEIGHTED_VERTEX_SIZE = 52


@dataclass(frozen=True)
class ShapeHeader:
    unknown0: float
    unknown1: float
    unknown2: float
    unknown3: float
    unknown4: int
    unknown5: int
    unknown6: int
    lod_count: int
    aux_scalar_count: int
    unknown9: int
    unknown10: int
    unknown11: int
    unknown12: int
    unknown13: int
    unknown14: int
    unknown15: int
    unknown16: int

    @classmethod
    def read(cls, r: Reader) -> "ShapeHeader":
        floats = r.array("f", 4)
        u4, u5, u6 = r.array("I", 3)
        lod_count, aux_scalar_count = r.array("i", 2)
        rest = r.array("I", 8)
        return cls(*floats, u4, u5, u6, lod_count, aux_scalar_count, *rest)

    @classmethod
    def from_bytes(cls, data: bytes, endian: str = "<") -> "ShapeHeader":
        if len(data) < SHAPE_HEADER_SIZE:
            raise MalformedShape(f"shape header is {len(data)} byte(s), need {SHAPE_HEADER_SIZE}")
        return cls.read(Reader(data, endian=endian))


@dataclass
class MeshVertex:
    position: Tuple[float, float, float]
    normal: Tuple[float, float, float]
    uv: Tuple[float, float]
    bone_ids: Optional[Tuple[int, int, int, int]] = None
    bone_weights: Optional[Tuple[float, float, float, float]] = None

    @property
    def weighted(self) -> bool:
        return self.bone_ids is not None


@dataclass(frozen=True)
class MeshFace:
    a: int
    b: int
    c: int
    weighted: bool = False

    def __iter__(self):
        return iter((self.a, self.b, self.c))


@dataclass
class Joint:
    name: str = ROOT_JOINT_NAME
    children: List["Joint"] = field(default_factory=list)

    def walk(self):
        """Depth-first, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class ShapeMesh:
    unknown0: int = 0
    format_marker: int = 0
    strip_lengths: List[int] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)
    vertices: List[MeshVertex] = field(default_factory=list)
    faces: List[MeshFace] = field(default_factory=list)

    @property
    def weighted(self) -> bool:
        return self.format_marker == WEIGHTED_FORMAT


@dataclass
class SkinBuildContext:
    """Meshes of one LOD plus the joint tree their bone IDs created."""

    meshes: List[ShapeMesh] = field(default_factory=list)
    root: Joint = field(default_factory=Joint)
    bone_to_joint: Dict[int, Joint] = field(default_factory=dict)
    object_unknown: int = 0
    bone_list: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.bone_to_joint.setdefault(0, self.root)

    def ensure_bone(self, bone_id: int) -> Joint:
        joint = self.bone_to_joint.get(bone_id)
        if joint is None:
            joint = Joint(f"{AUTO_JOINT_PREFIX}{bone_id}")
            self.root.children.append(joint)
            self.bone_to_joint[bone_id] = joint
        return joint

    def metadata(self) -> List[str]:
        out = [f"unknown1_2={self.object_unknown}"]
        out.extend(f"unknown1_3[{i}]={v}" for i, v in enumerate(self.bone_list))
        for k, mesh in enumerate(self.meshes):
            out.append(f"m{k}.unknown0={mesh.unknown0} m{k}.format=0x{mesh.format_marker:X}")
        return out


@dataclass
class Shape:
    header: ShapeHeader
    aux_scalars: List[int]
    lods: List[SkinBuildContext]


def decompose_strips(strip_lengths: Sequence[int], indices: Sequence[int], *, weighted: bool = False) -> List[MeshFace]:
    """
    Flatten triangle strips stored back to back in one index buffer.

    A strip of length L yields L-2 triangles; odd triangles within a strip
    get their last two corners swapped so every face keeps the same winding.
    """

    faces: List[MeshFace] = []
    base = 0
    for length in strip_lengths:
        if base + length > len(indices):
            raise MalformedShape(
                f"strip of length {length} at index {base} overruns {len(indices)} indices"
            )
        for i in range(length - 2):
            a, b, c = indices[base + i], indices[base + i + 1], indices[base + i + 2]
            if i & 1:
                b, c = c, b
            faces.append(MeshFace(a, b, c, weighted))
        base += length
    return faces


def _check(what: str, count: int, unit: int, r: Reader) -> None:
    if count < 0:
        raise MalformedShape(f"negative {what} {count} at {r.tell():#x}")
    if count * unit > r.remaining:
        raise MalformedShape(f"{what} {count} cannot fit in remaining {r.remaining} byte(s) at {r.tell():#x}")


def read_shape_mesh(r: Reader, ctx: SkinBuildContext, *, bone_index_order: str = "little") -> ShapeMesh:
    unknown0 = r.s16()
    strip_count = r.u16()
    index_count = r.u16()
    vertex_count = r.u16()
    format_marker = r.u32()

    strip_lengths = list(r.array("H", strip_count))
    indices = list(r.array("H", index_count))
    if (index_count + strip_count) & 1:
        # pad to 4 bytes
        r.skip(2)

    mesh = ShapeMesh(unknown0=unknown0, format_marker=format_marker, strip_lengths=strip_lengths, indices=indices)
    weighted = mesh.weighted
    _check("vertex count", vertex_count, _WEIGHTED_VERTEX_SIZE if weighted else _UNWEIGHTED_VERTEX_SIZE, r)

    for _ in range(vertex_count):
        position = r.array("f", 3)
        bone_ids = bone_weights = None
        if weighted:
            raw = r.bytes(4)
            if bone_index_order == "big":
                raw = raw[::-1]
            bone_ids = tuple(raw)
            for bone_id in bone_ids:
                ctx.ensure_bone(bone_id)
            bone_weights = r.array("f", 4)
        normal = r.array("f", 3)
        uv = r.array("f", 2)
        mesh.vertices.append(MeshVertex(position, normal, uv, bone_ids, bone_weights))

    mesh.faces = decompose_strips(strip_lengths, indices, weighted=weighted)
    return mesh


def read_shape_object(r: Reader, *, bone_index_order: str = "little") -> SkinBuildContext:
    bone_list_length = r.s32()
    mesh_count = r.s32()
    object_unknown = r.u32()
    _check("bone list length", bone_list_length, 4, r)
    bone_list = list(r.array("I", bone_list_length))
    _check("mesh count", mesh_count, _MIN_MESH_SIZE, r)

    ctx = SkinBuildContext(object_unknown=object_unknown, bone_list=bone_list)
    for _ in range(mesh_count):
        ctx.meshes.append(read_shape_mesh(r, ctx, bone_index_order=bone_index_order))
    return ctx


def decode_shape(header: ShapeHeader, r: Reader, *, bone_index_order: str = "little") -> Shape:
    """Decode every LOD of one shape from the cursor."""
    _check("aux scalar count", header.aux_scalar_count, 4, r)
    aux_scalars = list(r.array("I", header.aux_scalar_count))
    _check("LOD count", header.lod_count, _MIN_OBJECT_SIZE, r)

    lods: List[SkinBuildContext] = []
    for lod in range(header.lod_count):
        try:
            ctx = read_shape_object(r, bone_index_order=bone_index_order)
        except FormatError as e:
            raise type(e)(f"lod {lod}: {e}") from e
        logger.debug(
            "lod %d: %d mesh(es), %d joint(s)", lod, len(ctx.meshes), len(ctx.bone_to_joint)
        )
        lods.append(ctx)
    return Shape(header=header, aux_scalars=aux_scalars, lods=lods)
