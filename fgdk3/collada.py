from __future__ import annotations

import math
import struct
import xml.etree.ElementTree as ET
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from .shape import MeshVertex, ShapeMesh, SkinBuildContext

COLLADA_NS = "http://www.collada.org/2005/11/COLLADASchema"
IDENTITY_4X4 = "1 0 0 0 0 1 0 0 0 0 1 0 0 0 0 1"


def fmt_float(v: float) -> str:
    """
    Shortest round-trip decimal, always positional.

    Some importers reject exponents (1e-05), so expand them.
    """
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "INF" if v > 0 else "-INF"
    return format(Decimal(repr(v)), "f")


def _floats(values: Iterable[float]) -> str:
    return " ".join(fmt_float(v) for v in values)


def _float_source(parent: ET.Element, src_id: str, array_id: str, values: List[float], stride: int, params: str) -> None:
    src = ET.SubElement(parent, "source", id=src_id)
    arr = ET.SubElement(src, "float_array", id=array_id, count=str(len(values)))
    arr.text = _floats(values)
    tc = ET.SubElement(src, "technique_common")
    acc = ET.SubElement(tc, "accessor", source=f"#{array_id}", count=str(len(values) // stride), stride=str(stride))
    for name in params:
        ET.SubElement(acc, "param", name=name, type="float")


def _add_geometry(lib: ET.Element, k: int, mesh: ShapeMesh) -> None:
    geom = ET.SubElement(lib, "geometry", id=f"m{k}-mesh", name=f"m{k}")
    m = ET.SubElement(geom, "mesh")

    # X is mirrored for this format
    positions = [c for v in mesh.vertices for c in (-v.position[0], v.position[1], v.position[2])]
    normals = [c for v in mesh.vertices for c in (-v.normal[0], v.normal[1], v.normal[2])]
    uvs = [c for v in mesh.vertices for c in v.uv]
    _float_source(m, f"mesh-{k}-positions", f"mesh-{k}-array-p", positions, 3, "XYZ")
    _float_source(m, f"mesh-{k}-normals", f"mesh-{k}-array-n", normals, 3, "XYZ")
    _float_source(m, f"mesh-{k}-uvs", f"mesh-{k}-array-u", uvs, 2, "ST")

    verts = ET.SubElement(m, "vertices", id=f"mesh-{k}-vertices")
    ET.SubElement(verts, "input", semantic="POSITION", source=f"#mesh-{k}-positions")

    tris = ET.SubElement(m, "triangles", count=str(len(mesh.faces)))
    ET.SubElement(tris, "input", semantic="VERTEX", source=f"#mesh-{k}-vertices", offset="0")
    ET.SubElement(tris, "input", semantic="NORMAL", source=f"#mesh-{k}-normals", offset="1")
    ET.SubElement(tris, "input", semantic="TEXCOORD", source=f"#mesh-{k}-uvs", offset="2", set="0")
    p = ET.SubElement(tris, "p")
    # normals and uvs share the vertex index
    p.text = " ".join(f"{i} {i} {i}" for face in mesh.faces for i in face)


def weight_key(w: float) -> bytes:
    """Weights are equal iff their float32 bit patterns are equal."""
    return struct.pack("<f", w)


def vertex_influences(vtx: MeshVertex) -> List[Tuple[int, float]]:
    """(bone id, weight) for every nonzero weight slot, in slot order."""
    if vtx.bone_ids is None or vtx.bone_weights is None:
        return []
    return [(b, w) for b, w in zip(vtx.bone_ids, vtx.bone_weights) if w != 0.0]


def build_skin_weights(
    mesh: ShapeMesh, joint_index: Dict[int, int]
) -> Tuple[List[float], List[int], List[int]]:
    """Returns (deduplicated weights, vcount, v) for one mesh."""
    # only referenced weights are stored; zero slots never enter the array
    weights: List[float] = []
    slots: Dict[bytes, int] = {}
    vcount: List[int] = []
    v: List[int] = []
    for vtx in mesh.vertices:
        influences = vertex_influences(vtx)
        vcount.append(len(influences))
        for bone_id, w in influences:
            key = weight_key(w)
            slot = slots.get(key)
            if slot is None:
                slot = slots[key] = len(weights)
                weights.append(w)
            v.extend((joint_index[bone_id], slot))
    return weights, vcount, v


def _add_controller(lib: ET.Element, k: int, mesh: ShapeMesh, joint_names: List[str], joint_index: Dict[int, int]) -> None:
    base = f"Armature_m{k}-skin"
    ctrl = ET.SubElement(lib, "controller", id=base, name="Armature")
    skin = ET.SubElement(ctrl, "skin", source=f"#m{k}-mesh")
    ET.SubElement(skin, "bind_shape_matrix").text = IDENTITY_4X4

    src = ET.SubElement(skin, "source", id=f"{base}-joints")
    names = ET.SubElement(src, "Name_array", id=f"{base}-joints-array", count=str(len(joint_names)))
    names.text = " ".join(joint_names)
    acc = ET.SubElement(
        ET.SubElement(src, "technique_common"),
        "accessor", source=f"#{base}-joints-array", count=str(len(joint_names)), stride="1",
    )
    ET.SubElement(acc, "param", name="JOINT", type="name")

    # no bind poses in the data; identity for every joint
    src = ET.SubElement(skin, "source", id=f"{base}-bind_poses")
    poses = ET.SubElement(src, "float_array", id=f"{base}-bind_poses-array", count=str(len(joint_names) * 16))
    poses.text = " ".join(IDENTITY_4X4 for _ in joint_names)
    acc = ET.SubElement(
        ET.SubElement(src, "technique_common"),
        "accessor", source=f"#{base}-bind_poses-array", count=str(len(joint_names)), stride="16",
    )
    ET.SubElement(acc, "param", name="TRANSFORM", type="float4x4")

    weights, vcount, v = build_skin_weights(mesh, joint_index)
    src = ET.SubElement(skin, "source", id=f"{base}-weights")
    arr = ET.SubElement(src, "float_array", id=f"{base}-weights-array", count=str(len(weights)))
    arr.text = _floats(weights)
    acc = ET.SubElement(
        ET.SubElement(src, "technique_common"),
        "accessor", source=f"#{base}-weights-array", count=str(len(weights)), stride="1",
    )
    ET.SubElement(acc, "param", name="WEIGHT", type="float")

    joints = ET.SubElement(skin, "joints")
    ET.SubElement(joints, "input", semantic="JOINT", source=f"#{base}-joints")
    ET.SubElement(joints, "input", semantic="INV_BIND_MATRIX", source=f"#{base}-bind_poses")

    vw = ET.SubElement(skin, "vertex_weights", count=str(len(mesh.vertices)))
    ET.SubElement(vw, "input", semantic="JOINT", source=f"#{base}-joints", offset="0")
    ET.SubElement(vw, "input", semantic="WEIGHT", source=f"#{base}-weights", offset="1")
    ET.SubElement(vw, "vcount").text = " ".join(str(n) for n in vcount)
    ET.SubElement(vw, "v").text = " ".join(str(n) for n in v)


def _add_joint(parent: ET.Element, joint) -> None:
    node = ET.SubElement(
        parent, "node", id=f"Armature_{joint.name}", name=joint.name, sid=joint.name, type="JOINT"
    )
    for child in joint.children:
        _add_joint(node, child)


def build_document(ctx: SkinBuildContext, comments: Iterable[str] = ()) -> ET.Element:
    root = ET.Element("COLLADA", xmlns=COLLADA_NS, version="1.4.1")
    asset = ET.SubElement(root, "asset")
    ET.SubElement(asset, "unit", name="meter", meter="1")
    ET.SubElement(asset, "up_axis").text = "Y_UP"
    for c in comments:
        asset.append(ET.Comment(f" {c} "))

    geoms = ET.SubElement(root, "library_geometries")
    for k, mesh in enumerate(ctx.meshes):
        _add_geometry(geoms, k, mesh)

    # joint order is the order bone IDs were first seen
    joint_index: Dict[int, int] = {}
    joint_names: List[str] = []
    for bone_id, joint in ctx.bone_to_joint.items():
        joint_index[bone_id] = len(joint_names)
        joint_names.append(joint.name)

    ctrls = ET.SubElement(root, "library_controllers")
    for k, mesh in enumerate(ctx.meshes):
        _add_controller(ctrls, k, mesh, joint_names, joint_index)

    scenes = ET.SubElement(root, "library_visual_scenes")
    scene = ET.SubElement(scenes, "visual_scene", id="Scene", name="Scene")
    armature = ET.SubElement(scene, "node", id="Armature", name="Armature", type="NODE")
    _add_joint(armature, ctx.root)
    for k in range(len(ctx.meshes)):
        node = ET.SubElement(armature, "node", id=f"m{k}", name=f"m{k}", type="NODE")
        inst = ET.SubElement(node, "instance_controller", url=f"#Armature_m{k}-skin")
        ET.SubElement(inst, "skeleton").text = f"#Armature_{ctx.root.name}"
    ET.SubElement(ET.SubElement(root, "scene"), "instance_visual_scene", url="#Scene")
    return root


def to_string(ctx: SkinBuildContext, comments: Iterable[str] = ()) -> str:
    root = build_document(ctx, comments)
    ET.indent(root)
    return '<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def write_document(ctx: SkinBuildContext, path: Path, comments: Iterable[str] = ()) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as f:
        f.write(to_string(ctx, comments))
