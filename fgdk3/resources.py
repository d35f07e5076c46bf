from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from .errors import MalformedHeader
from .reader import Reader


@dataclass(frozen=True)
class Subresource:
    data_size: int
    # (u32, u32, u32) triples, meaning unknown
    annotations: Tuple[Tuple[int, int, int], ...] = ()


@dataclass(frozen=True)
class Resource:
    subresources: Tuple[Subresource, ...] = ()


@dataclass
class ResourcesHeader:
    """
    Catalog of resources preceding an asset group's payload.

    Layout (all counts s32):
      resource_count_minus_one
      resource_count * (sub_count + sub_count * (data_size, ann_count, ann_count * 3u32))
      dependency_count + dependency_count * 2u32
      payload: every subresource's data_size bytes, in catalog order
    """

    resources: List[Resource] = field(default_factory=list)
    dependencies: List[Tuple[int, int]] = field(default_factory=list)
    resource_bytes: List[List[bytes]] = field(default_factory=list)

    @classmethod
    def read(cls, r: Reader) -> "ResourcesHeader":
        stored = r.s32()
        resource_count = 1 + stored
        # every resource costs at least its own s32 count
        _check_count("resource", resource_count, 4, r)
        resources = [_read_resource(r) for _ in range(resource_count)]

        dependency_count = r.s32()
        _check_count("dependency", dependency_count, 8, r)
        dependencies = [(r.u32(), r.u32()) for _ in range(dependency_count)]

        total = sum(s.data_size for res in resources for s in res.subresources)
        if total > r.remaining:
            raise MalformedHeader(
                f"subresource payload of {total} byte(s) exceeds remaining {r.remaining} at {r.tell():#x}"
            )
        resource_bytes = [[r.bytes(s.data_size) for s in res.subresources] for res in resources]
        return cls(resources=resources, dependencies=dependencies, resource_bytes=resource_bytes)

    def get(self, resource_index: int, subresource_index: int) -> bytes:
        try:
            return self.resource_bytes[resource_index][subresource_index]
        except IndexError:
            raise MalformedHeader(
                f"no subresource [{resource_index}][{subresource_index}] "
                f"(have {len(self.resource_bytes)} resource(s))"
            ) from None


def _check_count(what: str, count: int, min_size: int, r: Reader) -> None:
    if count < 0:
        raise MalformedHeader(f"negative {what} count {count} at {r.tell():#x}")
    if count * min_size > r.remaining:
        raise MalformedHeader(
            f"{what} count {count} cannot fit in remaining {r.remaining} byte(s) at {r.tell():#x}"
        )


def _read_resource(r: Reader) -> Resource:
    sub_count = r.s32()
    _check_count("subresource", sub_count, 8, r)
    subs = []
    for _ in range(sub_count):
        data_size = r.s32()
        if data_size < 0:
            raise MalformedHeader(f"negative subresource size {data_size} at {r.tell() - 4:#x}")
        ann_count = r.s32()
        _check_count("annotation", ann_count, 12, r)
        annotations = tuple((r.u32(), r.u32(), r.u32()) for _ in range(ann_count))
        subs.append(Subresource(data_size=data_size, annotations=annotations))
    return Resource(subresources=tuple(subs))
