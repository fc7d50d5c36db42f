"""Mesh and 2D path assembly.

3D: cells sharing a role and material are merged into one trimesh.
2D: cells become rectangles; same-material rectangles on one height level are
concatenated into a single even-odd path, painted bottom level first.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import trimesh
from shapely.geometry import box as shapely_box
from shapely.ops import unary_union

from marker_solids.contracts import Cell, Material, Role
from marker_solids.errors import MeshMergeError

logger = logging.getLogger(__name__)

MATERIAL_RGBA: Dict[Material, Tuple[int, int, int, int]] = {
    Material.BLACK: (26, 26, 26, 255),
    Material.WHITE: (240, 240, 240, 255),
}

# Decimal places used when grouping cells by top height
_LEVEL_DECIMALS = 6


def cell_to_box(cell: Cell) -> trimesh.Trimesh:
    """Axis-aligned box mesh for one cell."""
    mesh = trimesh.creation.box(extents=[cell.width, cell.height, cell.depth])
    mesh.apply_translation([cell.center_x, cell.center_y, cell.center_z])
    return mesh


def merge_geometries(geometries: List[trimesh.Trimesh]) -> Optional[trimesh.Trimesh]:
    """Concatenate ``geometries`` into one mesh.

    Returns None for empty input. The source list is emptied on success and
    on failure, so no source mesh outlives the call.
    """
    if not geometries:
        return None
    try:
        return trimesh.util.concatenate(geometries)
    except Exception as e:
        raise MeshMergeError(f"Mesh merge failed: {e}") from e
    finally:
        geometries.clear()


@dataclass
class MeshGroup:
    role: Role
    material: Material
    mesh: trimesh.Trimesh
    cell_count: int

    @property
    def name(self) -> str:
        return f"{self.role.value}_{self.material.value}"


@dataclass
class MeshAssembly:
    groups: List[MeshGroup] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and bool(self.groups)

    def materials(self) -> List[Material]:
        return [m for m in Material if any(g.material is m for g in self.groups)]

    def mesh_for(self, material: Material) -> Optional[trimesh.Trimesh]:
        """All groups of one material as a single mesh (None when absent)."""
        meshes = [g.mesh.copy() for g in self.groups if g.material is material]
        return merge_geometries(meshes)


def assemble_meshes(cells: Sequence[Cell]) -> MeshAssembly:
    """Merge cells into one coloured mesh per (role, material).

    A merge failure is logged and yields an empty assembly carrying the error.
    """
    buckets: "OrderedDict[Tuple[Role, Material], List[Cell]]" = OrderedDict()
    for cell in cells:
        buckets.setdefault((cell.role, cell.material), []).append(cell)

    assembly = MeshAssembly()
    try:
        for (role, material), bucket in buckets.items():
            boxes = [cell_to_box(c) for c in bucket]
            mesh = merge_geometries(boxes)
            if mesh is None:
                continue
            mesh.visual.face_colors = MATERIAL_RGBA[material]
            assembly.groups.append(MeshGroup(role, material, mesh, len(bucket)))
    except MeshMergeError as e:
        logger.warning("Mesh assembly failed: %s", e)
        return MeshAssembly(errors=[str(e)])

    logger.debug(
        "Assembled %d cells into %d mesh groups", len(cells), len(assembly.groups)
    )
    return assembly


def export_stl(assembly: MeshAssembly, material: Material) -> bytes:
    """Binary STL of every cell of one material; empty bytes when there are none."""
    mesh = assembly.mesh_for(material)
    if mesh is None:
        return b""
    return mesh.export(file_type="stl")


def export_glb(assembly: MeshAssembly) -> bytes:
    """Coloured scene with one node per mesh group."""
    scene = trimesh.Scene()
    for group in assembly.groups:
        scene.add_geometry(group.mesh, node_name=group.name, geom_name=group.name)
    return scene.export(file_type="glb")


# ─── 2D ──────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PathLayer:
    """Rectangles of one material sharing one top height."""

    material: Material
    top: float
    rects: Tuple[Tuple[float, float, float, float], ...]  # (minx, miny, maxx, maxy)

    def path_data(self, flip_y: bool = True, offset: Tuple[float, float] = (0.0, 0.0)) -> str:
        """SVG path data; y is flipped by default so +y points up on the page."""
        ox, oy = offset
        parts = []
        for minx, miny, maxx, maxy in self.rects:
            x = minx + ox
            y = (-maxy if flip_y else miny) + oy
            w = maxx - minx
            h = maxy - miny
            parts.append(f"M{_fmt(x)} {_fmt(y)}h{_fmt(w)}v{_fmt(h)}h{_fmt(-w)}Z")
        return "".join(parts)


def _fmt(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def path_layers(cells: Sequence[Cell]) -> List[PathLayer]:
    """Group cells into paint layers ordered from the lowest top upwards."""
    layers: Dict[Tuple[float, Material], List[Tuple[float, float, float, float]]] = {}
    for cell in cells:
        key = (round(cell.top, _LEVEL_DECIMALS), cell.material)
        layers.setdefault(key, []).append(cell.bounds_2d)
    ordered = sorted(layers.items(), key=lambda item: (item[0][0], item[0][1].value))
    return [
        PathLayer(material=material, top=top, rects=tuple(rects))
        for (top, material), rects in ordered
    ]


def footprint_bounds(cells: Sequence[Cell]) -> Tuple[float, float, float, float]:
    if not cells:
        return (0.0, 0.0, 0.0, 0.0)
    b = np.array([c.bounds_2d for c in cells])
    return (float(b[:, 0].min()), float(b[:, 1].min()), float(b[:, 2].max()), float(b[:, 3].max()))


def top_view_regions(cells: Sequence[Cell]):
    """Visible top colour as one shapely geometry per material.

    Higher levels hide whatever lies below them.
    """
    covered = None
    regions: Dict[Material, list] = {m: [] for m in Material}
    for layer in reversed(path_layers(cells)):
        shape = unary_union([shapely_box(*r) for r in layer.rects])
        visible = shape if covered is None else shape.difference(covered)
        if not visible.is_empty:
            regions[layer.material].append(visible)
        covered = shape if covered is None else unary_union([covered, shape])
    return {
        material: unary_union(parts)
        for material, parts in regions.items()
        if parts
    }
