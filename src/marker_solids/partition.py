"""Box partition builder.

Turns one bit matrix (or a solid-colour marker) into non-overlapping
axis-aligned boxes for the flat, positive and negative extrusion modes.
The footprint is centred on the origin with its bottom face at z = 0.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from marker_solids.contracts import (
    MIN_THICKNESS,
    PRINTABLE_MIN_THICKNESS,
    Cell,
    Material,
    Piece,
    Region,
    SpecialMarker,
    ThicknessProfile,
)
from marker_solids.errors import PatternMissingError
from marker_solids.patterns import MarkerSource

logger = logging.getLogger(__name__)


def cell_center(row: int, col: int, rows: int, cols: int, dim_x: float, dim_y: float) -> Tuple[float, float]:
    """Centre of grid cell (row, col); row 0 is the top of the footprint."""
    cw = dim_x / cols
    ch = dim_y / rows
    cx = col * cw + cw / 2 - dim_x / 2
    cy = -(row * ch + ch / 2 - dim_y / 2)
    return cx, cy


def solid_layers(marker: SpecialMarker, thickness: ThicknessProfile) -> Tuple[float, float, bool]:
    """(base_height, feature_height, feature_enabled) for a solid-colour marker.

    The feature layer is dropped when it would repeat the base colour, and a
    fully collapsed block gets a printable base.
    """
    z1 = max(0.0, thickness.base_height)
    z2 = max(0.0, thickness.feature_height)
    suppress = marker.material is thickness.base_material
    if suppress:
        z2 = 0.0
    if z1 < MIN_THICKNESS and z2 < MIN_THICKNESS:
        z1 = PRINTABLE_MIN_THICKNESS
    return z1, z2, (z2 >= MIN_THICKNESS and not suppress)


def solid_flat_height(thickness: ThicknessProfile) -> float:
    return max(thickness.feature_height, PRINTABLE_MIN_THICKNESS)


def _build_solid(
    marker: SpecialMarker, dim_x: float, dim_y: float, thickness: ThicknessProfile
) -> List[Cell]:
    if thickness.is_flat:
        t = solid_flat_height(thickness)
        return [Cell(dim_x, dim_y, t, 0.0, 0.0, t / 2, marker.material, piece=Piece.SLAB)]

    z1, z2, with_feature = solid_layers(marker, thickness)
    cells: List[Cell] = []
    z_offset = 0.0
    if z1 >= MIN_THICKNESS:
        cells.append(Cell(dim_x, dim_y, z1, 0.0, 0.0, z1 / 2, thickness.base_material, piece=Piece.SLAB))
        z_offset = z1
    if with_feature:
        cells.append(Cell(
            dim_x, dim_y, z2, 0.0, 0.0, z_offset + z2 / 2, marker.material,
            region=Region.FEATURE, piece=Piece.SLAB,
        ))
    return cells


def _build_pattern(
    pattern: np.ndarray, dim_x: float, dim_y: float, thickness: ThicknessProfile
) -> List[Cell]:
    rows, cols = pattern.shape
    cw = dim_x / cols
    ch = dim_y / rows
    cells: List[Cell] = []

    if thickness.is_flat:
        t = thickness.flat_height
        for r in range(rows):
            for c in range(cols):
                cx, cy = cell_center(r, c, rows, cols, dim_x, dim_y)
                cells.append(Cell(cw, ch, t, cx, cy, t / 2, Material.from_bit(pattern[r, c])))
        return cells

    z1 = thickness.base_height
    z2 = thickness.feature_height
    z_offset = 0.0
    if z1 >= MIN_THICKNESS:
        cells.append(Cell(dim_x, dim_y, z1, 0.0, 0.0, z1 / 2, thickness.base_material, piece=Piece.SLAB))
        z_offset = z1
    if z2 >= MIN_THICKNESS:
        feature_material = thickness.feature_material
        for r in range(rows):
            for c in range(cols):
                if not thickness.is_feature_bit(pattern[r, c]):
                    continue
                cx, cy = cell_center(r, c, rows, cols, dim_x, dim_y)
                cells.append(Cell(
                    cw, ch, z2, cx, cy, z_offset + z2 / 2, feature_material,
                    region=Region.FEATURE,
                ))
    return cells


def build_partition(
    source: Optional[MarkerSource],
    dim_x: float,
    dim_y: float,
    thickness: ThicknessProfile,
) -> List[Cell]:
    """Cells reproducing one marker over a ``dim_x`` x ``dim_y`` footprint.

    Args:
        source: Bit matrix (0 = dark, 1 = light) or a ``SpecialMarker``.
        dim_x: Footprint width in mm.
        dim_y: Footprint height in mm.
        thickness: Base/feature heights and extrusion mode.

    Returns:
        Fresh list of cells; identical inputs give identical lists.
    """
    if isinstance(source, SpecialMarker):
        cells = _build_solid(source, dim_x, dim_y, thickness)
    else:
        if source is None:
            raise PatternMissingError("No pattern provided for marker generation")
        pattern = np.asarray(source, dtype=np.uint8)
        if pattern.ndim != 2 or pattern.size == 0:
            raise PatternMissingError("Pattern must be a non-empty rectangular bit matrix")
        cells = _build_pattern(pattern, dim_x, dim_y, thickness)

    logger.debug("Partition (%s): %d cells", thickness.mode.value, len(cells))
    return cells


def partition_height(cells: List[Cell]) -> float:
    """Highest top face over ``cells`` (0 for an empty list)."""
    return max((c.top for c in cells), default=0.0)
