"""Border and corner policy.

Frame pieces come in two kinds. Edge-like pieces (straight border segments,
gap strips, outer frame segments) continue the border; gap strips and frame
segments stay on the base. Corner-like pieces
(border corners, gap intersections, T-junctions, outer frame corners) follow
the corner table:

    mode      same                      opposite
    flat      base colour               inverted colour, same height
    positive  base only                 base + raised feature
    negative  base + raised feature     base only
"""

from __future__ import annotations

import logging
from typing import List, Optional

from marker_solids.contracts import (
    MIN_THICKNESS,
    Cell,
    CornerPolicy,
    ExtrusionMode,
    Material,
    Piece,
    Region,
    Role,
    ThicknessProfile,
)

logger = logging.getLogger(__name__)


def corner_has_feature(thickness: ThicknessProfile, policy: CornerPolicy) -> bool:
    """Whether a corner-like piece carries a raised feature box."""
    if thickness.is_flat or thickness.frame_feature_height <= 0:
        return False
    return (thickness.mode is ExtrusionMode.NEGATIVE) != (policy is CornerPolicy.OPPOSITE)


def edge_has_feature(thickness: ThicknessProfile) -> bool:
    """Straight pieces are raised only in negative mode, so they read white."""
    return thickness.mode is ExtrusionMode.NEGATIVE and thickness.frame_feature_height > 0


def frame_piece(
    width: float,
    height: float,
    cx: float,
    cy: float,
    thickness: ThicknessProfile,
    *,
    corner_like: bool,
    corner_policy: CornerPolicy = CornerPolicy.SAME,
    role: Role = Role.BORDER,
    piece: Piece = Piece.EDGE,
    marker_index: Optional[int] = None,
    base_only: bool = False,
    fill_material: Optional[Material] = None,
) -> List[Cell]:
    """Base box plus optional feature box for one frame rectangle.

    ``base_only`` keeps straight pieces flat on the base. With a
    ``fill_material`` the base takes that colour and opposite corners contrast
    with it instead of following the corner table.
    """
    base_h = thickness.frame_base_height
    feature_h = thickness.frame_feature_height
    base_region = Region.CORNER_BASE if corner_like else Region.BASE
    feature_region = Region.CORNER_FEATURE if corner_like else Region.FEATURE
    contrast = corner_like and corner_policy is CornerPolicy.OPPOSITE

    if fill_material is not None:
        base_material = fill_material
        feature_material = fill_material.inverted
        raised = contrast and feature_h > 0
    else:
        base_material = thickness.base_material
        feature_material = thickness.feature_material
        if corner_like:
            raised = corner_has_feature(thickness, corner_policy)
        else:
            raised = not base_only and edge_has_feature(thickness)

    if contrast and thickness.is_flat:
        base_material = base_material.inverted

    cells = [Cell(
        width, height, base_h, cx, cy, base_h / 2, base_material,
        region=base_region, role=role, piece=piece, marker_index=marker_index,
    )]
    if raised:
        cells.append(Cell(
            width, height, feature_h, cx, cy, base_h + feature_h / 2, feature_material,
            region=feature_region, role=role, piece=piece, marker_index=marker_index,
        ))
    return cells


def build_border(
    core_dim: float,
    border_width: float,
    thickness: ThicknessProfile,
    corner_policy: CornerPolicy = CornerPolicy.SAME,
    *,
    core_dim_y: Optional[float] = None,
    role: Role = Role.BORDER,
    marker_index: Optional[int] = None,
) -> List[Cell]:
    """Four edges and four corners framing a footprint centred on the origin.

    Returns an empty list when ``border_width`` is not above ``MIN_THICKNESS``.
    """
    if border_width <= MIN_THICKNESS:
        return []
    dim_x = core_dim
    dim_y = core_dim if core_dim_y is None else core_dim_y
    bw = border_width
    ox = dim_x / 2 + bw / 2
    oy = dim_y / 2 + bw / 2

    edges = [
        (dim_x, bw, 0.0, oy),
        (dim_x, bw, 0.0, -oy),
        (bw, dim_y, -ox, 0.0),
        (bw, dim_y, ox, 0.0),
    ]
    corners = [(-ox, oy), (ox, oy), (-ox, -oy), (ox, -oy)]

    cells: List[Cell] = []
    for w, h, cx, cy in edges:
        cells.extend(frame_piece(
            w, h, cx, cy, thickness, corner_like=False,
            role=role, piece=Piece.EDGE, marker_index=marker_index,
        ))
    for cx, cy in corners:
        cells.extend(frame_piece(
            bw, bw, cx, cy, thickness, corner_like=True, corner_policy=corner_policy,
            role=role, piece=Piece.CORNER, marker_index=marker_index,
        ))

    logger.debug(
        "Border %.2fmm (%s, corners %s): %d cells",
        bw, thickness.mode.value, corner_policy.value, len(cells),
    )
    return cells
