"""Tiling engine: grid placement, gap fill and marker id helpers.

Grid coordinates: column ``x`` runs left to right, row ``y`` runs top to
bottom in input order. Row 0 is placed at the top of the output frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from marker_solids.borders import frame_piece
from marker_solids.contracts import (
    MIN_THICKNESS,
    Cell,
    CornerPolicy,
    GapFill,
    GridSpec,
    Piece,
    PlacedMarker,
    Role,
    ThicknessProfile,
    Vec2,
    is_special_marker,
)
from marker_solids.errors import MarkerValidationError

logger = logging.getLogger(__name__)

# (index, marker_id) -> cells centred on the origin
CellBuilder = Callable[[int, int], List[Cell]]


@dataclass(frozen=True)
class TileLayout:
    cells: Tuple[Cell, ...]
    markers: Tuple[PlacedMarker, ...]


def marker_step(dim: float, gap: float, individual_border: float = 0.0) -> float:
    """Centre-to-centre distance between neighbouring markers."""
    border = individual_border if individual_border > MIN_THICKNESS else 0.0
    return dim + 2 * border + gap


def placement(col: int, row: int, grid_x: int, grid_y: int, step: float) -> Vec2:
    pos_x = col * step - (grid_x - 1) * step / 2
    pos_y = (grid_y - 1 - row) * step - (grid_y - 1) * step / 2
    return (pos_x, pos_y)


def block_extent(grid_x: int, grid_y: int, tile_dim: float, gap: float) -> Tuple[float, float]:
    """Width and height of the tiled markers, without the outer frame."""
    width = grid_x * tile_dim + max(0, grid_x - 1) * gap
    height = grid_y * tile_dim + max(0, grid_y - 1) * gap
    return width, height


def tile(grid: GridSpec, step: float, builder: CellBuilder, marker_dim: Optional[float] = None) -> TileLayout:
    """Build every grid cell with ``builder`` and move it into place.

    Raises:
        MarkerValidationError: id count differs from the grid size.
    """
    if len(grid.marker_ids) != grid.cell_count:
        raise MarkerValidationError([
            f"Error: Number of IDs ({len(grid.marker_ids)}) does not match grid size "
            f"({grid.grid_x}x{grid.grid_y}={grid.cell_count})."
        ])

    cells: List[Cell] = []
    markers: List[PlacedMarker] = []
    dim = marker_dim if marker_dim is not None else step - grid.gap
    for y in range(grid.grid_y):
        for x in range(grid.grid_x):
            index = y * grid.grid_x + x
            marker_id = grid.marker_ids[index]
            pos_x, pos_y = placement(x, y, grid.grid_x, grid.grid_y, step)
            for cell in builder(index, marker_id):
                cells.append(cell.translated(pos_x, pos_y).tagged(marker_index=index))
            markers.append(PlacedMarker(
                index=index, marker_id=marker_id, column=x, row=y,
                center=(pos_x, pos_y), dim=dim,
            ))

    logger.debug("Tiled %d markers into %d cells", len(markers), len(cells))
    return TileLayout(cells=tuple(cells), markers=tuple(markers))


def gap_fill(
    grid: GridSpec,
    tile_dim: float,
    thickness: ThicknessProfile,
    fill: GapFill = GapFill.FILL,
    corner_policy: CornerPolicy = CornerPolicy.SAME,
) -> List[Cell]:
    """Material for the spacing between markers and a frame of width ``gap``.

    Strips and frame segments sit on the base only; intersections,
    T-junctions and outer corners are corner-like and follow
    ``corner_policy``. ``GapFill.BLACK`` and ``GapFill.WHITE`` set the filler
    colour; ``GapFill.FILL`` uses the mode's base material.
    """
    gap = grid.gap
    if fill is GapFill.NONE or gap <= MIN_THICKNESS:
        return []

    gx, gy = grid.grid_x, grid.grid_y
    d = tile_dim
    step = d + gap
    width, height = block_extent(gx, gy, d, gap)
    frame_x = width / 2 + gap / 2
    frame_y = height / 2 + gap / 2

    col_x = [placement(c, 0, gx, gy, step)[0] for c in range(gx)]
    row_y = [placement(0, r, gx, gy, step)[1] for r in range(gy)]
    # Centres of the gaps between neighbouring columns / rows
    gap_x = [col_x[c] + d / 2 + gap / 2 for c in range(gx - 1)]
    gap_y = [row_y[r] - d / 2 - gap / 2 for r in range(gy - 1)]

    fill_material = fill.material
    cells: List[Cell] = []

    def edge(w, h, cx, cy, piece):
        cells.extend(frame_piece(
            w, h, cx, cy, thickness, corner_like=False, role=Role.GAP_FILL, piece=piece,
            base_only=True, fill_material=fill_material,
        ))

    def corner(cx, cy, piece):
        cells.extend(frame_piece(
            gap, gap, cx, cy, thickness, corner_like=True, corner_policy=corner_policy,
            role=Role.GAP_FILL, piece=piece, fill_material=fill_material,
        ))

    for y in gap_y:
        for x in col_x:
            edge(d, gap, x, y, Piece.STRIP_H)
    for x in gap_x:
        for y in row_y:
            edge(gap, d, x, y, Piece.STRIP_V)
    for y in gap_y:
        for x in gap_x:
            corner(x, y, Piece.INTERSECTION)

    for sx, sy in ((-1, 1), (1, 1), (-1, -1), (1, -1)):
        corner(sx * frame_x, sy * frame_y, Piece.OUTER_CORNER)
    for x in gap_x:
        corner(x, frame_y, Piece.T_TOP)
        corner(x, -frame_y, Piece.T_BOTTOM)
    for y in gap_y:
        corner(-frame_x, y, Piece.T_LEFT)
        corner(frame_x, y, Piece.T_RIGHT)

    for x in col_x:
        edge(d, gap, x, frame_y, Piece.FRAME_TOP)
        edge(d, gap, x, -frame_y, Piece.FRAME_BOTTOM)
    for y in row_y:
        edge(gap, d, -frame_x, y, Piece.FRAME_LEFT)
        edge(gap, d, frame_x, y, Piece.FRAME_RIGHT)

    logger.debug(
        "Gap fill %dx%d gap=%.2f (%s, corners %s): %d cells",
        gx, gy, gap, fill.value, corner_policy.value, len(cells),
    )
    return cells


# ─── Marker id helpers ───────────────────────────────────────────────────────


def sequential_ids(start: int, count: int, max_id: int) -> List[int]:
    """``count`` ids from ``start``; ids past ``max_id`` are capped, special ids kept."""
    ids = []
    for i in range(count):
        marker_id = start + i
        if marker_id > max_id and not is_special_marker(marker_id):
            logger.warning("Requested ID %d exceeds max ID %d. Capping to max ID.", marker_id, max_id)
            marker_id = max_id
        ids.append(marker_id)
    return ids


def random_ids(count: int, max_id: int, rng: Optional[np.random.Generator] = None) -> List[int]:
    """``count`` unique ids drawn from ``0..max_id``."""
    pool = max_id + 1
    if count > pool:
        raise MarkerValidationError([
            f"Error: Cannot pick {count} unique IDs from a pool of {pool}. "
            "Reduce grid size or change dictionary."
        ])
    if count <= 0:
        return []
    rng = rng if rng is not None else np.random.default_rng()
    return [int(i) for i in rng.permutation(pool)[:count]]


def parse_id_list(text: str) -> List[int]:
    """Comma separated ids as typed by a user, blanks skipped."""
    parts = [p.strip() for p in text.split(",")]
    try:
        return [int(p) for p in parts if p]
    except ValueError:
        raise MarkerValidationError(["Error: Non-numeric ID found."]) from None


def count_pieces(cells: Sequence[Cell], piece: Piece, base_only: bool = True) -> int:
    return sum(1 for c in cells if c.piece is piece and (not base_only or not c.region.is_feature))
