"""ChArUco checkerboard layout.

A degenerate tiling with zero gap: dark squares are plain boxes, light
squares hold a marker inset by the margin.
"""

from __future__ import annotations

import logging
from typing import List

from dictionaries import DictionaryCatalog
from marker_solids.contracts import (
    MIN_THICKNESS,
    PRINTABLE_MIN_THICKNESS,
    CharucoRequest,
    Cell,
    ExtrusionMode,
    Material,
    Piece,
    PlacedMarker,
    Region,
    Role,
    ThicknessProfile,
)
from marker_solids.errors import MarkerValidationError
from marker_solids.partition import build_partition
from marker_solids.patterns import get_bit_pattern
from marker_solids.tiling import TileLayout, placement

logger = logging.getLogger(__name__)


def is_light_square(row: int, col: int, first_square: Material = Material.WHITE) -> bool:
    if first_square is Material.WHITE:
        return row % 2 == col % 2
    return row % 2 != col % 2


def count_light_squares(squares_x: int, squares_y: int, first_square: Material = Material.WHITE) -> int:
    return sum(
        1
        for r in range(squares_y)
        for c in range(squares_x)
        if is_light_square(r, c, first_square)
    )


def _margin_strips(
    square: float, margin: float, depth: float, cz: float, region: Region
) -> List[Cell]:
    inner = square - 2 * margin
    offset = square / 2 - margin / 2
    strips = [
        (square, margin, 0.0, offset),
        (square, margin, 0.0, -offset),
        (margin, inner, -offset, 0.0),
        (margin, inner, offset, 0.0),
    ]
    return [
        Cell(w, h, depth, x, y, cz, Material.WHITE, region=region, role=Role.BOARD, piece=Piece.MARGIN)
        for w, h, x, y in strips
    ]


def build_board(request: CharucoRequest, catalog: DictionaryCatalog) -> TileLayout:
    """Cells and marker placements for a ChArUco board centred on the origin.

    Raises:
        MarkerValidationError: id count differs from the number of light squares.
        PatternMissingError: a marker id is not in the dictionary.
    """
    sx, sy = request.squares_x, request.squares_y
    square = request.square_size
    margin = request.marker_margin
    marker_dim = request.marker_dim
    thickness = request.thickness
    mode = thickness.mode
    z1, z2 = thickness.base_height, thickness.feature_height

    light_count = count_light_squares(sx, sy, request.first_square)
    if len(request.marker_ids) != light_count:
        raise MarkerValidationError([
            f"Error: Number of IDs ({len(request.marker_ids)}) does not match "
            f"white squares ({light_count})."
        ])

    cells: List[Cell] = []
    markers: List[PlacedMarker] = []

    if mode is not ExtrusionMode.FLAT and z1 >= MIN_THICKNESS:
        cells.append(Cell(
            sx * square, sy * square, z1, 0.0, 0.0, z1 / 2, thickness.base_material,
            role=Role.BOARD, piece=Piece.PLATE,
        ))

    flat_t = thickness.frame_base_height
    # Markers sit on the plate without a base of their own
    marker_thickness = ThicknessProfile(
        base_height=0.0,
        feature_height=z2,
        mode=mode,
    )
    marker_dz = 0.0 if mode is ExtrusionMode.FLAT else z1

    k = 0
    for r in range(sy):
        for c in range(sx):
            cx, cy = placement(c, r, sx, sy, square)
            if is_light_square(r, c, request.first_square):
                marker_id = request.marker_ids[k]
                pattern = get_bit_pattern(catalog, request.dictionary, marker_id)
                if margin > MIN_THICKNESS:
                    if mode is ExtrusionMode.FLAT:
                        strips = _margin_strips(square, margin, flat_t, flat_t / 2, Region.BASE)
                    elif mode is ExtrusionMode.NEGATIVE:
                        strips = _margin_strips(square, margin, z2, z1 + z2 / 2, Region.FEATURE)
                    else:
                        strips = []
                    cells.extend(s.translated(cx, cy).tagged(marker_index=k) for s in strips)
                for cell in build_partition(pattern, marker_dim, marker_dim, marker_thickness):
                    cells.append(cell.translated(cx, cy, marker_dz).tagged(marker_index=k))
                markers.append(PlacedMarker(
                    index=k, marker_id=marker_id, column=c, row=r, center=(cx, cy), dim=marker_dim,
                ))
                k += 1
                continue

            if mode is ExtrusionMode.FLAT:
                cells.append(Cell(
                    square, square, flat_t, cx, cy, flat_t / 2, Material.BLACK,
                    role=Role.BOARD, piece=Piece.SQUARE,
                ))
            elif mode is ExtrusionMode.POSITIVE:
                cells.append(Cell(
                    square, square, z2, cx, cy, z1 + z2 / 2, Material.BLACK,
                    region=Region.FEATURE, role=Role.BOARD, piece=Piece.SQUARE,
                ))
            elif z1 < MIN_THICKNESS:
                h = max(z2, PRINTABLE_MIN_THICKNESS)
                cells.append(Cell(
                    square, square, h, cx, cy, h / 2, Material.BLACK,
                    role=Role.BOARD, piece=Piece.SQUARE,
                ))

    logger.debug("ChArUco %dx%d: %d markers, %d cells", sx, sy, len(markers), len(cells))
    return TileLayout(cells=tuple(cells), markers=tuple(markers))
