"""Calibration metadata, base filenames and one-line summaries.

All functions here are pure in the request: they reuse the placement
formulas and never need the built geometry.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from marker_solids.charuco import is_light_square
from marker_solids.contracts import (
    MIN_THICKNESS,
    PRINTABLE_MIN_THICKNESS,
    ArrayRequest,
    CalibrationMetadata,
    CharucoRequest,
    GapFill,
    GenerationRequest,
    QrRequest,
    SingleMarkerRequest,
    SpecialMarker,
    ThicknessProfile,
    Vec2,
    is_special_marker,
)
from marker_solids.partition import solid_flat_height, solid_layers
from marker_solids.tiling import block_extent, placement

CORNER_ORDER = ("top_left", "top_right", "bottom_right", "bottom_left")


def _num(value: float) -> str:
    """Plain number text: integers without a decimal point."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _pattern_height(thickness: ThicknessProfile) -> float:
    if thickness.is_flat:
        return max(thickness.feature_height, PRINTABLE_MIN_THICKNESS)
    return thickness.base_height + thickness.feature_height


def _solid_height(marker: SpecialMarker, thickness: ThicknessProfile) -> float:
    if thickness.is_flat:
        return solid_flat_height(thickness)
    z1, z2, _ = solid_layers(marker, thickness)
    return z1 + z2


def total_extruded_height(request: GenerationRequest) -> float:
    """Nominal model height used in names, summaries and metadata."""
    if isinstance(request, SingleMarkerRequest) and is_special_marker(request.marker_id):
        return _solid_height(SpecialMarker(request.marker_id), request.thickness)
    return _pattern_height(request.thickness)


def square_corners(center: Vec2, size_x: float, size_y: Optional[float] = None) -> Tuple[Vec2, ...]:
    """Corners in TL, TR, BR, BL order."""
    cx, cy = center
    hx = size_x / 2
    hy = (size_y if size_y is not None else size_x) / 2
    return (
        (cx - hx, cy + hy),
        (cx + hx, cy + hy),
        (cx + hx, cy - hy),
        (cx - hx, cy - hy),
    )


# ─── Filenames ───────────────────────────────────────────────────────────────


def compute_base_filename(request: GenerationRequest) -> str:
    z = total_extruded_height(request)

    if isinstance(request, SingleMarkerRequest):
        if is_special_marker(request.marker_id):
            id_part = SpecialMarker(request.marker_id).label
        else:
            id_part = str(request.marker_id)
        dim = _num(request.dim)
        name = (
            f"{request.dictionary}-{id_part}_{dim}x{dim}x{z:.2f}mm_"
            f"{request.thickness.mode.value}"
        )
        if request.border.enabled:
            name += f"_border{request.border.width:.1f}mm"
        return name

    if isinstance(request, ArrayRequest):
        grid = request.grid
        dim = _num(request.dim)
        name = (
            f"{request.dictionary}_array-{grid.grid_x}x{grid.grid_y}_{dim}x{dim}x{z:.2f}mm_"
            f"gap{_num(grid.gap)}mm_{request.thickness.mode.value}"
        )
        if request.marker_border.enabled:
            name += f"_border{request.marker_border.width:.1f}mm"
        return name

    if isinstance(request, CharucoRequest):
        return (
            f"{request.dictionary}_charuco-{request.squares_x}x{request.squares_y}_"
            f"{request.first_square.value}Start_sq{_num(request.square_size)}mm_"
            f"mrg{_num(request.marker_margin)}mm_mdim{request.marker_dim:.1f}mm_"
            f"{request.thickness.mode.value}_z{z:.2f}mm"
        )

    if isinstance(request, QrRequest):
        content = request.content.strip() or "qrcode"
        safe = re.sub(r"[^a-zA-Z0-9]", "_", content)[:20]
        return f"QR_{safe}"

    raise TypeError(f"Unsupported request type: {type(request).__name__}")


# ─── Summaries ───────────────────────────────────────────────────────────────


def describe(request: GenerationRequest, module_count: Optional[int] = None) -> str:
    """Single-line human readable summary of a valid request."""
    z = total_extruded_height(request)
    mode = request.thickness.mode.value

    if isinstance(request, SingleMarkerRequest):
        if is_special_marker(request.marker_id):
            colour = "Pure White" if request.marker_id == SpecialMarker.PURE_WHITE else "Pure Black"
            dim = _num(request.dim)
            return f"{colour} Block ({mode}) - {dim}x{dim}x{z:.2f}mm"
        return f"ID {request.marker_id} ({request.dictionary}) - {mode} ({z:.2f}mm)"

    if isinstance(request, ArrayRequest):
        grid = request.grid
        return (
            f"Array: {grid.grid_x}x{grid.grid_y} of {request.dictionary}. "
            f"Gap: {_num(grid.gap)}mm. Total Z: {z:.2f}mm"
        )

    if isinstance(request, CharucoRequest):
        return (
            f"ChArUco: {request.squares_x}x{request.squares_y}, "
            f"First: {request.first_square.value}. Total Z: {z:.2f}mm. "
            f"Markers: {len(request.marker_ids)}"
        )

    if isinstance(request, QrRequest):
        total = request.dim + 2 * request.border.effective_width
        border = f", border: {_num(request.border.width)}mm" if request.border.enabled else ""
        if not module_count:
            return f"QR Code{border}, total size: {total:.1f}×{total:.1f}mm"
        module = request.dim / module_count
        return (
            f"QR Code: {module_count}×{module_count} modules, {module:.2f}mm per module"
            f"{border}, total size: {total:.1f}×{total:.1f}mm"
        )

    raise TypeError(f"Unsupported request type: {type(request).__name__}")


# ─── Calibration metadata ────────────────────────────────────────────────────


def _single_metadata(request: SingleMarkerRequest) -> CalibrationMetadata:
    block = request.dim + 2 * request.border.effective_width
    return CalibrationMetadata(
        mode="single",
        total_height=total_extruded_height(request),
        block_corners=square_corners((0.0, 0.0), block),
        marker_corners={0: square_corners((0.0, 0.0), request.dim)},
        marker_ids={0: request.marker_id},
    )


def _array_metadata(request: ArrayRequest) -> CalibrationMetadata:
    grid = request.grid
    step = request.step
    tile_dim = request.tile_dim
    corners: Dict[int, Tuple[Vec2, ...]] = {}
    ids: Dict[int, int] = {}
    for y in range(grid.grid_y):
        for x in range(grid.grid_x):
            index = y * grid.grid_x + x
            center = placement(x, y, grid.grid_x, grid.grid_y, step)
            corners[index] = square_corners(center, request.dim)
            if index < len(grid.marker_ids):
                ids[index] = grid.marker_ids[index]

    width, height = block_extent(grid.grid_x, grid.grid_y, tile_dim, grid.gap)
    if request.gap_fill is not GapFill.NONE and grid.gap > MIN_THICKNESS:
        width += 2 * grid.gap
        height += 2 * grid.gap

    intersections: List[Vec2] = []
    for y in range(grid.grid_y - 1):
        for x in range(grid.grid_x - 1):
            cx, cy = placement(x, y, grid.grid_x, grid.grid_y, step)
            intersections.append((cx + tile_dim / 2 + grid.gap / 2, cy - tile_dim / 2 - grid.gap / 2))

    return CalibrationMetadata(
        mode="array",
        total_height=total_extruded_height(request),
        block_corners=square_corners((0.0, 0.0), width, height),
        marker_corners=corners,
        marker_ids=ids,
        intersections=tuple(intersections),
        extra={"grid": [grid.grid_x, grid.grid_y], "gap_mm": float(grid.gap)},
    )


def _charuco_metadata(request: CharucoRequest) -> CalibrationMetadata:
    sx, sy = request.squares_x, request.squares_y
    s = request.square_size
    width, height = sx * s, sy * s
    corners: Dict[int, Tuple[Vec2, ...]] = {}
    ids: Dict[int, int] = {}
    k = 0
    for r in range(sy):
        for c in range(sx):
            if not is_light_square(r, c, request.first_square):
                continue
            corners[k] = square_corners(placement(c, r, sx, sy, s), request.marker_dim)
            if k < len(request.marker_ids):
                ids[k] = request.marker_ids[k]
            k += 1

    # Inner chessboard corners, row-major from the top
    intersections = tuple(
        (-width / 2 + i * s, height / 2 - j * s)
        for j in range(1, sy)
        for i in range(1, sx)
    )
    return CalibrationMetadata(
        mode="charuco",
        total_height=total_extruded_height(request),
        block_corners=square_corners((0.0, 0.0), width, height),
        marker_corners=corners,
        marker_ids=ids,
        intersections=intersections,
        extra={
            "squares": [sx, sy],
            "square_size_mm": float(s),
            "marker_size_mm": float(request.marker_dim),
            "first_square": request.first_square.value,
        },
    )


def _qr_metadata(request: QrRequest) -> CalibrationMetadata:
    block = request.dim + 2 * request.border.effective_width
    return CalibrationMetadata(
        mode="qr",
        total_height=total_extruded_height(request),
        block_corners=square_corners((0.0, 0.0), block),
        marker_corners={0: square_corners((0.0, 0.0), request.dim)},
        marker_ids={},
        extra={"error_correction": request.error_correction.value},
    )


def compute_metadata(request: GenerationRequest) -> CalibrationMetadata:
    if isinstance(request, SingleMarkerRequest):
        meta = _single_metadata(request)
    elif isinstance(request, ArrayRequest):
        meta = _array_metadata(request)
    elif isinstance(request, CharucoRequest):
        meta = _charuco_metadata(request)
    elif isinstance(request, QrRequest):
        meta = _qr_metadata(request)
    else:
        raise TypeError(f"Unsupported request type: {type(request).__name__}")

    dictionary = getattr(request, "dictionary", None)
    meta.extra.setdefault("filename", compute_base_filename(request))
    if dictionary:
        meta.extra.setdefault("dictionary", dictionary)
    meta.extra.setdefault("units", "mm")
    meta.extra.setdefault("corner_order", list(CORNER_ORDER))
    return meta
