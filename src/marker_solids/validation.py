"""Validation pre-pass, one function per generation mode.

Each returns an ordered list of user-facing messages; empty means valid.
Callers show the first message and keep exports disabled otherwise.
"""

from __future__ import annotations

from typing import List, Optional

from dictionaries import DictionaryCatalog
from marker_solids.charuco import count_light_squares
from marker_solids.contracts import (
    MIN_THICKNESS,
    PRINTABLE_MIN_THICKNESS,
    ArrayRequest,
    BorderSpec,
    CharucoRequest,
    GenerationRequest,
    QrRequest,
    SingleMarkerRequest,
    SpecialMarker,
    is_special_marker,
)
from marker_solids.errors import MarkerValidationError


def _border_errors(border: BorderSpec, dim: float) -> List[str]:
    errors = []
    if border.width < 0:
        errors.append("Border width cannot be negative.")
    elif MIN_THICKNESS < border.width < PRINTABLE_MIN_THICKNESS:
        errors.append("Border width must be at least 0.1mm if specified (or 0 for no border).")
    if dim > 0 and border.width > dim / 2:
        errors.append("Border width cannot exceed half the marker dimension.")
    return errors


def _max_id(catalog: Optional[DictionaryCatalog], dictionary: str) -> Optional[int]:
    if not catalog or dictionary not in catalog:
        return None
    return catalog[dictionary].max_id


def _id_known(catalog: DictionaryCatalog, dictionary: str, marker_id: int) -> bool:
    return catalog[dictionary].has_id(marker_id)


def validate_single(request: SingleMarkerRequest, catalog: Optional[DictionaryCatalog]) -> List[str]:
    errors: List[str] = []
    t = request.thickness
    marker_id = request.marker_id

    if request.dim <= 0:
        errors.append("Marker dimension (X/Y) must be positive.")
    errors.extend(_border_errors(request.border, request.dim))

    if is_special_marker(marker_id):
        if t.base_height < 0 or t.feature_height < 0:
            errors.append("Base (z1) and Feature (z2) heights cannot be negative.")
        return errors

    if t.base_height < 0:
        errors.append("Base height (z1) must be non-negative for ArUco markers.")
    elif not t.is_flat and t.feature_height < MIN_THICKNESS:
        errors.append("Feature height (z2) must be positive for non-flat ArUco markers.")

    max_id = _max_id(catalog, request.dictionary)
    if max_id is None:
        errors.append(f"Error: Dictionary {request.dictionary} not loaded.")
    elif marker_id < 0 or marker_id > max_id:
        errors.append(
            f"Invalid ID ({marker_id}). Must be 0-{max_id} or special values "
            f"{SpecialMarker.PURE_WHITE.value} (white), {SpecialMarker.PURE_BLACK.value} (black)"
        )
    elif not _id_known(catalog, request.dictionary, marker_id):
        errors.append(f"ID {marker_id} not found in {request.dictionary}")
    return errors


def validate_array(request: ArrayRequest, catalog: Optional[DictionaryCatalog]) -> List[str]:
    errors: List[str] = []
    t = request.thickness
    grid = request.grid

    if request.dim <= 0 or t.base_height < 0 or (not t.is_flat and t.feature_height < MIN_THICKNESS):
        errors.append("Dimensions must be positive. Base height (z1) can be 0 for flat markers.")
    if grid.gap < 0 or grid.gap > 2 * request.dim:
        errors.append("Gap width must be between 0 and 2x marker dimension.")
    if grid.grid_x < 1 or grid.grid_y < 1:
        errors.append("Grid size must be at least 1x1.")
    errors.extend(_border_errors(request.marker_border, request.dim))

    if len(grid.marker_ids) != grid.cell_count:
        errors.append(
            f"Error: Number of IDs ({len(grid.marker_ids)}) does not match grid size "
            f"({grid.grid_x}x{grid.grid_y}={grid.cell_count})."
        )
        return errors

    max_id = _max_id(catalog, request.dictionary)
    regular = [i for i in grid.marker_ids if not is_special_marker(i)]
    if regular and max_id is None:
        errors.append(f"Error: Dictionary {request.dictionary} not loaded.")
        return errors
    for marker_id in regular:
        if marker_id < 0 or marker_id > max_id or not _id_known(catalog, request.dictionary, marker_id):
            errors.append(
                f"Error: Invalid/out-of-range ArUco ID (ID: {marker_id}, Max: {max_id} for "
                f"{request.dictionary}). Special: -1 White, -2 Black."
            )
            break
    return errors


def validate_charuco(request: CharucoRequest, catalog: Optional[DictionaryCatalog]) -> List[str]:
    errors: List[str] = []
    t = request.thickness

    if (
        request.square_size <= 0
        or t.base_height < 0
        or (not t.is_flat and t.feature_height < MIN_THICKNESS)
    ):
        errors.append(
            "Board dimensions must be positive. Base height (z1) must be non-negative. "
            "Feature height (z2) must be positive for non-flat extrusions."
        )
    if request.squares_x < 1 or request.squares_y < 1:
        errors.append("Board must have at least 1x1 squares.")
    if request.marker_margin < 0 or request.marker_margin * 2 >= request.square_size:
        errors.append("Marker margin must be non-negative and less than half the square size.")

    light = count_light_squares(request.squares_x, request.squares_y, request.first_square)
    if len(request.marker_ids) != light:
        errors.append(
            f"Error: Number of IDs ({len(request.marker_ids)}) does not match white squares ({light})."
        )
        return errors

    if not request.marker_ids:
        return errors
    max_id = _max_id(catalog, request.dictionary)
    if max_id is None:
        errors.append(f"Error: Dictionary {request.dictionary} not loaded.")
        return errors
    for marker_id in request.marker_ids:
        # Solid-colour ids have no place on a calibration board
        if marker_id < 0 or marker_id > max_id or not _id_known(catalog, request.dictionary, marker_id):
            errors.append(
                f"Error: Invalid ArUco ID (ID: {marker_id}, Max: {max_id} for {request.dictionary})."
            )
            break
    return errors


def validate_qr(request: QrRequest) -> List[str]:
    errors: List[str] = []
    t = request.thickness

    if not request.content.strip():
        errors.append("Content cannot be empty")
    if request.dim <= 0:
        errors.append("Dimension must be positive")
    if t.base_height < 0:
        errors.append("Base height (z1) must be non-negative")
    if not t.is_flat and t.feature_height < MIN_THICKNESS:
        errors.append("Feature height (z2) must be positive for non-flat extrusions")
    errors.extend(_border_errors(request.border, request.dim))
    if request.quiet_zone < 0:
        errors.append("Quiet zone cannot be negative")
    return errors


def validate_request(
    request: GenerationRequest, catalog: Optional[DictionaryCatalog] = None
) -> List[str]:
    if isinstance(request, SingleMarkerRequest):
        return validate_single(request, catalog)
    if isinstance(request, ArrayRequest):
        return validate_array(request, catalog)
    if isinstance(request, CharucoRequest):
        return validate_charuco(request, catalog)
    if isinstance(request, QrRequest):
        return validate_qr(request)
    raise TypeError(f"Unsupported request type: {type(request).__name__}")


def ensure_valid(request: GenerationRequest, catalog: Optional[DictionaryCatalog] = None) -> None:
    """Raise ``MarkerValidationError`` carrying every message for ``request``."""
    errors = validate_request(request, catalog)
    if errors:
        raise MarkerValidationError(errors)
