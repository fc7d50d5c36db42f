"""Build entry points: one immutable request in, one PartitionResult out.

Every build validates first. Any error in the marker taxonomy is logged and
turned into an empty result with its messages, so callers never see partial
geometry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import numpy as np

from dictionaries import DictionaryCatalog
from marker_solids.borders import build_border
from marker_solids.charuco import build_board
from marker_solids.contracts import (
    ArrayRequest,
    Cell,
    CharucoRequest,
    GenerationRequest,
    PartitionResult,
    PlacedMarker,
    QrRequest,
    SingleMarkerRequest,
)
from marker_solids.errors import (
    ExternalToolError,
    MarkerGenerationError,
    MarkerValidationError,
    QrGenerationError,
)
from marker_solids.metadata import describe
from marker_solids.partition import build_partition, partition_height
from marker_solids.patterns import (
    DEFAULT_QR_TIMEOUT_S,
    generate_qr_modules,
    resolve_marker_source,
)
from marker_solids.tiling import gap_fill, marker_step, tile
from marker_solids.validation import ensure_valid

logger = logging.getLogger(__name__)


def request_mode(request: GenerationRequest) -> str:
    if isinstance(request, SingleMarkerRequest):
        return "single"
    if isinstance(request, ArrayRequest):
        return "array"
    if isinstance(request, CharucoRequest):
        return "charuco"
    if isinstance(request, QrRequest):
        return "qr"
    raise TypeError(f"Unsupported request type: {type(request).__name__}")


# ─── Per-mode builders (raise on failure) ────────────────────────────────────


def build_single(request: SingleMarkerRequest, catalog: Optional[DictionaryCatalog]) -> PartitionResult:
    source = resolve_marker_source(catalog or {}, request.dictionary, request.marker_id)
    cells = build_partition(source, request.dim, request.dim, request.thickness)
    cells += build_border(
        request.dim, request.border.width, request.thickness, request.border.corner_policy,
    )
    marker = PlacedMarker(
        index=0, marker_id=request.marker_id, column=0, row=0, center=(0.0, 0.0), dim=request.dim,
    )
    return _result("single", request, cells, (marker,))


def build_array(request: ArrayRequest, catalog: Optional[DictionaryCatalog]) -> PartitionResult:
    catalog = catalog or {}
    border = request.marker_border

    def per_marker(index: int, marker_id: int) -> List[Cell]:
        source = resolve_marker_source(catalog, request.dictionary, marker_id)
        cells = build_partition(source, request.dim, request.dim, request.thickness)
        cells += build_border(request.dim, border.width, request.thickness, border.corner_policy)
        return cells

    step = marker_step(request.dim, request.grid.gap, border.width)
    layout = tile(request.grid, step, per_marker, marker_dim=request.dim)
    cells = list(layout.cells)
    cells += gap_fill(
        request.grid,
        request.tile_dim,
        request.thickness,
        request.gap_fill,
        request.gap_corner_policy,
    )
    return _result("array", request, cells, layout.markers)


def build_charuco(request: CharucoRequest, catalog: Optional[DictionaryCatalog]) -> PartitionResult:
    layout = build_board(request, catalog or {})
    return _result("charuco", request, list(layout.cells), layout.markers)


def build_qr(request: QrRequest, modules: np.ndarray) -> PartitionResult:
    pattern = np.asarray(modules)
    rows, cols = pattern.shape
    if rows != cols:
        raise QrGenerationError(f"QR pattern is not square ({cols}×{rows})")
    cells = build_partition(pattern, request.dim, request.dim, request.thickness)
    cells += build_border(
        request.dim, request.border.width, request.thickness, request.border.corner_policy,
    )
    marker = PlacedMarker(index=0, marker_id=None, column=0, row=0, center=(0.0, 0.0), dim=request.dim)
    return _result("qr", request, cells, (marker,), module_count=rows)


def _result(mode, request, cells, markers, module_count=None) -> PartitionResult:
    result = PartitionResult(
        mode=mode,
        cells=tuple(cells),
        markers=tuple(markers),
        total_height=partition_height(cells),
        summary=describe(request, module_count=module_count),
    )
    logger.info("%s: %d cells", result.summary, len(result.cells))
    return result


def _failed(mode: str, error: MarkerGenerationError) -> PartitionResult:
    if isinstance(error, MarkerValidationError):
        errors = error.errors
        logger.warning("Rejected %s request: %s", mode, errors[0] if errors else error)
    elif isinstance(error, ExternalToolError):
        errors = [f"Error: {error}"]
        logger.warning("External tool failed during %s build: %s", mode, error)
    else:
        errors = [str(error)]
        logger.warning("Could not build %s pattern: %s", mode, error)
    return PartitionResult.failed(mode, errors)


# ─── Public entry points ─────────────────────────────────────────────────────


def build_pattern(
    request: GenerationRequest,
    catalog: Optional[DictionaryCatalog] = None,
    *,
    qr_modules: Optional[np.ndarray] = None,
    qr_timeout: float = DEFAULT_QR_TIMEOUT_S,
) -> PartitionResult:
    """Validate and build any request synchronously.

    QR requests without precomputed ``qr_modules`` run the encoder through
    ``asyncio.run``; inside a running event loop use ``build_pattern_async``.
    """
    mode = request_mode(request)
    try:
        ensure_valid(request, catalog)
        if isinstance(request, SingleMarkerRequest):
            return build_single(request, catalog)
        if isinstance(request, ArrayRequest):
            return build_array(request, catalog)
        if isinstance(request, CharucoRequest):
            return build_charuco(request, catalog)
        if qr_modules is None:
            qr_modules = asyncio.run(generate_qr_modules(
                request.content,
                request.error_correction,
                request.quiet_zone,
                timeout=qr_timeout,
            ))
        return build_qr(request, qr_modules)
    except MarkerGenerationError as e:
        return _failed(mode, e)


async def build_pattern_async(
    request: GenerationRequest,
    catalog: Optional[DictionaryCatalog] = None,
    *,
    qr_timeout: float = DEFAULT_QR_TIMEOUT_S,
) -> PartitionResult:
    """Like ``build_pattern`` but awaits the QR encoder instead of blocking.

    The QR call is the only suspend point; partition building starts only
    once its modules are in hand, and a failure ends the attempt.
    """
    mode = request_mode(request)
    if not isinstance(request, QrRequest):
        return build_pattern(request, catalog)
    try:
        ensure_valid(request, catalog)
        modules = await generate_qr_modules(
            request.content,
            request.error_correction,
            request.quiet_zone,
            timeout=qr_timeout,
        )
        return build_qr(request, modules)
    except MarkerGenerationError as e:
        return _failed(mode, e)
