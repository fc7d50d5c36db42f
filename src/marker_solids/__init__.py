"""Public API for the fiducial pattern-to-solid compiler."""

from marker_solids.assembly import assemble_meshes, export_glb, export_stl, path_layers, top_view_regions
from marker_solids.contracts import (
    ArrayRequest,
    BorderSpec,
    CalibrationMetadata,
    Cell,
    CharucoRequest,
    CornerPolicy,
    ErrorCorrection,
    ExtrusionMode,
    GapFill,
    GridSpec,
    Material,
    PartitionResult,
    QrRequest,
    SingleMarkerRequest,
    SpecialMarker,
    ThicknessProfile,
)
from marker_solids.errors import (
    ExternalToolError,
    InvalidModeError,
    MarkerGenerationError,
    MarkerValidationError,
    PatternMissingError,
)
from marker_solids.metadata import compute_base_filename, compute_metadata, describe
from marker_solids.pipeline import build_pattern, build_pattern_async
from marker_solids.validation import validate_request

__all__ = [
    "ArrayRequest",
    "BorderSpec",
    "CalibrationMetadata",
    "Cell",
    "CharucoRequest",
    "CornerPolicy",
    "ErrorCorrection",
    "ExternalToolError",
    "ExtrusionMode",
    "GapFill",
    "GridSpec",
    "InvalidModeError",
    "Material",
    "MarkerGenerationError",
    "MarkerValidationError",
    "PartitionResult",
    "PatternMissingError",
    "QrRequest",
    "SingleMarkerRequest",
    "SpecialMarker",
    "ThicknessProfile",
    "assemble_meshes",
    "build_pattern",
    "build_pattern_async",
    "compute_base_filename",
    "compute_metadata",
    "describe",
    "export_glb",
    "export_stl",
    "path_layers",
    "top_view_regions",
    "validate_request",
]
