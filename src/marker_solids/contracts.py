"""Contracts for the pattern-to-solid compiler.

Requests are frozen per-mode dataclasses; results are immutable cell lists.
Coordinates are millimetres, right-handed, z up, every marker footprint is
centred on the origin before placement.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple, Union

from marker_solids.errors import InvalidModeError

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]

# Height below which a layer is treated as absent.
MIN_THICKNESS = 1e-5
# Smallest printable layer; used as a floor so solids never collapse to zero volume.
PRINTABLE_MIN_THICKNESS = 0.1


class ExtrusionMode(Enum):
    """How pattern bits map to raised geometry vs. flat colouring."""
    FLAT = "flat"
    POSITIVE = "positive"
    NEGATIVE = "negative"

    @classmethod
    def parse(cls, value: Union[str, "ExtrusionMode"]) -> "ExtrusionMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidModeError(f"Unknown extrusion mode: {value!r}") from None


class Material(Enum):
    BLACK = "black"
    WHITE = "white"

    @property
    def inverted(self) -> "Material":
        return Material.WHITE if self is Material.BLACK else Material.BLACK

    @classmethod
    def from_bit(cls, bit: int) -> "Material":
        """0 = dark, 1 = light."""
        return cls.BLACK if int(bit) == 0 else cls.WHITE


class CornerPolicy(Enum):
    """Corner pieces match the adjoining border (same) or contrast with it (opposite)."""
    SAME = "same"
    OPPOSITE = "opposite"


class GapFill(Enum):
    """How the spacing between array markers is filled.

    ``FILL`` uses the mode's base material and the corner table; ``BLACK`` and
    ``WHITE`` fill in that colour, with opposite corners in the other one.
    """
    NONE = "none"
    FILL = "fill"
    BLACK = "black"
    WHITE = "white"

    @property
    def material(self) -> Optional["Material"]:
        if self is GapFill.BLACK:
            return Material.BLACK
        if self is GapFill.WHITE:
            return Material.WHITE
        return None


class ErrorCorrection(Enum):
    L = "L"
    M = "M"
    Q = "Q"
    H = "H"


class Region(Enum):
    """Vertical layer a cell belongs to."""
    BASE = "base"
    FEATURE = "feature"
    CORNER_BASE = "corner_base"
    CORNER_FEATURE = "corner_feature"

    @property
    def is_feature(self) -> bool:
        return self in (Region.FEATURE, Region.CORNER_FEATURE)


class Role(Enum):
    """Logical part of the model a cell was generated for."""
    CORE = "core"
    BORDER = "border"
    GAP_FILL = "gap_fill"
    BOARD = "board"


class Piece(Enum):
    """Shape class of a cell, used for filtering and counting."""
    CELL = "cell"
    SLAB = "slab"
    EDGE = "edge"
    CORNER = "corner"
    STRIP_H = "strip_h"
    STRIP_V = "strip_v"
    INTERSECTION = "intersection"
    OUTER_CORNER = "outer_corner"
    FRAME_TOP = "frame_top"
    FRAME_BOTTOM = "frame_bottom"
    FRAME_LEFT = "frame_left"
    FRAME_RIGHT = "frame_right"
    T_TOP = "t_top"
    T_BOTTOM = "t_bottom"
    T_LEFT = "t_left"
    T_RIGHT = "t_right"
    PLATE = "plate"
    SQUARE = "square"
    MARGIN = "margin"


class SpecialMarker(IntEnum):
    """Reserved ids that request a solid block instead of a dictionary pattern."""
    PURE_WHITE = -1
    PURE_BLACK = -2

    @property
    def material(self) -> Material:
        return Material.WHITE if self is SpecialMarker.PURE_WHITE else Material.BLACK

    @property
    def label(self) -> str:
        return "PUREWHITE" if self is SpecialMarker.PURE_WHITE else "PUREBLACK"


def is_special_marker(marker_id: int) -> bool:
    return marker_id in (SpecialMarker.PURE_WHITE.value, SpecialMarker.PURE_BLACK.value)


# ─── Value types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ThicknessProfile:
    """Base slab height (z1), feature height (z2) and extrusion mode."""

    base_height: float = 2.0
    feature_height: float = 1.0
    mode: ExtrusionMode = ExtrusionMode.POSITIVE

    def __post_init__(self):
        object.__setattr__(self, "mode", ExtrusionMode.parse(self.mode))

    @property
    def is_flat(self) -> bool:
        return self.mode is ExtrusionMode.FLAT

    @property
    def flat_height(self) -> float:
        """Single slab thickness used everywhere in flat mode."""
        return max(self.feature_height, MIN_THICKNESS)

    @property
    def base_material(self) -> Material:
        return Material.BLACK if self.mode is ExtrusionMode.NEGATIVE else Material.WHITE

    @property
    def feature_material(self) -> Material:
        return self.base_material.inverted

    def is_feature_bit(self, bit: int) -> bool:
        if self.mode is ExtrusionMode.POSITIVE:
            return int(bit) == 0
        if self.mode is ExtrusionMode.NEGATIVE:
            return int(bit) == 1
        return False

    @property
    def frame_base_height(self) -> float:
        """Base height for borders, gap fill and board squares."""
        if self.is_flat:
            return self.flat_height
        return max(self.base_height, PRINTABLE_MIN_THICKNESS)

    @property
    def frame_feature_height(self) -> float:
        if self.is_flat or self.feature_height < MIN_THICKNESS:
            return 0.0
        return max(self.feature_height, PRINTABLE_MIN_THICKNESS)


@dataclass(frozen=True)
class BorderSpec:
    width: float = 0.0
    corner_policy: CornerPolicy = CornerPolicy.SAME

    @property
    def enabled(self) -> bool:
        return self.width > MIN_THICKNESS

    @property
    def effective_width(self) -> float:
        return self.width if self.enabled else 0.0


@dataclass(frozen=True)
class GridSpec:
    """Marker grid for array mode; ids are listed row by row from the top."""

    grid_x: int
    grid_y: int
    gap: float = 0.0
    marker_ids: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "marker_ids", tuple(int(i) for i in self.marker_ids))

    @property
    def cell_count(self) -> int:
        return self.grid_x * self.grid_y


# ─── Requests (one per generation mode) ──────────────────────────────────────


@dataclass(frozen=True)
class SingleMarkerRequest:
    dictionary: str
    marker_id: int
    dim: float = 50.0
    thickness: ThicknessProfile = field(default_factory=ThicknessProfile)
    border: BorderSpec = field(default_factory=BorderSpec)


@dataclass(frozen=True)
class ArrayRequest:
    dictionary: str
    grid: GridSpec
    dim: float = 50.0
    thickness: ThicknessProfile = field(default_factory=ThicknessProfile)
    gap_fill: GapFill = GapFill.NONE
    gap_corner_policy: CornerPolicy = CornerPolicy.SAME
    marker_border: BorderSpec = field(default_factory=BorderSpec)

    @property
    def tile_dim(self) -> float:
        """Footprint of one marker including its individual border."""
        return self.dim + 2 * self.marker_border.effective_width

    @property
    def step(self) -> float:
        return self.tile_dim + self.grid.gap


@dataclass(frozen=True)
class CharucoRequest:
    dictionary: str
    squares_x: int
    squares_y: int
    square_size: float = 20.0
    marker_margin: float = 2.0
    marker_ids: Tuple[int, ...] = ()
    thickness: ThicknessProfile = field(default_factory=ThicknessProfile)
    first_square: Material = Material.WHITE

    def __post_init__(self):
        object.__setattr__(self, "marker_ids", tuple(int(i) for i in self.marker_ids))

    @property
    def marker_dim(self) -> float:
        return self.square_size - 2 * self.marker_margin


@dataclass(frozen=True)
class QrRequest:
    content: str
    error_correction: ErrorCorrection = ErrorCorrection.M
    dim: float = 50.0
    thickness: ThicknessProfile = field(default_factory=ThicknessProfile)
    border: BorderSpec = field(default_factory=BorderSpec)
    quiet_zone: int = 4


GenerationRequest = Union[SingleMarkerRequest, ArrayRequest, CharucoRequest, QrRequest]


# ─── Geometry ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Cell:
    """One axis-aligned box: width along x, height along y, depth along z."""

    width: float
    height: float
    depth: float
    center_x: float
    center_y: float
    center_z: float
    material: Material
    region: Region = Region.BASE
    role: Role = Role.CORE
    piece: Piece = Piece.CELL
    marker_index: Optional[int] = None

    @property
    def bottom(self) -> float:
        return self.center_z - self.depth / 2

    @property
    def top(self) -> float:
        return self.center_z + self.depth / 2

    @property
    def volume(self) -> float:
        return self.width * self.height * self.depth

    @property
    def bounds_2d(self) -> Tuple[float, float, float, float]:
        """(minx, miny, maxx, maxy) footprint."""
        hw, hh = self.width / 2, self.height / 2
        return (self.center_x - hw, self.center_y - hh, self.center_x + hw, self.center_y + hh)

    def translated(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> "Cell":
        return replace(
            self,
            center_x=self.center_x + dx,
            center_y=self.center_y + dy,
            center_z=self.center_z + dz,
        )

    def tagged(self, **changes) -> "Cell":
        return replace(self, **changes)


@dataclass(frozen=True)
class PlacedMarker:
    """Where one marker of a multi-marker layout ended up."""

    index: int
    marker_id: Optional[int]
    column: int
    row: int
    center: Vec2
    dim: float


@dataclass(frozen=True)
class PartitionResult:
    """Output of one build: the full cell partition or the reasons it is empty."""

    mode: str
    cells: Tuple[Cell, ...] = ()
    markers: Tuple[PlacedMarker, ...] = ()
    errors: Tuple[str, ...] = ()
    total_height: float = 0.0
    summary: str = ""

    @property
    def ok(self) -> bool:
        return not self.errors and bool(self.cells)

    @property
    def export_enabled(self) -> bool:
        return self.ok

    @property
    def error_message(self) -> str:
        """First error, the one a caller should display."""
        return self.errors[0] if self.errors else ""

    def cells_where(
        self,
        role: Optional[Role] = None,
        region: Optional[Region] = None,
        piece: Optional[Piece] = None,
        material: Optional[Material] = None,
    ) -> List[Cell]:
        return [
            c for c in self.cells
            if (role is None or c.role is role)
            and (region is None or c.region is region)
            and (piece is None or c.piece is piece)
            and (material is None or c.material is material)
        ]

    @classmethod
    def failed(cls, mode: str, errors: List[str]) -> "PartitionResult":
        return cls(mode=mode, errors=tuple(errors))


@dataclass(frozen=True)
class CalibrationMetadata:
    """Machine-vision reference points derived from the placement formulas."""

    mode: str
    total_height: float
    block_corners: Tuple[Vec2, ...]
    marker_corners: Dict[int, Tuple[Vec2, ...]]
    marker_ids: Dict[int, int]
    intersections: Tuple[Vec2, ...] = ()
    extra: Dict[str, object] = field(default_factory=dict)

    def to_dict(self, include_z: bool = True) -> Dict[str, object]:
        """JSON-ready dict; 3D consumers get points at z = total height."""
        z = self.total_height if include_z else 0.0

        def pts(points):
            return [[float(x), float(y), float(z)] for x, y in points]

        return {
            "mode": self.mode,
            "total_height_mm": float(self.total_height),
            "block_corners": pts(self.block_corners),
            "markers": [
                {
                    "index": idx,
                    "marker_id": self.marker_ids.get(idx),
                    "corners": pts(corners),
                }
                for idx, corners in sorted(self.marker_corners.items())
            ],
            "intersections": pts(self.intersections),
            **self.extra,
        }
