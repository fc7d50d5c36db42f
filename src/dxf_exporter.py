"""
DXF export of a marker's top view for laser engraving or plotting.

Uses ezdxf to produce DXF files with one layer per visible colour:
  - BLACK (ACI 250): regions whose top surface is black
  - WHITE (ACI 9): regions whose top surface is white
  - OUTLINE (ACI 1): outer footprint of the whole model

Units: millimeters. Format: R2010.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence

import ezdxf
from ezdxf.enums import TextEntityAlignment
from shapely.geometry import Polygon
from shapely.geometry import box as shapely_box
from shapely.ops import unary_union

from marker_solids.assembly import top_view_regions
from marker_solids.contracts import Cell, Material

logger = logging.getLogger(__name__)


@dataclass
class DXFExportConfig:
    """Configuration for DXF export."""
    black_layer: str = "BLACK"
    white_layer: str = "WHITE"
    outline_layer: str = "OUTLINE"
    black_color: int = 250   # ACI dark grey
    white_color: int = 9     # ACI light grey
    outline_color: int = 1   # ACI red
    add_outline: bool = True
    label: Optional[str] = None
    label_height_mm: float = 3.0


def cells_to_dxf(
    cells: Sequence[Cell],
    filepath: str,
    config: Optional[DXFExportConfig] = None,
) -> str:
    """Export the visible top colours of ``cells`` to a DXF file.

    Args:
        cells: Partition cells of one built pattern.
        filepath: Output DXF file path.
        config: DXF export settings.

    Returns:
        Path to created DXF file.
    """
    if config is None:
        config = DXFExportConfig()

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.MM
    msp = doc.modelspace()
    _setup_layers(doc, config)

    regions = top_view_regions(cells)
    layers = {
        Material.BLACK: config.black_layer,
        Material.WHITE: config.white_layer,
    }
    for material, region in regions.items():
        _add_polygon_to_dxf(msp, region, layers[material])

    if config.add_outline and cells:
        footprint = unary_union([shapely_box(*c.bounds_2d) for c in cells])
        _add_polygon_to_dxf(msp, footprint, config.outline_layer)
        if config.label:
            _add_label(msp, footprint, config)

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported DXF: %s", filepath)
    return filepath


# ─── Internal helpers ────────────────────────────────────────────────────────

def _setup_layers(doc, config: DXFExportConfig) -> None:
    """Create BLACK, WHITE and OUTLINE layers."""
    doc.layers.add(config.black_layer, color=config.black_color)
    doc.layers.add(config.white_layer, color=config.white_color)
    doc.layers.add(config.outline_layer, color=config.outline_color)


def _add_polygon_to_dxf(msp, polygon, layer: str) -> None:
    """Add a Shapely polygon (or collection of them) as closed LWPolylines."""
    if polygon.is_empty:
        return

    if hasattr(polygon, "geoms"):
        for geom in polygon.geoms:
            _add_polygon_to_dxf(msp, geom, layer)
        return

    if not isinstance(polygon, Polygon):
        # Slivers left by differencing touching boxes
        return

    # Outer ring first, then holes; the closing vertex is implied by close=True
    for ring in [polygon.exterior, *polygon.interiors]:
        points = [(x, y) for x, y in ring.coords[:-1]]
        if len(points) >= 3:
            msp.add_lwpolyline(points, close=True, dxfattribs={"layer": layer})


def _add_label(msp, footprint, config: DXFExportConfig) -> None:
    """Add a text label just below the footprint."""
    minx, miny, maxx, _ = footprint.bounds
    msp.add_text(
        config.label,
        height=config.label_height_mm,
        dxfattribs={"layer": config.outline_layer},
    ).set_placement(
        ((minx + maxx) / 2, miny - config.label_height_mm * 2),
        align=TextEntityAlignment.MIDDLE_CENTER,
    )
