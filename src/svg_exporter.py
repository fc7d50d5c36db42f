"""
SVG Exporter for marker top views.

Each paint layer (one material at one height level) becomes a single
even-odd path; layers are drawn from the lowest top upwards so raised
features end up on top, matching what a camera sees on the printed part.
"""

import logging
import os
from typing import Optional, Sequence

import svgwrite

from marker_solids.assembly import footprint_bounds, path_layers
from marker_solids.contracts import Cell, Material

logger = logging.getLogger(__name__)

FILL_COLORS = {
    Material.BLACK: "#000000",
    Material.WHITE: "#ffffff",
}


def build_drawing(
    cells: Sequence[Cell],
    filepath: str = "",
    margin: float = 0.0,  # mm
    background: Optional[str] = None,
    label: Optional[str] = None,
) -> svgwrite.Drawing:
    """
    Build an svgwrite drawing of the visible top colours of ``cells``.

    Args:
        cells: Partition cells of one built pattern
        filepath: Target path, used only when the drawing is saved
        margin: Empty space around the footprint (mm)
        background: Optional fill for the whole canvas
        label: Optional caption placed in the bottom margin

    Returns:
        The unsaved drawing
    """
    minx, miny, maxx, maxy = footprint_bounds(cells)
    width = maxx - minx
    height = maxy - miny

    canvas_width = width + 2 * margin
    canvas_height = height + 2 * margin

    dwg = svgwrite.Drawing(
        filepath,
        size=(f"{canvas_width:g}mm", f"{canvas_height:g}mm"),
        viewBox=f"0 0 {canvas_width:g} {canvas_height:g}",
    )

    if background:
        dwg.add(dwg.rect(insert=(0, 0), size=(canvas_width, canvas_height), fill=background))

    # Model +y points up, SVG +y points down
    offset = (margin - minx, margin + maxy)
    for layer in path_layers(cells):
        dwg.add(dwg.path(
            d=layer.path_data(flip_y=True, offset=offset),
            fill=FILL_COLORS[layer.material],
            fill_rule="evenodd",
            stroke="none",
        ))

    if label and margin > 0:
        dwg.add(dwg.text(
            label,
            insert=(canvas_width / 2, canvas_height - margin / 3),
            font_size=f"{max(margin / 3, 1.0):g}px",
            font_family="Arial, sans-serif",
            fill="#333333",
            text_anchor="middle",
        ))

    return dwg


def cells_to_svg(
    cells: Sequence[Cell],
    filepath: str,
    margin: float = 0.0,
    background: Optional[str] = None,
    label: Optional[str] = None,
) -> str:
    """
    Export cells to an SVG file.

    Returns:
        Path to created SVG file
    """
    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    dwg = build_drawing(cells, filepath, margin=margin, background=background, label=label)
    dwg.save()
    logger.info("Exported SVG: %s", filepath)
    return filepath


def cells_to_svg_string(cells: Sequence[Cell], margin: float = 0.0) -> str:
    """SVG document text, for previews that never touch the disk."""
    return build_drawing(cells, margin=margin).tostring()
