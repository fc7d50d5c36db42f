"""PNG previews of a marker's top view, drawn with Pillow."""

from __future__ import annotations

import logging
import os
from typing import Sequence, Tuple

from PIL import Image, ImageDraw

from marker_solids.assembly import footprint_bounds, path_layers
from marker_solids.contracts import Cell, Material

logger = logging.getLogger(__name__)

PIXEL_COLORS = {
    Material.BLACK: (0, 0, 0),
    Material.WHITE: (255, 255, 255),
}


def render_top_view(
    cells: Sequence[Cell],
    px_per_mm: float = 10.0,
    margin_mm: float = 0.0,
    background: Tuple[int, int, int] = (255, 255, 255),
) -> Image.Image:
    """Rasterise the visible top colours, painting from the lowest level up.

    Rectangle edges are rounded to whole pixels on both sides, so cells that
    share an edge in millimetres share it in pixels too.
    """
    if px_per_mm <= 0:
        raise ValueError("px_per_mm must be positive")

    minx, miny, maxx, maxy = footprint_bounds(cells)
    width = max(1, round((maxx - minx + 2 * margin_mm) * px_per_mm))
    height = max(1, round((maxy - miny + 2 * margin_mm) * px_per_mm))

    img = Image.new("RGB", (width, height), color=background)
    draw = ImageDraw.Draw(img)

    def to_px(x: float, y: float) -> Tuple[float, float]:
        return (x - minx + margin_mm) * px_per_mm, (maxy - y + margin_mm) * px_per_mm

    for layer in path_layers(cells):
        fill = PIXEL_COLORS[layer.material]
        for rminx, rminy, rmaxx, rmaxy in layer.rects:
            left, top = to_px(rminx, rmaxy)
            right, bottom = to_px(rmaxx, rminy)
            x0, y0 = round(left), round(top)
            x1, y1 = round(right) - 1, round(bottom) - 1
            if x1 < x0 or y1 < y0:
                continue
            draw.rectangle([x0, y0, x1, y1], fill=fill)

    return img


def cells_to_png(
    cells: Sequence[Cell],
    filepath: str,
    px_per_mm: float = 10.0,
    margin_mm: float = 0.0,
) -> str:
    """Render and save a PNG preview; returns the path."""
    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    img = render_top_view(cells, px_per_mm=px_per_mm, margin_mm=margin_mm)
    img.save(filepath, "PNG")
    logger.info("Exported PNG: %s (%dx%d px)", filepath, img.width, img.height)
    return filepath
