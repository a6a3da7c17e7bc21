"""
CanopyLab — Raster Window Helpers
==================================
Whole-cell windows around a geometry's bounding box, used by every tool
that rasterises polygons against only the part of a grid they cover.

A footprint with no width or height (a point, or a line lying on a grid
line) is widened by one cell on each side of the degenerate axis, so the
cells it touches are still inside the window before clipping.
"""

from __future__ import annotations

import math

from rasterio.transform import Affine


def pixel_window(
    transform: Affine,
    shape: tuple[int, int],
    bounds: tuple[float, float, float, float],
) -> tuple[int, int, int, int] | None:
    """Whole-cell ``(row0, row1, col0, col1)`` covering *bounds*, clipped to the grid.

    Args:
        transform: North-up affine transform of the grid.
        shape: ``(rows, cols)`` of the grid.
        bounds: ``(minx, miny, maxx, maxy)`` in the grid CRS.

    Returns:
        Half-open row/column ranges, or ``None`` when *bounds* lie
        entirely outside the grid.
    """
    rows, cols = shape
    t = transform
    minx, miny, maxx, maxy = bounds
    # Geo coords → pixel indices (e is negative)
    col0 = math.floor(round((minx - t.c) / t.a, 9))
    col1 = math.ceil(round((maxx - t.c) / t.a, 9))
    row0 = math.floor(round((maxy - t.f) / t.e, 9))
    row1 = math.ceil(round((miny - t.f) / t.e, 9))
    if col0 == col1:
        col0, col1 = col0 - 1, col1 + 1
    if row0 == row1:
        row0, row1 = row0 - 1, row1 + 1

    col0, col1 = max(col0, 0), min(col1, cols)
    row0, row1 = max(row0, 0), min(row1, rows)
    if col0 >= col1 or row0 >= row1:
        return None
    return row0, row1, col0, col1


def window_transform(transform: Affine, row0: int, col0: int) -> Affine:
    """Transform of a window whose upper-left cell is ``(row0, col0)``."""
    t = transform
    return Affine(t.a, t.b, t.c + col0 * t.a, t.d, t.e, t.f + row0 * t.e)
