from __future__ import annotations

import math
from typing import Sequence, Tuple

from models import ZonalStatistics
from services.geometry import BufferPolygon
from services.raster import RasterGrid

Ring = Sequence[Tuple[float, float]]


def point_in_polygon(x: float, y: float, ring: Ring) -> bool:
    """Even-odd ray casting test of ``(x, y)`` against ``ring``.

    A horizontal ray is cast towards +x. Edge endpoints are compared with a
    strict ``>`` on y, so a point on the ring gets a fixed but arbitrary answer.
    """

    inside = False
    xj, yj = ring[-1]
    for xi, yi in ring:
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        xj, yj = xi, yi
    return inside


def aggregate(grid: RasterGrid, polygon: BufferPolygon) -> ZonalStatistics:
    """Summarise the pixels of ``grid`` whose centers fall inside ``polygon``."""

    ring = polygon.coordinates()
    min_x, min_y, max_x, max_y = polygon.extent
    nodata = grid.nodata

    count = 0
    total = 0.0
    low = math.inf
    high = -math.inf

    for row in range(grid.height):
        offset = row * grid.width
        for col in range(grid.width):
            value = grid.values[offset + col]
            if nodata is not None and value == nodata:
                continue
            if not math.isfinite(value):
                continue
            x, y = grid.pixel_center(row, col)
            if x < min_x or x > max_x or y < min_y or y > max_y:
                continue
            if not point_in_polygon(x, y, ring):
                continue
            if value < low:
                low = value
            if value > high:
                high = value
            total += value
            count += 1

    if count == 0:
        return ZonalStatistics(count=0, sum=0.0, mean=0.0, min=None, max=None)

    return ZonalStatistics(count=count, sum=total, mean=total / count, min=low, max=high)
