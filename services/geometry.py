from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Tuple

from pyproj import Geod, Transformer

from config import MIN_BUFFER_VERTICES

GEOGRAPHIC_EPSG = 4326
MAP_EPSG = 3857

_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class GeoPoint:
    longitude: float
    latitude: float


@dataclass(frozen=True)
class ProjectedPoint:
    x: float
    y: float


@dataclass(frozen=True)
class BufferPolygon:
    """Closed ring approximating a circle around ``center``, in EPSG:3857 metres."""

    center: ProjectedPoint
    radius_m: float
    ring: Tuple[ProjectedPoint, ...]

    @property
    def extent(self) -> Tuple[float, float, float, float]:
        xs = [point.x for point in self.ring]
        ys = [point.y for point in self.ring]
        return min(xs), min(ys), max(xs), max(ys)

    def coordinates(self) -> List[Tuple[float, float]]:
        return [(point.x, point.y) for point in self.ring]

    def to_geojson(self) -> Dict[str, object]:
        return {
            "type": "Polygon",
            "coordinates": [[[x, y] for x, y in self.coordinates()]],
        }


@lru_cache(maxsize=4)
def _transformer(source_epsg: int, target_epsg: int) -> Transformer:
    return Transformer.from_crs(f"EPSG:{source_epsg}", f"EPSG:{target_epsg}", always_xy=True)


def project(point: GeoPoint, epsg: int = MAP_EPSG) -> ProjectedPoint:
    x, y = _transformer(GEOGRAPHIC_EPSG, epsg).transform(point.longitude, point.latitude)
    return ProjectedPoint(x=float(x), y=float(y))


def unproject(point: ProjectedPoint, epsg: int = MAP_EPSG) -> GeoPoint:
    lon, lat = _transformer(epsg, GEOGRAPHIC_EPSG).transform(point.x, point.y)
    return GeoPoint(longitude=float(lon), latitude=float(lat))


def _planar_ring(center: ProjectedPoint, radius_m: float, vertices: int) -> List[ProjectedPoint]:
    ring = []
    for i in range(vertices):
        angle = 2 * math.pi * i / vertices
        ring.append(
            ProjectedPoint(
                x=center.x + radius_m * math.cos(angle),
                y=center.y + radius_m * math.sin(angle),
            )
        )
    return ring


def _geodesic_ring(center: GeoPoint, radius_m: float, vertices: int, epsg: int) -> List[ProjectedPoint]:
    azimuths = [360.0 * i / vertices for i in range(vertices)]
    lons, lats, _ = _GEOD.fwd(
        [center.longitude] * vertices,
        [center.latitude] * vertices,
        azimuths,
        [radius_m] * vertices,
    )
    xs, ys = _transformer(GEOGRAPHIC_EPSG, epsg).transform(lons, lats)
    return [ProjectedPoint(x=float(x), y=float(y)) for x, y in zip(xs, ys)]


def build_buffer(
    center: GeoPoint,
    radius_m: float,
    vertices: int = 64,
    geodesic: bool = False,
    epsg: int = MAP_EPSG,
) -> BufferPolygon:
    """Build the analysis buffer around ``center``.

    The default ring is a regular polygon at planar distance ``radius_m`` in the
    projected CRS, so the radius is in projected metres rather than ground
    metres. With ``geodesic=True`` the vertices are placed at true ground
    distance on the WGS84 ellipsoid and then projected.
    """

    if radius_m <= 0:
        raise ValueError(f"Buffer radius must be positive, got {radius_m}")
    if vertices < MIN_BUFFER_VERTICES:
        raise ValueError(f"A buffer needs at least {MIN_BUFFER_VERTICES} vertices, got {vertices}")

    projected_center = project(center, epsg)
    if geodesic:
        ring = _geodesic_ring(center, radius_m, vertices, epsg)
    else:
        ring = _planar_ring(projected_center, radius_m, vertices)
    ring.append(ring[0])
    return BufferPolygon(center=projected_center, radius_m=float(radius_m), ring=tuple(ring))
