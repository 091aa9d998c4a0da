from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import numpy as np
import pytest
from rasterio.io import MemoryFile
from rasterio.transform import from_bounds

from config import Settings
from services.geometry import BufferPolygon, GeoPoint, ProjectedPoint, project

ALTENMARKT = GeoPoint(longitude=14.55, latitude=47.51)


def make_geotiff(
    values: np.ndarray,
    bounds: Tuple[float, float, float, float],
    nodata: Optional[float] = None,
    crs: str = "EPSG:3857",
) -> bytes:
    """Write ``values`` (rows x cols) as a single band GeoTIFF spanning ``bounds``."""

    height, width = values.shape
    transform = from_bounds(*bounds, width, height)
    with MemoryFile() as memfile:
        with memfile.open(
            driver="GTiff",
            width=width,
            height=height,
            count=1,
            dtype=values.dtype,
            crs=crs,
            transform=transform,
            nodata=nodata,
        ) as dst:
            dst.write(values, 1)
        return memfile.read()


class RecordingSink:
    """Result sink that records what a session asked the front-end to show."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, object]] = []
        self.buffer: Optional[BufferPolygon] = None
        self.results: List[object] = []

    def clear(self) -> None:
        self.events.append(("clear", None))
        self.buffer = None
        self.results = []

    def show_loading(self, run_id: int) -> None:
        self.events.append(("show_loading", run_id))

    def hide_loading(self, run_id: int) -> None:
        self.events.append(("hide_loading", run_id))

    def show_buffer(self, buffer: BufferPolygon) -> None:
        self.events.append(("show_buffer", buffer))
        self.buffer = buffer

    def show_result(self, outcome: object) -> None:
        self.events.append(("show_result", outcome))
        self.results.append(outcome)

    def loading_events(self) -> List[Tuple[str, object]]:
        return [event for event in self.events if event[0] in ("show_loading", "hide_loading")]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        wcs_base_url="http://geoserver.test/geoserver/wcs",
        coverage_id="medaccess_austria:ESTAT_OBS-VALUE-T_2021_V2",
    )


@pytest.fixture
def center() -> GeoPoint:
    return ALTENMARKT


@pytest.fixture
def projected_center(center: GeoPoint) -> ProjectedPoint:
    return project(center)


@pytest.fixture
def inner_tiff(projected_center: ProjectedPoint) -> Callable[[float], bytes]:
    """4x4 GeoTIFF of 1 km pixels centred on the click, well inside a 5 km buffer."""

    def factory(value: float = 100.0) -> bytes:
        x, y = projected_center.x, projected_center.y
        values = np.full((4, 4), value, dtype=np.float32)
        return make_geotiff(values, (x - 2000, y - 2000, x + 2000, y + 2000))

    return factory


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
