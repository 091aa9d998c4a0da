from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import httpx

from config import Settings, settings as default_settings
from models import AnalysisRequest, AnalysisResponse, Extent, ZonalStatistics
from services.geometry import BufferPolygon, GeoPoint, build_buffer
from services.raster import decode
from services.zonal import aggregate
from wcs_client import build_coverage_url, fetch_coverage

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DECODING = "decoding"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisResult:
    center: GeoPoint
    radius_m: int
    buffer: BufferPolygon
    coverage_id: str
    statistics: ZonalStatistics


def create_analysis_buffer(center: GeoPoint, radius_m: int, config: Settings) -> BufferPolygon:
    """Create the buffer polygon for the requested point in the map projection."""

    return build_buffer(
        center,
        radius_m,
        vertices=config.buffer_vertices,
        geodesic=config.buffer_geodesic,
        epsg=config.subsetting_epsg,
    )


async def compute_statistics(
    buffer: BufferPolygon,
    client: httpx.AsyncClient,
    config: Settings,
    on_stage: Optional[Callable[[RunState], None]] = None,
) -> ZonalStatistics:
    """Fetch the coverage under ``buffer``, decode it and aggregate the inside pixels.

    ``on_stage`` is called with each :class:`RunState` as the pipeline enters it.
    """

    def enter(stage: RunState) -> None:
        if on_stage is not None:
            on_stage(stage)

    url = build_coverage_url(
        config.wcs_base_url,
        config.coverage_id,
        buffer.extent,
        epsg=config.subsetting_epsg,
    )

    enter(RunState.FETCHING)
    payload = await fetch_coverage(client, url)

    enter(RunState.DECODING)
    grid = await asyncio.to_thread(decode, payload, config.subsetting_epsg)

    enter(RunState.AGGREGATING)
    statistics = aggregate(grid, buffer)

    enter(RunState.DONE)
    return statistics


async def run_analysis(
    center: GeoPoint,
    radius_m: int,
    client: httpx.AsyncClient,
    config: Optional[Settings] = None,
) -> AnalysisResult:
    """Run one fetch, decode and aggregate cycle for ``center`` and ``radius_m``.

    Raises one of the :mod:`services.errors` failures when the coverage cannot
    be fetched or decoded.
    """

    config = config or default_settings
    buffer = create_analysis_buffer(center, radius_m, config)
    statistics = await compute_statistics(buffer, client, config)
    logger.info(
        "Analysis at lon=%s, lat=%s, radius=%sm: %s pixels, sum=%s",
        center.longitude,
        center.latitude,
        radius_m,
        statistics.count,
        statistics.sum,
    )
    return AnalysisResult(
        center=center,
        radius_m=radius_m,
        buffer=buffer,
        coverage_id=config.coverage_id,
        statistics=statistics,
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_response(result: AnalysisResult) -> AnalysisResponse:
    min_x, min_y, max_x, max_y = result.buffer.extent
    return AnalysisResponse(
        requested_at=datetime.now(timezone.utc),
        latitude=result.center.latitude,
        longitude=result.center.longitude,
        radius_meters=result.radius_m,
        radius_km=round(result.radius_m / 1000, 1),
        coverage_id=result.coverage_id,
        total_population=round_half_up(result.statistics.sum),
        statistics=result.statistics,
        extent=Extent(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y),
        buffer=result.buffer.to_geojson(),
    )


async def analyze_request(
    request: AnalysisRequest,
    client: httpx.AsyncClient,
    config: Optional[Settings] = None,
) -> AnalysisResponse:
    config = config or default_settings
    radius_m = request.radius_meters or config.default_radius_m
    center = GeoPoint(longitude=request.longitude, latitude=request.latitude)
    result = await run_analysis(center, radius_m, client, config)
    return build_response(result)
