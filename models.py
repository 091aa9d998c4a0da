from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

FailureKind = Literal["network_error", "service_error", "decode_error", "empty_image"]


class ZonalStatistics(BaseModel):
    count: int = 0
    sum: float = 0.0
    mean: float = 0.0
    min: Optional[float] = Field(default=None, description="None when no pixel was included.")
    max: Optional[float] = Field(default=None, description="None when no pixel was included.")


class AnalysisFailure(BaseModel):
    kind: FailureKind
    status: Optional[int] = Field(
        default=None, description="HTTP status returned by the coverage service, if any."
    )
    message: str


class AnalysisRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_meters: Optional[int] = Field(
        default=None,
        gt=0,
        description="Buffer radius in metres. Falls back to the configured default radius.",
    )


class Extent(BaseModel):
    min_x: float
    min_y: float
    max_x: float
    max_y: float


class AnalysisResponse(BaseModel):
    requested_at: datetime
    latitude: float
    longitude: float
    radius_meters: int
    radius_km: float
    coverage_id: str
    total_population: int = Field(..., description="Sum of included pixels rounded half-up.")
    statistics: ZonalStatistics
    extent: Extent
    buffer: Dict[str, Any] = Field(
        ..., description="GeoJSON Polygon of the analysis buffer in the map projection (EPSG:3857)."
    )
