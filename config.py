from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel

MIN_BUFFER_VERTICES = 8

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    wcs_base_url: str = "http://localhost:8080/geoserver/wcs"
    coverage_id: str = "medaccess_austria:ESTAT_OBS-VALUE-T_2021_V2"
    subsetting_epsg: int = 3857
    request_timeout_s: float = 30.0
    buffer_vertices: int = 64
    buffer_geodesic: bool = False
    default_radius_m: int = 5000

    @classmethod
    def from_env(cls, env: Optional[dict[str, str]] = None) -> "Settings":
        data = os.environ if env is None else env
        buffer_vertices = int(data.get("BUFFER_VERTICES", "64"))
        if buffer_vertices < MIN_BUFFER_VERTICES:
            raise ValueError(
                f"BUFFER_VERTICES must be at least {MIN_BUFFER_VERTICES}, got {buffer_vertices}."
            )
        default_radius_m = int(data.get("DEFAULT_RADIUS_M", "5000"))
        if default_radius_m <= 0:
            raise ValueError("DEFAULT_RADIUS_M must be a positive number of metres.")
        return cls(
            wcs_base_url=data.get("WCS_BASE_URL", "http://localhost:8080/geoserver/wcs"),
            coverage_id=data.get(
                "WCS_COVERAGE_ID",
                "medaccess_austria:ESTAT_OBS-VALUE-T_2021_V2",
            ),
            subsetting_epsg=int(data.get("WCS_SUBSETTING_EPSG", "3857")),
            request_timeout_s=float(data.get("WCS_TIMEOUT_S", "30")),
            buffer_vertices=buffer_vertices,
            buffer_geodesic=data.get("BUFFER_GEODESIC", "false").strip().lower() in _TRUE_VALUES,
            default_radius_m=default_radius_m,
        )


settings = Settings.from_env()
