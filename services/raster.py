from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from rasterio.errors import RasterioError
from rasterio.io import MemoryFile

from services.errors import DecodeError, EmptyImageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterGrid:
    width: int
    height: int
    values: Sequence[float]
    origin_x: float
    origin_y: float
    pixel_width: float
    pixel_height: float
    nodata: Optional[float] = None

    def pixel_center(self, row: int, col: int) -> Tuple[float, float]:
        # Row 0 is the northernmost row.
        x = self.origin_x + (col + 0.5) * self.pixel_width
        y = self.origin_y - (row + 0.5) * self.pixel_height
        return x, y


def _band_nodata(nodata: Optional[float], dtype: str) -> Optional[float]:
    """Return the declared nodata at the precision the band stores its pixels in."""

    if nodata is None:
        return None
    band_dtype = np.dtype(dtype)
    if band_dtype.kind == "f":
        return float(band_dtype.type(nodata))
    return float(nodata)


def decode(payload: bytes, expected_epsg: Optional[int] = None) -> RasterGrid:
    """Decode a GeoTIFF payload into a :class:`RasterGrid` of its first band.

    ``expected_epsg`` is the CRS the coverage was requested in; a payload
    declaring another CRS is logged, since its pixels will not line up with
    the buffer.
    """

    if not payload:
        raise DecodeError("Coverage response is empty")

    try:
        with MemoryFile(payload) as memfile:
            with memfile.open() as src:
                width, height = src.width, src.height
                if width == 0 or height == 0:
                    raise EmptyImageError(f"Coverage has no pixels ({width}x{height})")
                bounds = src.bounds
                if src.transform.is_identity or bounds.top <= bounds.bottom:
                    raise DecodeError("Coverage has no north-up geo-referencing")
                crs_epsg = src.crs.to_epsg() if src.crs is not None else None
                if expected_epsg is not None and crs_epsg is not None and crs_epsg != expected_epsg:
                    logger.warning(
                        "Coverage CRS is EPSG:%s, expected EPSG:%s", crs_epsg, expected_epsg
                    )
                nodata = _band_nodata(src.nodata, src.dtypes[0])
                values = src.read(1).ravel().tolist()
    except RasterioError as exc:
        raise DecodeError(f"Coverage is not a readable raster: {exc}") from exc

    logger.debug("Decoded %sx%s raster, bounds=%s, nodata=%s", width, height, bounds, nodata)

    return RasterGrid(
        width=width,
        height=height,
        values=values,
        origin_x=bounds.left,
        origin_y=bounds.top,
        pixel_width=(bounds.right - bounds.left) / width,
        pixel_height=(bounds.top - bounds.bottom) / height,
        nodata=nodata,
    )
