from __future__ import annotations

import logging
from typing import Sequence

import httpx

from services.errors import NetworkError, ServiceError

logger = logging.getLogger(__name__)

CRS_URI_TEMPLATE = "http://www.opengis.net/def/crs/EPSG/0/{epsg}"


def build_coverage_url(
    base_url: str,
    coverage_id: str,
    extent: Sequence[float],
    epsg: int = 3857,
) -> str:
    """Return a WCS 2.0.1 GetCoverage URL clipping ``coverage_id`` to ``extent``.

    ``extent`` is ``(min_x, min_y, max_x, max_y)`` in the subsetting CRS. Values
    are passed through as given.
    """

    min_x, min_y, max_x, max_y = extent
    return (
        f"{base_url}?service=WCS&version=2.0.1&request=GetCoverage"
        f"&coverageId={coverage_id}"
        f"&subset=X({min_x},{max_x})"
        f"&subset=Y({min_y},{max_y})"
        f"&subsettingCrs={CRS_URI_TEMPLATE.format(epsg=epsg)}"
        f"&format=image/tiff"
    )


async def fetch_coverage(client: httpx.AsyncClient, url: str) -> bytes:
    """Download a coverage and return the raw response body."""

    logger.info("Requesting coverage %s", url)
    try:
        response = await client.get(url)
    except httpx.RequestError as exc:
        logger.warning("Coverage request failed: %s", exc)
        raise NetworkError(f"Coverage request failed: {exc}") from exc

    if not response.is_success:
        logger.warning("Coverage service answered with status %s", response.status_code)
        raise ServiceError(response.status_code)

    return response.content
