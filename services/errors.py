from __future__ import annotations

from typing import Optional

from models import AnalysisFailure


class AnalysisError(Exception):
    """Base class for the failures that terminate one analysis run."""

    kind = "analysis_error"

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def to_failure(self) -> AnalysisFailure:
        return AnalysisFailure(kind=self.kind, status=self.status, message=self.message)


class NetworkError(AnalysisError):
    """The coverage request could not be sent or completed."""

    kind = "network_error"


class ServiceError(AnalysisError):
    """The coverage service answered with a non-2xx status."""

    kind = "service_error"

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"WCS error: {status}", status=status)


class DecodeError(AnalysisError):
    """The response body is not a raster container rasterio can read."""

    kind = "decode_error"


class EmptyImageError(AnalysisError):
    """The decoded raster has zero width or height."""

    kind = "empty_image"
