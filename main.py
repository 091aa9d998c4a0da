from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Dict, Type

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import Settings, settings
from models import AnalysisRequest, AnalysisResponse
from services.analysis_service import analyze_request
from services.errors import (
    AnalysisError,
    DecodeError,
    EmptyImageError,
    NetworkError,
    ServiceError,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

ERROR_STATUS: Dict[Type[AnalysisError], int] = {
    NetworkError: 504,
    ServiceError: 502,
    DecodeError: 502,
    EmptyImageError: 422,
}


class HealthResponse(BaseModel):
    status: str
    wcs_base_url: str
    coverage_id: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def create_app(http_client: httpx.AsyncClient | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if http_client is not None:
            app.state.http_client = http_client
            yield
            return
        timeout = httpx.Timeout(get_settings().request_timeout_s)
        async with httpx.AsyncClient(timeout=timeout) as client:
            app.state.http_client = client
            yield

    app = FastAPI(title="Population Buffer Analyzer API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(config: Settings = Depends(get_settings)) -> HealthResponse:
        return HealthResponse(
            status="ok",
            wcs_base_url=config.wcs_base_url,
            coverage_id=config.coverage_id,
        )

    @app.post("/analysis", response_model=AnalysisResponse)
    async def perform_analysis(
        request: AnalysisRequest,
        config: Settings = Depends(get_settings),
        client: httpx.AsyncClient = Depends(get_http_client),
    ) -> AnalysisResponse:
        logger.info(
            "Running analysis for lat=%s, lon=%s, radius=%sm",
            request.latitude,
            request.longitude,
            request.radius_meters or config.default_radius_m,
        )
        try:
            return await analyze_request(request, client, config)
        except AnalysisError as exc:
            logger.exception("Analysis failed")
            raise HTTPException(
                status_code=ERROR_STATUS.get(type(exc), 500),
                detail=exc.to_failure().model_dump(),
            ) from exc

    return app


app = create_app()
