"""
api/main.py

FastAPI application factory.

The traffic analyzer is a module-level singleton so its cached baseline
outlives individual requests; tests swap it with set_analyzer().
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..analysis.analyzer import TrafficAnalyzer
from ..errors import ConfigurationError
from ..metrics import METRICS
from .routes import analysis as analysis_router
from .routes import anonymize as anonymize_router
from .routes import topology as topology_router
from .serializers import HealthResponse

logger = logging.getLogger(__name__)

_analyzer: TrafficAnalyzer | None = None


def set_analyzer(analyzer: TrafficAnalyzer | None) -> None:
    global _analyzer
    _analyzer = analyzer


def get_analyzer() -> TrafficAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = TrafficAnalyzer(reuse_baseline=True)
    return _analyzer


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("FastAPI startup")
        yield
        logger.info("FastAPI shutdown")

    app = FastAPI(
        title="FlowScope — Flow Log Topology & Traffic Analysis",
        version="1.0.0",
        description="Network topology reconstruction and traffic analysis from flow logs",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    app.include_router(topology_router.router, prefix="/api")
    app.include_router(analysis_router.router, prefix="/api")
    app.include_router(anonymize_router.router, prefix="/api")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            metrics=METRICS.as_dict(),
            security_rules=[r.name for r in get_analyzer().security.rules],
        )

    return app
