"""
FastAPI application exposing the resolve and trending endpoints.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subreddit_trends import __version__
from subreddit_trends.api.endpoints import trends
from subreddit_trends.config import Config
from subreddit_trends.monitoring.metrics import PrometheusExporter
from subreddit_trends.service import TrendsService

logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None, service: Optional[TrendsService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration (loaded from files when omitted)
        service: Pre-built service; when omitted one is wired at startup
    """
    config = config or Config.from_files("config.yaml")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        owned = service is None
        if owned:
            exporter = None
            if config.monitoring.enable_prometheus:
                exporter = PrometheusExporter(config.monitoring.prometheus_port)
                exporter.start_server()
            app.state.service = TrendsService.from_config(config, prometheus_exporter=exporter)
        else:
            app.state.service = service
        logger.info(f"Starting subreddit trends API v{__version__}")
        try:
            yield
        finally:
            if owned:
                await app.state.service.close()
            logger.info("Subreddit trends API stopped")

    app = FastAPI(title="Subreddit Trends", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(trends.router, tags=["trends"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app
