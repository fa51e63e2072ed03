from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

from sql_exporter import __version__
from sql_exporter.services.exporter import Exporter

logger = structlog.get_logger(__name__)


def create_app(exporter: Exporter) -> FastAPI:
    """Build the metrics app. The exporter runs for the lifetime of the app."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        exporter.start()
        try:
            yield
        finally:
            await exporter.shutdown()

    app = FastAPI(
        title="SQL Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.exporter = exporter

    @app.get("/metrics")
    async def metrics(request: Request) -> Response:
        logger.debug("metrics_requested", client=request.client.host if request.client else None)
        return Response(content=exporter.get_metrics(), media_type=CONTENT_TYPE_LATEST)

    return app
