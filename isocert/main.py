from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request

from isocert.api.router import api_router
from isocert.core.bootstrap import open_search_service
from isocert.core.config import get_settings
from isocert.core.telemetry import TelemetryRuntime, configure_logging, setup_api_telemetry, shutdown_api_telemetry

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    try:
        async with open_search_service(settings) as service:
            app.state.search_service = service
            yield
    finally:
        app.state.search_service = None
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(app, _telemetry_runtime)


app = FastAPI(title=settings.app_name, lifespan=lifespan)
_telemetry_runtime = setup_api_telemetry(app, settings)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)
