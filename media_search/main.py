"""Media search service main application."""

import time
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from media_libs.common.config import SearchConfig
from media_libs.common.logging import configure_logging
from media_libs.search_backends.base import SecondaryBackendError
from .api.routes import router as api_router
from .pipeline.search_manager import SearchManager
from .runtime.metrics import get_metrics_collector

logger = structlog.get_logger("search_service")

SERVICE_NAME = "media-search-service"
SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    config = SearchConfig()
    configure_logging(SERVICE_NAME, config.log_level, config.log_format)

    logger.info("Starting media search service", env=config.env)

    app.state.metrics_collector = get_metrics_collector(SERVICE_NAME)

    app.state.search_manager = SearchManager(config, metrics_collector=app.state.metrics_collector)
    await app.state.search_manager.initialize()

    logger.info("Media search service started successfully")

    yield

    # Shutdown
    logger.info("Shutting down media search service")
    if hasattr(app.state, 'search_manager'):
        await app.state.search_manager.cleanup()
    logger.info("Media search service shutdown complete")


app = FastAPI(
    title="Media Search Service",
    description="Anime and manga search over Meilisearch with a backend API fallback",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")
# Path used by existing frontend clients.
app.include_router(api_router, prefix="/api", include_in_schema=False)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed bodies with the endpoint's ``{message}`` error shape."""
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request body.", "detail": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(SecondaryBackendError)
async def backend_exception_handler(request: Request, exc: SecondaryBackendError):
    """The fallback is the last resort; its failure is a bad gateway."""
    return JSONResponse(
        status_code=502,
        content={"message": "Search backend unavailable."}
    )


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect metrics for HTTP requests."""
    start_time = time.time()

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        logger.exception("Unhandled error", path=request.url.path, error=str(e))
        status_code = 500
        response = JSONResponse(
            status_code=500,
            content={"message": "Internal server error."}
        )

    duration = time.time() - start_time

    if hasattr(app.state, 'metrics_collector'):
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status=status_code,
            duration=duration
        )

    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        if hasattr(app.state, 'search_manager'):
            status = await app.state.search_manager.health_check()
        else:
            status = {"healthy": False}

        if status.pop("healthy"):
            return {"status": "healthy", "service": SERVICE_NAME, **status}
        else:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "service": SERVICE_NAME, **status}
            )
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": SERVICE_NAME, "error": str(e)}
        )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if hasattr(app.state, 'metrics_collector'):
        metrics_data = app.state.metrics_collector.get_metrics()
        return Response(content=metrics_data, media_type="text/plain")
    else:
        return Response(content="# No metrics available\n", media_type="text/plain")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "metrics": "/metrics",
            "search": "/api/v1/search"
        }
    }


if __name__ == "__main__":
    uvicorn.run(
        "media_search.main:app",
        host="0.0.0.0",
        port=SearchConfig().search_port,
        reload=True,
        log_level="info"
    )
