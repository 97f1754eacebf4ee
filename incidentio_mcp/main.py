import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from incidentio_mcp import __version__
from incidentio_mcp.adapters.client import IncidentIoClient
from incidentio_mcp.api.error_handlers import register_exception_handlers
from incidentio_mcp.core.config import Settings, get_settings
from incidentio_mcp.core.exceptions import ConfigurationError
from incidentio_mcp.core.logging import configure_logging, get_logger, set_correlation_id
from incidentio_mcp.infrastructure.cache.reference_cache import ReferenceDataCache
from incidentio_mcp.services.incident_service import IncidentService

logger = get_logger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    service: Optional[IncidentService] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use. Defaults to get_settings().
        service: Prebuilt incident service. When given, the lifespan neither
            builds nor tears down the upstream client and cache.

    Returns:
        FastAPI: Configured FastAPI application instance

    Raises:
        ConfigurationError: If settings are not given and API_KEY is missing
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting {settings.PROJECT_NAME} v{__version__}")
        if service is not None:
            app.state.incident_service = service
            yield
            logger.info(f"Shutting down {settings.PROJECT_NAME}")
            return

        client = IncidentIoClient.from_settings(settings)
        cache = ReferenceDataCache(client, refresh_interval=settings.CACHE_REFRESH_INTERVAL)
        await cache.start()
        app.state.incident_service = IncidentService(client, cache)

        yield

        # Shutdown
        logger.info(f"Shutting down {settings.PROJECT_NAME}")
        await cache.stop()
        await client.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="HTTP and MCP adapter for the incident.io API",
        version=__version__,
        debug=settings.DEBUG,
        lifespan=lifespan
    )
    if service is not None:
        app.state.incident_service = service

    configure_middleware(app, settings)
    register_exception_handlers(app)
    register_routers(app)

    return app


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Configure middleware components for the FastAPI application.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracking middleware
    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next: Callable):
        # Extract or generate correlation ID
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        set_correlation_id(correlation_id)

        # Track request timing
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request failed: {str(e)}",
                extra={
                    "data": {
                        "request_path": request.url.path,
                        "method": request.method,
                        "process_time_ms": round(process_time * 1000, 2),
                    }
                },
                exc_info=True
            )
            raise

        response.headers["X-Correlation-ID"] = correlation_id

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            extra={
                "data": {
                    "request_path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "process_time_ms": round(process_time * 1000, 2),
                }
            }
        )
        return response


def register_routers(app: FastAPI) -> None:
    """
    Register API routers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Import routers here to avoid circular imports
    from incidentio_mcp.api.routes.health import health_router
    from incidentio_mcp.api.routes.incidents import incidents_router
    from incidentio_mcp.api.routes.index import index_router
    from incidentio_mcp.api.routes.reference import reference_router

    app.include_router(index_router, tags=["Index"])
    app.include_router(health_router, prefix="/health", tags=["Health"])
    app.include_router(incidents_router, prefix="/mcp/incidents", tags=["Incidents"])
    app.include_router(reference_router, prefix="/mcp", tags=["Reference data"])


def run() -> None:
    """Entry point for the HTTP server."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        # Settings are needed to configure logging, so report with the defaults.
        logging.basicConfig(stream=sys.stderr, level=logging.INFO)
        logger.error(f"Configuration error: {e.detail}", extra={"data": e.context})
        sys.exit(1)

    configure_logging(settings)
    logger.info(f"Listening on {settings.HOST}:{settings.PORT}")

    import uvicorn

    uvicorn.run(
        "incidentio_mcp.main:create_application",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    run()
