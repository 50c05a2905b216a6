import logging

import structlog
from contextlib import asynccontextmanager
from dependency_injector import providers
from fastapi import FastAPI

from api_adapter import __version__
from api_adapter.config import Settings
from api_adapter.container import Container, shutdown_services
from api_adapter.controllers import build_proxy_router, health_router


def configure_logging(debug: bool = False) -> None:
    """
    Configure structured logging.

    Debug runs get coloured console output including debug events (preflights);
    otherwise one JSON object per line at info level and above, for the edge
    platform's log collector.
    """
    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO,
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger = structlog.get_logger()
    container: Container = app.state.container

    logger.info(
        "Application started",
        prefix=container.config().api_prefix,
        upstream=container.config().upstream_base_url(),
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await shutdown_services(container)
    logger.info("Application stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    # Initialize DI container; explicit settings replace the environment
    container = Container()
    if settings is not None:
        container.config.override(providers.Object(settings))
    settings = container.config()

    configure_logging(debug=settings.debug)

    app = FastAPI(
        title="Storefront API Adapter",
        description=(
            "Edge adapter that forwards browser API calls to the upstream "
            "origin, adds CORS headers and normalizes product listings."
        ),
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container

    # Include routers
    # Health routes first (without proxy catch-all)
    app.include_router(health_router)

    # Proxy catch-all last
    app.include_router(build_proxy_router(settings.api_prefix))

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    from api_adapter.config import settings

    uvicorn.run(
        "api_adapter.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
