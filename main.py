import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shortlink_app.config import Settings, settings as default_settings
from shortlink_app.database.connection import Database
from shortlink_app.cache.factory import CacheFactory
from shortlink_app.exceptions import ShortIdNotFoundError, ShortLinkError
from shortlink_app.logging_config import setup_logging
from shortlink_app.middleware import LoggingMiddleware
from shortlink_app.services.id_generator_factory import IdGeneratorFactory
from shortlink_app.services.url_service import RetryPolicy, URLService
from shortlink_app.api.v1 import links, urls

logger = logging.getLogger("shortlink_app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the object graph on startup, release it on shutdown."""
    settings = app.state.settings

    database = Database.from_settings(settings)
    database.create_schema()
    cache = CacheFactory.create(settings)

    app.state.database = database
    app.state.cache = cache
    app.state.url_service = URLService(
        database=database,
        id_generator=IdGeneratorFactory.create(settings),
        base_url=settings.base_url,
        retry_policy=RetryPolicy.from_settings(settings),
        cache=cache,
        cache_ttl=settings.cache_ttl,
    )
    logger.info("%s %s started", settings.app_name, settings.app_version)

    try:
        yield
    finally:
        logger.info("Shutting down")
        await cache.close()
        database.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShortIdNotFoundError)
    async def not_found_handler(request: Request, exc: ShortIdNotFoundError):
        # Expected outcome, not an error
        logger.info("Short id not found: %s", exc.short_id)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Short URL not found"},
        )

    @app.exception_handler(ShortLinkError)
    async def server_error_handler(request: Request, exc: ShortLinkError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI app; nothing connects until the lifespan starts."""
    settings = settings or default_settings
    setup_logging(level=settings.log_level, log_file=settings.log_file, json_format=settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="A URL shortener service built with FastAPI",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/")
    def read_root():
        """Root endpoint with API information"""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "docs": "/docs",
        }

    @app.get("/api/v1/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "environment": settings.environment}

    ######## Include routers
    app.include_router(urls.router, prefix="/api/v1")
    # Last: "/{short_id}" matches any single path segment
    app.include_router(links.router)

    return app


app = create_app()


def main():
    uvicorn.run(
        "main:app",
        host=default_settings.host,
        port=default_settings.port,
        workers=default_settings.workers,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
