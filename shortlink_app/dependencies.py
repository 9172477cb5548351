"""
FastAPI dependencies for dependency injection.

The service graph is built once in the application lifespan and stored on
``app.state``; providers here just hand it out. There are no module-level
singletons, so every app (and every test) gets its own graph.
"""

from fastapi import Request

from shortlink_app.services.url_service import URLService


def get_url_service(request: Request) -> URLService:
    """
    Get the shared URLService.

    It holds the database and cache and opens its own session per
    operation, so controllers depend on the service only.
    """
    return request.app.state.url_service
