from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from sessiongate.app import App
from sessiongate.errors import UserError
from sessiongate.web.error_handlers import general_exception_handler, request_validation_handler, user_error_handler
from sessiongate.web.gate import AccessGateMiddleware
from sessiongate.web.openapi import set_custom_openapi
from sessiongate.web.routers import auth_router, profile_router, users_router


def create_fastapi_app(app_instance: App) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="SessionGate API",
        lifespan=lifespan,
    )
    # Store app instance in app state
    app.state.app = app_instance

    # The gate also answers CORS preflight and decorates responses with CORS headers
    app.add_middleware(AccessGateMiddleware, app_instance=app_instance)

    # Health check endpoint (public)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(auth_router, prefix="/api")
    app.include_router(profile_router, prefix="/api")
    app.include_router(users_router, prefix="/api")

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app, app_instance.config)

    return app
