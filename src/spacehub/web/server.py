from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import DuplicateKeyError

from spacehub.app import App
from spacehub.config import Config
from spacehub.errors import UserError
from spacehub.web.error_handlers import (
    duplicate_key_handler,
    general_exception_handler,
    request_validation_handler,
    user_error_handler,
)
from spacehub.web.openapi import set_custom_openapi
from spacehub.web.routers import (
    auth_router,
    lessons_router,
    members_router,
    messages_router,
    notes_router,
    reactions_router,
    spaces_router,
    users_router,
)


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="SpaceHub API",
        lifespan=lifespan,
        openapi_tags=[],  # Tags will be added by custom OpenAPI function
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str | None]:
        return {
            "status": "healthy",
            "environment": config.environment,
            "otp_mode": config.otp_mode,
            "commit": config.git_commit_hash,
            "build_time": config.build_time,
        }

    # API v1 routes
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(spaces_router, prefix="/api/v1")
    app.include_router(members_router, prefix="/api/v1")
    app.include_router(messages_router, prefix="/api/v1")
    app.include_router(reactions_router, prefix="/api/v1")
    app.include_router(notes_router, prefix="/api/v1")
    app.include_router(lessons_router, prefix="/api/v1")

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
