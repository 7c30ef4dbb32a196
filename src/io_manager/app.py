"""FastAPI application factory for the Telematics IO Manager."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from io_manager.common.config import IOManagerSettings, get_settings
from io_manager.common.handlers import register_exception_handlers
from io_manager.common.logging import setup_logging
from io_manager.common.schemas import HealthResponse
from io_manager.deps import Container


def create_app(settings: IOManagerSettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    container = Container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.startup()
        yield
        await container.shutdown()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, settings)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    from io_manager.audit.router import router as audit_router
    from io_manager.auth.router import router as auth_router
    from io_manager.catalog.router import router as catalog_router
    from io_manager.dashboard.router import router as dashboard_router
    from io_manager.roles.router import permissions_router, router as roles_router
    from io_manager.users.router import router as users_router

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(roles_router, prefix=prefix)
    app.include_router(permissions_router, prefix=prefix)
    app.include_router(catalog_router, prefix=prefix)
    app.include_router(audit_router, prefix=prefix)
    app.include_router(dashboard_router, prefix=prefix)

    return app
