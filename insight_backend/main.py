# insight_backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insight_backend.api.v1.router import api_router
from insight_backend.core.config import Settings, get_settings, setup_logging
from insight_backend.services.factory import build_services

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None, services=None) -> FastAPI:
    """
    services: a prebuilt ServiceContainer (tests inject one wired to fakes);
    when omitted the lifespan builds the real graph from settings.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = getattr(app.state, "services", None) or build_services(settings)
        app.state.services = container
        container.cache.start_sweeper()
        logger.info("Data insight services initialized")

        yield

        await container.aclose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # ---------------------------------------------------------
    # CORS
    # ---------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o).rstrip("/") for o in settings.BACKEND_CORS_ORIGINS] or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------
    # API router (/api/v1/...)
    # ---------------------------------------------------------
    app.include_router(api_router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.PROJECT_NAME} is running"}

    return app
