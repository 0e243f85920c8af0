from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nefes_backend.core.config import Settings, get_settings
from nefes_backend.core.context import AppContext, build_context
from nefes_backend.core.errors import register_exception_handlers
from nefes_backend.core.logger import get_logger
from nefes_backend.core.middleware import log_requests
from nefes_backend.routes.admin_router import admin_router
from nefes_backend.routes.public_router import public_router

logger = get_logger(__name__)


def _log_startup(settings: Settings) -> None:
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} starting")
    logger.info(f"Database: {'MongoDB' if settings.MONGODB_URI else 'in-memory'}")
    logger.info(f"Email sender: {settings.EMAIL_USER or 'not configured'}")
    logger.info(f"CORS origins: {settings.CORS_ORIGINS}")
    if "*" in settings.CORS_ORIGINS:
        logger.warning("CORS is open to every origin; set CORS_ORIGINS to restrict it")
    if not settings.ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD not set; all admin requests will be rejected")


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application. Tests pass a prepared context; otherwise one is
    built from settings when the app starts.
    """
    settings = settings or (context.settings if context else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_startup(settings)
        app.state.context = context or build_context(settings)
        await app.state.context.start()
        logger.info("Application startup complete")

        yield

        logger.info("Application shutdown initiated")
        await app.state.context.aclose()

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-admin-password"],
    )
    app.middleware("http")(log_requests)
    register_exception_handlers(app)
    app.include_router(public_router)
    app.include_router(admin_router)
    return app


app = create_app()
