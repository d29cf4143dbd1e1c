"""
ARTI Ed - FastAPI Application

Main entry point for the backend API.
Provides endpoints for checkout, Stripe webhooks and subscription access.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import access, checkout, plans, team, webhooks
from app.config.settings import Settings, get_settings
from app.infrastructure.db.database import close_db, init_db
from app.infrastructure.exceptions import (
    ArtiEdError,
    AuthorizationError,
    DuplicateInvitationError,
    NotFoundError,
    PaymentProviderError,
    PersistenceError,
    SignatureError,
    ValidationError,
)


logger = logging.getLogger(__name__)

# Most specific class wins, so subclasses may map to a different status
# than their parent (DuplicateInvitationError vs ValidationError).
ERROR_STATUS_CODES = {
    ValidationError: 400,
    SignatureError: 400,
    AuthorizationError: 403,
    NotFoundError: 404,
    DuplicateInvitationError: 409,
    PersistenceError: 503,
    PaymentProviderError: 500,
    ArtiEdError: 500,
}


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"ARTI Ed Backend starting in {settings.environment} mode...")

    if settings.database_configured:
        try:
            await init_db()
            logger.info("SQLModel database connection pool initialized")
        except Exception as e:
            logger.warning(f"SQLModel database initialization skipped: {e}")
    else:
        logger.warning("No DATABASE_URL or SUPABASE_PASSWORD set; database calls will fail")

    yield

    if settings.database_configured:
        try:
            await close_db()
            logger.info("SQLModel database connection pool closed")
        except Exception as e:
            logger.warning(f"SQLModel database shutdown error: {e}")

    logger.info("ARTI Ed Backend shutting down...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="ARTI Ed",
        description="Subscription and team access backend for ARTI Ed",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.settings = settings

    # CORS configuration from Settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    async def app_error_handler(request: Request, exc: ArtiEdError):
        """Render application errors as ``{error, message, details}``."""
        status_code = ERROR_STATUS_CODES.get(type(exc))
        if status_code is None:
            status_code = next(
                code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)
            )
        if status_code >= 500:
            logger.error(
                f"{exc.__class__.__name__} on {request.method} {request.url.path}: "
                f"{exc.original_error or exc.message}"
            )
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    for exc_class in ERROR_STATUS_CODES:
        app.add_exception_handler(exc_class, app_error_handler)

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "arti-ed"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "ARTI Ed API",
            "version": "1.0.0",
            "docs": None if settings.is_production else "/docs",
        }

    # ========================================================================
    # Routers
    # ========================================================================

    app.include_router(checkout.router, prefix="/api", tags=["Checkout"])
    app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
    app.include_router(access.router, prefix="/api", tags=["Access"])
    app.include_router(team.router, prefix="/api", tags=["Team"])
    app.include_router(plans.router, prefix="/api", tags=["Plans"])

    return app


app = create_app()
