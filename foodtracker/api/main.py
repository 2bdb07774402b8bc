"""
Food Tracker FastAPI Application - Main Entry Point

Features:
- Expiry notification scheduler started with the app (every N hours)
- Manual notification check and scheduler status endpoints
- Manual push send through Firebase Cloud Messaging
- Device token registration
- Health check reporting database, push and scheduler state
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from foodtracker import __version__
from foodtracker.api.config import Settings, get_settings
from foodtracker.api.middleware.request_id import RequestIDMiddleware
from foodtracker.api.routers import notifications, users
from foodtracker.api.schemas import ErrorResponse
from foodtracker.notifications.delivery import FirebaseDelivery, initialize_firebase
from foodtracker.notifications.exceptions import CollaboratorUnavailableError
from foodtracker.notifications.scheduler import NotificationScheduler
from foodtracker.notifications.store import SqlAlchemyNotificationStore
from foodtracker.shared.database import (
    check_database_health,
    close_database,
    create_database_engine,
    create_session_factory,
    init_database,
)

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _error_body(error: str, message: str, details=None) -> dict:
    return ErrorResponse(
        error=error,
        message=message,
        details=details,
        timestamp=datetime.utcnow(),
    ).model_dump(mode="json")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators (store, push delivery, scheduler) are created in the
    lifespan and kept on ``app.state``.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        logger.info(f"🚀 Starting Food Tracker API ({settings.ENVIRONMENT})...")
        engine = None
        app.state.store = None
        app.state.delivery = None
        app.state.session_factory = None

        if settings.DATABASE_URL:
            engine = create_database_engine(
                settings.DATABASE_URL,
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_MAX_OVERFLOW,
                echo=settings.DATABASE_ECHO,
            )
            try:
                if settings.DATABASE_CREATE_TABLES:
                    await init_database(engine)
                    logger.info("✅ Database schema initialized")
            except (SQLAlchemyError, OSError) as e:
                logger.warning(f"⚠️ Database initialization failed: {e}")
                logger.warning("   Notification features will not work")
                await close_database(engine)
                engine = None
            else:
                app.state.session_factory = create_session_factory(engine)
                app.state.store = SqlAlchemyNotificationStore(app.state.session_factory)
                health = await check_database_health(app.state.session_factory)
                logger.info(f"📊 Database health: {health}")
        else:
            logger.warning("⚠️ DATABASE_URL is not set, notification features will not work")

        try:
            app.state.delivery = FirebaseDelivery(initialize_firebase(settings))
            logger.info("✅ Firebase Admin initialized")
        except CollaboratorUnavailableError as e:
            logger.warning(f"⚠️ Firebase Admin initialization failed: {e}")
            logger.warning("   Notification features will not work")

        scheduler = NotificationScheduler(store=app.state.store, delivery=app.state.delivery)
        app.state.scheduler = scheduler

        if app.state.store is not None and app.state.delivery is not None:
            scheduler.start(settings.NOTIFICATION_CHECK_INTERVAL_HOURS)
        else:
            logger.warning("⚠️ Automatic notification checks are disabled")

        logger.info("🎉 Food Tracker API is ready!")

        yield

        # Shutdown
        logger.info("👋 Shutting down Food Tracker API...")
        scheduler.stop()
        await scheduler.wait_idle()
        if engine is not None:
            await close_database(engine)
            logger.info("✅ Database connections closed")

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        description=(
            "Backend for the Food Tracker app.\n\n"
            "- 🔔 Expiry reminders (10-day warning, daily countdown, weekly digest)\n"
            "- 📱 Push delivery through Firebase Cloud Messaging\n"
            "- ⚙️ Scheduler status and manual checks"
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ========================================================================
    # Middleware Configuration
    # ========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors."""
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body("validation_error", "Request validation failed", exc.errors()),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Handle database errors."""
        logger.error(f"Database error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("database_error", "A database error occurred"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error(f"Unexpected error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("internal_error", "An unexpected error occurred"),
        )

    # ========================================================================
    # Router Registration
    # ========================================================================

    app.include_router(
        notifications.router,
        prefix="/api/notification",
        tags=["Notifications"],
    )
    app.include_router(
        users.router,
        prefix="/api/users",
        tags=["Users"],
    )

    # ========================================================================
    # Health Check Endpoints
    # ========================================================================

    @app.get("/", summary="Root endpoint")
    async def root() -> dict:
        """Root endpoint - API information."""
        return {
            "service": settings.APP_NAME,
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "status": "operational",
            "documentation": "/docs",
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.get("/health", summary="Health check", tags=["Health"])
    async def health_check(request: Request) -> dict:
        """Report database, push and scheduler state."""
        state = request.app.state
        scheduler = getattr(state, "scheduler", None)
        return {
            "status": "ok",
            "timestamp": datetime.utcnow().isoformat(),
            "database": await check_database_health(getattr(state, "session_factory", None)),
            "push": "initialized" if getattr(state, "delivery", None) is not None else "not initialized",
            "scheduler": scheduler.get_status() if scheduler is not None else None,
        }

    return app


configure_logging(get_settings())
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("foodtracker.api.main:app", host="0.0.0.0", port=8000)
