"""
FastAPI application entry point.
Application factory with middleware, exception handlers and route configuration.
"""
from fastapi import FastAPI, Request, status, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from contextlib import asynccontextmanager
from typing import Optional
import logging
import asyncio

from app.config import Settings, settings as default_settings
from app.database import Database, get_db
from app.dependencies import get_media_storage, get_settings
from app.exceptions import GalleryError, format_validation_errors
from app.services.cloudinary_service import CloudinaryMediaStorage, MediaStorage
from app.routes import image_groups, images, web_links

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, details: Optional[list] = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GalleryError)
    async def gallery_exception_handler(request: Request, exc: GalleryError):
        """Handle application errors with the status they carry."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.message, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions (404 for unknown routes, 405, etc.)."""
        logger.warning(
            f"HTTPException on {request.method} {request.url.path}: "
            f"{exc.status_code} {exc.detail}"
        )
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        details = format_validation_errors(exc.errors())
        logger.warning(f"Validation error on {request.method} {request.url.path}: {details}")
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", details)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}:\n"
            f"  Error: {str(exc)}\n"
            f"  Error type: {type(exc).__name__}",
            exc_info=True
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_health_routes(app: FastAPI) -> None:
    @app.get("/")
    async def root(settings: Settings = Depends(get_settings)):
        """Root endpoint - API health check."""
        return {
            "message": settings.API_TITLE,
            "status": "healthy",
            "version": settings.API_VERSION
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/health/db")
    async def health_check_db(db: AsyncSession = Depends(get_db)):
        """
        Database health check endpoint.
        Tests database connection and returns status.
        """
        try:
            result = await db.execute(text("SELECT 1"))
            return {
                "database": "connected",
                "status": "healthy",
                "result": result.scalar()
            }
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}", exc_info=True)
            return {
                "database": "error",
                "status": "unhealthy",
                "error": "Database connection failed"
            }

    @app.get("/health/cloudinary")
    async def health_check_cloudinary(
        settings: Settings = Depends(get_settings),
        media: MediaStorage = Depends(get_media_storage),
    ):
        """
        Cloudinary health check endpoint.
        Validates Cloudinary configuration.
        """
        if media.is_configured():
            return {
                "cloudinary": "configured",
                "status": "healthy",
                "cloud_name": settings.CLOUDINARY_CLOUD_NAME
            }
        return {
            "cloudinary": "not_configured",
            "status": "warning",
            "message": "Cloudinary credentials not set in environment variables"
        }


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    media_storage: Optional[MediaStorage] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to the environment-loaded settings
        database: Defaults to a Database built from DATABASE_URL
        media_storage: Defaults to Cloudinary configured from settings
    """
    settings = settings or default_settings

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    database = database or Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    media_storage = media_storage or CloudinaryMediaStorage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Connect the database on startup and dispose it on shutdown.
        Non-blocking: the app starts even if the database is unreachable.
        """
        logger.info(f"CORS allowed origins: {settings.CORS_ORIGINS}")
        if not settings.DATABASE_URL:
            logger.info("DATABASE_URL not configured - using an in-memory SQLite database")

        try:
            await database.connect()
            if settings.AUTO_CREATE_TABLES:
                await database.create_all()
        except Exception as e:
            logger.error(
                f"Failed to initialize database on startup: {str(e)}\n"
                f"The application will continue to run, but database-dependent endpoints will fail.\n"
                f"Please check your DATABASE_URL configuration and network connectivity."
            )

        yield

        try:
            await database.dispose()
        except Exception as e:
            # Cancellation during shutdown is expected
            if not isinstance(e, (KeyboardInterrupt, asyncio.CancelledError)):
                logger.warning(f"Error during database shutdown: {str(e)}")

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database
    app.state.media_storage = media_storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,  # Cache preflight requests for 1 hour
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log method, path and status of every request."""
        method = request.method
        path = request.url.path
        logger.debug(f"Incoming {method} request to {path}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Error processing {method} {path}: {str(e)}\n"
                f"  Error type: {type(e).__name__}",
                exc_info=True
            )
            raise

        logger.info(f"Response status: {response.status_code} for {method} {path}")
        return response

    register_exception_handlers(app)
    register_health_routes(app)

    app.include_router(image_groups.router, prefix="/api")
    app.include_router(images.router, prefix="/api")
    app.include_router(web_links.router, prefix="/api")

    return app


app = create_app()
