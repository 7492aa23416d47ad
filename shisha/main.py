"""
Shisha FastAPI Main Application
Entry point for the beneficiary program REST API
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from shisha.api.v1.api_router import api_router
from shisha.core.config import settings
from shisha.core.database import SessionLocal, check_db_connection, init_db
from shisha.core.exceptions import (
    Conflict,
    InvalidArgument,
    NotFound,
    OutOfStock,
    ProgramOverrun,
    ShishaException,
)
from shisha.core.logging import setup_logging
from shisha.services.status_reconciliation import StatusReconciliationScheduler

logger = logging.getLogger(__name__)

# Domain errors -> HTTP status
EXCEPTION_STATUS_CODES = {
    InvalidArgument: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_400_BAD_REQUEST,
    OutOfStock: status.HTTP_400_BAD_REQUEST,
    ProgramOverrun: status.HTTP_400_BAD_REQUEST,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown

    Creates tables and runs the daily status sweep for the lifetime of the process.
    """
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")
    init_db()

    scheduler = None
    if settings.STATUS_SWEEP_ENABLED:
        scheduler = StatusReconciliationScheduler(SessionLocal)
        await scheduler.start()
    app.state.status_scheduler = scheduler

    logger.info("Application startup completed successfully")
    yield

    logger.info("Shutting down application")
    if scheduler:
        await scheduler.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
    ## Shisha Program API

    Nutrition program tracking for community health workers.

    ### Key Features:
    - **Beneficiaries**: registration, program-day enrolment and attendance
    - **Distributions**: product handed out from a field worker's stock
    - **Stock**: central restocking, worker allocation, movement ledger
    - **Status sweep**: beneficiaries completing their program are marked completed daily
    """,
        docs_url=settings.DOCS_URL,
        redoc_url=settings.REDOC_URL,
        openapi_url=settings.OPENAPI_URL,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_system_routes(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ShishaException)
    async def shisha_exception_handler(request: Request, exc: ShishaException):
        status_code = EXCEPTION_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "error": exc.error_code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        fields = [".".join(str(part) for part in error["loc"] if part != "body") for error in errors]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": f"Invalid request: {', '.join(field for field in fields if field) or 'body'}",
                "error": InvalidArgument.error_code,
                "errors": jsonable_encoder(errors),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler for unhandled errors
        """
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
                "error": "server_error",
            },
        )


def register_system_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["System"])
    async def health_check():
        """
        Health check endpoint for monitoring and load balancers

        Returns system status and database connectivity
        """
        try:
            db_status = check_db_connection()
            return {
                "status": "healthy" if db_status else "degraded",
                "version": settings.APP_VERSION,
                "database": "connected" if db_status else "disconnected",
                "debug": settings.DEBUG,
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            raise HTTPException(status_code=503, detail="Service unavailable")

    @app.get("/info", tags=["System"])
    async def system_info():
        scheduler = getattr(app.state, "status_scheduler", None)
        return {
            "application": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "api_version": "v1",
            "docs_url": settings.DOCS_URL,
            "status_sweep": {
                "enabled": scheduler is not None,
                "cron": settings.STATUS_SWEEP_CRON,
                "timezone": settings.STATUS_SWEEP_TIMEZONE,
                "next_run": scheduler.next_run.isoformat() if scheduler and scheduler.next_run else None,
                "last_run": scheduler.last_run.isoformat() if scheduler and scheduler.last_run else None,
            },
        }


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shisha.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
