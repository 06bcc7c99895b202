"""
Sitespeed Result Service - Main Application

A FastAPI service that runs sitespeed.io web performance analyses on demand,
stores the raw results as a zip archive plus a screenshot in S3-compatible
object storage, and serves files out of those archives from a local cache.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config import Settings, settings as default_settings
from api.models import ErrorResponse
from api.routes import router
from core.errors import ServiceError
from core.services import Services, build_services

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    ``services`` defaults to the S3-backed wiring from ``settings``; tests pass
    their own to run without S3 or sitespeed.
    """
    settings = settings or (services.settings if services else default_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services(settings)

        sweeper_task = None
        if app.state.services.sweeper is not None:
            sweeper_task = asyncio.create_task(app.state.services.sweeper.run_forever())

        logger.info("🚀 Sitespeed Result Service started")
        try:
            yield
        finally:
            if sweeper_task is not None:
                sweeper_task.cancel()
                try:
                    await sweeper_task
                except asyncio.CancelledError:
                    pass
            logger.info("🛑 Sitespeed Result Service stopped")

    app = FastAPI(title="Sitespeed Result Service", lifespan=lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        logger.info(f"Started {request.method} {request.url.path}")
        response = await call_next(request)
        logger.info(
            f"Completed {request.method} {request.url.path} "
            f"[{response.status_code}] in {(time.time() - start) * 1000:.1f}ms"
        )
        return response

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        details = exc.details if settings.EXPOSE_ERROR_DETAILS else None
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, "Invalid Request Body")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error_response(500, "Internal Server Error")

    # Include all routes from api/routes.py
    app.include_router(router)

    return app


configure_logging(default_settings.LOG_LEVEL)

# Initialize FastAPI app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=default_settings.PORT,
        timeout_keep_alive=60,
        workers=default_settings.API_WORKERS,
    )
