import asyncio
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional

from fastapi import APIRouter, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from api.dependencies import IdentifierDep, ServicesDep
from api.models import AnalysisRequest, AnalysisResponse, ErrorResponse
from core.services import Services
from core.storage import result_key, screenshot_key

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


def http_date(value: datetime) -> str:
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


@router.get("/")
async def root():
    return {
        "service": "Sitespeed Result Service",
        "status": "running",
        "endpoints": {
            "analyze": "/api/result/{id} (POST)",
            "delete": "/api/result/{id} (DELETE)",
            "result": "/result/{id}/{path} (GET)",
            "screenshot": "/screenshot/{id} (GET)",
        },
    }


@router.get("/health")
async def health_check():
    return {"status": "healthy"}


@router.post(
    "/api/result/{id}",
    response_model=AnalysisResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze(
    request: AnalysisRequest,
    id: str = IdentifierDep,
    services: Services = ServicesDep,
):
    """
    Run a sitespeed.io analysis for 1-5 URLs and store the results under ``id``.

    The raw sitespeed output is archived to ``results/{id}/result.zip`` (browse
    it under ``/result/{id}/``) and the first page's screenshot to
    ``results/{id}/screenshot.png``. Re-analysing an id replaces both.

    Returns the medians of TTFB, fully loaded, LCP, FCP, CLS and transfer size.
    """
    return await services.pipeline.analyze(id, request.urls)


@router.delete("/api/result/{id}")
async def delete_result(id: str = IdentifierDep, services: Services = ServicesDep):
    """Delete both stored artifacts and the local cache entry. Idempotent."""
    await asyncio.to_thread(services.store.delete, result_key(id))
    await asyncio.to_thread(services.store.delete, screenshot_key(id))
    services.cache.invalidate(id).log_failure(logger, f"Failed to invalidate cached result for {id}")
    return Response(status_code=200)


@router.get("/result/{id}")
async def get_result_index(id: str = IdentifierDep, services: Services = ServicesDep):
    """Serve the result's top-level ``index.html``."""
    return await _serve_result_file(services, id, None)


@router.get("/result/{id}/{path:path}")
async def get_result_file(path: str, id: str = IdentifierDep, services: Services = ServicesDep):
    """
    Serve a file out of the stored result archive.

    An empty path serves ``index.html``; a directory path serves its
    ``index.html``.
    """
    return await _serve_result_file(services, id, path)


async def _serve_result_file(services: Services, identifier: str, path: Optional[str]):
    served = await services.cache.serve(identifier, path)

    return StreamingResponse(
        served.chunks,
        media_type=served.content_type,
        headers={
            "Cache-Control": services.settings.cache_control,
            "Last-Modified": http_date(served.last_modified),
            "Content-Length": str(served.size),
        },
        background=BackgroundTask(served.close),
    )


@router.get("/screenshot/{id}")
async def get_screenshot(id: str = IdentifierDep, services: Services = ServicesDep):
    """Stream the screenshot of the first analysed page."""
    obj = await asyncio.to_thread(services.store.get, screenshot_key(id))

    headers = {"Cache-Control": services.settings.cache_control}
    if obj.etag:
        etag = obj.etag if obj.etag.startswith('"') else f'"{obj.etag}"'
        headers["ETag"] = etag
    if obj.last_modified:
        headers["Last-Modified"] = http_date(obj.last_modified)

    return StreamingResponse(
        obj.iter_chunks(),
        media_type="image/png",
        headers=headers,
        background=BackgroundTask(obj.close),
    )
