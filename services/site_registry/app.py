from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from services.common.api import error_json
from services.common.logging import get_logger
from services.common.middleware import RequestLoggingMiddleware
from services.site_registry.config import (
    SiteRegistryConfig,
    build_site_registry_service,
    load_site_registry_config,
)
from services.site_registry.errors import SiteNotFoundError, SiteStorageError, SiteValidationError
from services.site_registry.models import SiteBuildRequest, SiteSummary
from services.site_registry.service import SiteRegistryService
from services.site_registry.validation import INVALID_SITE_ID, is_valid_site_id

logger = get_logger(__name__)

SITE_NOT_FOUND = "Site not found"

PROJECT_INFO = {
    "project": "Dynamic Website Builder",
    "description": "Site registry API for storing and serving HTML pages",
    "endpoints": {
        "/": "Project information",
        "/build/:siteId": "Build and store website",
        "/sites": "List all sites",
        "/sites/:siteId": "Serve website content, or delete it",
        "/sites/:siteId/info": "Get site information",
    },
}

router = APIRouter()


def get_registry(request: Request) -> SiteRegistryService:
    return request.app.state.registry


def _summary_payload(summary: SiteSummary) -> Dict[str, Any]:
    return {
        "siteId": summary.site_id,
        "metadata": summary.metadata,
        "created": summary.created_at.isoformat(),
        "updated": summary.updated_at.isoformat(),
    }


@router.get("/")
def project_info():
    logger.info("root_accessed")
    return PROJECT_INFO


@router.post("/build/{site_id}", status_code=201)
def build_site(
    site_id: str,
    payload: Optional[SiteBuildRequest] = Body(None),
    registry: SiteRegistryService = Depends(get_registry),
):
    if not is_valid_site_id(site_id):
        return error_json(400, INVALID_SITE_ID)
    logger.info("build_started", site_id=site_id)
    payload = payload or SiteBuildRequest()
    try:
        record = registry.upsert(site_id, payload.html, payload.metadata)
    except SiteValidationError as exc:
        logger.warning("build_rejected", site_id=site_id, reason=str(exc))
        return error_json(400, str(exc))
    except SiteStorageError:
        logger.exception("build_failed", site_id=site_id)
        return error_json(500, "Failed to build site")

    logger.info("build_succeeded", site_id=site_id)
    return {"message": "Site built successfully", **_summary_payload(record)}


@router.get("/sites")
def list_sites(registry: SiteRegistryService = Depends(get_registry)):
    logger.info("list_started")
    try:
        summaries = registry.list_sites()
    except SiteStorageError:
        logger.exception("list_failed")
        return error_json(500, "Failed to fetch sites")
    return {"sites": [_summary_payload(summary) for summary in summaries]}


@router.get("/sites/{site_id}")
def serve_site(site_id: str, registry: SiteRegistryService = Depends(get_registry)):
    if not is_valid_site_id(site_id):
        return error_json(400, INVALID_SITE_ID)
    logger.info("serve_started", site_id=site_id)
    try:
        record = registry.get(site_id)
    except SiteNotFoundError:
        logger.warning("serve_not_found", site_id=site_id)
        return error_json(404, SITE_NOT_FOUND)
    except SiteStorageError:
        logger.exception("serve_failed", site_id=site_id)
        return error_json(500, "Failed to serve site")

    logger.info("serve_succeeded", site_id=site_id)
    return HTMLResponse(content=record.html)


@router.get("/sites/{site_id}/info")
def site_info(site_id: str, registry: SiteRegistryService = Depends(get_registry)):
    if not is_valid_site_id(site_id):
        return error_json(400, INVALID_SITE_ID)
    logger.info("info_started", site_id=site_id)
    try:
        summary = registry.get_info(site_id)
    except SiteNotFoundError:
        logger.warning("info_not_found", site_id=site_id)
        return error_json(404, SITE_NOT_FOUND)
    except SiteStorageError:
        logger.exception("info_failed", site_id=site_id)
        return error_json(500, "Failed to fetch site information")
    return _summary_payload(summary)


@router.delete("/sites/{site_id}")
def delete_site(site_id: str, registry: SiteRegistryService = Depends(get_registry)):
    if not is_valid_site_id(site_id):
        return error_json(400, INVALID_SITE_ID)
    logger.info("delete_started", site_id=site_id)
    try:
        registry.delete(site_id)
    except SiteNotFoundError:
        logger.warning("delete_not_found", site_id=site_id)
        return error_json(404, SITE_NOT_FOUND)
    except SiteStorageError:
        logger.exception("delete_failed", site_id=site_id)
        return error_json(500, "Failed to delete site")

    logger.info("delete_succeeded", site_id=site_id)
    return {"message": "Site deleted successfully"}


async def _invalid_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("request_rejected", path=request.url.path, errors=exc.errors())
    return error_json(400, "Invalid request body")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.registry.repository.init_schema()
    yield


def create_app(
    registry: Optional[SiteRegistryService] = None,
    config: Optional[SiteRegistryConfig] = None,
    *,
    init_schema: bool = True,
) -> FastAPI:
    cfg = config or load_site_registry_config()
    app = FastAPI(
        title="Site Registry",
        docs_url=None,
        redoc_url=None,
        lifespan=_lifespan if init_schema else None,
    )
    app.state.registry = registry or build_site_registry_service(config=cfg)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(RequestValidationError, _invalid_request_handler)
    app.include_router(router)
    return app


_app: Optional[FastAPI] = None


def get_app() -> FastAPI:
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name: str) -> Any:
    # `uvicorn services.site_registry.app:app` builds the default app on first access
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
