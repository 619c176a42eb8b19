"""
Document generation and template discovery endpoints.

Routes:

    POST /documents/generate          render a template (HTML or PDF)
    GET  /documents/templates         list the template catalogue
    POST /documents/templates/reload  hot-reload template sources (opt-in)
    GET  /documents/health            liveness probe

Generated documents are always returned as attachments. The ?stream
query flag (default true) selects between a streamed body and a fully
materialized body with Content-Length.

Pipeline failures are translated by ``document_error_handler`` using
their ErrorKind: caller errors become 404 with an actionable message,
everything else becomes an opaque 500.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import ORJSONResponse, Response, StreamingResponse

from docgen.app.config import Settings
from docgen.app.errors import DocumentError
from docgen.app.schemas.documents import (
    GenerateDocumentRequest,
    HealthResponse,
    TemplateListItem,
    TemplateListResponse,
    TemplateReloadResponse,
)
from docgen.app.services.documents import DocumentService
from docgen.app.services.template_cache import TemplateCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])

CACHE_CONTROL = "private, max-age=0, must-revalidate"


# =============================================================================
# Dependency providers
# =============================================================================

def get_document_service(request: Request) -> DocumentService:
    service = getattr(request.app.state, "document_service", None)
    if service is None:
        raise RuntimeError("document service not initialized")
    return service


def get_template_cache(request: Request) -> TemplateCache:
    cache = getattr(request.app.state, "template_cache", None)
    if cache is None:
        raise RuntimeError("template cache not initialized")
    return cache


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _attachment_headers(file_name: str) -> dict:
    return {
        "Content-Disposition": f'attachment; filename="{file_name}"',
        "Cache-Control": CACHE_CONTROL,
    }


# =============================================================================
# Error translation
# =============================================================================

async def document_error_handler(request: Request, exc: DocumentError) -> ORJSONResponse:
    if exc.kind.is_caller_error:
        return ORJSONResponse(
            status_code=404,
            content={
                "statusCode": 404,
                "error": exc.kind.value,
                "message": exc.message,
                "details": exc.details,
            },
        )

    logger.error(
        "document_request_failed",
        extra={"kind": exc.kind.value, "path": request.url.path},
    )
    return ORJSONResponse(
        status_code=500,
        content={
            "statusCode": 500,
            "error": "internal_error",
            "message": "Document generation failed",
        },
    )


# =============================================================================
# POST /documents/generate
# =============================================================================

@router.post(
    "/generate",
    summary="Generate a document from a registered template",
    response_class=Response,
    responses={
        200: {
            "content": {"text/html": {}, "application/pdf": {}},
            "description": "Generated document (attachment)",
        },
        404: {"description": "Unknown template id or version"},
        422: {"description": "Invalid request payload"},
        500: {"description": "Generation failure"},
    },
)
async def generate_document(
    body: GenerateDocumentRequest,
    service: Annotated[DocumentService, Depends(get_document_service)],
    stream: Annotated[
        bool,
        Query(description="Stream the body instead of returning it in one piece"),
    ] = True,
) -> Response:
    if stream:
        result = await service.generate_stream(
            body.template_id,
            body.data,
            version=body.version,
            fmt=body.format,
        )
        headers = _attachment_headers(result.file_name)
        if result.size is not None:
            headers["Content-Length"] = str(result.size)
        return StreamingResponse(
            result.stream,
            media_type=result.mime_type,
            headers=headers,
        )

    document = await service.generate(
        body.template_id,
        body.data,
        version=body.version,
        fmt=body.format,
    )
    return Response(
        content=document.content,
        media_type=document.mime_type,
        headers=_attachment_headers(document.file_name),
    )


# =============================================================================
# GET /documents/templates
# =============================================================================

@router.get(
    "/templates",
    response_model=TemplateListResponse,
    summary="List registered document templates and their versions",
)
def list_templates(
    cache: Annotated[TemplateCache, Depends(get_template_cache)],
) -> TemplateListResponse:
    return TemplateListResponse(
        templates=[
            TemplateListItem.from_definition(definition)
            for definition in cache.catalog.list_all()
        ]
    )


@router.post(
    "/templates/reload",
    response_model=TemplateReloadResponse,
    summary="Drop cached template sources and preload them again",
)
async def reload_templates(
    cache: Annotated[TemplateCache, Depends(get_template_cache)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> TemplateReloadResponse:
    if not settings.enable_template_reload:
        raise HTTPException(status_code=404, detail="Not Found")

    cached = await cache.reload()
    return TemplateReloadResponse(cached=cached)


# =============================================================================
# GET /documents/health
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
)
def health() -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
