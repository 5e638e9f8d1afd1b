"""
MemeStudio Backend - Template Route Handlers
=============================================

What:  /api/templates endpoints.

    GET    /api/templates               paginated, filtered listing (public)
    GET    /api/templates/preview       most popular active templates (public)
    GET    /api/templates/{id}          one active template, counts a view (public)
    POST   /api/templates               multipart upload, status 'pending' (auth)
    PATCH  /api/templates/{id}/status   owner-only status change (auth)
    POST   /api/templates/{id}/favorite toggle favorite (auth)

Paging parameters are accepted as raw strings and clamped by the service,
so `?page=abc&limit=500` is served as page 1 with 100 items.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from memestudio.database import get_db_session
from memestudio.dependencies import get_catalog_service, get_template_service
from memestudio.schemas.common import ErrorResponse
from memestudio.schemas.template import (
    FavoriteToggleResponse,
    TemplateDetailResponse,
    TemplateListResponse,
    TemplatePreviewResponse,
    TemplateStatusUpdate,
)
from memestudio.security import get_current_user_id
from memestudio.services.catalog_service import CatalogService
from memestudio.services.template_service import TemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/templates", tags=["Templates"])


@router.get(
    "",
    response_model=TemplateListResponse,
    responses={500: {"description": "Seeding or store failure", "model": ErrorResponse}},
    summary="List active templates",
)
async def list_templates(
    page: Optional[str] = Query(default=None, description="1-based page number"),
    limit: Optional[str] = Query(default=None, description="Items per page (1-100, default 20)"),
    search: Optional[str] = Query(default=None, description="Substring of name or category"),
    category: Optional[str] = Query(default=None, description="Exact category"),
    sort: Optional[str] = Query(default=None, description="popular | newest | oldest"),
    db: AsyncSession = Depends(get_db_session),
    service: CatalogService = Depends(get_catalog_service),
) -> TemplateListResponse:
    return await service.list_templates(
        db, page=page, limit=limit, search=search, category=category, sort=sort,
    )


@router.get(
    "/preview",
    response_model=TemplatePreviewResponse,
    summary="Most popular active templates",
)
async def preview_templates(
    limit: Optional[str] = Query(default=None, description="Number of templates (1-50, default 10)"),
    db: AsyncSession = Depends(get_db_session),
    service: TemplateService = Depends(get_template_service),
) -> TemplatePreviewResponse:
    return TemplatePreviewResponse(templates=await service.get_preview(db, limit))


@router.get(
    "/{template_id}",
    response_model=TemplateDetailResponse,
    responses={404: {"description": "Template not found", "model": ErrorResponse}},
    summary="Get one active template",
)
async def get_template(
    template_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    return TemplateDetailResponse(template=await service.get_template(db, template_id))


@router.post(
    "",
    status_code=201,
    response_model=TemplateDetailResponse,
    responses={
        400: {"description": "Invalid upload", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Asset host or store failure", "model": ErrorResponse},
    },
    summary="Upload a new template",
    description="JPEG, PNG or GIF up to 5MB. New templates start in 'pending' status.",
)
async def upload_template(
    image: UploadFile = File(..., description="Template image"),
    name: str = Form(default=""),
    category: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None, description="Comma-separated, at most 10"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    content = await image.read()
    logger.info(
        "Received template upload: filename=%s, size=%d bytes, user=%s",
        image.filename or "unknown", len(content), user_id,
    )
    try:
        template = await service.upload_template(
            db,
            user_id=user_id,
            filename=image.filename,
            content_type=image.content_type,
            content=content,
            name=name,
            category=category,
            tags=tags,
            content_length=image.size,
        )
    finally:
        await image.close()
    return TemplateDetailResponse(template=template)


@router.patch(
    "/{template_id}/status",
    response_model=TemplateDetailResponse,
    responses={
        403: {"description": "Not the template owner", "model": ErrorResponse},
        404: {"description": "Template not found", "model": ErrorResponse},
    },
    summary="Change a template's status",
)
async def update_template_status(
    template_id: uuid.UUID,
    body: TemplateStatusUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    template = await service.update_status(db, user_id, template_id, body.status)
    return TemplateDetailResponse(template=template)


@router.post(
    "/{template_id}/favorite",
    response_model=FavoriteToggleResponse,
    responses={404: {"description": "Template not found", "model": ErrorResponse}},
    summary="Toggle a template in the caller's favorites",
)
async def toggle_favorite(
    template_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: TemplateService = Depends(get_template_service),
) -> FavoriteToggleResponse:
    return await service.toggle_favorite(db, user_id, template_id)
