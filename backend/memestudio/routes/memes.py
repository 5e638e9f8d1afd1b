"""
MemeStudio Backend - Meme Route Handlers
=========================================

What:  /api/memes endpoints.

    POST   /api/memes              create a meme from a template (auth)
    GET    /api/memes/my-memes     the caller's memes, newest first (auth)
    GET    /api/memes/popular      top 20 memes by likes (public)
    POST   /api/memes/{id}/like    like / unlike / toggle (auth)
    DELETE /api/memes/{id}         owner-only delete (auth)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from memestudio.database import get_db_session
from memestudio.dependencies import get_meme_service
from memestudio.schemas.common import ErrorResponse
from memestudio.schemas.meme import (
    DeleteResponse,
    LikeRequest,
    LikeResponse,
    MemeCreateRequest,
    MemeCreateResponse,
    MemeListResponse,
    PopularMemesResponse,
)
from memestudio.security import get_current_user_id
from memestudio.services.meme_service import MemeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/memes", tags=["Memes"])


@router.post(
    "",
    status_code=201,
    response_model=MemeCreateResponse,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        404: {"description": "Template not found", "model": ErrorResponse},
    },
    summary="Create a meme",
)
async def create_meme(
    body: MemeCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: MemeService = Depends(get_meme_service),
) -> MemeCreateResponse:
    return MemeCreateResponse(meme=await service.create_meme(db, user_id, body))


@router.get(
    "/my-memes",
    response_model=MemeListResponse,
    summary="List the caller's memes",
)
async def my_memes(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None, description="Items per page (1-50, default 10)"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: MemeService = Depends(get_meme_service),
) -> MemeListResponse:
    return await service.list_user_memes(db, user_id, page=page, limit=limit)


@router.get(
    "/popular",
    response_model=PopularMemesResponse,
    summary="Most liked memes",
)
async def popular_memes(
    db: AsyncSession = Depends(get_db_session),
    service: MemeService = Depends(get_meme_service),
) -> PopularMemesResponse:
    return PopularMemesResponse(memes=await service.popular_memes(db))


@router.post(
    "/{meme_id}/like",
    response_model=LikeResponse,
    responses={404: {"description": "Meme not found", "model": ErrorResponse}},
    summary="Like, unlike or toggle a like",
    description="Send {\"action\": \"like\"} or {\"action\": \"unlike\"}; an empty body toggles.",
)
async def like_meme(
    meme_id: uuid.UUID,
    body: Optional[LikeRequest] = Body(default=None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: MemeService = Depends(get_meme_service),
) -> LikeResponse:
    action = body.action if body else None
    return await service.set_like(db, user_id, meme_id, action=action)


@router.delete(
    "/{meme_id}",
    response_model=DeleteResponse,
    responses={
        403: {"description": "Not the meme owner", "model": ErrorResponse},
        404: {"description": "Meme not found", "model": ErrorResponse},
    },
    summary="Delete one of the caller's memes",
)
async def delete_meme(
    meme_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: MemeService = Depends(get_meme_service),
) -> DeleteResponse:
    await service.delete_meme(db, user_id, meme_id)
    return DeleteResponse()
