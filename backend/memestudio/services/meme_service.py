"""
MemeStudio Backend - Meme Service
==================================

What:  Creating, listing, liking and deleting user memes.
Who:   /api/memes routes.

Likes:
    The like set lives in `meme_likes`. Adding is INSERT ... ON CONFLICT DO
    NOTHING and removing is a DELETE; `likes_count` moves by exactly the
    number of rows those statements changed, via an atomic
    `likes_count = likes_count ± 1`. Two concurrent likes by the same user
    therefore raise the count once, and liking twice is a no-op.

Deletion:
    Owner only. A hosted custom image is destroyed first; if the host
    refuses, the meme is kept and AssetHostError propagates.
"""

import logging
import uuid
from typing import Any, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from memestudio.database import insert_ignore
from memestudio.exceptions import (
    AuthorizationError,
    DatabaseError,
    MemeStudioError,
    NotFoundError,
)
from memestudio.models.meme import Meme, MemeLike
from memestudio.models.template import Template
from memestudio.schemas.meme import (
    LikeResponse,
    MemeCreated,
    MemeCreateRequest,
    MemeListItem,
    MemeListResponse,
    MemePagination,
)
from memestudio.services.asset_base import AssetHost
from memestudio.services.cloudinary_service import asset_host
from memestudio.services.pagination import clamp_page_params, total_pages
from memestudio.services.template_service import TemplateService, template_service

logger = logging.getLogger(__name__)

MEME_FOLDER = "memes"
DEFAULT_MEME_PAGE_SIZE = 10
MAX_MEME_PAGE_SIZE = 50
POPULAR_LIMIT = 20


class MemeService:
    """
    Args:
        asset_host:       image host for custom images
        template_service: counts template usage on creation
    """

    def __init__(self, asset_host: AssetHost, template_service: TemplateService):
        self.asset_host = asset_host
        self.template_service = template_service

    async def create_meme(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        request: MemeCreateRequest,
    ) -> MemeCreated:
        """
        Store a meme built on an active template and count the usage.

        With `custom_image`, the data URI is uploaded to the host and
        replaces the template image; otherwise the template image is reused.

        Raises:
            NotFoundError:  template absent or not active
            AssetHostError: custom image upload failed
            DatabaseError:  insert failed (an uploaded custom image is destroyed)
        """
        template = await db.scalar(
            select(Template).where(Template.id == request.template_id, Template.status == "active")
        )
        if template is None:
            raise NotFoundError(resource="template", resource_id=str(request.template_id))

        image_url, public_id = template.image_url, None
        if request.custom_image:
            upload = await self.asset_host.upload(request.custom_image, folder=MEME_FOLDER)
            image_url, public_id = upload.url, upload.public_id

        try:
            meme = Meme(
                user_id=user_id,
                template_id=template.id,
                image_url=image_url,
                public_id=public_id,
                texts=[text.model_dump() for text in request.texts],
            )
            db.add(meme)
            await db.flush()
            await self.template_service.record_usage(db, template.id)
        except Exception as e:
            if public_id:
                await self._discard_asset(public_id)
            if isinstance(e, MemeStudioError):
                raise
            logger.error("Failed to create meme: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create meme",
                context={"original_error": type(e).__name__},
            )

        logger.info("Meme %s created by %s from template %s", meme.id, user_id, template.id)
        return MemeCreated(id=meme.id, image_url=meme.image_url, created_at=meme.created_at)

    async def _discard_asset(self, public_id: str) -> None:
        try:
            await self.asset_host.destroy(public_id)
        except MemeStudioError as e:
            logger.warning("Failed to discard orphaned asset %s: %s", public_id, e.message)

    async def list_user_memes(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        page: Any = None,
        limit: Any = None,
    ) -> MemeListResponse:
        """The caller's memes, newest first."""
        page_num, limit_num = clamp_page_params(
            page, limit, default_limit=DEFAULT_MEME_PAGE_SIZE, max_limit=MAX_MEME_PAGE_SIZE,
        )
        try:
            rows = (
                await db.execute(
                    select(Meme)
                    .execution_options(populate_existing=True)
                    .options(selectinload(Meme.template))
                    .where(Meme.user_id == user_id)
                    .order_by(Meme.created_at.desc(), Meme.id.asc())
                    .offset((page_num - 1) * limit_num)
                    .limit(limit_num)
                )
            ).scalars().all()
            total = await db.scalar(select(func.count(Meme.id)).where(Meme.user_id == user_id)) or 0
        except Exception as e:
            logger.error("Failed to list memes for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch memes",
                context={"original_error": type(e).__name__},
            )

        return MemeListResponse(
            memes=[MemeListItem.model_validate(row) for row in rows],
            pagination=MemePagination(
                current_page=page_num,
                total_pages=total_pages(total, limit_num),
                total_memes=total,
                has_next_page=page_num * limit_num < total,
                has_prev_page=page_num > 1,
            ),
        )

    async def popular_memes(self, db: AsyncSession) -> List[MemeListItem]:
        try:
            rows = (
                await db.execute(
                    select(Meme)
                    .execution_options(populate_existing=True)
                    .options(selectinload(Meme.template))
                    .order_by(Meme.likes_count.desc(), Meme.created_at.desc(), Meme.id.asc())
                    .limit(POPULAR_LIMIT)
                )
            ).scalars().all()
        except Exception as e:
            logger.error("Failed to load popular memes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch popular memes",
                context={"original_error": type(e).__name__},
            )
        return [MemeListItem.model_validate(row) for row in rows]

    # ── Likes ─────────────────────────────────────────────────────────────

    async def _adjust_likes(self, db: AsyncSession, meme_id: uuid.UUID, delta: int) -> None:
        stmt = update(Meme).where(Meme.id == meme_id)
        if delta < 0:
            stmt = stmt.where(Meme.likes_count > 0)
        await db.execute(
            stmt.values(likes_count=Meme.likes_count + delta)
            .execution_options(synchronize_session=False)
        )

    async def add_like(self, db: AsyncSession, meme_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """True when the like was new."""
        added = await insert_ignore(db, MemeLike, meme_id=meme_id, user_id=user_id)
        if added:
            await self._adjust_likes(db, meme_id, 1)
        return added

    async def remove_like(self, db: AsyncSession, meme_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """True when a like was removed."""
        result = await db.execute(
            delete(MemeLike)
            .where(MemeLike.meme_id == meme_id, MemeLike.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            await self._adjust_likes(db, meme_id, -1)
            return True
        return False

    async def set_like(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        meme_id: uuid.UUID,
        action: Optional[str] = None,
    ) -> LikeResponse:
        """
        Apply a like action.

        action='like' and 'unlike' are idempotent; no action toggles the
        caller's membership in the like set.

        Raises:
            NotFoundError: no such meme
        """
        exists = await db.scalar(select(Meme.id).where(Meme.id == meme_id))
        if exists is None:
            raise NotFoundError(resource="meme", resource_id=str(meme_id))

        if action == "like":
            await self.add_like(db, meme_id, user_id)
            liked = True
        elif action == "unlike":
            await self.remove_like(db, meme_id, user_id)
            liked = False
        else:
            liked = not await self.remove_like(db, meme_id, user_id)
            if liked:
                await self.add_like(db, meme_id, user_id)

        likes_count = await db.scalar(select(Meme.likes_count).where(Meme.id == meme_id))
        return LikeResponse(action="liked" if liked else "unliked", likes_count=likes_count or 0)

    # ── Deletion ──────────────────────────────────────────────────────────

    async def delete_meme(self, db: AsyncSession, user_id: uuid.UUID, meme_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError:      no such meme
            AuthorizationError: the caller does not own it
            AssetHostError:     the hosted image could not be destroyed
        """
        meme = await db.get(Meme, meme_id)
        if meme is None:
            raise NotFoundError(resource="meme", resource_id=str(meme_id))
        if meme.user_id != user_id:
            raise AuthorizationError(context={"meme_id": str(meme_id)})

        if meme.public_id:
            await self.asset_host.destroy(meme.public_id)

        await db.execute(delete(MemeLike).where(MemeLike.meme_id == meme_id))
        await db.delete(meme)
        await db.flush()
        logger.info("Meme %s deleted by %s", meme_id, user_id)


# ── Singleton Instance ────────────────────────────────────────────────────
meme_service = MemeService(asset_host=asset_host, template_service=template_service)
