"""
MemeStudio Backend - Template Service
======================================

What:  Single-template operations: preview strip, detail, upload, status
       changes, favorites and counters.
Who:   /api/templates routes; MemeService for usage counting.

Counters:
    views, usage_count and popularity only ever change through a single
    `UPDATE templates SET col = col + :delta ... RETURNING col`, so
    concurrent increments are never lost. Popularity decrements carry a
    `popularity > 0` guard and never go negative.

Upload Flow:
    validate → upload to asset host → INSERT (status='pending')
    If the INSERT fails, the uploaded asset is destroyed (best effort).
"""

import logging
import uuid
from typing import Any, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from memestudio.database import insert_ignore
from memestudio.exceptions import (
    AuthorizationError,
    DatabaseError,
    MemeStudioError,
    NotFoundError,
    ValidationError,
)
from memestudio.models.template import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    Template,
    TemplateFavorite,
    normalize_tags,
)
from memestudio.schemas.template import (
    FavoriteToggleResponse,
    TemplateDetail,
    TemplateSummary,
)
from memestudio.services.asset_base import AssetHost
from memestudio.services.cloudinary_service import asset_host
from memestudio.services.pagination import parse_int
from memestudio.services.upload_service import UploadValidator, upload_validator

logger = logging.getLogger(__name__)

TEMPLATE_FOLDER = "meme-templates"
DEFAULT_PREVIEW_LIMIT = 10
MAX_PREVIEW_LIMIT = 50
MAX_NAME_LENGTH = 100

COUNTER_COLUMNS = ("views", "usage_count", "popularity")


class TemplateService:
    """
    Args:
        asset_host: image host for uploads and cleanup
        validator:  upload validator
    """

    def __init__(self, asset_host: AssetHost, validator: UploadValidator):
        self.asset_host = asset_host
        self.validator = validator

    # ── Counters ──────────────────────────────────────────────────────────

    async def increment(
        self,
        db: AsyncSession,
        template_id: uuid.UUID,
        column: str,
        delta: int = 1,
    ) -> Optional[int]:
        """
        Atomically add `delta` to a counter column.

        Returns the new value, or None when no row was updated (missing
        template, or a decrement that would take the counter below zero).
        """
        if column not in COUNTER_COLUMNS:
            raise ValueError(f"'{column}' is not a template counter")

        target = getattr(Template, column)
        stmt = update(Template).where(Template.id == template_id)
        if delta < 0:
            stmt = stmt.where(target + delta >= 0)
        stmt = (
            stmt.values({column: target + delta})
            .returning(target)
            .execution_options(synchronize_session=False)
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    async def record_usage(self, db: AsyncSession, template_id: uuid.UUID) -> Optional[int]:
        return await self.increment(db, template_id, "usage_count")

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_preview(self, db: AsyncSession, limit: Any = None) -> List[TemplateSummary]:
        """Most popular active templates for the home page strip."""
        limit_num = min(max(parse_int(limit) or DEFAULT_PREVIEW_LIMIT, 1), MAX_PREVIEW_LIMIT)
        try:
            rows = (
                await db.execute(
                    select(Template)
                    .execution_options(populate_existing=True)
                    .where(Template.status == "active")
                    .order_by(Template.popularity.desc(), Template.created_at.desc(), Template.id.asc())
                    .limit(limit_num)
                )
            ).scalars().all()
        except Exception as e:
            logger.error("Failed to load template preview: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch templates",
                context={"original_error": type(e).__name__},
            )
        return [TemplateSummary.model_validate(row) for row in rows]

    async def get_template(self, db: AsyncSession, template_id: uuid.UUID) -> TemplateDetail:
        """
        One active template; counts a view.

        Raises:
            NotFoundError: absent, or not in 'active' status
        """
        template = await db.scalar(
            select(Template)
            .execution_options(populate_existing=True)
            .where(Template.id == template_id, Template.status == "active")
        )
        if template is None:
            raise NotFoundError(resource="template", resource_id=str(template_id))

        views = await self.increment(db, template_id, "views")
        detail = TemplateDetail.model_validate(template)
        if views is not None:
            detail = detail.model_copy(update={"views": views})
        return detail

    # ── Writes ────────────────────────────────────────────────────────────

    async def upload_template(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        name: Optional[str],
        category: Optional[str] = None,
        tags: Any = None,
        content_length: Optional[int] = None,
    ) -> TemplateDetail:
        """
        Validate, host and store a user-uploaded template as 'pending'.

        Raises:
            ValidationError: bad file, missing name, unknown category, >10 tags
            AssetHostError:  the host upload failed
            DatabaseError:   the insert failed (the hosted asset is destroyed)
        """
        # Everything that can be checked locally is checked before the upload
        ext = self.validator.validate(filename, content_type, content, content_length)

        cleaned_name = (name or "").strip()
        if not cleaned_name:
            raise ValidationError(message="Template name is required", field="name")
        if len(cleaned_name) > MAX_NAME_LENGTH:
            raise ValidationError(
                message=f"Template name cannot exceed {MAX_NAME_LENGTH} characters",
                field="name",
            )

        cleaned_category = (category or "").strip().lower() or DEFAULT_CATEGORY
        if cleaned_category not in CATEGORIES:
            raise ValidationError(
                message=f"Category '{category}' is not supported",
                field="category",
                context={"allowed": list(CATEGORIES)},
            )
        cleaned_tags = normalize_tags(tags)

        upload = await self.asset_host.upload(
            content, folder=TEMPLATE_FOLDER, filename=f"{uuid.uuid4()}{ext}",
        )

        try:
            template = Template(
                user_id=user_id,
                name=cleaned_name,
                image_url=upload.url,
                thumbnail_url=upload.url,
                public_id=upload.public_id,
                width=upload.width,
                height=upload.height,
                category=cleaned_category,
                tags=cleaned_tags,
                text_areas=[],
                box_count=0,
                status="pending",
            )
            db.add(template)
            await db.flush()
            await db.refresh(template)
        except Exception as e:
            await self._discard_asset(upload.public_id)
            if isinstance(e, MemeStudioError):
                raise
            logger.error("Failed to store uploaded template: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to save template",
                context={"original_error": type(e).__name__},
            )

        logger.info(
            "Template %s uploaded by %s (%s, %d tags)",
            template.id, user_id, cleaned_category, len(cleaned_tags),
        )
        return TemplateDetail.model_validate(template)

    async def _discard_asset(self, public_id: str) -> None:
        try:
            await self.asset_host.destroy(public_id)
        except MemeStudioError as e:
            # Best effort; the insert error is what the client needs to see
            logger.warning("Failed to discard orphaned asset %s: %s", public_id, e.message)

    async def update_status(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        template_id: uuid.UUID,
        status: str,
    ) -> TemplateDetail:
        """
        Owner-only status change. Any status may follow any other.

        Raises:
            NotFoundError:      no such template
            AuthorizationError: the caller did not upload it
        """
        template = await db.get(Template, template_id)
        if template is None:
            raise NotFoundError(resource="template", resource_id=str(template_id))
        if template.user_id != user_id:
            raise AuthorizationError(context={"template_id": str(template_id)})

        previous = template.status
        template.status = status
        await db.flush()
        await db.refresh(template)
        logger.info("Template %s status %s → %s", template_id, previous, status)
        return TemplateDetail.model_validate(template)

    async def toggle_favorite(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        template_id: uuid.UUID,
    ) -> FavoriteToggleResponse:
        """
        Add the template to the user's favorites, or remove it if present.

        popularity moves by +1 only when the favorite row was actually
        inserted, and by -1 only when a row was actually deleted.
        """
        exists = await db.scalar(
            select(Template.id).where(Template.id == template_id, Template.status == "active")
        )
        if exists is None:
            raise NotFoundError(resource="template", resource_id=str(template_id))

        removed = await db.execute(
            delete(TemplateFavorite).where(
                TemplateFavorite.user_id == user_id,
                TemplateFavorite.template_id == template_id,
            )
        )
        if removed.rowcount:
            action = "removed"
            popularity = await self.increment(db, template_id, "popularity", -1)
        else:
            action = "added"
            popularity = None
            if await insert_ignore(db, TemplateFavorite, user_id=user_id, template_id=template_id):
                popularity = await self.increment(db, template_id, "popularity", 1)

        if popularity is None:
            popularity = await db.scalar(select(Template.popularity).where(Template.id == template_id))

        favorites = (
            await db.scalars(
                select(TemplateFavorite.template_id)
                .where(TemplateFavorite.user_id == user_id)
                .order_by(TemplateFavorite.created_at, TemplateFavorite.template_id)
            )
        ).all()

        logger.info("Template %s favorite %s by %s", template_id, action, user_id)
        return FavoriteToggleResponse(
            action=action,
            popularity=popularity or 0,
            favorite_templates=list(favorites),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
template_service = TemplateService(asset_host=asset_host, validator=upload_validator)
