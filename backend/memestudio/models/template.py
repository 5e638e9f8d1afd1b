"""
MemeStudio Backend - Template Catalog Models
=============================================

What:  ORM models for the template catalog: `templates`, the per-user
       `template_favorites` set and the `catalog_seeds` marker table.
Who:   CatalogService, CatalogSeeder and TemplateService; Alembic.

Table Design:
    - UUID primary key, store-assigned
    - template_id: ImgFlip id for seeded rows; NULL for user uploads.
      Unique when present so a repeated seed can never duplicate a row.
    - tags / text_areas: JSON arrays, normalized on every ORM write
    - popularity / views / usage_count: counters mutated only through
      single-statement atomic UPDATEs
    - status: pending | active | rejected | archived, no enforced transitions

    Indexes back the listing sort and filter fields:
    popularity DESC, created_at DESC, category, name, status, user_id.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from memestudio.database import Base
from memestudio.exceptions import ValidationError

CATEGORIES = (
    "funny",
    "animals",
    "movies",
    "tv shows",
    "celebrities",
    "gaming",
    "anime",
    "politics",
    "other",
    "popular",
)
DEFAULT_CATEGORY = "funny"
SEED_CATEGORY = "popular"

STATUSES = ("pending", "active", "rejected", "archived")
TEXT_ALIGNMENTS = ("left", "center", "right")

MIN_DIMENSION = 100
MAX_DIMENSION = 5000
MAX_TAGS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_tags(tags: Optional[Iterable[Any]]) -> List[str]:
    """
    Trim, drop empty entries and de-duplicate, keeping first occurrence order.

    Raises:
        ValidationError: more than MAX_TAGS distinct tags remain.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")

    seen = set()
    result = []
    for tag in tags:
        cleaned = str(tag).strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)

    if len(result) > MAX_TAGS:
        raise ValidationError(
            message=f"Tags array exceeds the limit of {MAX_TAGS}!",
            field="tags",
            context={"count": len(result)},
        )
    return result


def default_text_area(index: int, box_count: int, width: int, height: int) -> Dict[str, Any]:
    """Evenly stacked overlay region for box `index` of `box_count`."""
    box_count = max(box_count, 1)
    region_height = height // box_count
    return {
        "x": 0,
        "y": index * region_height,
        "width": width,
        "height": region_height,
        "default_text": "",
        "color": "#000000",
        "font_size": 24,
        "font_family": "Impact",
        "text_align": "center",
        "stroke_color": "#ffffff",
        "stroke_width": 2,
    }


class Template(Base):
    """
    A reusable base image with overlay regions.

    Lifecycle:
        1. Uploaded by a user (status='pending') or seeded (status='active')
        2. Counters move as users view, use and favorite it
        3. Never hard-deleted; retired through status='archived'
    """

    __tablename__ = "templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    template_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, unique=True,
        comment="External (ImgFlip) id for seeded templates",
    )

    # Plain reference to the identity service's user; no cascade
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    public_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True,
        comment="Asset host handle used for deletion",
    )

    width: Mapped[int] = mapped_column(Integer, nullable=False)
    height: Mapped[int] = mapped_column(Integer, nullable=False)

    category: Mapped[str] = mapped_column(String(32), nullable=False, default=DEFAULT_CATEGORY)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    text_areas: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    box_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    popularity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    __table_args__ = (
        CheckConstraint(
            f"width BETWEEN {MIN_DIMENSION} AND {MAX_DIMENSION}", name="ck_templates_width"
        ),
        CheckConstraint(
            f"height BETWEEN {MIN_DIMENSION} AND {MAX_DIMENSION}", name="ck_templates_height"
        ),
        CheckConstraint("popularity >= 0", name="ck_templates_popularity"),
        Index("idx_templates_popularity", popularity.desc()),
        Index("idx_templates_created_at", created_at.desc()),
        Index("idx_templates_category", "category"),
        Index("idx_templates_name", "name"),
        Index("idx_templates_status", "status"),
        Index("idx_templates_user_id", "user_id"),
    )

    @validates("tags")
    def _validate_tags(self, key: str, value: Any) -> List[str]:
        return normalize_tags(value)

    @validates("category")
    def _validate_category(self, key: str, value: str) -> str:
        lowered = (value or "").strip().lower()
        if lowered not in CATEGORIES:
            raise ValidationError(
                message=f"Category '{value}' is not supported",
                field="category",
                context={"allowed": list(CATEGORIES)},
            )
        return lowered

    @validates("status")
    def _validate_status(self, key: str, value: str) -> str:
        if value not in STATUSES:
            raise ValidationError(
                message=f"Status '{value}' is not supported",
                field="status",
                context={"allowed": list(STATUSES)},
            )
        return value

    @validates("width", "height")
    def _validate_dimension(self, key: str, value: int) -> int:
        if not MIN_DIMENSION <= value <= MAX_DIMENSION:
            raise ValidationError(
                message=f"{key} must be between {MIN_DIMENSION} and {MAX_DIMENSION} pixels",
                field=key,
                context={"value": value},
            )
        return value

    def __repr__(self) -> str:
        return f"<Template(id={self.id}, name='{self.name}', status='{self.status}')>"


class TemplateFavorite(Base):
    """
    Membership row: `user_id` has favorited `template_id`.

    The composite primary key makes the favorite set duplicate-free at the
    store level; toggling is an atomic delete-or-insert.
    """

    __tablename__ = "template_favorites"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("templates.id"), primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )


class CatalogSeed(Base):
    """
    Seed marker. At most one row per catalog name can ever exist, so the
    first transaction to insert it owns the seed; concurrent claims fail
    with an IntegrityError.
    """

    __tablename__ = "catalog_seeds"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    template_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    seeded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
