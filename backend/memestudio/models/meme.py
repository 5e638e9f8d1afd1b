"""
MemeStudio Backend - Meme Models
=================================

What:  ORM models for user memes (`memes`) and their like set (`meme_likes`).

Like set:
    Each like is one `meme_likes` row keyed by (meme_id, user_id), so a user
    can appear at most once. `memes.likes_count` is a denormalized copy of
    the set size: it moves by +1/-1 only when the insert/delete of that row
    actually changed the set, in the same transaction.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Text, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memestudio.database import Base
from memestudio.models.template import Template


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Meme(Base):
    """A user-created artifact: one template plus user-supplied text or image."""

    __tablename__ = "memes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("templates.id"), nullable=False,
    )

    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    # Set only when a custom image was uploaded to the asset host
    public_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    texts: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    template: Mapped[Template] = relationship(Template, lazy="raise")

    __table_args__ = (
        Index("idx_memes_user_created", "user_id", created_at.desc()),
        Index("idx_memes_likes_count", likes_count.desc()),
    )

    def __repr__(self) -> str:
        return f"<Meme(id={self.id}, user_id={self.user_id}, likes={self.likes_count})>"


class MemeLike(Base):
    """Membership row: `user_id` likes `meme_id`."""

    __tablename__ = "meme_likes"

    meme_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("memes.id", ondelete="CASCADE"), primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
