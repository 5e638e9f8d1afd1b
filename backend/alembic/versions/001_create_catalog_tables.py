"""Create template catalog and meme tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

Tables:
    templates           catalog entries (seeded and uploaded)
    template_favorites  per-user favorite set, (user_id, template_id) PK
    catalog_seeds       one-time seed marker
    memes               user memes
    meme_likes          per-meme like set, (meme_id, user_id) PK

Rollback: downgrade() drops all five tables.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "templates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "template_id", sa.String(64), nullable=True,
            comment="External (ImgFlip) id for seeded templates",
        ),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column(
            "public_id", sa.String(255), nullable=True,
            comment="Asset host handle used for deletion",
        ),
        sa.Column("width", sa.Integer(), nullable=False),
        sa.Column("height", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(32), nullable=False, server_default=sa.text("'funny'")),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("text_areas", sa.JSON(), nullable=False),
        sa.Column("box_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("popularity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("template_id"),
        sa.CheckConstraint("width BETWEEN 100 AND 5000", name="ck_templates_width"),
        sa.CheckConstraint("height BETWEEN 100 AND 5000", name="ck_templates_height"),
        sa.CheckConstraint("popularity >= 0", name="ck_templates_popularity"),
    )
    op.create_index("idx_templates_popularity", "templates", [sa.text("popularity DESC")])
    op.create_index("idx_templates_created_at", "templates", [sa.text("created_at DESC")])
    op.create_index("idx_templates_category", "templates", ["category"])
    op.create_index("idx_templates_name", "templates", ["name"])
    op.create_index("idx_templates_status", "templates", ["status"])
    op.create_index("idx_templates_user_id", "templates", ["user_id"])

    op.create_table(
        "template_favorites",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("template_id", sa.Uuid(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"]),
        sa.PrimaryKeyConstraint("user_id", "template_id"),
    )

    op.create_table(
        "catalog_seeds",
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("template_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("seeded_at"),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "memes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("template_id", sa.Uuid(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("public_id", sa.String(255), nullable=True),
        sa.Column("texts", sa.JSON(), nullable=False),
        sa.Column("likes_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_memes_user_created", "memes", ["user_id", sa.text("created_at DESC")])
    op.create_index("idx_memes_likes_count", "memes", [sa.text("likes_count DESC")])

    op.create_table(
        "meme_likes",
        sa.Column("meme_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["meme_id"], ["memes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("meme_id", "user_id"),
    )


def downgrade() -> None:
    op.drop_table("meme_likes")
    op.drop_index("idx_memes_likes_count", table_name="memes")
    op.drop_index("idx_memes_user_created", table_name="memes")
    op.drop_table("memes")
    op.drop_table("catalog_seeds")
    op.drop_table("template_favorites")
    for index in (
        "idx_templates_user_id",
        "idx_templates_status",
        "idx_templates_name",
        "idx_templates_category",
        "idx_templates_created_at",
        "idx_templates_popularity",
    ):
        op.drop_index(index, table_name="templates")
    op.drop_table("templates")
