"""
MemeStudio Backend - Meme Service Tests
========================================

What we test:
    ✅ Creation counts one template usage; custom images go to the host
    ✅ Creation on a missing or inactive template is NotFound
    ✅ Like/unlike are idempotent; no action toggles
    ✅ Owner-only deletion; host failure keeps the meme
    ✅ "My memes" pagination and popular ordering
"""

import uuid

import pytest
from sqlalchemy import func, select

from memestudio.exceptions import AssetHostError, AuthorizationError, NotFoundError
from memestudio.models.meme import Meme, MemeLike
from memestudio.models.template import Template
from memestudio.schemas.meme import MemeCreateRequest

DATA_URI = "data:image/png;base64,iVBORw0KGgo="


class TestCreateMeme:

    @pytest.mark.asyncio
    async def test_create_counts_usage(self, db_session, meme_service, make_template, user_id):
        template = await make_template("Drake")

        created = await meme_service.create_meme(
            db_session, user_id, MemeCreateRequest(template_id=template.id, texts=["top", "bottom"]),
        )

        assert created.image_url == template.image_url
        usage = await db_session.scalar(select(Template.usage_count).where(Template.id == template.id))
        assert usage == 1

        meme = await db_session.get(Meme, created.id)
        assert [text["content"] for text in meme.texts] == ["top", "bottom"]
        assert meme.public_id is None

    @pytest.mark.asyncio
    async def test_custom_image_is_hosted(self, db_session, meme_service, asset_host, make_template, user_id):
        template = await make_template("Drake")

        created = await meme_service.create_meme(
            db_session, user_id,
            MemeCreateRequest(template_id=template.id, texts=["hi"], custom_image=DATA_URI),
        )

        assert asset_host.uploads[0]["folder"] == "memes"
        assert created.image_url.startswith("https://assets.test/memes/")

    @pytest.mark.asyncio
    async def test_missing_template(self, db_session, meme_service, user_id):
        with pytest.raises(NotFoundError):
            await meme_service.create_meme(
                db_session, user_id, MemeCreateRequest(template_id=uuid.uuid4(), texts=["hi"]),
            )

    @pytest.mark.asyncio
    async def test_inactive_template(self, db_session, meme_service, make_template, user_id):
        template = await make_template("Waiting", status="pending")

        with pytest.raises(NotFoundError):
            await meme_service.create_meme(
                db_session, user_id, MemeCreateRequest(template_id=template.id, texts=["hi"]),
            )

    def test_custom_image_must_be_data_uri(self):
        with pytest.raises(ValueError):
            MemeCreateRequest(template_id=uuid.uuid4(), texts=["hi"], custom_image="https://x.test/a.png")

    def test_texts_are_required(self):
        with pytest.raises(ValueError):
            MemeCreateRequest(template_id=uuid.uuid4(), texts=[])


class TestLikes:

    async def _likes(self, db, meme_id) -> int:
        return await db.scalar(select(Meme.likes_count).where(Meme.id == meme_id))

    @pytest.mark.asyncio
    async def test_like_is_idempotent(self, db_session, meme_service, make_template, make_meme, user_id):
        meme = await make_meme(await make_template("Drake"), user_id)

        first = await meme_service.set_like(db_session, user_id, meme.id, "like")
        second = await meme_service.set_like(db_session, user_id, meme.id, "like")

        assert first.action == second.action == "liked"
        assert second.likes_count == 1
        assert await db_session.scalar(select(func.count()).select_from(MemeLike)) == 1

    @pytest.mark.asyncio
    async def test_unlike_is_idempotent(self, db_session, meme_service, make_template, make_meme, user_id):
        meme = await make_meme(await make_template("Drake"), user_id)

        result = await meme_service.set_like(db_session, user_id, meme.id, "unlike")

        assert result.action == "unliked"
        assert result.likes_count == 0

    @pytest.mark.asyncio
    async def test_no_action_toggles(self, db_session, meme_service, make_template, make_meme, user_id):
        meme = await make_meme(await make_template("Drake"), user_id)

        liked = await meme_service.set_like(db_session, user_id, meme.id)
        unliked = await meme_service.set_like(db_session, user_id, meme.id)

        assert (liked.action, liked.likes_count) == ("liked", 1)
        assert (unliked.action, unliked.likes_count) == ("unliked", 0)

    @pytest.mark.asyncio
    async def test_likes_from_different_users_add_up(
        self, db_session, meme_service, make_template, make_meme, user_id, other_user_id,
    ):
        meme = await make_meme(await make_template("Drake"), user_id)

        await meme_service.set_like(db_session, user_id, meme.id, "like")
        result = await meme_service.set_like(db_session, other_user_id, meme.id, "like")

        assert result.likes_count == 2

    @pytest.mark.asyncio
    async def test_unknown_meme(self, db_session, meme_service, user_id):
        with pytest.raises(NotFoundError):
            await meme_service.set_like(db_session, user_id, uuid.uuid4(), "like")


class TestDeleteMeme:

    @pytest.mark.asyncio
    async def test_owner_delete_destroys_asset(
        self, db_session, meme_service, asset_host, make_template, make_meme, user_id, other_user_id,
    ):
        meme = await make_meme(await make_template("Drake"), user_id, public_id="memes/abc")
        meme_id = meme.id
        await meme_service.set_like(db_session, other_user_id, meme_id, "like")

        rows_at_destroy = []

        async def count_meme_rows(public_id):
            rows_at_destroy.append(
                await db_session.scalar(select(func.count()).select_from(Meme).where(Meme.id == meme_id))
            )

        asset_host.on_destroy = count_meme_rows

        await meme_service.delete_meme(db_session, user_id, meme_id)
        await db_session.commit()

        assert asset_host.destroyed == ["memes/abc"]
        # The hosted image went first, while the meme was still stored
        assert rows_at_destroy == [1]
        assert await db_session.scalar(select(func.count()).select_from(Meme)) == 0
        assert await db_session.scalar(select(func.count()).select_from(MemeLike)) == 0

    @pytest.mark.asyncio
    async def test_host_failure_keeps_meme(
        self, db_session, meme_service, asset_host, make_template, make_meme, user_id,
    ):
        meme = await make_meme(await make_template("Drake"), user_id, public_id="memes/abc")
        asset_host.fail_destroy = True

        with pytest.raises(AssetHostError):
            await meme_service.delete_meme(db_session, user_id, meme.id)
        await db_session.rollback()

        assert await db_session.scalar(select(func.count()).select_from(Meme)) == 1

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(
        self, db_session, meme_service, asset_host, make_template, make_meme, user_id, other_user_id,
    ):
        meme = await make_meme(await make_template("Drake"), user_id, public_id="memes/abc")

        with pytest.raises(AuthorizationError):
            await meme_service.delete_meme(db_session, other_user_id, meme.id)
        assert asset_host.destroyed == []

    @pytest.mark.asyncio
    async def test_meme_without_hosted_image(
        self, db_session, meme_service, asset_host, make_template, make_meme, user_id,
    ):
        meme = await make_meme(await make_template("Drake"), user_id)

        await meme_service.delete_meme(db_session, user_id, meme.id)

        assert asset_host.destroyed == []

    @pytest.mark.asyncio
    async def test_unknown_meme(self, db_session, meme_service, user_id):
        with pytest.raises(NotFoundError):
            await meme_service.delete_meme(db_session, user_id, uuid.uuid4())


class TestListing:

    @pytest.mark.asyncio
    async def test_my_memes_newest_first(
        self, db_session, meme_service, make_template, make_meme, user_id, other_user_id,
    ):
        template = await make_template("Drake")
        for i in range(12):
            await make_meme(template, user_id, minutes=i, texts=[{"content": f"meme {i}"}])
        await make_meme(template, other_user_id)

        first = await meme_service.list_user_memes(db_session, user_id)
        second = await meme_service.list_user_memes(db_session, user_id, page="2")

        assert first.pagination.total_memes == 12
        assert first.pagination.total_pages == 2
        assert first.pagination.has_next_page is True
        assert first.memes[0].texts[0].content == "meme 11"
        assert first.memes[0].template.name == "Drake"
        assert len(second.memes) == 2
        assert second.pagination.has_prev_page is True
        assert second.pagination.has_next_page is False

    @pytest.mark.asyncio
    async def test_popular_by_likes(self, db_session, meme_service, make_template, make_meme, user_id):
        template = await make_template("Drake")
        await make_meme(template, user_id, minutes=1, likes_count=3, texts=[{"content": "mid"}])
        await make_meme(template, user_id, minutes=2, likes_count=10, texts=[{"content": "top"}])
        await make_meme(template, user_id, minutes=3, likes_count=0, texts=[{"content": "new"}])

        memes = await meme_service.popular_memes(db_session)

        assert [m.texts[0].content for m in memes] == ["top", "mid", "new"]
