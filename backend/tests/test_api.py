"""
MemeStudio Backend - API Integration Tests
===========================================

What:  Full request/response cycles through the ASGI app with the database
       and collaborators overridden in conftest.

What we test:
    ✅ Listing seeds an empty catalog and returns pagination metadata
    ✅ Error bodies: {success: false, message, code, request_id}
    ✅ Authentication on write endpoints
    ✅ Upload → activate → create meme → like → delete
    ✅ Request ids are echoed
    ✅ Rate limiting returns 429 with Retry-After
    ✅ Health reports database and asset host status
"""

import uuid

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from memestudio.middleware.rate_limit import RateLimitMiddleware
from memestudio.models.template import Template

from conftest import PNG_BYTES


class TestTemplateEndpoints:

    @pytest.mark.asyncio
    async def test_listing_seeds_and_paginates(self, client, template_source):
        response = await client.get("/api/templates", params={"limit": "2", "sort": "oldest"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["templates"]) == 2
        assert body["pagination"]["total_templates"] == 3
        assert body["pagination"]["total_pages"] == 2
        assert body["pagination"]["next"] == {"page": 2, "limit": 2}
        assert template_source.calls == 1

    @pytest.mark.asyncio
    async def test_garbage_paging_params_are_clamped(self, client, make_template):
        await make_template("Only")

        response = await client.get("/api/templates", params={"page": "-4", "limit": "abc"})

        assert response.status_code == 200
        assert response.json()["pagination"]["current_page"] == 1
        assert response.json()["pagination"]["limit"] == 20

    @pytest.mark.asyncio
    async def test_seed_failure_is_500(self, client, template_source):
        template_source.status = 502

        response = await client.get("/api/templates")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "fetch_failed"
        assert "error" not in body

    @pytest.mark.asyncio
    async def test_detail_counts_views(self, client, make_template):
        template = await make_template("Drake")

        await client.get(f"/api/templates/{template.id}")
        response = await client.get(f"/api/templates/{template.id}")

        assert response.status_code == 200
        assert response.json()["template"]["views"] == 2

    @pytest.mark.asyncio
    async def test_unknown_template_is_404(self, client):
        response = await client.get(f"/api/templates/{uuid.uuid4()}")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "not_found"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client):
        response = await client.get("/api/templates/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_preview(self, client, make_template):
        await make_template("Low", minutes=1, popularity=1)
        await make_template("High", minutes=2, popularity=9)

        response = await client.get("/api/templates/preview")

        assert response.status_code == 200
        assert [t["name"] for t in response.json()["templates"]] == ["High", "Low"]

    @pytest.mark.asyncio
    async def test_favorite_requires_auth(self, client, make_template):
        template = await make_template("Drake")

        response = await client.post(f"/api/templates/{template.id}/favorite")

        assert response.status_code == 401
        assert response.json()["message"] == "Please authenticate"
        assert response.json()["code"] == "authentication_required"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, client, make_template):
        template = await make_template("Drake")

        response = await client.post(
            f"/api/templates/{template.id}/favorite",
            headers={"Authorization": "Bearer nonsense"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_favorite_toggle(self, client, make_template, auth_headers, user_id):
        template = await make_template("Drake", popularity=4)

        response = await client.post(f"/api/templates/{template.id}/favorite", headers=auth_headers(user_id))

        assert response.status_code == 200
        assert response.json()["action"] == "added"
        assert response.json()["popularity"] == 5
        assert response.json()["favorite_templates"] == [str(template.id)]


class TestUploadFlow:

    @pytest.mark.asyncio
    async def test_upload_activate_and_list(
        self, client, session_factory, asset_host, auth_headers, user_id,
    ):
        response = await client.post(
            "/api/templates",
            headers=auth_headers(user_id),
            files={"image": ("cat.png", PNG_BYTES, "image/png")},
            data={"name": "My Cat", "category": "Animals", "tags": "cat, cute"},
        )

        assert response.status_code == 201
        template = response.json()["template"]
        assert template["status"] == "pending"
        assert template["tags"] == ["cat", "cute"]
        assert asset_host.uploads[0]["folder"] == "meme-templates"

        # Pending templates stay out of public reads
        assert (await client.get(f"/api/templates/{template['id']}")).status_code == 404

        response = await client.patch(
            f"/api/templates/{template['id']}/status",
            headers=auth_headers(user_id),
            json={"status": "active"},
        )
        assert response.status_code == 200
        assert response.json()["template"]["status"] == "active"

        async with session_factory() as session:
            stored = await session.scalar(select(Template.status).where(Template.name == "My Cat"))
        assert stored == "active"

    @pytest.mark.asyncio
    async def test_invalid_file_type(self, client, asset_host, auth_headers, user_id):
        response = await client.post(
            "/api/templates",
            headers=auth_headers(user_id),
            files={"image": ("notes.txt", b"hello", "text/plain")},
            data={"name": "Notes"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        assert asset_host.uploads == []

    @pytest.mark.asyncio
    async def test_status_change_by_other_user(self, client, make_template, auth_headers, user_id, other_user_id):
        template = await make_template("Mine", status="pending", user_id=user_id)

        response = await client.patch(
            f"/api/templates/{template.id}/status",
            headers=auth_headers(other_user_id),
            json={"status": "active"},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_unknown_status_is_400(self, client, make_template, auth_headers, user_id):
        template = await make_template("Mine", status="pending", user_id=user_id)

        response = await client.patch(
            f"/api/templates/{template.id}/status",
            headers=auth_headers(user_id),
            json={"status": "deleted"},
        )

        assert response.status_code == 400


class TestMemeEndpoints:

    @pytest.mark.asyncio
    async def test_create_like_and_delete(
        self, client, session_factory, make_template, auth_headers, user_id, other_user_id,
    ):
        template = await make_template("Drake")

        response = await client.post(
            "/api/memes",
            headers=auth_headers(user_id),
            json={"template_id": str(template.id), "texts": ["top", "bottom"]},
        )
        assert response.status_code == 201
        meme_id = response.json()["meme"]["id"]

        response = await client.post(
            f"/api/memes/{meme_id}/like", headers=auth_headers(other_user_id), json={"action": "like"},
        )
        assert response.json() == {"success": True, "action": "liked", "likes_count": 1}

        # Empty body toggles
        response = await client.post(f"/api/memes/{meme_id}/like", headers=auth_headers(other_user_id))
        assert response.json()["action"] == "unliked"
        assert response.json()["likes_count"] == 0

        mine = await client.get("/api/memes/my-memes", headers=auth_headers(user_id))
        assert mine.json()["pagination"]["total_memes"] == 1
        assert mine.json()["memes"][0]["template"]["name"] == "Drake"

        forbidden = await client.delete(f"/api/memes/{meme_id}", headers=auth_headers(other_user_id))
        assert forbidden.status_code == 403

        deleted = await client.delete(f"/api/memes/{meme_id}", headers=auth_headers(user_id))
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Meme deleted successfully"

        async with session_factory() as session:
            usage = await session.scalar(select(Template.usage_count).where(Template.id == template.id))
        assert usage == 1

    @pytest.mark.asyncio
    async def test_create_requires_text(self, client, make_template, auth_headers, user_id):
        template = await make_template("Drake")

        response = await client.post(
            "/api/memes",
            headers=auth_headers(user_id),
            json={"template_id": str(template.id), "texts": []},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_popular_is_public(self, client, make_template, make_meme, user_id):
        template = await make_template("Drake")
        await make_meme(template, user_id, likes_count=7)

        response = await client.get("/api/memes/popular")

        assert response.status_code == 200
        assert response.json()["memes"][0]["likes_count"] == 7

    @pytest.mark.asyncio
    async def test_my_memes_requires_auth(self, client):
        response = await client.get("/api/memes/my-memes")
        assert response.status_code == 401


class TestRequestIds:

    @pytest.mark.asyncio
    async def test_generated_id_is_returned(self, client):
        response = await client.get("/api/templates/preview")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_id_is_echoed_in_errors(self, client):
        response = await client.get(f"/api/templates/{uuid.uuid4()}", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["request_id"] == "trace-42"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_third_request_in_window_is_429(self):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=2, window=60)

        @app.get("/api/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"ok": True}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            assert (await http.get("/api/ping")).status_code == 200
            assert (await http.get("/api/ping")).status_code == 200

            limited = await http.get("/api/ping")
            assert limited.status_code == 429
            assert limited.json()["code"] == "rate_limit_exceeded"
            assert int(limited.headers["Retry-After"]) > 0

            # Non-API paths are not limited
            assert (await http.get("/health")).status_code == 200


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["asset_host"] == "configured"

    @pytest.mark.asyncio
    async def test_degraded_without_asset_host(self, client, monkeypatch, asset_host):
        monkeypatch.setattr(asset_host, "is_configured", lambda: False)

        response = await client.get("/health")

        assert response.json()["status"] == "degraded"
