"""
MemeStudio Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite), a
       controllable clock, an in-memory asset host and a mocked ImgFlip
       endpoint (httpx.MockTransport). No network, no PostgreSQL.

Fixture Overview:
    engine / db_session / session_factory   real ORM against SQLite
    clock                                   FakeClock for the freshness cache
    asset_host                              FakeAssetHost recording calls
    template_source                         mocked ImgFlip get_memes
    catalog_service / template_service / meme_service
    make_template / make_meme               row factories
    client                                  ASGI AsyncClient with overrides
    auth_headers                            bearer headers for a user id
"""

import os

# Must be set before any memestudio import builds Settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["CLOUDINARY_CLOUD_NAME"] = ""

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from memestudio.database import Base, get_db_session
from memestudio.dependencies import (
    get_asset_host,
    get_catalog_service,
    get_meme_service,
    get_template_service,
)
from memestudio.exceptions import AssetHostError
from memestudio.models.meme import Meme
from memestudio.models.template import Template
from memestudio.security import create_access_token
from memestudio.services.asset_base import AssetHost, AssetUpload
from memestudio.services.cache import FreshnessCache
from memestudio.services.catalog_service import CatalogService
from memestudio.services.meme_service import MemeService
from memestudio.services.seeder import CatalogSeeder
from memestudio.services.template_service import TemplateService
from memestudio.services.upload_service import UploadValidator

SOURCE_URL = "https://imgflip.test/get_memes"

# 1x1 RGBA PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-\xb4"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)
GIF_BYTES = b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!\xf9\x04\x01\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAssetHost(AssetHost):
    """Records uploads and deletions; `fail_upload` / `fail_destroy` inject errors.

    `on_destroy`, when set, is awaited with the public id before the deletion
    is recorded, so tests can inspect the store at that moment.
    """

    def __init__(self, width: int = 500, height: int = 400):
        self.width = width
        self.height = height
        self.uploads: List[Dict[str, Any]] = []
        self.destroyed: List[str] = []
        self.fail_upload = False
        self.fail_destroy = False
        self.on_destroy: Optional[Callable[[str], Awaitable[None]]] = None

    async def upload(
        self,
        data: Union[bytes, str],
        folder: str,
        filename: Optional[str] = None,
    ) -> AssetUpload:
        if self.fail_upload:
            raise AssetHostError()
        public_id = f"{folder}/{uuid.uuid4().hex[:12]}"
        self.uploads.append({"folder": folder, "filename": filename, "public_id": public_id})
        return AssetUpload(
            url=f"https://assets.test/{public_id}.png",
            public_id=public_id,
            width=self.width,
            height=self.height,
        )

    async def destroy(self, public_id: str) -> None:
        if self.fail_destroy:
            raise AssetHostError(message="Failed to delete image")
        if self.on_destroy is not None:
            await self.on_destroy(public_id)
        self.destroyed.append(public_id)

    def is_configured(self) -> bool:
        return True


class TemplateSource:
    """Mocked ImgFlip endpoint. Set `status`, `payload` or `error` per test."""

    def __init__(self, records: List[Dict[str, Any]]):
        self.payload: Any = {"success": True, "data": {"memes": records}}
        self.status = 200
        self.error: Optional[Exception] = None
        self.calls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, json=self.payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Collaborators & Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def asset_host():
    return FakeAssetHost()


@pytest.fixture
def imgflip_records():
    return [
        {"id": "181913649", "name": "Drake Hotline Bling", "url": "https://i.imgflip.com/30b1gx.jpg",
         "width": 1200, "height": 1200, "box_count": 2},
        {"id": "87743020", "name": "Two Buttons", "url": "https://i.imgflip.com/1g8my4.jpg",
         "width": 600, "height": 908, "box_count": 3},
        {"id": "112126428", "name": "Distracted Boyfriend", "url": "https://i.imgflip.com/1ur9b0.jpg",
         "width": 1200, "height": 800, "box_count": 3},
    ]


@pytest.fixture
def template_source(imgflip_records):
    return TemplateSource(imgflip_records)


@pytest.fixture
def seeder(template_source):
    return CatalogSeeder(
        source_url=SOURCE_URL,
        timeout=5.0,
        transport=template_source.transport,
        rng=random.Random(7),
    )


@pytest.fixture
def catalog_service(seeder, clock):
    return CatalogService(
        cache=FreshnessCache(ttl=900, clock=clock),
        seeder=seeder,
        default_page_size=20,
        max_page_size=100,
    )


@pytest.fixture
def template_service(asset_host):
    return TemplateService(asset_host=asset_host, validator=UploadValidator(max_size=5 * 1024 * 1024))


@pytest.fixture
def meme_service(asset_host, template_service):
    return MemeService(asset_host=asset_host, template_service=template_service)


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_template(db_session):
    """Insert and commit a template; `minutes` offsets created_at for ordering."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def _make(name: str = "Template", minutes: int = 0, **overrides: Any) -> Template:
        values: Dict[str, Any] = {
            "name": name,
            "image_url": f"https://i.test/{uuid.uuid4().hex}.jpg",
            "width": 500,
            "height": 500,
            "category": "funny",
            "status": "active",
            "popularity": 0,
            "created_at": base + timedelta(minutes=minutes),
            "updated_at": base + timedelta(minutes=minutes),
        }
        values.update(overrides)
        template = Template(**values)
        db_session.add(template)
        await db_session.commit()
        return template

    return _make


@pytest.fixture
def make_meme(db_session):
    base = datetime(2024, 2, 1, tzinfo=timezone.utc)

    async def _make(template: Template, user_id: uuid.UUID, minutes: int = 0, **overrides: Any) -> Meme:
        values: Dict[str, Any] = {
            "user_id": user_id,
            "template_id": template.id,
            "image_url": template.image_url,
            "texts": [{"content": "top text"}],
            "created_at": base + timedelta(minutes=minutes),
        }
        values.update(overrides)
        meme = Meme(**values)
        db_session.add(meme)
        await db_session.commit()
        return meme

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def other_user_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers():
    def _headers(user: uuid.UUID) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user, 'test-secret')}"}

    return _headers


@pytest_asyncio.fixture
async def client(session_factory, catalog_service, template_service, meme_service, asset_host):
    """
    AsyncClient against the real app; storage and services point at the
    per-test database and fakes.
    """
    from memestudio.main import app

    async def _db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _db_session
    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    app.dependency_overrides[get_template_service] = lambda: template_service
    app.dependency_overrides[get_meme_service] = lambda: meme_service
    app.dependency_overrides[get_asset_host] = lambda: asset_host

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()
