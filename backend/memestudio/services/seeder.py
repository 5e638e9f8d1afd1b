"""
MemeStudio Backend - Template Catalog Seeder
=============================================

What:  Populates an empty template catalog from the public ImgFlip catalog.
Who:   CatalogService on a listing cache miss; the lifespan when
       SEED_ON_STARTUP is set.

Seed Flow:
    1. COUNT(templates) > 0           → nothing to do
    2. INSERT catalog_seeds('imgflip') → claim; IntegrityError means another
                                        transaction owns the seed → skip
    3. GET template_source_url (5s)   → failure raises SeedingError
    4. INSERT one Template per record, status='active', category='popular'

    The claim, the fetch and the inserts share the caller's transaction.
    When anything fails the caller rolls back, the marker disappears with
    it, and the next request retries. Once committed, the marker makes the
    seed a one-time event even if templates are later archived.

Record Mapping:
    id → template_id, name → name (≤100 chars), url → image_url,
    width/height → clamped into [100, 5000], box_count → box_count,
    one evenly stacked text area per box, random popularity in [0, 1000).
"""

import logging
import random
import time
from typing import List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from memestudio.config import settings
from memestudio.exceptions import SeedingError
from memestudio.models.template import (
    MAX_DIMENSION,
    MIN_DIMENSION,
    SEED_CATEGORY,
    CatalogSeed,
    Template,
    default_text_area,
)
from memestudio.schemas.template import ExternalTemplate, ExternalTemplatePayload

logger = logging.getLogger(__name__)

SEED_MARKER = "imgflip"
POPULARITY_CEILING = 1000


def _clamp_dimension(value: int) -> int:
    return min(max(value, MIN_DIMENSION), MAX_DIMENSION)


class CatalogSeeder:
    """
    Fetches and stores the external template catalog exactly once.

    Args:
        source_url: ImgFlip `get_memes` endpoint
        timeout:    fetch timeout in seconds
        transport:  optional httpx transport (tests use httpx.MockTransport)
        rng:        popularity source; tests pass a seeded Random
    """

    def __init__(
        self,
        source_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        self.source_url = source_url
        self.timeout = timeout
        self._transport = transport
        self._rng = rng or random.Random()

    async def fetch_external_templates(self) -> List[ExternalTemplate]:
        """
        GET the external catalog.

        Raises:
            SeedingError: timeout, transport error, non-2xx status, or a body
                that is not `{success: true, data: {memes: [...]}}`
                with at least one record.
        """
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.source_url)
                response.raise_for_status()
                payload = ExternalTemplatePayload.model_validate(response.json())
        except httpx.TimeoutException as e:
            logger.error("Template source timed out after %.1fs", self.timeout)
            raise SeedingError(context={"reason": "timeout"}) from e
        except httpx.HTTPStatusError as e:
            logger.error("Template source returned HTTP %d", e.response.status_code)
            raise SeedingError(context={"reason": "http_status", "status": e.response.status_code}) from e
        except httpx.HTTPError as e:
            logger.error("Template source unreachable: %s", e)
            raise SeedingError(context={"reason": type(e).__name__}) from e
        except (PydanticValidationError, ValueError) as e:
            logger.error("Template source returned an unusable payload: %s", e)
            raise SeedingError(context={"reason": "invalid_payload"}) from e

        if not payload.success:
            raise SeedingError(context={"reason": "source_reported_failure"})
        if not payload.data.memes:
            logger.error("Template source returned no templates")
            raise SeedingError(context={"reason": "empty_payload"})

        logger.info(
            "Fetched %d external templates in %.0fms",
            len(payload.data.memes), (time.perf_counter() - started) * 1000,
        )
        return payload.data.memes

    def to_template(self, record: ExternalTemplate) -> Template:
        width = _clamp_dimension(record.width)
        height = _clamp_dimension(record.height)
        box_count = max(record.box_count, 0)
        return Template(
            template_id=record.id,
            name=record.name.strip()[:100] or f"Template {record.id}",
            image_url=record.url,
            width=width,
            height=height,
            category=SEED_CATEGORY,
            tags=[],
            text_areas=[default_text_area(i, box_count, width, height) for i in range(box_count)],
            box_count=box_count,
            popularity=self._rng.randrange(POPULARITY_CEILING),
            status="active",
        )

    async def _claim(self, db: AsyncSession) -> bool:
        try:
            await db.execute(insert(CatalogSeed).values(name=SEED_MARKER, template_count=0))
        except IntegrityError:
            # Nothing else has happened in this transaction yet
            await db.rollback()
            return False
        return True

    async def seed_if_empty(self, db: AsyncSession) -> int:
        """
        Seed the catalog when it holds no templates.

        Returns:
            Number of templates inserted; 0 when the catalog was already
            populated or another transaction owns the seed.

        Raises:
            SeedingError: the external fetch failed. The caller must roll back.
        """
        existing = await db.scalar(select(func.count(Template.id)))
        if existing:
            return 0

        if not await self._claim(db):
            logger.info("Catalog seed already claimed; skipping")
            return 0

        records = await self.fetch_external_templates()
        templates = [self.to_template(record) for record in records]
        db.add_all(templates)
        await db.execute(
            update(CatalogSeed)
            .where(CatalogSeed.name == SEED_MARKER)
            .values(template_count=len(templates))
        )
        await db.flush()

        logger.info("Seeded %d templates from %s", len(templates), self.source_url)
        return len(templates)


# ── Singleton Instance ────────────────────────────────────────────────────
catalog_seeder = CatalogSeeder(
    source_url=settings.template_source_url,
    timeout=settings.seed_timeout,
)
