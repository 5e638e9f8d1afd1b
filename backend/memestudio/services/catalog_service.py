"""
MemeStudio Backend - Catalog Service (Template Listing)
========================================================

What:  Paginated, filtered, sorted listing of active templates.
Who:   GET /api/templates.

Listing Flow:
    ┌──────────┐  hit   ┌───────────────┐
    │  Cache   │───────▶│ slice snapshot│──▶ response
    │ (filter  │        └───────────────┘
    │  key)    │  miss  ┌──────────┐   ┌────────────┐   ┌────────────┐
    └──────────┘───────▶│  Seeder  │──▶│ page query │──▶│ COUNT(*)   │──▶ response
                        └──────────┘   └────────────┘   └────────────┘
                                              │
                                              ▼
                                     snapshot query → cache.refresh(key)

    Both branches return the same shape and call the same page_metadata(),
    so a request answered from the cache and one answered from the store
    are indistinguishable when the data has not changed.

Error Handling:
    SeedingError propagates unchanged (500 fetch_failed) so the request
    transaction rolls back and releases the seed claim. Store failures are
    wrapped in DatabaseError.
"""

import logging
import time
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memestudio.config import settings
from memestudio.exceptions import DatabaseError
from memestudio.models.template import Template
from memestudio.schemas.template import TemplateListResponse, TemplateSummary
from memestudio.services.cache import FreshnessCache, filter_signature
from memestudio.services.pagination import clamp_page_params, page_metadata, paginate
from memestudio.services.query_builder import (
    build_template_filters,
    resolve_sort,
    template_ordering,
)
from memestudio.services.seeder import CatalogSeeder, catalog_seeder

logger = logging.getLogger(__name__)

ACTIVE = "active"


class CatalogService:
    """
    Template listing with a freshness cache in front of the store.

    Args:
        cache:             snapshot cache keyed by filter signature
        seeder:            seeds an empty catalog on a cache miss
        default_page_size: limit used when the request gives none
        max_page_size:     upper bound for `limit`
    """

    def __init__(
        self,
        cache: FreshnessCache[TemplateSummary],
        seeder: CatalogSeeder,
        default_page_size: int = 20,
        max_page_size: int = 100,
    ):
        self.cache = cache
        self.seeder = seeder
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def list_templates(
        self,
        db: AsyncSession,
        page: Any = None,
        limit: Any = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> TemplateListResponse:
        """
        One page of active templates.

        Raw `page`/`limit` values are clamped, never rejected. Search and
        category filters and the sort option are part of the cache key.

        Raises:
            SeedingError: the catalog was empty and the external fetch failed
            DatabaseError: a store read failed
        """
        page_num, limit_num = clamp_page_params(
            page, limit,
            default_limit=self.default_page_size,
            max_limit=self.max_page_size,
        )
        signature = filter_signature(search, category, resolve_sort(sort))

        cached = self.cache.read(signature)
        if cached is not None:
            templates, pagination = paginate(cached, page_num, limit_num)
            logger.debug("Template listing served from cache: %s", signature)
            return TemplateListResponse(templates=templates, pagination=pagination)

        await self.seeder.seed_if_empty(db)

        started = time.perf_counter()
        clauses = [Template.status == ACTIVE, *build_template_filters(signature.search, signature.category)]
        ordering = template_ordering(signature.sort)

        try:
            page_rows = (
                await db.execute(
                    select(Template)
                    .execution_options(populate_existing=True)
                    .where(*clauses)
                    .order_by(*ordering)
                    .offset((page_num - 1) * limit_num)
                    .limit(limit_num)
                )
            ).scalars().all()
            total = await db.scalar(select(func.count(Template.id)).where(*clauses)) or 0
            snapshot_rows = (
                await db.execute(
                    select(Template)
                    .execution_options(populate_existing=True)
                    .where(*clauses)
                    .order_by(*ordering)
                )
            ).scalars().all()
        except Exception as e:
            logger.error("Failed to list templates: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch templates",
                context={"original_error": type(e).__name__},
            )

        self.cache.refresh(signature, [TemplateSummary.model_validate(row) for row in snapshot_rows])
        logger.info(
            "Listed templates page=%d limit=%d total=%d filters=%s in %.0fms",
            page_num, limit_num, total, signature, (time.perf_counter() - started) * 1000,
        )

        return TemplateListResponse(
            templates=[TemplateSummary.model_validate(row) for row in page_rows],
            pagination=page_metadata(total, page_num, limit_num),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
catalog_service = CatalogService(
    cache=FreshnessCache(ttl=settings.template_cache_ttl),
    seeder=catalog_seeder,
    default_page_size=settings.default_page_size,
    max_page_size=settings.max_page_size,
)
