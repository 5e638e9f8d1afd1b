"""
MemeStudio Backend - Service Providers
=======================================

What:  FastAPI dependency providers returning the service singletons.
How:   Routes depend on these instead of importing singletons directly, so
       tests swap in services built around a fake asset host, a controllable
       clock or a mocked template source via `app.dependency_overrides`.
"""

from memestudio.services.asset_base import AssetHost
from memestudio.services.catalog_service import CatalogService, catalog_service
from memestudio.services.cloudinary_service import asset_host
from memestudio.services.meme_service import MemeService, meme_service
from memestudio.services.template_service import TemplateService, template_service


def get_catalog_service() -> CatalogService:
    return catalog_service


def get_template_service() -> TemplateService:
    return template_service


def get_meme_service() -> MemeService:
    return meme_service


def get_asset_host() -> AssetHost:
    return asset_host
