"""
MemeStudio Backend - Services Layer
====================================

Service Inventory:
    - FreshnessCache (cache.py):          TTL snapshots keyed by filter signature
    - pagination.py / query_builder.py:   page clamping, metadata, filter clauses
    - CatalogSeeder (seeder.py):          one-time ImgFlip import
    - CatalogService:                     cached template listing
    - TemplateService:                    detail, upload, status, favorites, counters
    - MemeService:                        memes and likes
    - AssetHost / CloudinaryAssetHost:    image hosting
    - UploadValidator:                    upload type and size checks

Each service takes its collaborators and settings at construction; the
module-level singletons wire them from memestudio.config.
"""
