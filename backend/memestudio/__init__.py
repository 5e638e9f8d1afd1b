"""
MemeStudio Backend - Application Package
=========================================

What:  Meme-creation API: template catalog, user memes, likes and favorites.
How:   Layered FastAPI application.

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← catalog, memes, seeding, caching
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    External collaborators (ImgFlip template source, Cloudinary asset host,
    the identity provider issuing JWTs) are reached only from the services
    layer, through narrow clients that tests replace with fakes.
"""

__version__ = "1.0.0"
