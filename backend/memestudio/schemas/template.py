"""
MemeStudio Backend - Template Schemas
======================================

What:  API contracts for the template catalog endpoints.
How:   Summaries are built from ORM rows with `from_attributes`; listing
       snapshots held by the freshness cache are lists of these summaries,
       so cached and store-bound responses serialize identically.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TextArea(BaseModel):
    """Overlay region on a template image."""
    x: float
    y: float
    width: float
    height: float
    default_text: str = ""
    color: str = "#000000"
    font_size: int = 24
    font_family: str = "Impact"
    text_align: Literal["left", "center", "right"] = "center"
    stroke_color: str = "#ffffff"
    stroke_width: int = 2


class TemplateSummary(BaseModel):
    """Compact template representation for list and grid views."""
    id: uuid.UUID
    template_id: Optional[str] = None
    name: str
    image_url: str
    thumbnail_url: Optional[str] = None
    width: int
    height: int
    category: str
    tags: List[str] = Field(default_factory=list)
    box_count: int = 0
    popularity: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class TemplateDetail(TemplateSummary):
    """Full template representation returned by GET /api/templates/{id}."""
    user_id: Optional[uuid.UUID] = None
    text_areas: List[TextArea] = Field(default_factory=list)
    status: str
    views: int = 0
    usage_count: int = 0
    updated_at: datetime


class PageRef(BaseModel):
    page: int
    limit: int


class PaginationMeta(BaseModel):
    """
    Page metadata shared by the cached and the store-bound listing paths.

    total_pages = ceil(total_templates / limit); 0 for an empty result.
    """
    current_page: int
    total_pages: int
    total_templates: int
    limit: int
    has_next: bool
    has_previous: bool
    next: Optional[PageRef] = None
    previous: Optional[PageRef] = None


class TemplateListResponse(BaseModel):
    success: bool = True
    templates: List[TemplateSummary]
    pagination: PaginationMeta


class TemplatePreviewResponse(BaseModel):
    success: bool = True
    templates: List[TemplateSummary]


class TemplateDetailResponse(BaseModel):
    success: bool = True
    template: TemplateDetail


class TemplateStatusUpdate(BaseModel):
    status: Literal["pending", "active", "rejected", "archived"]


class FavoriteToggleResponse(BaseModel):
    success: bool = True
    action: Literal["added", "removed"]
    popularity: int
    favorite_templates: List[uuid.UUID]


# ══════════════════════════════════════════════════════════════════════════
# External Template Source (ImgFlip get_memes payload)
# ══════════════════════════════════════════════════════════════════════════


class ExternalTemplate(BaseModel):
    """One record of the ImgFlip `data.memes` array."""
    id: str
    name: str
    url: str
    width: int
    height: int
    box_count: int = 0


class ExternalTemplateData(BaseModel):
    memes: List[ExternalTemplate]


class ExternalTemplatePayload(BaseModel):
    success: bool = True
    data: ExternalTemplateData
