"""
MemeStudio Backend - Meme Schemas
==================================

What:  Request/response contracts for the /api/memes endpoints.
"""

import uuid
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class TextPosition(BaseModel):
    x: float = 0
    y: float = 0


class TextStyle(BaseModel):
    font_family: str = "Impact"
    font_size: int = Field(default=32, ge=1, le=512)
    fill_color: str = "#ffffff"
    stroke_color: str = "#000000"
    stroke_width: int = Field(default=2, ge=0, le=64)
    align: Literal["left", "center", "right"] = "center"


class MemeText(BaseModel):
    """One text overlay: content, position and font styling."""
    content: str = Field(max_length=500)
    position: TextPosition = Field(default_factory=TextPosition)
    style: TextStyle = Field(default_factory=TextStyle)


class MemeCreateRequest(BaseModel):
    """
    Body of POST /api/memes.

    `texts` accepts either full MemeText objects or bare strings, which
    become unpositioned overlays with the default style.
    """
    template_id: uuid.UUID = Field(description="Template to build the meme from")
    texts: List[MemeText] = Field(min_length=1, description="At least one text element")
    custom_image: Optional[str] = Field(
        default=None,
        description="Optional base64 data URI (data:image/...) replacing the template image",
    )

    @field_validator("texts", mode="before")
    @classmethod
    def coerce_plain_strings(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"content": item} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("custom_image")
    @classmethod
    def validate_custom_image(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.startswith("data:image/"):
            raise ValueError("Invalid image format. Must be base64 encoded image")
        return value


class MemeCreated(BaseModel):
    id: uuid.UUID
    image_url: str
    created_at: datetime


class MemeCreateResponse(BaseModel):
    success: bool = True
    meme: MemeCreated


class TemplateRef(BaseModel):
    id: uuid.UUID
    name: str
    category: str
    image_url: str
    width: int
    height: int

    model_config = {"from_attributes": True}


class MemeListItem(BaseModel):
    id: uuid.UUID
    image_url: str
    texts: List[MemeText] = Field(default_factory=list)
    likes_count: int
    created_at: datetime
    template: Optional[TemplateRef] = None

    model_config = {"from_attributes": True}


class MemePagination(BaseModel):
    current_page: int
    total_pages: int
    total_memes: int
    has_next_page: bool
    has_prev_page: bool


class MemeListResponse(BaseModel):
    success: bool = True
    memes: List[MemeListItem]
    pagination: MemePagination


class PopularMemesResponse(BaseModel):
    success: bool = True
    memes: List[MemeListItem]


class LikeRequest(BaseModel):
    """Explicit like/unlike; omitting `action` toggles membership."""
    action: Optional[Literal["like", "unlike"]] = None


class LikeResponse(BaseModel):
    success: bool = True
    action: Literal["liked", "unliked"]
    likes_count: int


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Meme deleted successfully"
