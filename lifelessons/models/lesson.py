"""
Lesson models.

Rows are flat (creator_* columns); the wire shape nests the creator the way the
web client reads it, and exposes the id as `_id`.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import Field, field_validator

from lifelessons.models.base import CamelModel

Visibility = Literal["public", "private"]
AccessLevel = Literal["free", "premium"]


class Creator(CamelModel):
    uid: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class LessonCreateRequest(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    creator: Creator
    category: Optional[str] = None
    tone: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="image")
    visibility: Visibility = "public"
    access_level: AccessLevel = "free"


class LessonUpdateRequest(CamelModel):
    """Partial update; only fields present in the body are written."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    tone: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="image")
    visibility: Optional[Visibility] = None
    access_level: Optional[AccessLevel] = None

    @field_validator("title", "description", "visibility", "access_level")
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may not be null")
        return value


class VisibilityUpdate(CamelModel):
    visibility: Visibility


class AccessUpdate(CamelModel):
    access_level: AccessLevel


class FeaturedUpdate(CamelModel):
    is_featured: bool


class ReviewedUpdate(CamelModel):
    is_reviewed: bool


class LikeRequest(CamelModel):
    uid: str = Field(min_length=1)


class LikeResponse(CamelModel):
    liked: bool
    likes_count: int


class Lesson(CamelModel):
    id: str = Field(alias="_id")
    title: str
    description: str
    category: Optional[str] = None
    tone: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="image")
    visibility: Visibility = "public"
    access_level: AccessLevel = "free"
    creator: Creator
    likes_count: int = 0
    comments_count: int = 0
    is_featured: bool = False
    is_reviewed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "Lesson":
        data = dict(row._mapping)
        data["creator"] = Creator(
            uid=data.pop("creator_uid"),
            name=data.pop("creator_name", None),
            email=data.pop("creator_email", None),
            photo_url=data.pop("creator_photo_url", None),
        )
        return cls.model_validate(data)


class LessonPage(CamelModel):
    lessons: List[Lesson]
    total: int
    current_page: int
    total_pages: int


class InsertedResponse(CamelModel):
    success: bool = True
    inserted_id: str
