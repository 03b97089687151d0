from datetime import datetime
from typing import Optional
from pydantic import Field

from lifelessons.models.base import CamelModel


class CommentCreateRequest(CamelModel):
    lesson_id: str = Field(min_length=1)
    uid: str = Field(min_length=1)
    text: str = Field(min_length=1)
    name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class Comment(CamelModel):
    id: str = Field(alias="_id")
    lesson_id: str
    uid: str
    name: str = ""
    photo_url: str = Field(default="", alias="photoURL")
    text: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "Comment":
        return cls.model_validate(dict(row._mapping))
