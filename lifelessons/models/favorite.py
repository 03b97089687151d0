from datetime import datetime
from typing import Optional
from pydantic import Field

from lifelessons.models.base import CamelModel


class FavoriteToggleRequest(CamelModel):
    uid: str = Field(min_length=1)
    lesson_id: str = Field(min_length=1)


class FavoriteToggleResponse(CamelModel):
    saved: bool


class Favorite(CamelModel):
    uid: str
    lesson_id: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "Favorite":
        data = dict(row._mapping)
        data.pop("id", None)
        return cls.model_validate(data)
