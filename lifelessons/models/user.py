from datetime import datetime
from typing import Literal, Optional
from pydantic import Field

from lifelessons.models.base import CamelModel

Role = Literal["user", "admin"]


class UserUpsertRequest(CamelModel):
    uid: str = Field(min_length=1)
    email: str = Field(min_length=1)
    name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class User(CamelModel):
    uid: str
    email: str
    name: str = ""
    photo_url: str = Field(default="", alias="photoURL")
    role: Role = "user"
    is_premium: bool = False
    premium_since: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "User":
        return cls.model_validate(dict(row._mapping))


class AdminUser(User):
    lessons_created: int = 0


class PlanResponse(CamelModel):
    """Premium flag + role; `user` is null for a uid that never upserted."""

    is_premium: bool = False
    role: Role = "user"
    user: Optional[User] = None


class RoleUpdateRequest(CamelModel):
    uid: str = Field(min_length=1)
    role: Role
