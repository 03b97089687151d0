"""
Admin moderation over users. Lesson moderation reuses the lesson service.
"""

from datetime import datetime, timezone
from typing import List
from sqlalchemy import select, update, delete, func

from lifelessons.core.database import StoreContext, users, lessons
from lifelessons.core.errors import NotFoundError
from lifelessons.core.logging import log_event
from lifelessons.models.user import AdminUser, User


def list_users(store: StoreContext) -> List[AdminUser]:
    """All users, newest first, each with the number of lessons they created."""
    counts = (
        select(lessons.c.creator_uid, func.count().label("lessons_created"))
        .group_by(lessons.c.creator_uid)
        .subquery()
    )
    stmt = (
        select(users, func.coalesce(counts.c.lessons_created, 0).label("lessons_created"))
        .select_from(users.outerjoin(counts, counts.c.creator_uid == users.c.uid))
        .order_by(users.c.created_at.desc(), users.c.uid)
    )
    with store.session() as session:
        rows = session.execute(stmt).fetchall()
    return [AdminUser.model_validate(dict(r._mapping)) for r in rows]


def set_role(store: StoreContext, uid: str, role: str, *, actor_uid: str) -> User:
    with store.session() as session:
        result = session.execute(
            update(users).where(users.c.uid == uid).values(role=role, updated_at=datetime.now(timezone.utc))
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")
        row = session.execute(select(users).where(users.c.uid == uid)).first()
    log_event("info", "admin.user.role_changed", uid=uid, extra={"role": role, "actor": actor_uid})
    return User.from_row(row)


def delete_user(store: StoreContext, uid: str, *, actor_uid: str) -> None:
    """Remove the user row. Lessons and payment records are kept."""
    with store.session() as session:
        result = session.execute(delete(users).where(users.c.uid == uid))
        if result.rowcount == 0:
            raise NotFoundError("User not found")
    log_event("info", "admin.user.deleted", uid=uid, extra={"actor": actor_uid})
