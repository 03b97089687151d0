"""
User domain service.
- upsert_user(store, request)
- get_user(store, uid)
- get_plan(store, uid)
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from lifelessons.core.database import StoreContext, users
from lifelessons.models.user import PlanResponse, User, UserUpsertRequest


def get_user(store: StoreContext, uid: str) -> Optional[User]:
    with store.session() as session:
        row = session.execute(select(users).where(users.c.uid == uid)).first()
    return User.from_row(row) if row else None


def _update_profile(session, request: UserUpsertRequest, now: datetime) -> int:
    # Profile fields only: role, premium state and created_at are never touched here
    result = session.execute(
        update(users)
        .where(users.c.uid == request.uid)
        .values(
            email=request.email,
            name=request.name or "",
            photo_url=request.photo_url or "",
            updated_at=now,
        )
    )
    return result.rowcount


def upsert_user(store: StoreContext, request: UserUpsertRequest) -> User:
    """Create the user on first login, refresh the profile afterwards."""
    now = datetime.now(timezone.utc)
    with store.session() as session:
        if _update_profile(session, request, now):
            return User.from_row(session.execute(select(users).where(users.c.uid == request.uid)).first())

    try:
        with store.session() as session:
            session.execute(
                insert(users).values(
                    uid=request.uid,
                    email=request.email,
                    name=request.name or "",
                    photo_url=request.photo_url or "",
                    role="user",
                    is_premium=False,
                    created_at=now,
                    updated_at=now,
                )
            )
    except IntegrityError:
        # Concurrent first login inserted the row first
        with store.session() as session:
            _update_profile(session, request, now)

    return get_user(store, request.uid)


def get_plan(store: StoreContext, uid: str) -> PlanResponse:
    user = get_user(store, uid)
    if user is None:
        return PlanResponse(is_premium=False, role="user", user=None)
    return PlanResponse(is_premium=user.is_premium, role=user.role, user=user)
