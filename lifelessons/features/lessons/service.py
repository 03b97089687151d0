"""
Lesson service: creation, listing, moderation flags, likes.

Likes live in lesson_likes (one row per lesson+uid); lessons.likes_count is a
denormalized counter written in the same transaction as the like row.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4
from sqlalchemy import select, insert, update, delete, func, or_, case, and_
from sqlalchemy.exc import IntegrityError

from lifelessons.core.database import (
    StoreContext,
    lessons,
    lesson_likes,
    favorites,
    comments,
    lesson_reports,
)
from lifelessons.core.errors import NotFoundError
from lifelessons.models.lesson import (
    Lesson,
    LessonCreateRequest,
    LessonPage,
    LessonUpdateRequest,
    LikeResponse,
)

DEFAULT_PAGE_SIZE = 9
MAX_PAGE_SIZE = 50
FEATURED_LIMIT = 12
SIMILAR_LIMIT = 6


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(stmt):
    return stmt.order_by(lessons.c.created_at.desc(), lessons.c.id.desc())


def search_clause(search: str):
    """Case-insensitive substring match on title or description."""
    return or_(
        lessons.c.title.icontains(search, autoescape=True),
        lessons.c.description.icontains(search, autoescape=True),
    )


def _lesson_or_404(session, lesson_id: str):
    row = session.execute(select(lessons).where(lessons.c.id == lesson_id)).first()
    if row is None:
        raise NotFoundError("Lesson not found")
    return row


def create_lesson(store: StoreContext, request: LessonCreateRequest) -> str:
    lesson_id = uuid4().hex
    now = _now()
    with store.session() as session:
        session.execute(
            insert(lessons).values(
                id=lesson_id,
                title=request.title,
                description=request.description,
                category=request.category,
                tone=request.tone,
                image_url=request.image_url,
                visibility=request.visibility,
                access_level=request.access_level,
                creator_uid=request.creator.uid,
                creator_name=request.creator.name,
                creator_email=request.creator.email,
                creator_photo_url=request.creator.photo_url,
                likes_count=0,
                comments_count=0,
                is_featured=False,
                is_reviewed=False,
                created_at=now,
                updated_at=now,
            )
        )
    return lesson_id


def get_lesson(store: StoreContext, lesson_id: str) -> Lesson:
    with store.session() as session:
        return Lesson.from_row(_lesson_or_404(session, lesson_id))


def list_my(store: StoreContext, uid: str) -> List[Lesson]:
    with store.session() as session:
        rows = session.execute(_newest_first(select(lessons).where(lessons.c.creator_uid == uid))).fetchall()
    return [Lesson.from_row(r) for r in rows]


def list_public(
    store: StoreContext,
    *,
    search: str = "",
    category: str = "",
    tone: str = "",
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> LessonPage:
    page = max(1, page)
    limit = max(1, min(MAX_PAGE_SIZE, limit))

    conditions = [lessons.c.visibility == "public"]
    if category:
        conditions.append(lessons.c.category == category)
    if tone:
        conditions.append(lessons.c.tone == tone)
    if search:
        conditions.append(search_clause(search))
    where = and_(*conditions)

    with store.session() as session:
        total = session.execute(select(func.count()).select_from(lessons).where(where)).scalar() or 0
        rows = session.execute(
            _newest_first(select(lessons).where(where)).offset((page - 1) * limit).limit(limit)
        ).fetchall()

    return LessonPage(
        lessons=[Lesson.from_row(r) for r in rows],
        total=total,
        current_page=page,
        total_pages=max(1, -(-total // limit)),
    )


def list_featured(store: StoreContext, limit: int = FEATURED_LIMIT) -> List[Lesson]:
    with store.session() as session:
        rows = session.execute(
            _newest_first(
                select(lessons).where(lessons.c.is_featured.is_(True), lessons.c.visibility == "public")
            ).limit(limit)
        ).fetchall()
    return [Lesson.from_row(r) for r in rows]


def update_lesson(store: StoreContext, lesson_id: str, request: LessonUpdateRequest) -> Lesson:
    changes = request.model_dump(exclude_unset=True)
    return _set_fields(store, lesson_id, changes)


def _set_fields(store: StoreContext, lesson_id: str, changes: Dict[str, Any]) -> Lesson:
    with store.session() as session:
        _lesson_or_404(session, lesson_id)
        session.execute(
            update(lessons).where(lessons.c.id == lesson_id).values(**changes, updated_at=_now())
        )
        return Lesson.from_row(_lesson_or_404(session, lesson_id))


def set_visibility(store: StoreContext, lesson_id: str, visibility: str) -> Lesson:
    return _set_fields(store, lesson_id, {"visibility": visibility})


def set_access_level(store: StoreContext, lesson_id: str, access_level: str) -> Lesson:
    return _set_fields(store, lesson_id, {"access_level": access_level})


def set_featured(store: StoreContext, lesson_id: str, is_featured: bool) -> Lesson:
    return _set_fields(store, lesson_id, {"is_featured": bool(is_featured)})


def set_reviewed(store: StoreContext, lesson_id: str, is_reviewed: bool) -> Lesson:
    return _set_fields(store, lesson_id, {"is_reviewed": bool(is_reviewed)})


def delete_lesson(store: StoreContext, lesson_id: str) -> None:
    """Delete a lesson and everything hanging off it."""
    with store.session() as session:
        _lesson_or_404(session, lesson_id)
        session.execute(delete(lesson_likes).where(lesson_likes.c.lesson_id == lesson_id))
        session.execute(delete(favorites).where(favorites.c.lesson_id == lesson_id))
        session.execute(delete(comments).where(comments.c.lesson_id == lesson_id))
        session.execute(delete(lesson_reports).where(lesson_reports.c.lesson_id == lesson_id))
        session.execute(delete(lessons).where(lessons.c.id == lesson_id))


def toggle_like(store: StoreContext, lesson_id: str, uid: str) -> LikeResponse:
    """Like if not yet liked, otherwise unlike; the unique (lesson_id, uid) key decides."""
    with store.session() as session:
        _lesson_or_404(session, lesson_id)

    try:
        with store.session() as session:
            session.execute(insert(lesson_likes).values(lesson_id=lesson_id, uid=uid, created_at=_now()))
            session.execute(
                update(lessons)
                .where(lessons.c.id == lesson_id)
                .values(likes_count=lessons.c.likes_count + 1, updated_at=_now())
            )
        liked = True
    except IntegrityError:
        with store.session() as session:
            removed = session.execute(
                delete(lesson_likes).where(lesson_likes.c.lesson_id == lesson_id, lesson_likes.c.uid == uid)
            ).rowcount
            if removed:
                session.execute(
                    update(lessons)
                    .where(lessons.c.id == lesson_id)
                    .values(
                        likes_count=case((lessons.c.likes_count > 0, lessons.c.likes_count - 1), else_=0),
                        updated_at=_now(),
                    )
                )
        liked = False

    with store.session() as session:
        count = session.execute(select(lessons.c.likes_count).where(lessons.c.id == lesson_id)).scalar()
    return LikeResponse(liked=liked, likes_count=count or 0)


def favorites_count(store: StoreContext, lesson_id: str) -> int:
    with store.session() as session:
        return session.execute(
            select(func.count()).select_from(favorites).where(favorites.c.lesson_id == lesson_id)
        ).scalar() or 0


def similar_lessons(store: StoreContext, lesson_id: str, limit: int = SIMILAR_LIMIT) -> List[Lesson]:
    """Other public lessons sharing the category or the tone; [] for an unknown lesson."""
    with store.session() as session:
        current = session.execute(select(lessons).where(lessons.c.id == lesson_id)).first()
        if current is None:
            return []

        shared = []
        if current.category:
            shared.append(lessons.c.category == current.category)
        if current.tone:
            shared.append(lessons.c.tone == current.tone)
        if not shared:
            return []

        rows = session.execute(
            _newest_first(
                select(lessons).where(
                    lessons.c.id != lesson_id,
                    lessons.c.visibility == "public",
                    or_(*shared),
                )
            ).limit(limit)
        ).fetchall()
    return [Lesson.from_row(r) for r in rows]


def list_for_admin(
    store: StoreContext,
    *,
    search: str = "",
    visibility: str = "",
    access_level: str = "",
    featured: Optional[bool] = None,
) -> List[Lesson]:
    stmt = select(lessons)
    if visibility:
        stmt = stmt.where(lessons.c.visibility == visibility)
    if access_level:
        stmt = stmt.where(lessons.c.access_level == access_level)
    if featured is not None:
        stmt = stmt.where(lessons.c.is_featured.is_(featured))
    if search:
        stmt = stmt.where(search_clause(search))
    with store.session() as session:
        rows = session.execute(_newest_first(stmt)).fetchall()
    return [Lesson.from_row(r) for r in rows]
