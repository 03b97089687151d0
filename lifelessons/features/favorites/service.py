"""
Favorites service.

Toggle is insert-first: the unique (uid, lesson_id) key tells us whether the
lesson was already saved, so two racing toggles cannot create duplicates.
"""

from datetime import datetime, timezone
from typing import List
from sqlalchemy import select, insert, delete
from sqlalchemy.exc import IntegrityError

from lifelessons.core.database import StoreContext, favorites, lessons
from lifelessons.models.favorite import Favorite
from lifelessons.models.lesson import Lesson


def toggle_favorite(store: StoreContext, uid: str, lesson_id: str) -> bool:
    """Returns True when the lesson is now saved, False when it was removed."""
    try:
        with store.session() as session:
            session.execute(
                insert(favorites).values(uid=uid, lesson_id=lesson_id, created_at=datetime.now(timezone.utc))
            )
        return True
    except IntegrityError:
        with store.session() as session:
            session.execute(delete(favorites).where(favorites.c.uid == uid, favorites.c.lesson_id == lesson_id))
        return False


def _favorites_stmt(uid: str):
    return (
        select(favorites)
        .where(favorites.c.uid == uid)
        .order_by(favorites.c.created_at.desc(), favorites.c.id.desc())
    )


def list_favorites(store: StoreContext, uid: str) -> List[Favorite]:
    with store.session() as session:
        rows = session.execute(_favorites_stmt(uid)).fetchall()
    return [Favorite.from_row(r) for r in rows]


def list_favorite_lessons(store: StoreContext, uid: str) -> List[Lesson]:
    """Favorited lessons in favorite order (newest save first); deleted lessons are skipped."""
    with store.session() as session:
        favs = session.execute(_favorites_stmt(uid)).fetchall()
        if not favs:
            return []
        ids = [f.lesson_id for f in favs]
        rows = session.execute(select(lessons).where(lessons.c.id.in_(ids))).fetchall()

    by_id = {row.id: row for row in rows}
    return [Lesson.from_row(by_id[f.lesson_id]) for f in favs if f.lesson_id in by_id]
