from datetime import datetime, timezone
from typing import List
from uuid import uuid4
from sqlalchemy import select, insert, update, delete, case

from lifelessons.core.database import StoreContext, comments, lessons
from lifelessons.core.errors import NotFoundError, PermissionError
from lifelessons.models.comment import Comment, CommentCreateRequest


def list_comments(store: StoreContext, lesson_id: str) -> List[Comment]:
    with store.session() as session:
        rows = session.execute(
            select(comments)
            .where(comments.c.lesson_id == lesson_id)
            .order_by(comments.c.created_at.desc(), comments.c.id.desc())
        ).fetchall()
    return [Comment.from_row(r) for r in rows]


def add_comment(store: StoreContext, request: CommentCreateRequest) -> str:
    """Insert the comment and bump the lesson's cached comments_count."""
    comment_id = uuid4().hex
    now = datetime.now(timezone.utc)
    with store.session() as session:
        session.execute(
            insert(comments).values(
                id=comment_id,
                lesson_id=request.lesson_id,
                uid=request.uid,
                name=request.name or "",
                photo_url=request.photo_url or "",
                text=request.text,
                created_at=now,
            )
        )
        session.execute(
            update(lessons)
            .where(lessons.c.id == request.lesson_id)
            .values(comments_count=lessons.c.comments_count + 1, updated_at=now)
        )
    return comment_id


def delete_comment(store: StoreContext, comment_id: str, uid: str) -> None:
    """Only the author may delete a comment."""
    with store.session() as session:
        row = session.execute(select(comments).where(comments.c.id == comment_id)).first()
        if row is None:
            raise NotFoundError("Not found")
        if row.uid != uid:
            raise PermissionError("Forbidden")

        session.execute(delete(comments).where(comments.c.id == comment_id))
        session.execute(
            update(lessons)
            .where(lessons.c.id == row.lesson_id)
            .values(
                comments_count=case((lessons.c.comments_count > 0, lessons.c.comments_count - 1), else_=0),
                updated_at=datetime.now(timezone.utc),
            )
        )
