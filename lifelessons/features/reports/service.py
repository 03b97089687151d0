"""
Lesson reports: submission plus the moderation view grouped per lesson.
"""

from collections import OrderedDict
from datetime import datetime, timezone
from typing import List
from sqlalchemy import select, insert, delete

from lifelessons.core.database import StoreContext, lesson_reports, lessons
from lifelessons.models.lesson import Creator
from lifelessons.models.report import (
    LessonReportRequest,
    ReportedLesson,
    ReportedLessonSummary,
    ReportReason,
)


def submit_report(store: StoreContext, request: LessonReportRequest) -> None:
    with store.session() as session:
        session.execute(
            insert(lesson_reports).values(
                lesson_id=request.lesson_id,
                reporter_uid=request.reporter_uid or None,
                reporter_email=request.reporter_email or None,
                reason=request.reason,
                created_at=datetime.now(timezone.utc),
            )
        )


def reported_lessons(store: StoreContext) -> List[ReportedLesson]:
    """Reports grouped by lesson, most reported first, with a lesson summary (null if deleted)."""
    with store.session() as session:
        reports = session.execute(
            select(lesson_reports).order_by(lesson_reports.c.created_at, lesson_reports.c.id)
        ).fetchall()
        grouped: "OrderedDict[str, List[ReportReason]]" = OrderedDict()
        for r in reports:
            grouped.setdefault(r.lesson_id, []).append(
                ReportReason(
                    reason=r.reason,
                    reporter_uid=r.reporter_uid,
                    reporter_email=r.reporter_email,
                    created_at=r.created_at,
                )
            )
        if not grouped:
            return []

        rows = session.execute(
            select(
                lessons.c.id,
                lessons.c.title,
                lessons.c.created_at,
                lessons.c.creator_uid,
                lessons.c.creator_name,
                lessons.c.creator_email,
                lessons.c.creator_photo_url,
            ).where(lessons.c.id.in_(list(grouped)))
        ).fetchall()

    summaries = {
        row.id: ReportedLessonSummary(
            id=row.id,
            title=row.title,
            created_at=row.created_at,
            creator=Creator(
                uid=row.creator_uid,
                name=row.creator_name,
                email=row.creator_email,
                photo_url=row.creator_photo_url,
            ),
        )
        for row in rows
    }

    merged = [
        ReportedLesson(
            lesson_id=lesson_id,
            report_count=len(reasons),
            reasons=reasons,
            lesson=summaries.get(lesson_id),
        )
        for lesson_id, reasons in grouped.items()
    ]
    # sorted() is stable: ties keep first-reported order
    return sorted(merged, key=lambda item: item.report_count, reverse=True)


def dismiss_reports(store: StoreContext, lesson_id: str) -> int:
    with store.session() as session:
        return session.execute(delete(lesson_reports).where(lesson_reports.c.lesson_id == lesson_id)).rowcount
