from datetime import datetime
from typing import List, Optional
from pydantic import Field, model_validator

from lifelessons.models.base import CamelModel
from lifelessons.models.lesson import Creator


class LessonReportRequest(CamelModel):
    lesson_id: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    reporter_uid: Optional[str] = None
    reporter_email: Optional[str] = None

    @model_validator(mode="after")
    def _require_reporter(self):
        if not self.reporter_uid and not self.reporter_email:
            raise ValueError("reporterUid or reporterEmail required")
        return self


class ReportReason(CamelModel):
    reason: str
    reporter_uid: Optional[str] = None
    reporter_email: Optional[str] = None
    created_at: Optional[datetime] = None


class ReportedLessonSummary(CamelModel):
    id: str = Field(alias="_id")
    title: str
    creator: Creator
    created_at: Optional[datetime] = None


class ReportedLesson(CamelModel):
    lesson_id: str
    report_count: int
    reasons: List[ReportReason]
    lesson: Optional[ReportedLessonSummary] = None
