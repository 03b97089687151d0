from fastapi import APIRouter, Depends

from lifelessons.api.deps import get_ready_store
from lifelessons.core.database import StoreContext
from lifelessons.features.reports import service as report_service
from lifelessons.models.report import LessonReportRequest

router = APIRouter(tags=["reports"])


@router.post("/lessonReports")
def submit_report(body: LessonReportRequest, store: StoreContext = Depends(get_ready_store)):
    report_service.submit_report(store, body)
    return {"success": True}
