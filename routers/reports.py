from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.context import require_school
from services.report_generation import ReportGenerationService

router = APIRouter(prefix="/reports", tags=["reports"])


def get_report_service(db: Session = Depends(get_db)) -> ReportGenerationService:
    return ReportGenerationService(
        db,
        default_max_marks=settings.DEFAULT_MAX_MARKS,
        pass_mark=settings.PASS_MARK_PERCENT,
        top_limit=settings.TOP_PERFORMERS_LIMIT,
    )


# ==========================================================
# [reports] read-only, recomputed on every call
# ==========================================================

# ✅ [STUDENT] report card for one term
@router.get("/student/{student_id}/term/{term_id}")
def student_report_card(
    student_id: int,
    term_id: int,
    school_id: int = Depends(require_school),
    service: ReportGenerationService = Depends(get_report_service),
):
    report = service.generate_student_report_card(student_id, term_id, school_id)
    return {"success": True, "data": report.model_dump(mode="json", by_alias=True)}


# ✅ [CLASS] class performance for one term
@router.get("/class/{class_id}/term/{term_id}")
def class_performance_report(
    class_id: int,
    term_id: int,
    school_id: int = Depends(require_school),
    service: ReportGenerationService = Depends(get_report_service),
):
    report = service.generate_class_performance_report(class_id, term_id, school_id)
    return {"success": True, "data": report.model_dump(mode="json", by_alias=True)}
