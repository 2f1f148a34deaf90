from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.context import RequestContext, require_context, require_school
from schemas.assessment_results import (
    AssessmentResult as AssessmentResultSchema,
    AssessmentResultCreate,
    AssessmentResultUpdate,
    GradeEntryInput,
    ResultFilters,
)
from schemas.common import Pagination, make_meta
from services.exceptions import ValidationFailure
from services.grade_entry import GradeEntryService, parse_grade_csv

router = APIRouter(prefix="/assessment-results", tags=["assessment results"])


def _result_data(result) -> dict:
    return AssessmentResultSchema.model_validate(result).model_dump(mode="json")


# ==========================================================
# [1] grade entry
# ==========================================================

# ✅ [CREATE] single result (create or overwrite)
@router.post("", status_code=201)
def submit_result(
    payload: AssessmentResultCreate,
    ctx: RequestContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    result = GradeEntryService(db).submit_result(payload, ctx.user_id, ctx.school_id)
    return {"success": True, "data": _result_data(result), "message": "Result saved successfully"}


# ✅ [BULK] many students, one assessment
@router.post("/bulk", status_code=201)
def bulk_grade_entry(
    payload: GradeEntryInput,
    ctx: RequestContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    outcome = GradeEntryService(db).bulk_grade_entry(payload, ctx.user_id, ctx.school_id)
    return {
        "success": True,
        "data": outcome.model_dump(mode="json"),
        "message": f"{outcome.successful} results saved, {outcome.failed} failed",
    }


# ✅ [UPLOAD] CSV marks sheet: studentAdmissionNo,marks,comment
@router.post("/upload/{assessment_def_id}", status_code=201)
def csv_bulk_upload(
    assessment_def_id: int,
    file: UploadFile = File(...),
    ctx: RequestContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    limit = settings.MAX_UPLOAD_MB * 1024 * 1024
    # read one byte past the limit instead of the whole upload
    content = file.file.read(limit + 1)
    if len(content) > limit:
        raise ValidationFailure("CSV file too large")
    rows = parse_grade_csv(content)
    if not rows:
        raise ValidationFailure("CSV file is empty")

    outcome = GradeEntryService(db).csv_bulk_upload(rows, assessment_def_id, ctx.user_id, ctx.school_id)
    return {
        "success": True,
        "data": outcome.model_dump(mode="json"),
        "message": f"{outcome.successful} rows imported, {outcome.failed} failed",
    }


# ==========================================================
# [2] listing
# ==========================================================

# ✅ [READ] filtered, paginated results (newest first)
@router.get("")
def list_results(
    student_id: Optional[int] = None,
    assessment_def_id: Optional[int] = None,
    class_id: Optional[int] = None,
    term_id: Optional[int] = None,
    p: Pagination = Depends(),
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    size = min(p.size, settings.RESULTS_PAGE_SIZE_MAX)
    filters = ResultFilters(
        student_id=student_id,
        assessment_def_id=assessment_def_id,
        class_id=class_id,
        term_id=term_id,
    )
    records, total = GradeEntryService(db).get_results(school_id, filters, page=p.page, size=size)
    return {
        "success": True,
        "data": [_result_data(r) for r in records],
        "meta": make_meta(total, p.page, size).model_dump(),
    }


# ==========================================================
# [3] dynamic routes
# ==========================================================

# ✅ [UPDATE] partial update
@router.put("/{result_id}")
def update_result(
    result_id: int,
    payload: AssessmentResultUpdate,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    result = GradeEntryService(db).update_result(result_id, payload, school_id)
    return {"success": True, "data": _result_data(result), "message": "Result updated successfully"}


# ✅ [DELETE]
@router.delete("/{result_id}")
def delete_result(
    result_id: int,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    GradeEntryService(db).delete_result(result_id, school_id)
    return {"success": True, "data": {"result_id": result_id}, "message": "Result deleted successfully"}
