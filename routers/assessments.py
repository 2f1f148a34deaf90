from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.context import require_school
from models.enums import AssessmentType
from schemas.assessments import (
    AssessmentBulkCreate,
    AssessmentDefinition as AssessmentSchema,
    AssessmentDefinitionCreate,
    AssessmentDefinitionUpdate,
)
from schemas.common import Pagination, make_meta
from services.assessment_service import AssessmentService

router = APIRouter(prefix="/assessments", tags=["assessments"])


def _data(assessment) -> dict:
    return AssessmentSchema.model_validate(assessment).model_dump(mode="json")


# ==========================================================
# [1] CRUD
# ==========================================================

# ✅ [CREATE]
@router.post("", status_code=201)
def create_assessment(
    payload: AssessmentDefinitionCreate,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    assessment = AssessmentService(db).create_assessment(payload, school_id)
    return {"success": True, "data": _data(assessment), "message": "Assessment created successfully"}


# ✅ [READ] filtered list
@router.get("")
def list_assessments(
    term_id: Optional[int] = None,
    class_subject_id: Optional[int] = None,
    type: Optional[AssessmentType] = None,
    p: Pagination = Depends(),
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    records, total = AssessmentService(db).list_assessments(
        school_id, term_id=term_id, class_subject_id=class_subject_id, type=type, page=p.page, size=p.size
    )
    return {
        "success": True,
        "data": [_data(r) for r in records],
        "meta": make_meta(total, p.page, p.size).model_dump(),
    }


# ==========================================================
# [2] static routes
# ==========================================================

# ✅ [BULK CREATE] all or nothing
@router.post("/bulk", status_code=201)
def bulk_create_assessments(
    payload: AssessmentBulkCreate,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    created = AssessmentService(db).bulk_create_assessments(payload.assessments, school_id)
    return {
        "success": True,
        "data": {"created": len(created), "assessments": [_data(a) for a in created]},
        "message": f"{len(created)} assessments created",
    }


# ✅ [READ] every assessment of a class in one term (by subject name)
@router.get("/class/{class_id}/term/{term_id}")
def class_assessments(
    class_id: int,
    term_id: int,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    records = AssessmentService(db).get_class_assessments(class_id, term_id, school_id)
    return {"success": True, "data": [_data(r) for r in records]}


# ✅ [READ] assessments of one class subject (newest first)
@router.get("/class-subject/{class_subject_id}")
def subject_assessments(
    class_subject_id: int,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    records = AssessmentService(db).get_subject_assessments(class_subject_id, school_id)
    return {"success": True, "data": [_data(r) for r in records]}


# ✅ [STATS] counts by type, with / without results
@router.get("/stats")
def assessment_stats(
    term_id: Optional[int] = None,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    stats = AssessmentService(db).get_stats(school_id, term_id=term_id)
    return {"success": True, "data": stats.model_dump()}


# ==========================================================
# [3] dynamic routes
# ==========================================================

# ✅ [READ] one assessment
@router.get("/{assessment_id}")
def read_assessment(
    assessment_id: int,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": _data(AssessmentService(db).get_assessment(assessment_id, school_id))}


# ✅ [UPDATE] partial
@router.put("/{assessment_id}")
def update_assessment(
    assessment_id: int,
    payload: AssessmentDefinitionUpdate,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    assessment = AssessmentService(db).update_assessment(assessment_id, payload, school_id)
    return {"success": True, "data": _data(assessment), "message": "Assessment updated successfully"}


# ✅ [DELETE] only when no results were recorded
@router.delete("/{assessment_id}")
def delete_assessment(
    assessment_id: int,
    school_id: int = Depends(require_school),
    db: Session = Depends(get_db),
):
    AssessmentService(db).delete_assessment(assessment_id, school_id)
    return {"success": True, "data": {"assessment_id": assessment_id}, "message": "Assessment deleted successfully"}
