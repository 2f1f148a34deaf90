from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import AssessmentType


# ==========================================================
# [input schemas]
# ==========================================================
class AssessmentDefinitionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AssessmentType
    max_marks: Optional[float] = Field(default=None, gt=0)     # must be positive when given
    term_id: int
    class_subject_id: int


# ✅ same definition for many class subjects, created in one transaction
class AssessmentBulkCreate(BaseModel):
    assessments: List[AssessmentDefinitionCreate] = Field(..., min_length=1)


class AssessmentDefinitionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[AssessmentType] = None
    max_marks: Optional[float] = Field(default=None, gt=0)


# ==========================================================
# [output schemas]
# ==========================================================
class AssessmentDefinition(BaseModel):
    id: int
    name: str
    type: AssessmentType
    max_marks: Optional[float] = None
    term_id: int
    class_subject_id: int
    subject_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AssessmentStats(BaseModel):
    total: int
    by_type: Dict[str, int]
    with_results: int
    without_results: int
