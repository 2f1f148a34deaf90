from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.enums import AssessmentType, CompetencyLevel


# ==========================================================
# [input schemas]
# ==========================================================

# ✅ single result entry
class AssessmentResultCreate(BaseModel):
    student_id: int
    assessment_def_id: int
    numeric_value: Optional[float] = Field(default=None, ge=0)
    grade: Optional[str] = Field(default=None, max_length=5)
    competency_level: Optional[CompetencyLevel] = None
    comment: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _needs_a_value(self):
        if self.numeric_value is None and self.grade is None and self.competency_level is None:
            raise ValueError("At least one of numeric_value, grade, or competency_level must be provided")
        return self


# ✅ partial update: only supplied fields are patched
class AssessmentResultUpdate(BaseModel):
    numeric_value: Optional[float] = Field(default=None, ge=0)
    grade: Optional[str] = Field(default=None, max_length=5)
    competency_level: Optional[CompetencyLevel] = None
    comment: Optional[str] = Field(default=None, max_length=500)


class GradeEntryItem(BaseModel):
    student_id: int
    marks: float = Field(..., ge=0)
    comment: Optional[str] = Field(default=None, max_length=500)


# ✅ bulk entry for one assessment
class GradeEntryInput(BaseModel):
    assessment_def_id: int
    entries: List[GradeEntryItem] = Field(..., min_length=1)


# ✅ one parsed CSV data row (marks kept as the raw string)
class CsvGradeRow(BaseModel):
    student_admission_no: str
    marks: str
    comment: Optional[str] = None


class ResultFilters(BaseModel):
    student_id: Optional[int] = None
    assessment_def_id: Optional[int] = None
    class_id: Optional[int] = None
    term_id: Optional[int] = None


# ==========================================================
# [output schemas]
# ==========================================================
class StudentSummary(BaseModel):
    id: int
    admission_no: str
    first_name: str
    last_name: str

    model_config = ConfigDict(from_attributes=True)


class AssessmentSummary(BaseModel):
    id: int
    name: str
    type: AssessmentType
    max_marks: Optional[float] = None
    subject_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AssessmentResult(BaseModel):
    id: int
    student_id: int
    assessment_def_id: int
    numeric_value: Optional[float] = None
    grade: Optional[str] = None
    competency_level: Optional[CompetencyLevel] = None
    comment: Optional[str] = None
    assessed_by_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    student: Optional[StudentSummary] = None
    assessment_def: Optional[AssessmentSummary] = None

    model_config = ConfigDict(from_attributes=True)


class EntryError(BaseModel):
    student_id: int
    error: str


class CsvRowError(BaseModel):
    row: int                 # CSV line number (header is line 1)
    admission_no: str
    error: str


class BulkEntryOutcome(BaseModel):
    successful: int
    failed: int
    results: List[AssessmentResult]
    errors: List[EntryError]


class CsvUploadOutcome(BaseModel):
    successful: int
    failed: int
    results: List[AssessmentResult]
    errors: List[CsvRowError]
