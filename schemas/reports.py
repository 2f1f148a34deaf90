from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.enums import AssessmentType, CompetencyLevel, Curriculum


# ==========================================================
# [shared identity blocks]
# ==========================================================
class ClassInfo(BaseModel):
    id: int
    name: str
    level: str
    curriculum: Curriculum


class TermInfo(BaseModel):
    id: int
    name: str
    term_number: int


class AcademicYearInfo(BaseModel):
    id: int
    year: int


# ==========================================================
# [student report card]
# ==========================================================
class StudentInfo(BaseModel):
    id: int
    admission_no: str
    first_name: str
    last_name: str
    middle_name: Optional[str] = None


class AssessmentLine(BaseModel):
    assessment_id: int
    assessment_name: str
    type: AssessmentType
    marks: float
    max_marks: float
    percentage: float
    grade: Optional[str] = None
    competency_level: Optional[CompetencyLevel] = None


class SubjectPerformance(BaseModel):
    subject_id: int
    subject_name: str
    subject_code: str
    assessments: List[AssessmentLine] = []
    total_marks: float = 0.0
    total_max_marks: float = 0.0
    average: float = 0.0
    grade: Optional[str] = None
    competency_level: Optional[CompetencyLevel] = None
    position: Optional[int] = None


class OverallPerformance(BaseModel):
    total_marks: float
    total_max_marks: float
    average_percentage: float
    overall_grade: Optional[str] = None
    overall_competency_level: Optional[CompetencyLevel] = None
    overall_position: int
    total_students: int


class StudentReportCard(BaseModel):
    student: StudentInfo
    class_: ClassInfo = Field(..., serialization_alias="class")
    term: TermInfo
    academic_year: AcademicYearInfo
    subjects: List[SubjectPerformance]
    overall_performance: OverallPerformance
    generated_at: datetime


# ==========================================================
# [class performance report]
# ==========================================================
class SubjectStatistics(BaseModel):
    subject_id: int
    subject_name: str
    total_students: int
    students_assessed: int
    average_score: float
    highest_score: float
    lowest_score: float
    pass_rate: float
    grade_distribution: Optional[Dict[str, int]] = None
    competency_distribution: Optional[Dict[CompetencyLevel, int]] = None


class TopPerformer(BaseModel):
    student_id: int
    student_name: str
    admission_no: str
    average_score: float


class OverallStatistics(BaseModel):
    total_students: int
    average_performance: float
    top_performers: List[TopPerformer]


class ClassPerformanceReport(BaseModel):
    class_: ClassInfo = Field(..., serialization_alias="class")
    term: TermInfo
    subjects: List[SubjectStatistics]
    overall_statistics: OverallStatistics
