from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Float, String, DateTime, ForeignKey, Enum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from database.db import Base
from models.enums import AssessmentType, CompetencyLevel
from models.academic import Term
from models.class_subjects import ClassSubject
from models.students import Student


def _utcnow():
    return datetime.now(timezone.utc)


class AssessmentDefinition(Base):
    __tablename__ = "assessment_definitions"  # one graded event (CAT, exam ...)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(Enum(AssessmentType), nullable=False)
    max_marks = Column(Float)                                   # NULL -> unbounded
    term_id = Column(Integer, ForeignKey("terms.id"), nullable=False)
    class_subject_id = Column(Integer, ForeignKey("class_subjects.id"), nullable=False)
    school_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    term = relationship(Term)
    class_subject = relationship(ClassSubject)

    @property
    def subject_name(self):
        if self.class_subject is None or self.class_subject.subject is None:
            return None
        return self.class_subject.subject.name


class AssessmentResult(Base):
    __tablename__ = "assessment_results"
    __table_args__ = (
        # at most one result per (student, assessment)
        UniqueConstraint("student_id", "assessment_def_id", name="uq_results_student_assessment"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    assessment_def_id = Column(Integer, ForeignKey("assessment_definitions.id"), nullable=False, index=True)
    numeric_value = Column(Float)                               # raw marks
    grade = Column(String(5))                                   # 8-4-4 letter
    competency_level = Column(Enum(CompetencyLevel))            # CBC band
    comment = Column(String(500))
    assessed_by_id = Column(Integer, nullable=False)            # user who recorded it
    school_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    student = relationship(Student)
    assessment_def = relationship(AssessmentDefinition)
