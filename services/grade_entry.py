"""
services/grade_entry.py

Grade Processing Engine.

- submit_result      : validate + classify + upsert one result
- bulk_grade_entry   : many students, one assessment, one transaction, per-entry fault isolation
- csv_bulk_upload    : same as bulk, students resolved by admission number, errors keyed by CSV line
- update_result      : partial patch, re-validated and re-classified
- delete_result      : hard delete of one row

Business failures (GradingError) are isolated per row inside batches.
Store failures (SQLAlchemyError) roll the whole unit of work back and propagate.
"""

import csv
import io
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.assessments import AssessmentDefinition, AssessmentResult
from models.class_subjects import ClassSubject
from models.enums import CompetencyLevel
from models.students import Student
from schemas.assessment_results import (
    AssessmentResult as AssessmentResultSchema,
    AssessmentResultCreate,
    AssessmentResultUpdate,
    BulkEntryOutcome,
    CsvGradeRow,
    CsvRowError,
    CsvUploadOutcome,
    EntryError,
    GradeEntryInput,
    ResultFilters,
)
from services.exceptions import GradingError, NotFoundError, ValidationFailure
from services.grading import derive_grade_fields

logger = logging.getLogger(__name__)

# data row i (0-based) lives on CSV line i + 2 (header is line 1)
CSV_LINE_OFFSET = 2

# accepted header spellings, compared after lower-casing and dropping "_" / " "
ADMISSION_HEADERS = {"studentadmissionno", "admissionno", "admissionnumber"}
MARKS_HEADERS = {"marks", "score"}
COMMENT_HEADERS = {"comment", "comments", "remarks"}


def _utcnow():
    return datetime.now(timezone.utc)


def _fmt(value: float) -> str:
    return f"{value:g}"


def _parse_marks(raw: str) -> float:
    try:
        marks = float((raw or "").strip())
    except ValueError:
        raise ValidationFailure("Invalid marks format")
    # float() also accepts "nan" / "inf"
    if not math.isfinite(marks) or marks < 0:
        raise ValidationFailure("Invalid marks format")
    return marks


def parse_grade_csv(content: bytes) -> List[CsvGradeRow]:
    """
    Decode an uploaded marks sheet into CsvGradeRow objects.
    Header row required; columns: admission number, marks, optional comment.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationFailure("CSV file must be UTF-8 encoded")

    try:
        return _read_rows(csv.DictReader(io.StringIO(text)))
    except csv.Error as exc:
        raise ValidationFailure(f"Malformed CSV file: {exc}")


def _read_rows(reader: csv.DictReader) -> List[CsvGradeRow]:
    if not reader.fieldnames:
        raise ValidationFailure("CSV file is empty")

    columns = {}
    for name in reader.fieldnames:
        key = (name or "").strip().lower().replace("_", "").replace(" ", "")
        if key in ADMISSION_HEADERS:
            columns["admission_no"] = name
        elif key in MARKS_HEADERS:
            columns["marks"] = name
        elif key in COMMENT_HEADERS:
            columns["comment"] = name
    if "admission_no" not in columns or "marks" not in columns:
        raise ValidationFailure("CSV must have studentAdmissionNo and marks columns")

    rows = []
    for record in reader:
        comment = (record.get(columns.get("comment", ""), None) or "").strip()
        rows.append(CsvGradeRow(
            student_admission_no=(record.get(columns["admission_no"]) or "").strip(),
            marks=(record.get(columns["marks"]) or "").strip(),
            comment=comment or None,
        ))
    return rows


class GradeEntryService:
    def __init__(self, db: Session):
        self.db = db

    # ==========================================================
    # [lookups]
    # ==========================================================
    def _get_assessment(self, assessment_def_id: int, school_id: int) -> AssessmentDefinition:
        assessment = (
            self.db.query(AssessmentDefinition)
            .filter(
                AssessmentDefinition.id == assessment_def_id,
                AssessmentDefinition.school_id == school_id,
            )
            .first()
        )
        if assessment is None:
            raise NotFoundError("Assessment not found")
        return assessment

    def _get_student(self, student_id: int, school_id: int) -> Student:
        student = (
            self.db.query(Student)
            .filter(Student.id == student_id, Student.school_id == school_id)
            .first()
        )
        if student is None:
            raise NotFoundError("Student not found")
        return student

    @staticmethod
    def _check_batch_marks(marks: float, assessment: AssessmentDefinition):
        if assessment.max_marks and marks > assessment.max_marks:
            raise ValidationFailure(
                f"Marks ({_fmt(marks)}) exceed maximum ({_fmt(assessment.max_marks)})"
            )

    # ==========================================================
    # [upsert keyed by (student, assessment)]
    # ==========================================================
    def _find_result(self, student_id: int, assessment_def_id: int, lock: bool = False) -> Optional[AssessmentResult]:
        query = self.db.query(AssessmentResult).filter(
            AssessmentResult.student_id == student_id,
            AssessmentResult.assessment_def_id == assessment_def_id,
        )
        if lock:
            # locking read sees rows committed after this transaction's snapshot
            query = query.populate_existing().with_for_update()
        return query.first()

    @staticmethod
    def _apply(result: AssessmentResult, numeric_value, fields, comment, assessed_by_id):
        result.numeric_value = numeric_value
        result.grade = fields.grade
        result.competency_level = fields.competency_level
        result.comment = comment
        result.assessed_by_id = assessed_by_id
        result.updated_at = _utcnow()

    def _upsert(
        self,
        *,
        student_id: int,
        assessment: AssessmentDefinition,
        numeric_value: Optional[float],
        grade: Optional[str],
        level: Optional[CompetencyLevel],
        comment: Optional[str],
        assessed_by_id: int,
        school_id: int,
    ) -> Tuple[AssessmentResult, bool]:
        curriculum = assessment.class_subject.class_.curriculum
        fields = derive_grade_fields(numeric_value, assessment.max_marks, curriculum, grade, level)

        result = self._find_result(student_id, assessment.id)
        if result is None:
            result = AssessmentResult(
                student_id=student_id,
                assessment_def_id=assessment.id,
                school_id=school_id,
            )
            self._apply(result, numeric_value, fields, comment, assessed_by_id)
            try:
                # savepoint: a duplicate-key failure rolls back only this insert
                with self.db.begin_nested():
                    self.db.add(result)
                return result, True
            except IntegrityError:
                logger.info(
                    f"Concurrent insert for student={student_id} assessment={assessment.id}, overwriting"
                )
                result = self._find_result(student_id, assessment.id, lock=True)
                if result is None:
                    raise

        self._apply(result, numeric_value, fields, comment, assessed_by_id)
        self.db.flush()
        return result, False

    # ==========================================================
    # [single result]
    # ==========================================================
    def submit_result(self, data: AssessmentResultCreate, assessed_by_id: int, school_id: int) -> AssessmentResult:
        assessment = self._get_assessment(data.assessment_def_id, school_id)
        self._get_student(data.student_id, school_id)

        if data.numeric_value is None and data.grade is None and data.competency_level is None:
            raise ValidationFailure("At least one of numeric_value, grade, or competency_level must be provided")

        if data.numeric_value is not None and assessment.max_marks:
            if data.numeric_value > assessment.max_marks:
                raise ValidationFailure(
                    f"Marks ({_fmt(data.numeric_value)}) cannot exceed maximum marks ({_fmt(assessment.max_marks)})"
                )

        try:
            result, created = self._upsert(
                student_id=data.student_id,
                assessment=assessment,
                numeric_value=data.numeric_value,
                grade=data.grade,
                level=data.competency_level,
                comment=data.comment,
                assessed_by_id=assessed_by_id,
                school_id=school_id,
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Result upsert failed: student={data.student_id} assessment={data.assessment_def_id}")
            raise

        self.db.refresh(result)
        logger.info(
            f"Result {'created' if created else 'overwritten'}: id={result.id} "
            f"student={result.student_id} assessment={result.assessment_def_id}"
        )
        return result

    # ==========================================================
    # [bulk entry]
    # ==========================================================
    def bulk_grade_entry(self, data: GradeEntryInput, assessed_by_id: int, school_id: int) -> BulkEntryOutcome:
        assessment = self._get_assessment(data.assessment_def_id, school_id)

        wanted = {entry.student_id for entry in data.entries}
        known = {
            student_id
            for (student_id,) in self.db.query(Student.id)
            .filter(Student.id.in_(list(wanted)), Student.school_id == school_id)
            .all()
        }

        results: List[AssessmentResult] = []
        errors: List[EntryError] = []
        try:
            for entry in data.entries:
                try:
                    if entry.student_id not in known:
                        raise NotFoundError("Student not found")
                    self._check_batch_marks(entry.marks, assessment)
                    result, _ = self._upsert(
                        student_id=entry.student_id,
                        assessment=assessment,
                        numeric_value=entry.marks,
                        grade=None,
                        level=None,
                        comment=entry.comment,
                        assessed_by_id=assessed_by_id,
                        school_id=school_id,
                    )
                    results.append(result)
                except GradingError as exc:
                    logger.warning(f"Bulk entry skipped: student={entry.student_id} reason={exc.message}")
                    errors.append(EntryError(student_id=entry.student_id, error=exc.message))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Bulk grade entry aborted: assessment={assessment.id}")
            raise

        logger.info(f"Bulk grade entry: assessment={assessment.id} successful={len(results)} failed={len(errors)}")
        return BulkEntryOutcome(
            successful=len(results),
            failed=len(errors),
            results=[AssessmentResultSchema.model_validate(r) for r in results],
            errors=errors,
        )

    # ==========================================================
    # [CSV upload]
    # ==========================================================
    def csv_bulk_upload(
        self,
        rows: List[CsvGradeRow],
        assessment_def_id: int,
        assessed_by_id: int,
        school_id: int,
    ) -> CsvUploadOutcome:
        assessment = self._get_assessment(assessment_def_id, school_id)

        admission_nos = {row.student_admission_no.strip() for row in rows if row.student_admission_no.strip()}
        students = {
            s.admission_no: s
            for s in self.db.query(Student)
            .filter(Student.admission_no.in_(list(admission_nos)), Student.school_id == school_id)
            .all()
        }

        results: List[AssessmentResult] = []
        errors: List[CsvRowError] = []
        try:
            for index, row in enumerate(rows):
                line = index + CSV_LINE_OFFSET
                admission_no = row.student_admission_no.strip()
                try:
                    if not admission_no:
                        raise ValidationFailure("Admission number is required")
                    student = students.get(admission_no)
                    if student is None:
                        raise NotFoundError("Student not found")
                    marks = _parse_marks(row.marks)
                    self._check_batch_marks(marks, assessment)
                    result, _ = self._upsert(
                        student_id=student.id,
                        assessment=assessment,
                        numeric_value=marks,
                        grade=None,
                        level=None,
                        comment=row.comment,
                        assessed_by_id=assessed_by_id,
                        school_id=school_id,
                    )
                    results.append(result)
                except GradingError as exc:
                    logger.warning(f"CSV row {line} skipped: admission_no={admission_no!r} reason={exc.message}")
                    errors.append(CsvRowError(row=line, admission_no=admission_no, error=exc.message))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"CSV upload aborted: assessment={assessment.id}")
            raise

        logger.info(f"CSV upload: assessment={assessment.id} successful={len(results)} failed={len(errors)}")
        return CsvUploadOutcome(
            successful=len(results),
            failed=len(errors),
            results=[AssessmentResultSchema.model_validate(r) for r in results],
            errors=errors,
        )

    # ==========================================================
    # [listing]
    # ==========================================================
    def get_results(
        self, school_id: int, filters: ResultFilters, page: int = 1, size: int = 50
    ) -> Tuple[List[AssessmentResult], int]:
        query = self.db.query(AssessmentResult).filter(AssessmentResult.school_id == school_id)

        if filters.student_id is not None:
            query = query.filter(AssessmentResult.student_id == filters.student_id)
        if filters.assessment_def_id is not None:
            query = query.filter(AssessmentResult.assessment_def_id == filters.assessment_def_id)
        if filters.term_id is not None or filters.class_id is not None:
            query = query.join(
                AssessmentDefinition, AssessmentResult.assessment_def_id == AssessmentDefinition.id
            )
            if filters.term_id is not None:
                query = query.filter(AssessmentDefinition.term_id == filters.term_id)
            if filters.class_id is not None:
                query = query.join(
                    ClassSubject, AssessmentDefinition.class_subject_id == ClassSubject.id
                ).filter(ClassSubject.class_id == filters.class_id)

        total = query.count()
        records = (
            query.order_by(AssessmentResult.created_at.desc(), AssessmentResult.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return records, total

    # ==========================================================
    # [update / delete]
    # ==========================================================
    def _get_result(self, result_id: int, school_id: int) -> AssessmentResult:
        result = (
            self.db.query(AssessmentResult)
            .filter(AssessmentResult.id == result_id, AssessmentResult.school_id == school_id)
            .first()
        )
        if result is None:
            raise NotFoundError("Result not found")
        return result

    def update_result(self, result_id: int, data: AssessmentResultUpdate, school_id: int) -> AssessmentResult:
        result = self._get_result(result_id, school_id)
        assessment = result.assessment_def

        if data.numeric_value is not None and assessment.max_marks:
            if data.numeric_value > assessment.max_marks:
                raise ValidationFailure(f"Marks cannot exceed maximum ({_fmt(assessment.max_marks)})")

        numeric_value = data.numeric_value if data.numeric_value is not None else result.numeric_value
        fields = derive_grade_fields(
            numeric_value,
            assessment.max_marks,
            assessment.class_subject.class_.curriculum,
            data.grade,
            data.competency_level,
        )

        if data.numeric_value is not None:
            result.numeric_value = data.numeric_value
        if fields.grade is not None:
            result.grade = fields.grade
        if fields.competency_level is not None:
            result.competency_level = fields.competency_level
        if "comment" in data.model_fields_set:
            result.comment = data.comment
        result.updated_at = _utcnow()

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Result update failed: id={result_id}")
            raise
        self.db.refresh(result)
        logger.info(f"Result updated: id={result.id}")
        return result

    def delete_result(self, result_id: int, school_id: int) -> None:
        result = self._get_result(result_id, school_id)
        try:
            self.db.delete(result)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Result delete failed: id={result_id}")
            raise
        logger.info(f"Result deleted: id={result_id}")
