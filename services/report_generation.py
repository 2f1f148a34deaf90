"""
services/report_generation.py

Report Aggregation Engine. Read-only: builds the student report card and the
class performance report straight from persisted results on every call.

Assessments without a declared max_marks count as `default_max_marks` in
percentage figures; with `default_max_marks=None` they are left out of them.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models.academic import Term
from models.assessments import AssessmentDefinition, AssessmentResult
from models.class_subjects import ClassSubject
from models.classes import Class
from models.enrollments import StudentClass
from models.enums import CompetencyLevel, Curriculum, EnrollmentStatus
from models.students import Student
from models.subjects import Subject
from schemas.reports import (
    AcademicYearInfo,
    AssessmentLine,
    ClassInfo,
    ClassPerformanceReport,
    OverallPerformance,
    OverallStatistics,
    StudentInfo,
    StudentReportCard,
    SubjectPerformance,
    SubjectStatistics,
    TermInfo,
    TopPerformer,
)
from services.exceptions import NotFoundError
from services.grading import classify, competency_level, letter_grade, percentage
from services.ranking import rank_of, sum_by_student

logger = logging.getLogger(__name__)


def grade_distribution(scores: List[float]) -> Dict[str, int]:
    counts = {letter: 0 for letter in ("A", "B", "C", "D", "E")}
    for score in scores:
        counts[letter_grade(score)] += 1
    return counts


def competency_distribution(scores: List[float]) -> Dict[CompetencyLevel, int]:
    counts = {level: 0 for level in CompetencyLevel}
    for score in scores:
        counts[competency_level(score)] += 1
    return counts


def _class_info(klass: Class) -> ClassInfo:
    return ClassInfo(id=klass.id, name=klass.name, level=klass.level, curriculum=klass.curriculum)


def _term_info(term: Term) -> TermInfo:
    return TermInfo(id=term.id, name=term.name, term_number=term.term_number)


class ReportGenerationService:
    def __init__(
        self,
        db: Session,
        default_max_marks: Optional[float] = 100.0,
        pass_mark: float = 50.0,
        top_limit: int = 10,
    ):
        self.db = db
        self.default_max_marks = default_max_marks
        self.pass_mark = pass_mark
        self.top_limit = top_limit

    def _max_marks(self, assessment: AssessmentDefinition) -> Optional[float]:
        return assessment.max_marks or self.default_max_marks

    # ==========================================================
    # [lookups]
    # ==========================================================
    def _get_term(self, term_id: int, school_id: int) -> Term:
        term = self.db.query(Term).filter(Term.id == term_id, Term.school_id == school_id).first()
        if term is None:
            raise NotFoundError("Term not found")
        return term

    def _active_enrollments(self, class_id: int, school_id: int) -> List[StudentClass]:
        return (
            self.db.query(StudentClass)
            .filter(
                StudentClass.class_id == class_id,
                StudentClass.school_id == school_id,
                StudentClass.status == EnrollmentStatus.ACTIVE,
            )
            .order_by(StudentClass.id)
            .all()
        )

    def _class_term_results(self, class_id: int, term_id: int, school_id: int):
        """Results joined to their assessment for one class/term, oldest first."""
        return (
            self.db.query(AssessmentResult, AssessmentDefinition)
            .join(AssessmentDefinition, AssessmentResult.assessment_def_id == AssessmentDefinition.id)
            .join(ClassSubject, AssessmentDefinition.class_subject_id == ClassSubject.id)
            .filter(
                AssessmentResult.school_id == school_id,
                AssessmentDefinition.term_id == term_id,
                ClassSubject.class_id == class_id,
            )
            .order_by(AssessmentResult.id)
        )

    # ==========================================================
    # [positions]
    # ==========================================================
    def _subject_position(self, student_id: int, subject_id: int, term_id: int, class_id: int, school_id: int) -> int:
        pairs = (
            self.db.query(AssessmentResult.student_id, AssessmentResult.numeric_value)
            .join(AssessmentDefinition, AssessmentResult.assessment_def_id == AssessmentDefinition.id)
            .join(ClassSubject, AssessmentDefinition.class_subject_id == ClassSubject.id)
            .filter(
                AssessmentResult.school_id == school_id,
                AssessmentDefinition.term_id == term_id,
                ClassSubject.class_id == class_id,
                ClassSubject.subject_id == subject_id,
            )
            .order_by(AssessmentResult.id)
            .all()
        )
        return rank_of(sum_by_student(pairs), student_id)

    def _overall_totals(self, enrolled_ids: List[int], term_id: int, class_id: int, school_id: int) -> Dict[int, float]:
        totals = {student_id: 0.0 for student_id in enrolled_ids}
        if not enrolled_ids:
            return totals
        pairs = [
            (result.student_id, result.numeric_value)
            for result, _ in self._class_term_results(class_id, term_id, school_id)
            .filter(AssessmentResult.student_id.in_(enrolled_ids))
            .all()
        ]
        totals.update(sum_by_student(pairs))
        return totals

    # ==========================================================
    # [student report card]
    # ==========================================================
    def generate_student_report_card(self, student_id: int, term_id: int, school_id: int) -> StudentReportCard:
        student = (
            self.db.query(Student)
            .filter(Student.id == student_id, Student.school_id == school_id)
            .first()
        )
        enrollment = None
        if student is not None:
            enrollment = (
                self.db.query(StudentClass)
                .filter(
                    StudentClass.student_id == student.id,
                    StudentClass.school_id == school_id,
                    StudentClass.status == EnrollmentStatus.ACTIVE,
                )
                .order_by(StudentClass.id)
                .first()
            )
        if student is None or enrollment is None:
            raise NotFoundError("Student not found or not enrolled")

        klass = enrollment.class_
        term = self._get_term(term_id, school_id)

        rows = (
            self.db.query(AssessmentResult, AssessmentDefinition, Subject)
            .join(AssessmentDefinition, AssessmentResult.assessment_def_id == AssessmentDefinition.id)
            .join(ClassSubject, AssessmentDefinition.class_subject_id == ClassSubject.id)
            .join(Subject, ClassSubject.subject_id == Subject.id)
            .filter(
                AssessmentResult.student_id == student.id,
                AssessmentResult.school_id == school_id,
                AssessmentDefinition.term_id == term.id,
                ClassSubject.class_id == klass.id,
            )
            .order_by(Subject.name, AssessmentDefinition.id)
            .all()
        )

        # group by subject
        by_subject: Dict[int, SubjectPerformance] = {}
        for result, assessment, subject in rows:
            max_marks = self._max_marks(assessment)
            if max_marks is None:
                continue
            marks = result.numeric_value or 0.0
            perf = by_subject.get(subject.id)
            if perf is None:
                perf = SubjectPerformance(subject_id=subject.id, subject_name=subject.name, subject_code=subject.code)
                by_subject[subject.id] = perf
            perf.assessments.append(AssessmentLine(
                assessment_id=assessment.id,
                assessment_name=assessment.name,
                type=assessment.type,
                marks=marks,
                max_marks=max_marks,
                percentage=percentage(marks, max_marks),
                grade=result.grade,
                competency_level=result.competency_level,
            ))
            perf.total_marks += marks
            perf.total_max_marks += max_marks

        subjects = list(by_subject.values())
        for perf in subjects:
            perf.average = percentage(perf.total_marks, perf.total_max_marks)
            perf.position = self._subject_position(student.id, perf.subject_id, term.id, klass.id, school_id)
            perf.grade, perf.competency_level = classify(perf.average, klass.curriculum)

        total_marks = sum(s.total_marks for s in subjects)
        total_max_marks = sum(s.total_max_marks for s in subjects)
        average_percentage = percentage(total_marks, total_max_marks)
        overall = classify(average_percentage, klass.curriculum)

        enrolled_ids = [e.student_id for e in self._active_enrollments(klass.id, school_id)]
        totals = self._overall_totals(enrolled_ids, term.id, klass.id, school_id)

        academic_year = term.academic_year
        report = StudentReportCard(
            student=StudentInfo(
                id=student.id,
                admission_no=student.admission_no,
                first_name=student.first_name,
                last_name=student.last_name,
                middle_name=student.middle_name,
            ),
            class_=_class_info(klass),
            term=_term_info(term),
            academic_year=AcademicYearInfo(id=academic_year.id, year=academic_year.year),
            subjects=subjects,
            overall_performance=OverallPerformance(
                total_marks=total_marks,
                total_max_marks=total_max_marks,
                average_percentage=average_percentage,
                overall_grade=overall.grade,
                overall_competency_level=overall.competency_level,
                overall_position=rank_of(totals, student.id),
                total_students=len(enrolled_ids),
            ),
            generated_at=datetime.now(timezone.utc),
        )
        logger.info(f"Report card generated: student={student.id} term={term.id} subjects={len(subjects)}")
        return report

    # ==========================================================
    # [class performance report]
    # ==========================================================
    def generate_class_performance_report(self, class_id: int, term_id: int, school_id: int) -> ClassPerformanceReport:
        klass = self.db.query(Class).filter(Class.id == class_id, Class.school_id == school_id).first()
        if klass is None:
            raise NotFoundError("Class not found")
        term = self._get_term(term_id, school_id)

        enrollments = self._active_enrollments(klass.id, school_id)
        total_students = len(enrollments)

        class_subjects = (
            self.db.query(ClassSubject)
            .filter(
                ClassSubject.class_id == klass.id,
                ClassSubject.term_id == term.id,
                ClassSubject.school_id == school_id,
            )
            .order_by(ClassSubject.id)
            .all()
        )

        subjects: List[SubjectStatistics] = []
        for cs in class_subjects:
            rows = (
                self.db.query(AssessmentResult, AssessmentDefinition)
                .join(AssessmentDefinition, AssessmentResult.assessment_def_id == AssessmentDefinition.id)
                .filter(
                    AssessmentDefinition.class_subject_id == cs.id,
                    AssessmentDefinition.term_id == term.id,
                    AssessmentResult.school_id == school_id,
                )
                .order_by(AssessmentResult.id)
                .all()
            )

            # every individual score counts once
            scores: List[float] = []
            assessed = set()
            for result, assessment in rows:
                max_marks = self._max_marks(assessment)
                if max_marks is None:
                    continue
                assessed.add(result.student_id)
                scores.append(percentage(result.numeric_value or 0.0, max_marks))
            if not scores:
                continue

            subjects.append(SubjectStatistics(
                subject_id=cs.subject.id,
                subject_name=cs.subject.name,
                total_students=total_students,
                students_assessed=len(assessed),
                average_score=sum(scores) / len(scores),
                highest_score=max(scores),
                lowest_score=min(scores),
                pass_rate=sum(1 for s in scores if s >= self.pass_mark) / len(scores) * 100,
                grade_distribution=grade_distribution(scores) if klass.curriculum == Curriculum.EIGHT_FOUR_FOUR else None,
                competency_distribution=competency_distribution(scores) if klass.curriculum == Curriculum.CBC else None,
            ))

        average_performance = sum(s.average_score for s in subjects) / len(subjects) if subjects else 0.0

        report = ClassPerformanceReport(
            class_=_class_info(klass),
            term=_term_info(term),
            subjects=subjects,
            overall_statistics=OverallStatistics(
                total_students=total_students,
                average_performance=average_performance,
                top_performers=self._top_performers(enrollments, term.id, klass.id, school_id),
            ),
        )
        logger.info(f"Class report generated: class={klass.id} term={term.id} subjects={len(subjects)}")
        return report

    def _top_performers(
        self, enrollments: List[StudentClass], term_id: int, class_id: int, school_id: int
    ) -> List[TopPerformer]:
        if not enrollments:
            return []
        enrolled_ids = [e.student_id for e in enrollments]
        marks = {student_id: 0.0 for student_id in enrolled_ids}
        max_totals = {student_id: 0.0 for student_id in enrolled_ids}
        for result, assessment in (
            self._class_term_results(class_id, term_id, school_id)
            .filter(AssessmentResult.student_id.in_(enrolled_ids))
            .all()
        ):
            max_marks = self._max_marks(assessment)
            if max_marks is None:
                continue
            marks[result.student_id] += result.numeric_value or 0.0
            max_totals[result.student_id] += max_marks

        performers = [
            TopPerformer(
                student_id=e.student.id,
                student_name=e.student.full_name,
                admission_no=e.student.admission_no,
                average_score=percentage(marks[e.student_id], max_totals[e.student_id]),
            )
            for e in enrollments
        ]
        # stable sort: equal averages keep enrollment order
        performers.sort(key=lambda p: p.average_score, reverse=True)
        return performers[: self.top_limit]
