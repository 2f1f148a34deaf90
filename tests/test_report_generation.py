import pytest

from models.assessments import AssessmentResult
from models.enums import CompetencyLevel
from services.exceptions import NotFoundError
from services.report_generation import ReportGenerationService, competency_distribution, grade_distribution

SCHOOL_A = 1
SCHOOL_B = 2
TEACHER_ID = 99


def _record(db, student, assessment, marks):
    db.add(AssessmentResult(
        student_id=student.id,
        assessment_def_id=assessment.id,
        numeric_value=marks,
        assessed_by_id=TEACHER_ID,
        school_id=student.school_id,
    ))
    db.commit()


@pytest.fixture()
def cbc_marks(db, school):
    """Grade 6 Mathematics: 40+45, 45+45, 20+20 out of 50+50"""
    s1, s2, s3 = school.g6_students
    for student, first, second in ((s1, 40, 45), (s2, 45, 45), (s3, 20, 20)):
        _record(db, student, school.g6_cat1, first)
        _record(db, student, school.g6_cat2, second)
    return school


@pytest.fixture()
def form2_marks(db, school):
    """Form 2: Mathematics midterm for everyone, English exam for the first student only"""
    for student, marks in zip(school.f2_students, (85, 72, 65, 55, 30)):
        _record(db, student, school.midterm, marks)
    _record(db, school.f2_students[0], school.english_exam, 90)
    return school


# ==========================================================
# [student report card]
# ==========================================================
def test_cbc_report_card(db, cbc_marks):
    service = ReportGenerationService(db)
    report = service.generate_student_report_card(cbc_marks.g6_students[0].id, cbc_marks.term1.id, SCHOOL_A)

    assert len(report.subjects) == 1
    maths = report.subjects[0]
    assert maths.subject_name == "Mathematics"
    assert [a.marks for a in maths.assessments] == [40, 45]
    assert maths.total_marks == 85
    assert maths.total_max_marks == 100
    assert maths.average == pytest.approx(85)
    assert maths.competency_level == CompetencyLevel.EXCEEDING_EXPECTATIONS
    assert maths.grade is None
    assert maths.position == 2

    overall = report.overall_performance
    assert overall.average_percentage == pytest.approx(85)
    assert overall.overall_competency_level == CompetencyLevel.EXCEEDING_EXPECTATIONS
    assert overall.overall_grade is None
    assert overall.overall_position == 2
    assert overall.total_students == 3

    assert report.class_.name == "Grade 6"
    assert report.academic_year.year == 2025


def test_report_card_serializes_class_key(db, cbc_marks):
    service = ReportGenerationService(db)
    report = service.generate_student_report_card(cbc_marks.g6_students[0].id, cbc_marks.term1.id, SCHOOL_A)
    payload = report.model_dump(mode="json", by_alias=True)
    assert payload["class"]["curriculum"] == "CBC"
    assert "class_" not in payload


def test_report_card_is_read_only_and_repeatable(db, cbc_marks):
    service = ReportGenerationService(db)
    before = db.query(AssessmentResult).count()

    first = service.generate_student_report_card(cbc_marks.g6_students[2].id, cbc_marks.term1.id, SCHOOL_A)
    second = service.generate_student_report_card(cbc_marks.g6_students[2].id, cbc_marks.term1.id, SCHOOL_A)

    assert first.model_dump(exclude={"generated_at"}) == second.model_dump(exclude={"generated_at"})
    assert db.query(AssessmentResult).count() == before
    assert first.overall_performance.overall_position == 3
    assert first.subjects[0].competency_level == CompetencyLevel.APPROACHING_EXPECTATIONS


def test_tied_totals_share_position(db, school):
    s1, s2, s3 = school.g6_students
    _record(db, s1, school.g6_cat1, 30)
    _record(db, s2, school.g6_cat1, 30)
    _record(db, s3, school.g6_cat1, 10)

    service = ReportGenerationService(db)
    positions = [
        service.generate_student_report_card(s.id, school.term1.id, SCHOOL_A).overall_performance.overall_position
        for s in (s1, s2, s3)
    ]
    assert positions == [1, 1, 3]


def test_report_card_without_results(db, school):
    service = ReportGenerationService(db)
    report = service.generate_student_report_card(school.f2_students[0].id, school.term1.id, SCHOOL_A)

    assert report.subjects == []
    assert report.overall_performance.average_percentage == 0
    assert report.overall_performance.overall_grade == "E"
    assert report.overall_performance.overall_position == 1
    assert report.overall_performance.total_students == 5


def test_report_card_only_counts_selected_term(db, cbc_marks):
    service = ReportGenerationService(db)
    report = service.generate_student_report_card(cbc_marks.g6_students[0].id, cbc_marks.term2.id, SCHOOL_A)
    assert report.subjects == []


def test_report_card_lookups(db, school):
    service = ReportGenerationService(db)

    with pytest.raises(NotFoundError) as exc:
        service.generate_student_report_card(school.transferred.id, school.term1.id, SCHOOL_A)
    assert exc.value.message == "Student not found or not enrolled"

    with pytest.raises(NotFoundError):
        service.generate_student_report_card(school.b_student.id, school.term1.id, SCHOOL_A)

    with pytest.raises(NotFoundError) as exc:
        service.generate_student_report_card(school.f2_students[0].id, school.b_term.id, SCHOOL_A)
    assert exc.value.message == "Term not found"


# ==========================================================
# [class performance report]
# ==========================================================
def test_class_report_8_4_4(db, form2_marks):
    service = ReportGenerationService(db)
    report = service.generate_class_performance_report(form2_marks.form2.id, form2_marks.term1.id, SCHOOL_A)

    # Science has no results and is left out
    assert [s.subject_name for s in report.subjects] == ["Mathematics", "English"]

    maths, english = report.subjects
    assert maths.total_students == 5
    assert maths.students_assessed == 5
    assert maths.average_score == pytest.approx(61.4)
    assert maths.highest_score == 85
    assert maths.lowest_score == 30
    assert maths.pass_rate == pytest.approx(80)
    assert maths.grade_distribution == {"A": 1, "B": 1, "C": 1, "D": 1, "E": 1}
    assert maths.competency_distribution is None

    assert english.students_assessed == 1
    assert english.average_score == pytest.approx(90)

    overall = report.overall_statistics
    assert overall.total_students == 5
    assert overall.average_performance == pytest.approx((61.4 + 90) / 2)

    top = overall.top_performers
    assert top[0].student_id == form2_marks.f2_students[0].id
    assert top[0].average_score == pytest.approx(87.5)
    assert all(a.average_score >= b.average_score for a, b in zip(top, top[1:]))
    # transferred student is not part of the class
    assert form2_marks.transferred.id not in {p.student_id for p in top}


def test_class_report_cbc_uses_competency_distribution(db, cbc_marks):
    service = ReportGenerationService(db)
    report = service.generate_class_performance_report(cbc_marks.grade6.id, cbc_marks.term1.id, SCHOOL_A)

    maths = report.subjects[0]
    assert maths.grade_distribution is None
    assert maths.competency_distribution[CompetencyLevel.EXCEEDING_EXPECTATIONS] == 4
    assert maths.competency_distribution[CompetencyLevel.APPROACHING_EXPECTATIONS] == 2
    assert maths.competency_distribution[CompetencyLevel.BELOW_EXPECTATIONS] == 0
    assert sum(maths.competency_distribution.values()) == 6


def test_class_report_default_max_marks(db, form2_marks):
    _record(db, form2_marks.f2_students[1], form2_marks.english_oral, 40)

    with_default = ReportGenerationService(db, default_max_marks=100.0)
    report = with_default.generate_class_performance_report(form2_marks.form2.id, form2_marks.term1.id, SCHOOL_A)
    assert report.subjects[1].average_score == pytest.approx(65)

    without_default = ReportGenerationService(db, default_max_marks=None)
    report = without_default.generate_class_performance_report(form2_marks.form2.id, form2_marks.term1.id, SCHOOL_A)
    assert report.subjects[1].average_score == pytest.approx(90)
    assert report.subjects[1].students_assessed == 1


def test_class_report_top_limit(db, form2_marks):
    service = ReportGenerationService(db, top_limit=2)
    report = service.generate_class_performance_report(form2_marks.form2.id, form2_marks.term1.id, SCHOOL_A)
    assert len(report.overall_statistics.top_performers) == 2


def test_class_report_without_results(db, school):
    service = ReportGenerationService(db)
    report = service.generate_class_performance_report(school.form2.id, school.term2.id, SCHOOL_A)
    assert report.subjects == []
    assert report.overall_statistics.average_performance == 0
    assert len(report.overall_statistics.top_performers) == 5


def test_class_report_lookups(db, school):
    service = ReportGenerationService(db)

    with pytest.raises(NotFoundError) as exc:
        service.generate_class_performance_report(school.b_class.id, school.term1.id, SCHOOL_A)
    assert exc.value.message == "Class not found"

    with pytest.raises(NotFoundError) as exc:
        service.generate_class_performance_report(school.form2.id, 9999, SCHOOL_A)
    assert exc.value.message == "Term not found"


def test_distributions_cover_every_band():
    assert grade_distribution([]) == {"A": 0, "B": 0, "C": 0, "D": 0, "E": 0}
    counts = competency_distribution([95, 61, 40, 10])
    assert list(counts.values()) == [1, 1, 1, 1]
