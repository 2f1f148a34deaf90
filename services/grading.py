"""
services/grading.py

Curriculum-specific classification of raw marks.

- CBC           -> competency level band (EE / ME / AE / BE)
- 8-4-4         -> letter grade (A..E)
- anything else -> no derivation

Every entry point of the grade engine (single, bulk, CSV, update) goes through
`derive_grade_fields`, so the thresholds live in exactly one place.
"""

from typing import NamedTuple, Optional

from models.enums import CompetencyLevel, Curriculum

# lower bound (inclusive) -> band, highest first
COMPETENCY_BANDS = (
    (80.0, CompetencyLevel.EXCEEDING_EXPECTATIONS),
    (60.0, CompetencyLevel.MEETING_EXPECTATIONS),
    (40.0, CompetencyLevel.APPROACHING_EXPECTATIONS),
)

LETTER_GRADES = (
    (80.0, "A"),
    (70.0, "B"),
    (60.0, "C"),
    (50.0, "D"),
)


class GradeClassification(NamedTuple):
    grade: Optional[str] = None
    competency_level: Optional[CompetencyLevel] = None


def percentage(marks: float, max_marks: float) -> float:
    """marks / max_marks * 100, 0 when the maximum is not positive"""
    if not max_marks or max_marks <= 0:
        return 0.0
    return marks / max_marks * 100


def competency_level(pct: float) -> CompetencyLevel:
    for lower, level in COMPETENCY_BANDS:
        if pct >= lower:
            return level
    return CompetencyLevel.BELOW_EXPECTATIONS


def letter_grade(pct: float) -> str:
    for lower, letter in LETTER_GRADES:
        if pct >= lower:
            return letter
    return "E"


def classify(pct: float, curriculum: Curriculum) -> GradeClassification:
    """Pure (percentage, curriculum) -> grade / competency level."""
    if curriculum == Curriculum.CBC:
        return GradeClassification(competency_level=competency_level(pct))
    if curriculum == Curriculum.EIGHT_FOUR_FOUR:
        return GradeClassification(grade=letter_grade(pct))
    return GradeClassification()


def derive_grade_fields(
    numeric_value: Optional[float],
    max_marks: Optional[float],
    curriculum: Curriculum,
    grade: Optional[str] = None,
    level: Optional[CompetencyLevel] = None,
) -> GradeClassification:
    """
    Resolve the grade/competency pair stored on a result.

    With both marks and a max, the derived value of the curriculum's scheme
    replaces whatever was supplied; the other field is kept as given.
    Without them the supplied values pass through untouched.
    """
    if numeric_value is None or not max_marks:
        return GradeClassification(grade=grade, competency_level=level)

    derived = classify(percentage(numeric_value, max_marks), curriculum)
    return GradeClassification(
        grade=derived.grade if derived.grade is not None else grade,
        competency_level=derived.competency_level if derived.competency_level is not None else level,
    )
