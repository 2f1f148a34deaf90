import enum


class Curriculum(str, enum.Enum):
    CBC = "CBC"                          # competency based: derives competency levels
    EIGHT_FOUR_FOUR = "EIGHT_FOUR_FOUR"  # 8-4-4: derives letter grades
    TVET = "TVET"
    IGCSE = "IGCSE"
    IB = "IB"


class CompetencyLevel(str, enum.Enum):
    EXCEEDING_EXPECTATIONS = "EXCEEDING_EXPECTATIONS"
    MEETING_EXPECTATIONS = "MEETING_EXPECTATIONS"
    APPROACHING_EXPECTATIONS = "APPROACHING_EXPECTATIONS"
    BELOW_EXPECTATIONS = "BELOW_EXPECTATIONS"


class AssessmentType(str, enum.Enum):
    CAT = "CAT"
    MIDTERM = "MIDTERM"
    END_OF_TERM = "END_OF_TERM"
    MOCK = "MOCK"
    NATIONAL_EXAM = "NATIONAL_EXAM"
    COMPETENCY_BASED = "COMPETENCY_BASED"


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PROMOTED = "PROMOTED"
    TRANSFERRED = "TRANSFERRED"
    GRADUATED = "GRADUATED"
    DROPPED_OUT = "DROPPED_OUT"
    SUSPENDED = "SUSPENDED"
