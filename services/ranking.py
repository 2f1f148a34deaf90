from typing import Dict, Hashable, Iterable, Mapping, Tuple


def sum_by_student(pairs: Iterable[Tuple[Hashable, float]]) -> Dict[Hashable, float]:
    """[(student_id, marks), ...] -> {student_id: total}, keeping first-seen order."""
    totals: Dict[Hashable, float] = {}
    for student_id, marks in pairs:
        totals[student_id] = totals.get(student_id, 0.0) + (marks or 0.0)
    return totals


def rank_of(totals: Mapping[Hashable, float], student_id: Hashable) -> int:
    """
    1-based position of `student_id`: 1 + number of students with a strictly
    greater total. Ties share a position and leave a gap after them
    (100, 90, 90, 80 -> 1, 2, 2, 4). A student missing from `totals` is
    ranked as if their total were 0.
    """
    own = totals.get(student_id, 0.0)
    return 1 + sum(1 for other, total in totals.items() if other != student_id and total > own)
