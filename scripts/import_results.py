"""
Import a marks sheet (CSV) for one assessment.

    python -m scripts.import_results data/marks.csv --assessment-id 12 --school-id 1 --user-id 7

CSV columns: studentAdmissionNo, marks, comment (optional). Rows that fail
validation are reported with their CSV line number; the rest are saved.
"""

import argparse
import sys
from pathlib import Path

from sqlalchemy.orm import Session

from database.db import SessionLocal
from services.exceptions import GradingError
from services.grade_entry import GradeEntryService, parse_grade_csv


def import_results(csv_path: str, assessment_id: int, school_id: int, user_id: int) -> int:
    db: Session = SessionLocal()
    try:
        rows = parse_grade_csv(Path(csv_path).read_bytes())
        outcome = GradeEntryService(db).csv_bulk_upload(rows, assessment_id, user_id, school_id)
    except GradingError as exc:
        print(f"❌ import failed: {exc.message}")
        return 1
    finally:
        db.close()

    print(f"✅ {outcome.successful} rows imported, {outcome.failed} failed")
    for error in outcome.errors:
        print(f"   line {error.row} ({error.admission_no or '-'}): {error.error}")
    return 0 if outcome.failed == 0 else 2


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import assessment marks from CSV")
    parser.add_argument("csv_path")
    parser.add_argument("--assessment-id", type=int, required=True)
    parser.add_argument("--school-id", type=int, required=True)
    parser.add_argument("--user-id", type=int, required=True)
    args = parser.parse_args(argv)
    return import_results(args.csv_path, args.assessment_id, args.school_id, args.user_id)


if __name__ == "__main__":
    sys.exit(main())
