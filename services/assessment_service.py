import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.academic import Term
from models.assessments import AssessmentDefinition, AssessmentResult
from models.class_subjects import ClassSubject
from models.enums import AssessmentType
from models.subjects import Subject
from schemas.assessments import AssessmentDefinitionCreate, AssessmentDefinitionUpdate, AssessmentStats
from services.exceptions import NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)


class AssessmentService:
    """CRUD and statistics for assessment definitions, scoped to one school"""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Assessment {action} failed")
            raise

    def get_assessment(self, assessment_id: int, school_id: int) -> AssessmentDefinition:
        assessment = (
            self.db.query(AssessmentDefinition)
            .filter(AssessmentDefinition.id == assessment_id, AssessmentDefinition.school_id == school_id)
            .first()
        )
        if assessment is None:
            raise NotFoundError("Assessment not found")
        return assessment

    def _check_references(self, data: AssessmentDefinitionCreate, school_id: int):
        term = self.db.query(Term).filter(Term.id == data.term_id, Term.school_id == school_id).first()
        if term is None:
            raise NotFoundError(f"Term {data.term_id} not found")
        class_subject = (
            self.db.query(ClassSubject)
            .filter(ClassSubject.id == data.class_subject_id, ClassSubject.school_id == school_id)
            .first()
        )
        if class_subject is None:
            raise NotFoundError(f"Class subject {data.class_subject_id} not found")

    def create_assessment(self, data: AssessmentDefinitionCreate, school_id: int) -> AssessmentDefinition:
        self._check_references(data, school_id)

        assessment = AssessmentDefinition(**data.model_dump(), school_id=school_id)
        self.db.add(assessment)
        self._commit("create")
        self.db.refresh(assessment)
        logger.info(f"Assessment created: id={assessment.id} name={assessment.name!r}")
        return assessment

    def bulk_create_assessments(
        self, items: List[AssessmentDefinitionCreate], school_id: int
    ) -> List[AssessmentDefinition]:
        """All or nothing: one bad reference and no definition is created."""
        created = []
        try:
            for data in items:
                self._check_references(data, school_id)
                assessment = AssessmentDefinition(**data.model_dump(), school_id=school_id)
                self.db.add(assessment)
                created.append(assessment)
            self.db.flush()
        except (NotFoundError, SQLAlchemyError):
            self.db.rollback()
            logger.warning(f"Bulk assessment create aborted after {len(created)} of {len(items)}")
            raise
        self._commit("bulk create")
        for assessment in created:
            self.db.refresh(assessment)
        logger.info(f"Assessments created in bulk: count={len(created)}")
        return created

    def get_class_assessments(self, class_id: int, term_id: int, school_id: int) -> List[AssessmentDefinition]:
        return (
            self.db.query(AssessmentDefinition)
            .join(ClassSubject, AssessmentDefinition.class_subject_id == ClassSubject.id)
            .join(Subject, ClassSubject.subject_id == Subject.id)
            .filter(
                AssessmentDefinition.school_id == school_id,
                AssessmentDefinition.term_id == term_id,
                ClassSubject.class_id == class_id,
            )
            .order_by(Subject.name, AssessmentDefinition.name, AssessmentDefinition.id)
            .all()
        )

    def get_subject_assessments(self, class_subject_id: int, school_id: int) -> List[AssessmentDefinition]:
        return (
            self.db.query(AssessmentDefinition)
            .filter(
                AssessmentDefinition.school_id == school_id,
                AssessmentDefinition.class_subject_id == class_subject_id,
            )
            .order_by(AssessmentDefinition.created_at.desc(), AssessmentDefinition.id.desc())
            .all()
        )

    def list_assessments(
        self,
        school_id: int,
        term_id: Optional[int] = None,
        class_subject_id: Optional[int] = None,
        type: Optional[AssessmentType] = None,
        page: int = 1,
        size: int = 50,
    ) -> Tuple[List[AssessmentDefinition], int]:
        query = self.db.query(AssessmentDefinition).filter(AssessmentDefinition.school_id == school_id)
        if term_id is not None:
            query = query.filter(AssessmentDefinition.term_id == term_id)
        if class_subject_id is not None:
            query = query.filter(AssessmentDefinition.class_subject_id == class_subject_id)
        if type is not None:
            query = query.filter(AssessmentDefinition.type == type)

        total = query.count()
        records = (
            query.order_by(AssessmentDefinition.created_at.desc(), AssessmentDefinition.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return records, total

    def update_assessment(self, assessment_id: int, data: AssessmentDefinitionUpdate, school_id: int) -> AssessmentDefinition:
        assessment = self.get_assessment(assessment_id, school_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        # lowering the maximum must not strand already recorded marks above it
        new_max = changes.get("max_marks")
        if new_max is not None:
            highest = (
                self.db.query(func.max(AssessmentResult.numeric_value))
                .filter(AssessmentResult.assessment_def_id == assessment.id)
                .scalar()
            )
            if highest is not None and highest > new_max:
                raise ValidationFailure(f"Existing marks ({highest:g}) exceed the new maximum ({new_max:g})")

        for key, value in changes.items():
            setattr(assessment, key, value)
        self._commit("update")
        self.db.refresh(assessment)
        return assessment

    def delete_assessment(self, assessment_id: int, school_id: int) -> None:
        assessment = self.get_assessment(assessment_id, school_id)
        has_results = (
            self.db.query(AssessmentResult.id)
            .filter(AssessmentResult.assessment_def_id == assessment.id)
            .first()
        )
        if has_results is not None:
            raise ValidationFailure("Assessment has results")
        self.db.delete(assessment)
        self._commit("delete")
        logger.info(f"Assessment deleted: id={assessment_id}")

    def get_stats(self, school_id: int, term_id: Optional[int] = None) -> AssessmentStats:
        base = self.db.query(AssessmentDefinition).filter(AssessmentDefinition.school_id == school_id)
        if term_id is not None:
            base = base.filter(AssessmentDefinition.term_id == term_id)

        total = base.count()
        by_type = {
            (kind.value if isinstance(kind, AssessmentType) else str(kind)): count
            for kind, count in base.with_entities(AssessmentDefinition.type, func.count(AssessmentDefinition.id))
            .group_by(AssessmentDefinition.type)
            .all()
        }
        with_results = (
            base.filter(
                AssessmentDefinition.id.in_(
                    select(AssessmentResult.assessment_def_id).where(AssessmentResult.school_id == school_id)
                )
            ).count()
        )
        return AssessmentStats(
            total=total,
            by_type=by_type,
            with_results=with_results,
            without_results=total - with_results,
        )
