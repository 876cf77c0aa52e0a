"""Assessment weight resolution for a class, subject and semester.

Resolution order:

1. weights a teacher saved for the exact class/subject/semester;
2. the weight template linked to the subject, else the school's template
   (default first, then most recent);
3. each assessment type's own ``default_weight_percent``.

A school without assessment types resolves to an empty set, which callers
treat as "not configured".
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.errors import InternalError, NotFoundError, ValidationError
from gradebook.models import AssessmentType, Subject, SubjectAssessmentWeight, WeightTemplate
from .records import AssessmentWeight

logger = logging.getLogger(__name__)

WEIGHT_TOTAL = 100.0
WEIGHT_TOLERANCE = 0.01

SOURCE_TEACHER = "teacher"
SOURCE_TEMPLATE = "weight_template"
SOURCE_DEFAULT = "assessment_type_default"
SOURCE_NONE = "none"


@dataclass(frozen=True)
class ResolvedWeights:
    source: str
    weights: Tuple[AssessmentWeight, ...] = field(default_factory=tuple)
    template_id: Optional[int] = None

    @property
    def total(self) -> float:
        return sum(w.weight_percent for w in self.weights)

    @property
    def is_configured(self) -> bool:
        return bool(self.weights)

    def as_dicts(self) -> List[dict]:
        return [
            {"assessment_type_id": w.assessment_type_id, "weight_percent": w.weight_percent}
            for w in self.weights
        ]


def validate_weight_set(weights: Iterable[AssessmentWeight], allowed_type_ids: Optional[set] = None) -> List[AssessmentWeight]:
    """Check a weight set before it is saved; returns it as a list."""
    weights = list(weights)
    if not weights:
        raise ValidationError("At least one assessment weight is required.")
    seen = set()
    for w in weights:
        if w.assessment_type_id in seen:
            raise ValidationError(f"Assessment type {w.assessment_type_id} appears more than once.")
        seen.add(w.assessment_type_id)
        if w.weight_percent < 0 or w.weight_percent > WEIGHT_TOTAL:
            raise ValidationError(
                f"Weight for assessment type {w.assessment_type_id} must be between 0 and 100."
            )
        if allowed_type_ids is not None and w.assessment_type_id not in allowed_type_ids:
            raise ValidationError(f"Assessment type {w.assessment_type_id} does not belong to this school.")
    total = sum(w.weight_percent for w in weights)
    if abs(total - WEIGHT_TOTAL) > WEIGHT_TOLERANCE:
        raise ValidationError(f"Weights must sum to 100 (got {round(total, 2):g}).")
    return weights


class WeightResolver:
    def __init__(self, db: Session):
        self.db = db

    def _subject(self, subject_id: int) -> Subject:
        subject = self.db.query(Subject).filter(Subject.id == subject_id).first()
        if subject is None:
            raise NotFoundError("Subject not found.")
        return subject

    def _school_types(self, school_id: int) -> List[AssessmentType]:
        return (
            self.db.query(AssessmentType)
            .filter(AssessmentType.school_id == school_id)
            .order_by(AssessmentType.id)
            .all()
        )

    def _school_template(self, school_id: int) -> Optional[WeightTemplate]:
        return (
            self.db.query(WeightTemplate)
            .filter(WeightTemplate.school_id == school_id)
            .order_by(WeightTemplate.is_default.desc(), WeightTemplate.created_at.desc(), WeightTemplate.id.desc())
            .first()
        )

    @staticmethod
    def _from_template(template: WeightTemplate, type_ids: set) -> ResolvedWeights:
        weights = tuple(
            AssessmentWeight(int(w["assessment_type_id"]), float(w.get("weight_percent") or 0))
            for w in (template.weights or [])
            if w.get("assessment_type_id") is not None and int(w["assessment_type_id"]) in type_ids
        )
        return ResolvedWeights(SOURCE_TEMPLATE, weights, template_id=template.id)

    def suggestions(self, school_id: int, subject: Optional[Subject] = None) -> ResolvedWeights:
        """The weights a teacher starts from when none are saved yet."""
        types = self._school_types(school_id)
        if not types:
            return ResolvedWeights(SOURCE_NONE)
        type_ids = {t.id for t in types}

        template = subject.weight_template if subject is not None else None
        if template is None:
            template = self._school_template(school_id)
        if template is not None:
            resolved = self._from_template(template, type_ids)
            if resolved.is_configured:
                return resolved

        return ResolvedWeights(
            SOURCE_DEFAULT,
            tuple(AssessmentWeight(t.id, float(t.default_weight_percent or 0)) for t in types),
        )

    def resolve(self, class_id: int, subject_id: int, semester_id: int) -> ResolvedWeights:
        rows = (
            self.db.query(SubjectAssessmentWeight)
            .filter(
                SubjectAssessmentWeight.class_id == class_id,
                SubjectAssessmentWeight.subject_id == subject_id,
                SubjectAssessmentWeight.semester_id == semester_id,
            )
            .order_by(SubjectAssessmentWeight.assessment_type_id)
            .all()
        )
        if rows:
            return ResolvedWeights(
                SOURCE_TEACHER,
                tuple(AssessmentWeight(r.assessment_type_id, float(r.weight_percent)) for r in rows),
            )
        subject = self._subject(subject_id)
        return self.suggestions(subject.school_id, subject)

    def save(
        self,
        class_id: int,
        subject_id: int,
        semester_id: int,
        weights: Iterable[AssessmentWeight],
        set_by: Optional[int] = None,
    ) -> ResolvedWeights:
        """Replace the saved weight set of a class/subject/semester."""
        subject = self._subject(subject_id)
        allowed = {t.id for t in self._school_types(subject.school_id)}
        weights = validate_weight_set(weights, allowed)

        try:
            self.db.query(SubjectAssessmentWeight).filter(
                SubjectAssessmentWeight.class_id == class_id,
                SubjectAssessmentWeight.subject_id == subject_id,
                SubjectAssessmentWeight.semester_id == semester_id,
            ).delete(synchronize_session=False)
            for w in weights:
                self.db.add(SubjectAssessmentWeight(
                    class_id=class_id,
                    subject_id=subject_id,
                    semester_id=semester_id,
                    assessment_type_id=w.assessment_type_id,
                    weight_percent=w.weight_percent,
                    set_by=set_by,
                ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Saving weights for class {class_id} subject {subject_id} failed: {e}")
            raise InternalError("Failed to set assessment weights.")

        logger.info(f"Saved {len(weights)} assessment weights for class {class_id} subject {subject_id} semester {semester_id}")
        return ResolvedWeights(SOURCE_TEACHER, tuple(sorted(weights, key=lambda w: w.assessment_type_id)))
