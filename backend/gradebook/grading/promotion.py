"""Promotion remark evaluation."""
import os
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from gradebook.models.enums import PromotionRemark
from gradebook.models.result import PromotionCriteria

DEFAULT_PASSING_AVERAGE = float(os.getenv("DEFAULT_PASSING_AVERAGE", "50"))


def _enforce_subject_rules_default() -> bool:
    return os.getenv("PROMOTION_ENFORCE_SUBJECT_RULES", "false").lower() == "true"


@dataclass(frozen=True)
class PromotionRule:
    passing_average: float = DEFAULT_PASSING_AVERAGE
    passing_per_subject: Optional[float] = None
    max_failing_subjects: Optional[int] = None
    enforce_subject_rules: bool = False

    @classmethod
    def from_criteria(cls, criteria: Optional[PromotionCriteria], enforce_subject_rules: Optional[bool] = None):
        if enforce_subject_rules is None:
            enforce_subject_rules = _enforce_subject_rules_default()
        if criteria is None:
            return cls(enforce_subject_rules=enforce_subject_rules)
        return cls(
            passing_average=float(criteria.passing_average),
            passing_per_subject=criteria.passing_per_subject,
            max_failing_subjects=criteria.max_failing_subjects,
            enforce_subject_rules=enforce_subject_rules,
        )

    def evaluate(self, average: float, subject_scores: Iterable[float] = ()) -> str:
        """``Promoted`` iff the average reaches the passing mark.

        The per-subject rule only applies when ``enforce_subject_rules`` is set:
        more than ``max_failing_subjects`` scores under ``passing_per_subject``
        then withholds promotion.
        """
        if average < self.passing_average:
            return PromotionRemark.not_promoted.value
        if self.enforce_subject_rules and self.passing_per_subject is not None:
            failing = sum(1 for score in subject_scores if score < self.passing_per_subject)
            if failing > (self.max_failing_subjects or 0):
                return PromotionRemark.not_promoted.value
        return PromotionRemark.promoted.value


def promotion_remark(average: float, passing_average: float = DEFAULT_PASSING_AVERAGE) -> str:
    return PromotionRule(passing_average=passing_average).evaluate(average)


def load_rule(db: Session, school_id: Optional[int]) -> PromotionRule:
    """The active rule for a school, falling back to a platform-wide one."""
    query = db.query(PromotionCriteria).filter(PromotionCriteria.is_active.is_(True))
    criteria = (
        query.filter(PromotionCriteria.school_id == school_id)
        .order_by(PromotionCriteria.created_at.desc(), PromotionCriteria.id.desc())
        .first()
    )
    if criteria is None:
        criteria = (
            query.filter(PromotionCriteria.school_id.is_(None))
            .order_by(PromotionCriteria.created_at.desc(), PromotionCriteria.id.desc())
            .first()
        )
    return PromotionRule.from_criteria(criteria)
