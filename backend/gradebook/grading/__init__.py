"""Grade computation: weight resolution, aggregation, ranking and promotion."""
from .records import PeriodContext, AssessmentWeight, ScoreEntry, SubjectScore, StudentStanding
from .aggregation import subject_score, summarize, rank_standings, year_standing, class_average
from .promotion import PromotionRule, promotion_remark, load_rule
from .weights import WeightResolver, ResolvedWeights, validate_weight_set
from .loader import COMPILABLE_STATUSES, compilable_subject_ids, subject_scores_by_student

__all__ = [
    "PeriodContext",
    "AssessmentWeight",
    "ScoreEntry",
    "SubjectScore",
    "StudentStanding",
    "subject_score",
    "summarize",
    "rank_standings",
    "year_standing",
    "class_average",
    "PromotionRule",
    "promotion_remark",
    "load_rule",
    "WeightResolver",
    "ResolvedWeights",
    "validate_weight_set",
    "COMPILABLE_STATUSES",
    "compilable_subject_ids",
    "subject_scores_by_student",
]
