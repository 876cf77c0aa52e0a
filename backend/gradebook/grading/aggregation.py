"""Weighted aggregation, totals, averages and ranking.

Everything here is pure: callers load grades and weights from the database
and persist the returned standings.
"""
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .records import AssessmentWeight, ScoreEntry, StudentStanding, SubjectScore


def round2(value: float) -> float:
    return round(float(value), 2)


def weighted_component(score: float, max_score: float, weight_percent: float) -> float:
    """Contribution of one raw score to its subject score."""
    if not max_score or max_score <= 0:
        return 0.0
    return (float(score) / float(max_score)) * float(weight_percent)


def subject_score(entries: Iterable[ScoreEntry], weights: Iterable[AssessmentWeight]) -> Optional[float]:
    """Sum of ``score / max_score * weight`` over the entered components.

    Components without a score are left out rather than counted as zero, so a
    partially graded subject yields a partial, non-normalized sum. Returns None
    when the student has no score at all for the subject. No clamping is done.
    """
    weight_by_type: Dict[int, float] = {w.assessment_type_id: w.weight_percent for w in weights}
    total = 0.0
    recorded = False
    for entry in entries:
        if entry.score is None:
            continue
        recorded = True
        total += weighted_component(entry.score, entry.max_score, weight_by_type.get(entry.assessment_type_id, 0.0))
    return total if recorded else None


def summarize(student_id: int, scores: Sequence[SubjectScore]) -> StudentStanding:
    """Total and average over the subjects the student has a score in."""
    raw_total = sum(s.value for s in scores)
    count = len(scores)
    average = raw_total / count if count else 0.0
    return StudentStanding(
        student_id=student_id,
        total=round2(raw_total),
        average=round2(average),
        subjects_count=count,
    )


def rank_standings(standings: Iterable[StudentStanding]) -> List[StudentStanding]:
    """Order by average descending and number the positions from 1.

    Equal averages fall back to ascending student id so ranks stay distinct
    and stable across recompiles.
    """
    ordered = sorted(standings, key=lambda s: (-s.average, s.student_id))
    return [replace(s, rank=position) for position, s in enumerate(ordered, start=1)]


def year_standing(student_id: int, semesters: Sequence[StudentStanding]) -> StudentStanding:
    """Year figures as the mean of the semesters that carry data.

    A semester with a zero total and average is treated as missing, so a
    student with one graded semester keeps that semester's figures.
    """
    with_data = [s for s in semesters if s.total or s.average]
    if not with_data:
        return StudentStanding(student_id=student_id, total=0.0, average=0.0, subjects_count=0)
    count = len(with_data)
    return StudentStanding(
        student_id=student_id,
        total=round2(sum(s.total for s in with_data) / count),
        average=round2(sum(s.average for s in with_data) / count),
        subjects_count=max(s.subjects_count for s in with_data),
    )


def class_average(standings: Sequence[StudentStanding]) -> float:
    if not standings:
        return 0.0
    return round2(sum(s.average for s in standings) / len(standings))
