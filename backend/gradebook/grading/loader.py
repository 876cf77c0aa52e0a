"""Load raw grades from the database and reduce them to subject scores."""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from gradebook.models import Grade, GradeSubmission, SubmissionStatus
from .aggregation import subject_score
from .records import ScoreEntry, SubjectScore
from .weights import WeightResolver

# Submissions whose grades count towards compiled results
COMPILABLE_STATUSES = (SubmissionStatus.submitted, SubmissionStatus.approved)


def to_entry(grade: Grade) -> ScoreEntry:
    return ScoreEntry(
        assessment_type_id=grade.assessment_type_id,
        score=grade.score,
        max_score=grade.max_score,
    )


def compilable_subject_ids(
    db: Session,
    class_id: int,
    semester_id: int,
    statuses: Optional[Sequence[SubmissionStatus]] = COMPILABLE_STATUSES,
) -> List[int]:
    """Subjects of the class whose submission is in one of ``statuses``."""
    rows = (
        db.query(GradeSubmission.subject_id)
        .filter(
            GradeSubmission.class_id == class_id,
            GradeSubmission.semester_id == semester_id,
            GradeSubmission.status.in_(statuses),
        )
        .all()
    )
    return sorted(r[0] for r in rows)


def subject_scores_by_student(
    db: Session,
    class_id: int,
    semester_id: int,
    subject_ids: Optional[Iterable[int]] = None,
) -> Dict[int, List[SubjectScore]]:
    """Weighted subject scores per student for one class and semester.

    Only subjects in ``subject_ids`` are read when it is given. A student
    without any score in a subject gets no entry for it.
    """
    query = db.query(Grade).filter(Grade.class_id == class_id, Grade.semester_id == semester_id)
    if subject_ids is not None:
        subject_ids = list(subject_ids)
        if not subject_ids:
            return {}
        query = query.filter(Grade.subject_id.in_(subject_ids))

    grouped = defaultdict(lambda: defaultdict(list))
    for grade in query.all():
        grouped[grade.subject_id][grade.student_id].append(to_entry(grade))

    resolver = WeightResolver(db)
    scores: Dict[int, List[SubjectScore]] = defaultdict(list)
    for subject_id in sorted(grouped):
        weights = resolver.resolve(class_id, subject_id, semester_id).weights
        for student_id, entries in grouped[subject_id].items():
            value = subject_score(entries, weights)
            if value is not None:
                scores[student_id].append(SubjectScore(subject_id=subject_id, value=value))
    return dict(scores)
