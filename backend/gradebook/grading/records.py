"""Typed values passed between the grading stages."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PeriodContext:
    """The academic period a call operates on.

    ``semester_id`` of None means the whole academic year.
    """
    academic_year_id: int
    semester_id: Optional[int] = None

    @property
    def is_year(self) -> bool:
        return self.semester_id is None

    def describe(self) -> str:
        if self.is_year:
            return f"year {self.academic_year_id}"
        return f"semester {self.semester_id} of year {self.academic_year_id}"


@dataclass(frozen=True)
class AssessmentWeight:
    assessment_type_id: int
    weight_percent: float


@dataclass(frozen=True)
class ScoreEntry:
    """One raw score of one student for one assessment type."""
    assessment_type_id: int
    score: Optional[float]
    max_score: float


@dataclass(frozen=True)
class SubjectScore:
    subject_id: int
    value: float


@dataclass(frozen=True)
class StudentStanding:
    """Compiled figures of one student before they are persisted."""
    student_id: int
    total: float
    average: float
    subjects_count: int
    rank: int = 0
    remark: Optional[str] = None
