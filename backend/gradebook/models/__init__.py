"""SQLAlchemy models for the school gradebook."""

from .enums import UserRole, SubmissionStatus, PromotionRemark
from .school import (
    School, AcademicYear, Semester, GradeLevel, SchoolClass, Subject, Student,
    TeachingAssignment, student_parents,
)
from .assessment import AssessmentType, WeightTemplate, SubjectAssessmentWeight
from .grade import Grade, GradeSubmission
from .result import PromotionCriteria, CompiledResult, CompiledSubjectScore
from .archive import Roster, Transcript

# Users live in the auth package; load it so string relationships resolve
from ..auth import models as auth_models  # noqa: E402,F401

__all__ = [
    "UserRole",
    "SubmissionStatus",
    "PromotionRemark",
    "School",
    "AcademicYear",
    "Semester",
    "GradeLevel",
    "SchoolClass",
    "Subject",
    "Student",
    "TeachingAssignment",
    "student_parents",
    "AssessmentType",
    "WeightTemplate",
    "SubjectAssessmentWeight",
    "Grade",
    "GradeSubmission",
    "PromotionCriteria",
    "CompiledResult",
    "CompiledSubjectScore",
    "Roster",
    "Transcript",
]
