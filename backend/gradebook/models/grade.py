"""Raw grades and the submission that groups them."""

from datetime import datetime, UTC

from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Enum as SQLEnum, Integer, Float, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from ..errors import StateError
from .enums import SubmissionStatus


class Grade(Base):
    """One raw score of one student for one assessment type in one semester."""
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "class_id", "subject_id", "semester_id", "assessment_type_id",
            name="uq_grade_student_component",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=False)
    assessment_type_id = Column(Integer, ForeignKey("assessment_types.id"), nullable=False)
    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=False)
    remarks = Column(Text)
    entered_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("Student")
    assessment_type = relationship("AssessmentType")

    def __repr__(self):
        return f"<Grade(id={self.id}, student_id={self.student_id}, score={self.score})>"


class GradeSubmission(Base):
    """Status machine over all grades of one class/subject/semester.

    ``draft -> submitted -> approved`` on the happy path,
    ``submitted -> rejected -> draft`` when the class head sends it back.
    """
    __tablename__ = "grade_submissions"
    __table_args__ = (
        UniqueConstraint("class_id", "subject_id", "semester_id", name="uq_submission_class_subject_semester"),
    )

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=False)
    status = Column(SQLEnum(SubmissionStatus), nullable=False, default=SubmissionStatus.draft)
    comments = Column(Text)
    submitted_at = Column(DateTime)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    school_class = relationship("SchoolClass")
    subject = relationship("Subject")

    # Allowed transitions: current status -> statuses reachable from it
    TRANSITIONS = {
        SubmissionStatus.draft: {SubmissionStatus.submitted},
        SubmissionStatus.submitted: {SubmissionStatus.approved, SubmissionStatus.rejected},
        SubmissionStatus.rejected: {SubmissionStatus.draft},
        SubmissionStatus.approved: set(),
    }

    def __repr__(self):
        return f"<GradeSubmission(id={self.id}, status={self.status})>"

    @property
    def is_editable(self) -> bool:
        """Grades may change only while the submission is a draft."""
        return self.status in (None, SubmissionStatus.draft)

    def _transition(self, target: SubmissionStatus) -> None:
        current = self.status or SubmissionStatus.draft
        if target not in self.TRANSITIONS[current]:
            raise StateError(f"Cannot move submission from '{current.value}' to '{target.value}'.")
        self.status = target

    def submit(self, comments=None) -> None:
        self._transition(SubmissionStatus.submitted)
        self.submitted_at = datetime.now(UTC)
        self.comments = comments

    def approve(self, reviewer_id: int, comments=None) -> None:
        self._transition(SubmissionStatus.approved)
        self.reviewed_at = datetime.now(UTC)
        self.reviewed_by = reviewer_id
        self.comments = comments

    def reject(self, reviewer_id: int, reason: str) -> None:
        self._transition(SubmissionStatus.rejected)
        self.reviewed_at = datetime.now(UTC)
        self.reviewed_by = reviewer_id
        self.comments = reason

    def reopen(self) -> None:
        self._transition(SubmissionStatus.draft)
