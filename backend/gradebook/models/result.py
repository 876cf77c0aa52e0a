"""Compiled results and the promotion rules applied to them."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class PromotionCriteria(Base):
    """School-level promotion rule set."""
    __tablename__ = "promotion_criteria"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    name = Column(String(100), nullable=False)
    passing_average = Column(Float, nullable=False, default=50)
    passing_per_subject = Column(Float, nullable=False, default=50)
    max_failing_subjects = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<PromotionCriteria(id={self.id}, passing_average={self.passing_average})>"


class CompiledResult(Base):
    """Total, average, rank and remark of one student for a semester or a year.

    Year-level rows have ``semester_id`` set to NULL.
    """
    __tablename__ = "compiled_results"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=True)
    total = Column(Float, nullable=False, default=0)
    average = Column(Float, nullable=False, default=0)
    subjects_count = Column(Integer, nullable=False, default=0)
    rank = Column(Integer)
    remark = Column(String(20))
    is_published = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime)
    notification_pending = Column(Boolean, default=False, nullable=False)
    compiled_at = Column(DateTime, nullable=False)

    student = relationship("Student")
    semester = relationship("Semester")
    academic_year = relationship("AcademicYear")
    subject_scores = relationship(
        "CompiledSubjectScore",
        back_populates="result",
        cascade="all, delete-orphan",
        order_by="CompiledSubjectScore.subject_id",
    )

    def __repr__(self):
        return f"<CompiledResult(student_id={self.student_id}, average={self.average}, rank={self.rank})>"

    @property
    def is_year_result(self) -> bool:
        return self.semester_id is None


class CompiledSubjectScore(Base):
    __tablename__ = "compiled_subject_scores"

    id = Column(Integer, primary_key=True, index=True)
    result_id = Column(Integer, ForeignKey("compiled_results.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    score = Column(Float, nullable=False)

    result = relationship("CompiledResult", back_populates="subject_scores")
    subject = relationship("Subject")
