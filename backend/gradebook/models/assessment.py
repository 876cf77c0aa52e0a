"""Assessment types, weight templates and per-subject weight sets."""

from sqlalchemy import (
    Column, String, Text, DateTime, ForeignKey, Boolean, Integer, Float, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class AssessmentType(Base):
    """A category of evaluation such as "Mid-Term" with its default weight."""
    __tablename__ = "assessment_types"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    name = Column(String(100), nullable=False)
    default_weight_percent = Column(Float, nullable=False, default=0)
    max_score = Column(Float, nullable=False, default=100)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    school = relationship("School", back_populates="assessment_types")

    def __repr__(self):
        return f"<AssessmentType(id={self.id}, name='{self.name}')>"


class WeightTemplate(Base):
    """Reusable named set of assessment type weights."""
    __tablename__ = "weight_templates"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    weights = Column(JSON, nullable=False, default=[])
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<WeightTemplate(id={self.id}, name='{self.name}')>"

    @property
    def total_weight(self):
        if not self.weights:
            return 0
        return sum(float(w.get("weight_percent") or 0) for w in self.weights)


class SubjectAssessmentWeight(Base):
    """Teacher-defined weight of one assessment type for a class/subject/semester."""
    __tablename__ = "subject_assessment_weights"
    __table_args__ = (
        UniqueConstraint(
            "class_id", "subject_id", "semester_id", "assessment_type_id",
            name="uq_weight_class_subject_semester_type",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=False)
    assessment_type_id = Column(Integer, ForeignKey("assessment_types.id"), nullable=False)
    weight_percent = Column(Float, nullable=False)
    set_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assessment_type = relationship("AssessmentType")
