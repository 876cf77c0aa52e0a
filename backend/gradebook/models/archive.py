"""Store-house records: rosters and transcripts."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, JSON
from sqlalchemy.orm import relationship

from ..database import Base


class Roster(Base):
    """Immutable snapshot of a class's compiled results sent to the store house."""
    __tablename__ = "rosters"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=True)
    roster_data = Column(JSON, nullable=False, default={})
    submitted_by = Column(Integer, ForeignKey("users.id"))
    submitted_at = Column(DateTime, nullable=False)

    school_class = relationship("SchoolClass")
    semester = relationship("Semester")
    academic_year = relationship("AcademicYear")

    def __repr__(self):
        return f"<Roster(id={self.id}, class_id={self.class_id})>"

    @property
    def students(self):
        return (self.roster_data or {}).get("students", [])

    def entry_for(self, student_id: int):
        """The roster line of one student, or None."""
        for entry in self.students:
            if entry.get("student_id") == student_id:
                return entry
        return None


class Transcript(Base):
    __tablename__ = "transcripts"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    transcript_number = Column(String(30), nullable=False)
    purpose = Column(String(255), nullable=False, default="General")
    transcript_data = Column(JSON, nullable=False, default={})
    generated_by = Column(Integer, ForeignKey("users.id"))
    generated_at = Column(DateTime, nullable=False)

    student = relationship("Student")

    def __repr__(self):
        return f"<Transcript(id={self.id}, number='{self.transcript_number}')>"
