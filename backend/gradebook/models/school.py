"""School structure models: schools, academic periods, classes, subjects, students."""

from datetime import date

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


student_parents = Table(
    "student_parents",
    Base.metadata,
    Column("student_id", Integer, ForeignKey("students.id"), primary_key=True),
    Column("parent_id", Integer, ForeignKey("users.id"), primary_key=True),
)


class School(Base):
    """School model."""
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    grade_levels = relationship("GradeLevel", back_populates="school")
    subjects = relationship("Subject", back_populates="school")
    assessment_types = relationship("AssessmentType", back_populates="school")

    def __repr__(self):
        return f"<School(id={self.id}, name='{self.name}')>"


class AcademicYear(Base):
    __tablename__ = "academic_years"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    name = Column(String(50), nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)

    semesters = relationship("Semester", back_populates="academic_year", order_by="Semester.number")

    def __repr__(self):
        return f"<AcademicYear(id={self.id}, name='{self.name}')>"


class Semester(Base):
    __tablename__ = "semesters"
    __table_args__ = (UniqueConstraint("academic_year_id", "number", name="uq_semester_year_number"),)

    id = Column(Integer, primary_key=True, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False)
    number = Column(Integer, nullable=False)
    name = Column(String(50), nullable=False)

    academic_year = relationship("AcademicYear", back_populates="semesters")

    def __repr__(self):
        return f"<Semester(id={self.id}, name='{self.name}')>"


class GradeLevel(Base):
    """A grade level (e.g. "Grade 9") grouping classes."""
    __tablename__ = "grade_levels"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    name = Column(String(50), nullable=False)
    level = Column(Integer)

    school = relationship("School", back_populates="grade_levels")
    classes = relationship("SchoolClass", back_populates="grade_level")


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    grade_level_id = Column(Integer, ForeignKey("grade_levels.id"), nullable=False)
    name = Column(String(50), nullable=False)
    class_head_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    grade_level = relationship("GradeLevel", back_populates="classes")
    class_head = relationship("gradebook.auth.models.User", foreign_keys=[class_head_id])
    students = relationship("Student", back_populates="school_class", order_by="Student.id")
    teaching_assignments = relationship("TeachingAssignment", back_populates="school_class")

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name='{self.name}')>"

    @property
    def school_id(self):
        return self.grade_level.school_id if self.grade_level else None

    @property
    def subjects(self):
        """Distinct subjects taught in this class, ordered by name."""
        seen = {a.subject.id: a.subject for a in self.teaching_assignments}
        return sorted(seen.values(), key=lambda s: s.name)


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    name = Column(String(100), nullable=False)
    weight_template_id = Column(Integer, ForeignKey("weight_templates.id"), nullable=True)

    school = relationship("School", back_populates="subjects")
    weight_template = relationship("WeightTemplate")

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}')>"


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    student_code = Column(String(50), unique=True)
    sex = Column(String(10))
    date_of_birth = Column(Date)
    date_of_admission = Column(Date)

    user = relationship("gradebook.auth.models.User", foreign_keys=[user_id])
    school_class = relationship("SchoolClass", back_populates="students")
    parents = relationship("gradebook.auth.models.User", secondary=student_parents)

    def __repr__(self):
        return f"<Student(id={self.id}, code='{self.student_code}')>"

    @property
    def name(self):
        return self.user.full_name if self.user else None

    def age_on(self, day: date):
        """Age in whole years on ``day``."""
        if self.date_of_birth is None:
            return None
        born = self.date_of_birth
        return day.year - born.year - ((day.month, day.day) < (born.month, born.day))


class TeachingAssignment(Base):
    """A teacher assigned to teach one subject in one class."""
    __tablename__ = "teaching_assignments"
    __table_args__ = (UniqueConstraint("class_id", "subject_id", name="uq_assignment_class_subject"),)

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)

    teacher = relationship("gradebook.auth.models.User")
    school_class = relationship("SchoolClass", back_populates="teaching_assignments")
    subject = relationship("Subject")
