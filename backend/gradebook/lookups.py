"""Shared lookups that turn ids from a request into checked entities."""
from typing import Optional

from sqlalchemy.orm import Session

from .auth.models import User
from .errors import ForbiddenError, NotFoundError, ValidationError
from .grading.records import PeriodContext
from .models import AcademicYear, SchoolClass, Semester, Student, TeachingAssignment, UserRole


def get_class(db: Session, class_id: int) -> SchoolClass:
    school_class = db.query(SchoolClass).filter(SchoolClass.id == class_id).first()
    if school_class is None:
        raise NotFoundError("Class not found.")
    return school_class


def class_for_head(db: Session, user: User) -> SchoolClass:
    """The class the user heads."""
    school_class = (
        db.query(SchoolClass)
        .filter(SchoolClass.class_head_id == user.id)
        .order_by(SchoolClass.id)
        .first()
    )
    if school_class is None:
        raise ForbiddenError("You are not assigned as class head.")
    return school_class


def teaching_assignment(db: Session, teacher: User, class_id: int, subject_id: int) -> TeachingAssignment:
    assignment = (
        db.query(TeachingAssignment)
        .filter(
            TeachingAssignment.teacher_id == teacher.id,
            TeachingAssignment.class_id == class_id,
            TeachingAssignment.subject_id == subject_id,
        )
        .first()
    )
    if assignment is None:
        raise ForbiddenError("Not assigned to this class/subject.")
    return assignment


def get_semester(db: Session, semester_id: int) -> Semester:
    semester = db.query(Semester).filter(Semester.id == semester_id).first()
    if semester is None:
        raise NotFoundError("Semester not found.")
    return semester


def resolve_period(db: Session, academic_year_id: int, semester_id: Optional[int] = None) -> PeriodContext:
    """Validate the ids of a period and bundle them."""
    year = db.query(AcademicYear).filter(AcademicYear.id == academic_year_id).first()
    if year is None:
        raise NotFoundError("Academic year not found.")
    if semester_id is not None:
        semester = get_semester(db, semester_id)
        if semester.academic_year_id != year.id:
            raise ValidationError("Semester does not belong to the given academic year.")
    return PeriodContext(academic_year_id=year.id, semester_id=semester_id)


def get_student(db: Session, student_id: int, school_id: Optional[int] = None) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if student is None:
        raise NotFoundError("Student not found.")
    if school_id is not None and student.school_class.school_id != school_id:
        raise NotFoundError("Student not found.")
    return student


def ensure_can_view_student(user: User, student: Student) -> None:
    """Students see themselves, parents their children, staff their school."""
    if user.role == UserRole.student:
        if student.user_id != user.id:
            raise ForbiddenError("You can only view your own results.")
    elif user.role == UserRole.parent:
        if user not in student.parents:
            raise ForbiddenError("This student is not linked to your account.")
    elif user.role != UserRole.admin and student.school_class.school_id != user.school_id:
        raise ForbiddenError("You can only access resources from your own school.")
