"""Grade entry, assessment weights and the submission workflow."""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth.models import User
from gradebook.errors import (
    ForbiddenError, GradebookError, InternalError, NotFoundError, StateError, ValidationError
)
from gradebook.grading.aggregation import round2, subject_score, weighted_component
from gradebook.grading.loader import to_entry
from gradebook.grading.weights import WeightResolver
from gradebook.lookups import class_for_head, get_class, get_semester, teaching_assignment
from gradebook.models import AssessmentType, Grade, GradeSubmission, Student, Subject, SubmissionStatus
from .schemas import BulkGradeRequest, GradeCreate, GradeUpdate, SetWeightsRequest

logger = logging.getLogger(__name__)


def grade_to_dict(grade: Grade, weight_percent: float = 0.0) -> dict:
    weighted = 0.0
    if grade.score is not None:
        weighted = round2(weighted_component(grade.score, grade.max_score, weight_percent))
    return {
        "id": grade.id,
        "student_id": grade.student_id,
        "assessment_type_id": grade.assessment_type_id,
        "assessment_type": grade.assessment_type.name if grade.assessment_type else None,
        "score": grade.score,
        "max_score": grade.max_score,
        "weight_percent": weight_percent,
        "weighted_score": weighted,
        "remarks": grade.remarks,
    }


def submission_to_dict(submission: GradeSubmission) -> dict:
    return {
        "id": submission.id,
        "class_id": submission.class_id,
        "subject_id": submission.subject_id,
        "semester_id": submission.semester_id,
        "status": submission.status.value,
        "comments": submission.comments,
        "submitted_at": submission.submitted_at.isoformat() if submission.submitted_at else None,
        "reviewed_at": submission.reviewed_at.isoformat() if submission.reviewed_at else None,
        "reviewed_by": submission.reviewed_by,
    }


def find_submission(db: Session, class_id: int, subject_id: int, semester_id: int) -> Optional[GradeSubmission]:
    return (
        db.query(GradeSubmission)
        .filter(
            GradeSubmission.class_id == class_id,
            GradeSubmission.subject_id == subject_id,
            GradeSubmission.semester_id == semester_id,
        )
        .first()
    )


class _Service:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while trying to {action}: {e}")
            raise InternalError(f"Failed to {action}.")


class GradeEntryService(_Service):
    """Everything a teacher does with the grades of a class and subject."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.weights = WeightResolver(db)

    def _ensure_editable(self, class_id: int, subject_id: int, semester_id: int) -> None:
        submission = find_submission(self.db, class_id, subject_id, semester_id)
        if submission is not None and not submission.is_editable:
            raise StateError(
                f"Grades are locked because the submission is {submission.status.value}."
            )

    def _assessment_type(self, assessment_type_id: int, school_id: int) -> AssessmentType:
        assessment_type = self.db.query(AssessmentType).filter(AssessmentType.id == assessment_type_id).first()
        if assessment_type is None:
            raise NotFoundError("Assessment type not found.")
        if assessment_type.school_id != school_id:
            raise ValidationError("Assessment type does not belong to this school.")
        return assessment_type

    def _enrolled_student(self, student_id: int, class_id: int) -> Student:
        student = self.db.query(Student).filter(Student.id == student_id).first()
        if student is None:
            raise NotFoundError(f"Student {student_id} not found.")
        if student.class_id != class_id:
            raise ValidationError(f"Student {student_id} is not enrolled in this class.")
        return student

    @staticmethod
    def _check_bounds(score: float, max_score: float) -> None:
        if score < 0 or score > max_score:
            raise ValidationError(f"Score must be between 0 and {max_score:g}.")

    def _weight_of(self, class_id: int, subject_id: int, semester_id: int, assessment_type_id: int) -> float:
        resolved = self.weights.resolve(class_id, subject_id, semester_id)
        for w in resolved.weights:
            if w.assessment_type_id == assessment_type_id:
                return w.weight_percent
        return 0.0

    # Weights

    def get_weights(self, teacher: User, class_id: int, subject_id: int, semester_id: int) -> dict:
        teaching_assignment(self.db, teacher, class_id, subject_id)
        get_semester(self.db, semester_id)
        resolved = self.weights.resolve(class_id, subject_id, semester_id)
        names = {
            t.id: t.name
            for t in self.db.query(AssessmentType).filter(
                AssessmentType.id.in_([w.assessment_type_id for w in resolved.weights])
            )
        } if resolved.weights else {}
        return {
            "class_id": class_id,
            "subject_id": subject_id,
            "semester_id": semester_id,
            "source": resolved.source,
            "template_id": resolved.template_id,
            "total": round2(resolved.total),
            "weights": [
                {
                    "assessment_type_id": w.assessment_type_id,
                    "assessment_type": names.get(w.assessment_type_id),
                    "weight_percent": w.weight_percent,
                }
                for w in resolved.weights
            ],
        }

    def set_weights(self, teacher: User, request: SetWeightsRequest) -> dict:
        teaching_assignment(self.db, teacher, request.class_id, request.subject_id)
        get_semester(self.db, request.semester_id)
        self._ensure_editable(request.class_id, request.subject_id, request.semester_id)
        self.weights.save(
            request.class_id, request.subject_id, request.semester_id,
            request.to_records(), set_by=teacher.id,
        )
        return self.get_weights(teacher, request.class_id, request.subject_id, request.semester_id)

    def suggest_weights(self, teacher: User, subject_id: Optional[int] = None) -> dict:
        subject = None
        if subject_id is not None:
            subject = self.db.query(Subject).filter(Subject.id == subject_id).first()
            if subject is None or subject.school_id != teacher.school_id:
                raise NotFoundError("Subject not found.")
        resolved = self.weights.suggestions(teacher.school_id, subject)
        return {
            "source": resolved.source,
            "template_id": resolved.template_id,
            "total": round2(resolved.total),
            "weights": resolved.as_dicts(),
        }

    # Grades

    def _upsert(self, teacher: User, data: GradeCreate, pending: Optional[Dict[tuple, Grade]] = None) -> Grade:
        school_class = get_class(self.db, data.class_id)
        self._enrolled_student(data.student_id, data.class_id)
        assessment_type = self._assessment_type(data.assessment_type_id, school_class.school_id)
        max_score = data.max_score if data.max_score is not None else assessment_type.max_score
        self._check_bounds(data.score, max_score)

        key = (data.student_id, data.assessment_type_id)
        grade = pending.get(key) if pending is not None else None
        if grade is None:
            grade = (
                self.db.query(Grade)
                .filter(
                    Grade.student_id == data.student_id,
                    Grade.class_id == data.class_id,
                    Grade.subject_id == data.subject_id,
                    Grade.semester_id == data.semester_id,
                    Grade.assessment_type_id == data.assessment_type_id,
                )
                .first()
            )
        if grade is None:
            grade = Grade(
                student_id=data.student_id,
                class_id=data.class_id,
                subject_id=data.subject_id,
                semester_id=data.semester_id,
                assessment_type_id=data.assessment_type_id,
            )
            self.db.add(grade)
        if pending is not None:
            # Rows added earlier in the batch are not flushed yet
            pending[key] = grade
        grade.score = data.score
        grade.max_score = max_score
        grade.remarks = data.remarks
        grade.entered_by = teacher.id
        return grade

    def enter_grade(self, teacher: User, data: GradeCreate) -> dict:
        """Create or overwrite the score of one student component."""
        teaching_assignment(self.db, teacher, data.class_id, data.subject_id)
        get_semester(self.db, data.semester_id)
        self._ensure_editable(data.class_id, data.subject_id, data.semester_id)
        grade = self._upsert(teacher, data)
        self._commit("save grade")
        self.db.refresh(grade)
        weight = self._weight_of(data.class_id, data.subject_id, data.semester_id, data.assessment_type_id)
        return grade_to_dict(grade, weight)

    def enter_bulk(self, teacher: User, request: BulkGradeRequest) -> dict:
        """Save one assessment type for many students, reporting each row."""
        teaching_assignment(self.db, teacher, request.class_id, request.subject_id)
        get_semester(self.db, request.semester_id)
        self._ensure_editable(request.class_id, request.subject_id, request.semester_id)

        # Repeated students: the last row wins
        batch: Dict[tuple, Grade] = {}
        failed: List[dict] = []
        for row in request.grades:
            data = GradeCreate.model_construct(
                student_id=row.student_id,
                class_id=request.class_id,
                subject_id=request.subject_id,
                semester_id=request.semester_id,
                assessment_type_id=request.assessment_type_id,
                score=row.score,
                max_score=request.max_score,
                remarks=row.remarks,
            )
            try:
                self._upsert(teacher, data, batch)
            except GradebookError as e:
                failed.append({"student_id": row.student_id, "error": e.message})
        saved = list(batch.values())
        if saved:
            self._commit("save grades")
        logger.info(
            f"Bulk entry for class {request.class_id} subject {request.subject_id}: "
            f"{len(saved)} saved, {len(failed)} failed"
        )
        weight = self._weight_of(request.class_id, request.subject_id, request.semester_id, request.assessment_type_id)
        return {
            "saved": len(saved),
            "failed": failed,
            "grades": [grade_to_dict(g, weight) for g in saved],
        }

    def _owned_grade(self, teacher: User, grade_id: int) -> Grade:
        grade = self.db.query(Grade).filter(Grade.id == grade_id).first()
        if grade is None:
            raise NotFoundError("Grade not found.")
        teaching_assignment(self.db, teacher, grade.class_id, grade.subject_id)
        self._ensure_editable(grade.class_id, grade.subject_id, grade.semester_id)
        return grade

    def update_grade(self, teacher: User, grade_id: int, data: GradeUpdate) -> dict:
        grade = self._owned_grade(teacher, grade_id)
        self._check_bounds(data.score, grade.max_score)
        grade.score = data.score
        grade.remarks = data.remarks
        grade.entered_by = teacher.id
        self._commit("update grade")
        self.db.refresh(grade)
        weight = self._weight_of(grade.class_id, grade.subject_id, grade.semester_id, grade.assessment_type_id)
        return grade_to_dict(grade, weight)

    def delete_grade(self, teacher: User, grade_id: int) -> None:
        grade = self._owned_grade(teacher, grade_id)
        self.db.delete(grade)
        self._commit("delete grade")
        logger.info(f"Grade {grade_id} deleted by user {teacher.id}")

    def grade_sheet(self, teacher: User, class_id: int, subject_id: int, semester_id: int) -> dict:
        """All students of the class with their components and partial totals."""
        teaching_assignment(self.db, teacher, class_id, subject_id)
        school_class = get_class(self.db, class_id)
        get_semester(self.db, semester_id)
        resolved = self.weights.resolve(class_id, subject_id, semester_id)
        weight_by_type = {w.assessment_type_id: w.weight_percent for w in resolved.weights}

        grades: Dict[int, List[Grade]] = {}
        for grade in (
            self.db.query(Grade)
            .filter(Grade.class_id == class_id, Grade.subject_id == subject_id, Grade.semester_id == semester_id)
            .order_by(Grade.assessment_type_id)
        ):
            grades.setdefault(grade.student_id, []).append(grade)

        students = []
        for student in school_class.students:
            own = grades.get(student.id, [])
            total = subject_score([to_entry(g) for g in own], resolved.weights)
            students.append({
                "student_id": student.id,
                "student_code": student.student_code,
                "name": student.name,
                "components": [grade_to_dict(g, weight_by_type.get(g.assessment_type_id, 0.0)) for g in own],
                "total_weighted_score": round2(total) if total is not None else 0.0,
            })

        submission = find_submission(self.db, class_id, subject_id, semester_id)
        return {
            "class_id": class_id,
            "class_name": school_class.name,
            "subject_id": subject_id,
            "semester_id": semester_id,
            "submission_status": submission.status.value if submission else SubmissionStatus.draft.value,
            "weight_source": resolved.source,
            "weights": resolved.as_dicts(),
            "students": students,
        }


class SubmissionService(_Service):
    """Teacher submit/reopen and class-head approve/reject."""

    def _get(self, submission_id: int) -> GradeSubmission:
        submission = self.db.query(GradeSubmission).filter(GradeSubmission.id == submission_id).first()
        if submission is None:
            raise NotFoundError("Submission not found.")
        return submission

    def _ensure_head_of(self, head: User, submission: GradeSubmission) -> None:
        if submission.school_class.class_head_id != head.id:
            raise ForbiddenError("Only the class head of this class can review its submissions.")

    def submit(self, teacher: User, class_id: int, subject_id: int, semester_id: int,
               remarks: Optional[str] = None) -> dict:
        teaching_assignment(self.db, teacher, class_id, subject_id)
        get_semester(self.db, semester_id)
        grade_count = (
            self.db.query(Grade)
            .filter(Grade.class_id == class_id, Grade.subject_id == subject_id, Grade.semester_id == semester_id)
            .count()
        )
        if grade_count == 0:
            raise ValidationError("No grades have been entered for this subject.")

        submission = find_submission(self.db, class_id, subject_id, semester_id)
        if submission is None:
            submission = GradeSubmission(
                class_id=class_id, subject_id=subject_id, semester_id=semester_id,
                status=SubmissionStatus.draft,
            )
            self.db.add(submission)
        submission.submit(remarks)
        self._commit("submit grades")
        self.db.refresh(submission)
        logger.info(f"Submission {submission.id} (class {class_id}, subject {subject_id}) submitted by user {teacher.id}")
        return submission_to_dict(submission)

    def reopen(self, teacher: User, submission_id: int) -> dict:
        submission = self._get(submission_id)
        teaching_assignment(self.db, teacher, submission.class_id, submission.subject_id)
        submission.reopen()
        self._commit("reopen submission")
        logger.info(f"Submission {submission_id} reopened by user {teacher.id}")
        return submission_to_dict(submission)

    def approve(self, head: User, submission_id: int, remarks: Optional[str] = None) -> dict:
        submission = self._get(submission_id)
        self._ensure_head_of(head, submission)
        submission.approve(head.id, remarks)
        self._commit("approve submission")
        logger.info(f"Submission {submission_id} approved by user {head.id}")
        return submission_to_dict(submission)

    def reject(self, head: User, submission_id: int, reason: str) -> dict:
        submission = self._get(submission_id)
        self._ensure_head_of(head, submission)
        submission.reject(head.id, reason)
        self._commit("reject submission")
        logger.info(f"Submission {submission_id} rejected by user {head.id}")
        return submission_to_dict(submission)

    def checklist(self, head: User, semester_id: int) -> dict:
        """Submission status of every subject taught in the head's class."""
        school_class = class_for_head(self.db, head)
        get_semester(self.db, semester_id)
        items = []
        for assignment in sorted(school_class.teaching_assignments, key=lambda a: a.subject.name):
            submission = find_submission(self.db, school_class.id, assignment.subject_id, semester_id)
            items.append({
                "subject_id": assignment.subject_id,
                "subject_name": assignment.subject.name,
                "teacher_id": assignment.teacher_id,
                "teacher_name": assignment.teacher.full_name if assignment.teacher else None,
                "submission_id": submission.id if submission else None,
                "status": submission.status.value if submission else "not_started",
                "submitted_at": submission.submitted_at.isoformat() if submission and submission.submitted_at else None,
            })
        ready = sum(1 for i in items if i["status"] in (SubmissionStatus.submitted.value, SubmissionStatus.approved.value))
        return {
            "class_id": school_class.id,
            "class_name": school_class.name,
            "semester_id": semester_id,
            "subjects": items,
            "ready": ready,
            "total": len(items),
        }
