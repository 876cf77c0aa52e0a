"""Teacher grade-entry endpoints and class-head submission review."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gradebook.auth.models import User
from gradebook.auth.service import require_roles
from gradebook.database import get_db
from gradebook.models.enums import UserRole
from gradebook.responses import ok
from .schemas import (
    ApproveRequest, BulkGradeRequest, GradeCreate, GradeUpdate, RejectRequest, SetWeightsRequest, SubmitRequest
)
from .service import GradeEntryService, SubmissionService

router = APIRouter(prefix="/teacher", tags=["Grade Entry"])
review_router = APIRouter(prefix="/class-head", tags=["Submission Review"])

# Class heads teach too, so they share every teacher endpoint
teacher_only = require_roles(UserRole.teacher, UserRole.class_head)
class_head_only = require_roles(UserRole.class_head)


def get_entry_service(db: Session = Depends(get_db)) -> GradeEntryService:
    return GradeEntryService(db)


def get_submission_service(db: Session = Depends(get_db)) -> SubmissionService:
    return SubmissionService(db)


@router.get("/assessment-weights")
async def get_assessment_weights(
    class_id: int = Query(...),
    subject_id: int = Query(...),
    semester_id: int = Query(...),
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    """Effective weights of a class/subject/semester and where they come from."""
    return ok(service.get_weights(current_user, class_id, subject_id, semester_id))


@router.post("/assessment-weights")
async def set_assessment_weights(
    request: SetWeightsRequest,
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    return ok(service.set_weights(current_user, request))


@router.get("/assessment-weights/suggestions")
async def get_weight_suggestions(
    subject_id: Optional[int] = Query(None),
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    return ok(service.suggest_weights(current_user, subject_id))


@router.get("/classes/{class_id}/subjects/{subject_id}/grades")
async def get_grade_sheet(
    class_id: int,
    subject_id: int,
    semester_id: int = Query(...),
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    return ok(service.grade_sheet(current_user, class_id, subject_id, semester_id))


@router.post("/grades")
async def enter_grade(
    grade: GradeCreate,
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    return ok(service.enter_grade(current_user, grade))


@router.post("/grades/bulk")
async def enter_bulk_grades(
    request: BulkGradeRequest,
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    return ok(service.enter_bulk(current_user, request))


@router.put("/grades/{grade_id}")
async def update_grade(
    grade_id: int,
    grade: GradeUpdate,
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    return ok(service.update_grade(current_user, grade_id, grade))


@router.delete("/grades/{grade_id}")
async def delete_grade(
    grade_id: int,
    current_user: User = Depends(teacher_only),
    service: GradeEntryService = Depends(get_entry_service),
):
    service.delete_grade(current_user, grade_id)
    return ok({"id": grade_id, "deleted": True})


@router.post("/classes/{class_id}/subjects/{subject_id}/submit")
async def submit_grades(
    class_id: int,
    subject_id: int,
    request: SubmitRequest,
    current_user: User = Depends(teacher_only),
    service: SubmissionService = Depends(get_submission_service),
):
    """Hand the grades of a subject to the class head for review."""
    return ok(service.submit(current_user, class_id, subject_id, request.semester_id, request.remarks))


@router.post("/submissions/{submission_id}/reopen")
async def reopen_submission(
    submission_id: int,
    current_user: User = Depends(teacher_only),
    service: SubmissionService = Depends(get_submission_service),
):
    return ok(service.reopen(current_user, submission_id))


@review_router.get("/submissions")
async def get_submission_checklist(
    semester_id: int = Query(...),
    current_user: User = Depends(class_head_only),
    service: SubmissionService = Depends(get_submission_service),
):
    return ok(service.checklist(current_user, semester_id))


@review_router.post("/submissions/{submission_id}/approve")
async def approve_submission(
    submission_id: int,
    request: Optional[ApproveRequest] = None,
    current_user: User = Depends(class_head_only),
    service: SubmissionService = Depends(get_submission_service),
):
    return ok(service.approve(current_user, submission_id, request.remarks if request else None))


@review_router.post("/submissions/{submission_id}/reject")
async def reject_submission(
    submission_id: int,
    request: RejectRequest,
    current_user: User = Depends(class_head_only),
    service: SubmissionService = Depends(get_submission_service),
):
    return ok(service.reject(current_user, submission_id, request.reason))
