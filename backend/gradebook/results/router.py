"""Class-head compile/publish endpoints and published result reads."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gradebook.auth.models import User
from gradebook.auth.service import get_current_active_user, require_roles
from gradebook.database import get_db
from gradebook.grading.records import PeriodContext
from gradebook.models.enums import UserRole
from gradebook.responses import ok
from .schemas import CompileRequest, PublishSemesterRequest, PublishYearRequest
from .service import CompilationService, PublicationService

router = APIRouter(prefix="/class-head", tags=["Results"])
results_router = APIRouter(prefix="/results", tags=["Results"])

class_head_only = require_roles(UserRole.class_head)


def get_compilation_service(db: Session = Depends(get_db)) -> CompilationService:
    return CompilationService(db)


def get_publication_service(db: Session = Depends(get_db)) -> PublicationService:
    return PublicationService(db)


@router.get("/students/rankings")
async def get_student_rankings(
    semester_id: int = Query(...),
    current_user: User = Depends(class_head_only),
    service: CompilationService = Depends(get_compilation_service),
):
    """Preview ranks from the grades entered so far; nothing is stored."""
    return ok(service.rankings(current_user, semester_id))


@router.post("/compile-grades")
async def compile_grades(
    request: CompileRequest,
    current_user: User = Depends(class_head_only),
    service: CompilationService = Depends(get_compilation_service),
):
    """Compile a semester, or the whole year when ``semester_id`` is omitted."""
    return ok(service.compile(current_user, request.period()))


@router.post("/publish/semester")
async def publish_semester(
    request: PublishSemesterRequest,
    current_user: User = Depends(class_head_only),
    service: PublicationService = Depends(get_publication_service),
):
    period = PeriodContext(academic_year_id=request.academic_year_id, semester_id=request.semester_id)
    return ok(service.publish_semester(current_user, period))


@router.post("/publish/year")
async def publish_year(
    request: PublishYearRequest,
    current_user: User = Depends(class_head_only),
    service: PublicationService = Depends(get_publication_service),
):
    return ok(service.publish_year(current_user, request.academic_year_id, request.send_roster))


@results_router.get("/students/{student_id}")
async def get_student_results(
    student_id: int,
    academic_year_id: Optional[int] = Query(None),
    semester_id: Optional[int] = Query(None),
    current_user: User = Depends(get_current_active_user),
    service: PublicationService = Depends(get_publication_service),
):
    return ok(service.student_results(current_user, student_id, academic_year_id, semester_id))
