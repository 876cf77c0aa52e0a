"""Store-house endpoints and the class-head roster hand-off."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gradebook.auth.models import User
from gradebook.auth.service import require_roles
from gradebook.database import get_db
from gradebook.models.enums import UserRole
from gradebook.responses import ok
from .schemas import SendRosterRequest, TranscriptRequest
from .service import ArchiveService

router = APIRouter(prefix="/store-house", tags=["Store House"])
roster_router = APIRouter(prefix="/class-head/store-house", tags=["Store House"])

archive_staff = require_roles(UserRole.store_house, UserRole.school_head, UserRole.admin)
class_head_only = require_roles(UserRole.class_head)


def get_archive_service(db: Session = Depends(get_db)) -> ArchiveService:
    return ArchiveService(db)


@roster_router.post("/send-roster")
async def send_roster(
    request: SendRosterRequest,
    current_user: User = Depends(class_head_only),
    service: ArchiveService = Depends(get_archive_service),
):
    """Archive the compiled results of the head's class for a semester or year."""
    return ok(service.send_roster(current_user, request.period()))


@router.get("/rosters")
async def list_rosters(
    academic_year_id: Optional[int] = Query(None),
    class_id: Optional[int] = Query(None),
    current_user: User = Depends(archive_staff),
    service: ArchiveService = Depends(get_archive_service),
):
    return ok(service.list_rosters(current_user, academic_year_id, class_id))


@router.get("/rosters/{roster_id}")
async def get_roster(
    roster_id: int,
    current_user: User = Depends(archive_staff),
    service: ArchiveService = Depends(get_archive_service),
):
    return ok(service.get_roster(current_user, roster_id))


@router.get("/students/{student_id}/cumulative-record")
async def get_cumulative_record(
    student_id: int,
    current_user: User = Depends(archive_staff),
    service: ArchiveService = Depends(get_archive_service),
):
    return ok(service.cumulative_record(current_user, student_id))


@router.post("/students/{student_id}/transcript", status_code=status.HTTP_201_CREATED)
async def generate_transcript(
    student_id: int,
    request: Optional[TranscriptRequest] = None,
    current_user: User = Depends(archive_staff),
    service: ArchiveService = Depends(get_archive_service),
):
    purpose = request.purpose if request else TranscriptRequest().purpose
    return ok(service.generate_transcript(current_user, student_id, purpose))


@router.get("/transcripts")
async def list_transcripts(
    student_id: Optional[int] = Query(None),
    current_user: User = Depends(archive_staff),
    service: ArchiveService = Depends(get_archive_service),
):
    return ok(service.list_transcripts(current_user, student_id))


@router.get("/transcripts/{transcript_id}")
async def get_transcript(
    transcript_id: int,
    current_user: User = Depends(archive_staff),
    service: ArchiveService = Depends(get_archive_service),
):
    return ok(service.get_transcript(current_user, transcript_id))
