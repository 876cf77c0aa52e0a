"""Store-house archive: rosters sent by class heads, cumulative records and transcripts.

A roster is a frozen copy of a class's compiled results. Rosters are never
updated; sending again adds a new one and readers take the newest roster
for each class and period.
"""
import logging
from datetime import date, datetime, UTC
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth.models import User
from gradebook.errors import InternalError, NotFoundError, StateError
from gradebook.grading.aggregation import round2
from gradebook.grading.records import PeriodContext
from gradebook.lookups import class_for_head, get_student, resolve_period
from gradebook.models import (
    AcademicYear, CompiledResult, GradeLevel, PromotionRemark, Roster, SchoolClass, Semester, Student,
    Transcript, UserRole,
)
from gradebook.results.service import period_results

logger = logging.getLogger(__name__)

DEFAULT_CONDUCT = "Good"


def transcript_number(student_id: int, generated_at: datetime) -> str:
    return f"TR-{generated_at.year}-{student_id:05d}"


def _school_scope(user: User) -> Optional[int]:
    """School the user is limited to; None for platform admins."""
    if user.role == UserRole.admin:
        return None
    return user.school_id


def _subject_rows(result: CompiledResult) -> List[dict]:
    """Per-subject scores keyed by subject id; names are not unique within a school."""
    rows = sorted(result.subject_scores, key=lambda s: (s.subject.name if s.subject else "", s.subject_id))
    return [
        {"subject_id": s.subject_id, "subject_name": s.subject.name if s.subject else None, "score": s.score}
        for s in rows
    ]


class ArchiveService:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise InternalError(f"Failed to {action}.")

    # Rosters

    def _semester_blocks(self, school_class: SchoolClass, academic_year_id: int) -> Dict[int, List[dict]]:
        rows = (
            self.db.query(CompiledResult)
            .join(Semester, CompiledResult.semester_id == Semester.id)
            .filter(
                CompiledResult.class_id == school_class.id,
                Semester.academic_year_id == academic_year_id,
            )
            .order_by(Semester.number)
            .all()
        )
        blocks: Dict[int, List[dict]] = {}
        for row in rows:
            blocks.setdefault(row.student_id, []).append({
                "semester_id": row.semester_id,
                "semester": row.semester.name,
                "subject_scores": _subject_rows(row),
                "total": row.total,
                "average": row.average,
                "rank": row.rank,
                "remark": row.remark,
            })
        return blocks

    def send_roster(self, sender: User, period: PeriodContext, school_class: Optional[SchoolClass] = None) -> dict:
        """Archive the compiled results of a class and period as a new roster."""
        if school_class is None:
            school_class = class_for_head(self.db, sender)
        period = resolve_period(self.db, period.academic_year_id, period.semester_id)
        rows = period_results(self.db, school_class.id, period).order_by(CompiledResult.rank).all()
        if not rows:
            raise StateError("Nothing compiled for this period. Compile grades before sending the roster.")

        warnings = []
        unpublished = sum(1 for r in rows if not r.is_published)
        if unpublished:
            message = f"{unpublished} of {len(rows)} results have not been published yet."
            logger.warning(f"Roster for class {school_class.id} ({period.describe()}): {message}")
            warnings.append(message)

        year = self.db.query(AcademicYear).filter(AcademicYear.id == period.academic_year_id).first()
        semester = None
        if not period.is_year:
            semester = self.db.query(Semester).filter(Semester.id == period.semester_id).first()
        blocks = self._semester_blocks(school_class, period.academic_year_id) if period.is_year else {}

        today = date.today()
        students = []
        for row in rows:
            student = row.student
            entry = {
                "student_id": student.id,
                "student_code": student.student_code,
                "name": student.name,
                "sex": student.sex,
                "age": student.age_on(today),
                "subject_scores": _subject_rows(row),
                "total": row.total,
                "average": row.average,
                "rank": row.rank,
                "remark": row.remark,
                "conduct": DEFAULT_CONDUCT,
                "absent_days": 0,
            }
            if period.is_year:
                entry["semesters"] = blocks.get(student.id, [])
            students.append(entry)

        head = school_class.class_head or sender
        sent_at = datetime.now(UTC)
        roster = Roster(
            class_id=school_class.id,
            academic_year_id=period.academic_year_id,
            semester_id=period.semester_id,
            roster_data={
                "class_id": school_class.id,
                "class_name": school_class.name,
                "grade_name": school_class.grade_level.name if school_class.grade_level else None,
                "academic_year": year.name if year else None,
                "semester": semester.name if semester else None,
                "period": "year" if period.is_year else "semester",
                "class_head": {"id": head.id, "name": head.full_name, "phone": head.phone},
                "subjects": [s.name for s in school_class.subjects],
                "students": students,
            },
            submitted_by=sender.id,
            submitted_at=sent_at,
        )
        self.db.add(roster)
        self._commit("send roster")
        logger.info(f"Roster {roster.id} sent for class {school_class.id} ({period.describe()}) with {len(students)} students")
        return {
            "roster_id": roster.id,
            "class_id": school_class.id,
            "class_name": school_class.name,
            "students_count": len(students),
            "sent_at": sent_at.isoformat(),
            "warnings": warnings,
        }

    def _roster_query(self, user: User):
        query = (
            self.db.query(Roster)
            .join(SchoolClass, Roster.class_id == SchoolClass.id)
            .join(GradeLevel, SchoolClass.grade_level_id == GradeLevel.id)
        )
        school_id = _school_scope(user)
        if school_id is not None:
            query = query.filter(GradeLevel.school_id == school_id)
        return query

    @staticmethod
    def _roster_summary(roster: Roster) -> dict:
        data = roster.roster_data or {}
        return {
            "roster_id": roster.id,
            "class": {"id": roster.class_id, "name": data.get("class_name"), "grade_name": data.get("grade_name")},
            "academic_year_id": roster.academic_year_id,
            "academic_year": data.get("academic_year"),
            "semester_id": roster.semester_id,
            "semester": data.get("semester"),
            "period": data.get("period", "semester" if roster.semester_id else "year"),
            "student_count": len(roster.students),
            "class_head": (data.get("class_head") or {}).get("name"),
            "received_at": roster.submitted_at.isoformat() if roster.submitted_at else None,
        }

    def list_rosters(self, user: User, academic_year_id: Optional[int] = None, class_id: Optional[int] = None) -> dict:
        query = self._roster_query(user)
        if academic_year_id is not None:
            query = query.filter(Roster.academic_year_id == academic_year_id)
        if class_id is not None:
            query = query.filter(Roster.class_id == class_id)
        rosters = query.order_by(Roster.submitted_at.desc(), Roster.id.desc()).all()
        return {"items": [self._roster_summary(r) for r in rosters]}

    def get_roster(self, user: User, roster_id: int) -> dict:
        roster = self._roster_query(user).filter(Roster.id == roster_id).first()
        if roster is None:
            raise NotFoundError("Roster not found.")
        students = roster.students
        averages = [s.get("average") or 0 for s in students]
        data = self._roster_summary(roster)
        data.update({
            "class_head": (roster.roster_data or {}).get("class_head"),
            "subjects": (roster.roster_data or {}).get("subjects", []),
            "students": students,
            "class_statistics": {
                "total_students": len(students),
                "class_average": round2(sum(averages) / len(averages)) if averages else 0.0,
                "promoted": sum(1 for s in students if s.get("remark") == PromotionRemark.promoted.value),
                "retained": sum(1 for s in students if s.get("remark") == PromotionRemark.not_promoted.value),
            },
        })
        return data

    # Student records

    def _student(self, user: User, student_id: int) -> Student:
        return get_student(self.db, student_id, _school_scope(user))

    @staticmethod
    def _student_info(student: Student, today: date) -> dict:
        school_class = student.school_class
        return {
            "id": student.id,
            "code": student.student_code,
            "name": student.name,
            "sex": student.sex,
            "age": student.age_on(today),
            "date_of_birth": student.date_of_birth.isoformat() if student.date_of_birth else None,
            "date_of_admission": student.date_of_admission.isoformat() if student.date_of_admission else None,
            "current_class": school_class.name if school_class else None,
            "current_grade": school_class.grade_level.name if school_class and school_class.grade_level else None,
        }

    def cumulative_record(self, user: User, student_id: int) -> dict:
        """Every compiled semester of the student, oldest first."""
        student = self._student(user, student_id)
        rows = (
            self.db.query(CompiledResult)
            .join(AcademicYear, CompiledResult.academic_year_id == AcademicYear.id)
            .outerjoin(Semester, CompiledResult.semester_id == Semester.id)
            .filter(CompiledResult.student_id == student.id)
            .order_by(AcademicYear.start_date, AcademicYear.id, CompiledResult.semester_id.is_(None), Semester.number)
            .all()
        )
        history = []
        years = []
        for row in rows:
            school_class = self.db.query(SchoolClass).filter(SchoolClass.id == row.class_id).first()
            item = {
                "academic_year": row.academic_year.name,
                "semester": row.semester.name if row.semester else None,
                "class_name": school_class.name if school_class else None,
                "grade_level": school_class.grade_level.name if school_class and school_class.grade_level else None,
                "total": row.total,
                "average": row.average,
                "rank": row.rank,
                "remark": row.remark,
                "is_published": row.is_published,
            }
            (years if row.is_year_result else history).append(item)

        cumulative = round2(sum(h["average"] for h in history) / len(history)) if history else 0.0
        return {
            "student": self._student_info(student, date.today()),
            "academic_history": history,
            "year_summaries": years,
            "cumulative_average": cumulative,
            "completion_status": "In Progress",
        }

    # Transcripts

    def _latest_rosters_with(self, student: Student) -> List[Tuple[Roster, dict]]:
        """Newest roster per (class, period) that lists the student."""
        school_id = student.school_class.school_id if student.school_class else None
        query = (
            self.db.query(Roster)
            .join(SchoolClass, Roster.class_id == SchoolClass.id)
            .join(GradeLevel, SchoolClass.grade_level_id == GradeLevel.id)
        )
        if school_id is not None:
            query = query.filter(GradeLevel.school_id == school_id)

        latest: Dict[tuple, Tuple[Roster, dict]] = {}
        for roster in query.order_by(Roster.submitted_at.desc(), Roster.id.desc()):
            key = (roster.class_id, roster.academic_year_id, roster.semester_id)
            if key in latest:
                continue
            entry = roster.entry_for(student.id)
            if entry is not None:
                latest[key] = (roster, entry)
        return list(latest.values())

    @staticmethod
    def _record(roster: Roster, entry: dict) -> dict:
        data = roster.roster_data or {}
        class_size = len(roster.students)
        subjects = entry.get("subject_scores") or []
        record = {
            "roster_id": roster.id,
            "year": data.get("academic_year"),
            "grade_level": data.get("grade_name"),
            "class_name": data.get("class_name"),
            "semester": data.get("semester"),
            "period": "year" if roster.semester_id is None else "semester",
            "subjects": [
                {"subject_id": s.get("subject_id"), "name": s.get("subject_name"), "score": s.get("score")}
                for s in subjects
            ],
            "total": entry.get("total"),
            "average": entry.get("average"),
            "rank_in_class": f"{entry.get('rank')} of {class_size}",
            "number_of_students": class_size,
            "conduct": entry.get("conduct") or DEFAULT_CONDUCT,
            "promotion_status": entry.get("remark"),
        }
        if "semesters" in entry:
            record["semesters"] = entry["semesters"]
        return record

    def generate_transcript(self, user: User, student_id: int, purpose: str) -> dict:
        """Build and store a transcript from the student's archived rosters."""
        student = self._student(user, student_id)
        found = self._latest_rosters_with(student)
        if not found:
            raise StateError("No archived rosters contain this student yet.")

        def sort_key(item):
            roster = item[0]
            year = roster.academic_year
            number = roster.semester.number if roster.semester is not None else 99
            return (year.start_date or date.min, roster.academic_year_id, number, roster.id)

        records = [self._record(roster, entry) for roster, entry in sorted(found, key=sort_key)]
        generated_at = datetime.now(UTC)
        number = transcript_number(student.id, generated_at)
        info = self._student_info(student, generated_at.date())
        transcript = Transcript(
            student_id=student.id,
            transcript_number=number,
            purpose=purpose,
            transcript_data={
                "transcript_number": number,
                "purpose": purpose,
                "student": info,
                "grades_included": list(dict.fromkeys(r["grade_level"] for r in records if r["grade_level"])),
                "academic_records": records,
            },
            generated_by=user.id,
            generated_at=generated_at,
        )
        self.db.add(transcript)
        self._commit("generate transcript")
        logger.info(f"Transcript {number} generated for student {student.id} from {len(records)} rosters")
        return self._transcript_detail(transcript)

    def _transcript_query(self, user: User):
        query = (
            self.db.query(Transcript)
            .join(Student, Transcript.student_id == Student.id)
            .join(SchoolClass, Student.class_id == SchoolClass.id)
            .join(GradeLevel, SchoolClass.grade_level_id == GradeLevel.id)
        )
        school_id = _school_scope(user)
        if school_id is not None:
            query = query.filter(GradeLevel.school_id == school_id)
        return query

    @staticmethod
    def _transcript_detail(transcript: Transcript) -> dict:
        data = transcript.transcript_data or {}
        return {
            "id": transcript.id,
            "transcript_number": transcript.transcript_number,
            "purpose": transcript.purpose,
            "student": data.get("student"),
            "grades_included": data.get("grades_included", []),
            "academic_records": data.get("academic_records", []),
            "generated_by": transcript.generated_by,
            "generated_at": transcript.generated_at.isoformat() if transcript.generated_at else None,
        }

    def list_transcripts(self, user: User, student_id: Optional[int] = None) -> dict:
        query = self._transcript_query(user)
        if student_id is not None:
            query = query.filter(Transcript.student_id == student_id)
        items = []
        for t in query.order_by(Transcript.generated_at.desc(), Transcript.id.desc()):
            items.append({
                "id": t.id,
                "transcript_number": t.transcript_number,
                "student_id": t.student_id,
                "student_name": t.student.name,
                "student_code": t.student.student_code,
                "purpose": t.purpose,
                "generated_at": t.generated_at.isoformat() if t.generated_at else None,
            })
        return {"items": items}

    def get_transcript(self, user: User, transcript_id: int) -> dict:
        transcript = self._transcript_query(user).filter(Transcript.id == transcript_id).first()
        if transcript is None:
            raise NotFoundError("Transcript not found.")
        return self._transcript_detail(transcript)
