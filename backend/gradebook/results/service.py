"""Compilation, ranking and publication of class results.

Compiling a period computes every standing in memory first and only then
replaces the stored rows inside a single transaction, so a failed compile
leaves the previous results untouched.
"""
import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, UTC
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth.models import User
from gradebook.errors import ComputationError, InternalError, NotFoundError, StateError
from gradebook.grading.aggregation import class_average, rank_standings, round2, summarize, year_standing
from gradebook.grading.loader import compilable_subject_ids, subject_scores_by_student
from gradebook.grading.promotion import PromotionRule, load_rule
from gradebook.grading.records import PeriodContext, StudentStanding, SubjectScore
from gradebook.lookups import class_for_head, ensure_can_view_student, get_student, resolve_period
from gradebook.models import (
    AcademicYear, CompiledResult, CompiledSubjectScore, SchoolClass, Semester, UserRole
)

logger = logging.getLogger(__name__)

# Roles that only ever see published results
RESTRICTED_VIEWERS = (UserRole.student, UserRole.parent)


def result_to_dict(result: CompiledResult) -> dict:
    return {
        "id": result.id,
        "student_id": result.student_id,
        "class_id": result.class_id,
        "academic_year_id": result.academic_year_id,
        "semester_id": result.semester_id,
        "period": "year" if result.is_year_result else (result.semester.name if result.semester else None),
        "total": result.total,
        "average": result.average,
        "subjects_count": result.subjects_count,
        "rank": result.rank,
        "remark": result.remark,
        "is_published": result.is_published,
        "published_at": result.published_at.isoformat() if result.published_at else None,
        "compiled_at": result.compiled_at.isoformat() if result.compiled_at else None,
        "subject_scores": [
            {
                "subject_id": s.subject_id,
                "subject_name": s.subject.name if s.subject else None,
                "score": s.score,
            }
            for s in result.subject_scores
        ],
    }


def period_results(db: Session, class_id: int, period: PeriodContext):
    """Query of the stored results of one class for exactly one period."""
    query = db.query(CompiledResult).filter(
        CompiledResult.class_id == class_id,
        CompiledResult.academic_year_id == period.academic_year_id,
    )
    if period.is_year:
        return query.filter(CompiledResult.semester_id.is_(None))
    return query.filter(CompiledResult.semester_id == period.semester_id)


class CompilationService:
    def __init__(self, db: Session):
        self.db = db

    def _semester_standings(
        self, school_class: SchoolClass, semester_id: int, compilable_only: bool = True
    ) -> Tuple[List[StudentStanding], Dict[int, List[SubjectScore]]]:
        subject_ids = compilable_subject_ids(self.db, school_class.id, semester_id) if compilable_only else None
        scores = subject_scores_by_student(self.db, school_class.id, semester_id, subject_ids)
        enrolled = {s.id for s in school_class.students}
        scores = {student_id: v for student_id, v in scores.items() if student_id in enrolled}
        standings = [summarize(student_id, scores[student_id]) for student_id in sorted(scores)]
        return standings, scores

    def _year_standings(
        self, school_class: SchoolClass, academic_year_id: int
    ) -> Tuple[List[StudentStanding], Dict[int, List[SubjectScore]]]:
        semester_ids = [
            s.id for s in self.db.query(Semester).filter(Semester.academic_year_id == academic_year_id)
        ]
        rows = []
        if semester_ids:
            rows = (
                self.db.query(CompiledResult)
                .filter(
                    CompiledResult.class_id == school_class.id,
                    CompiledResult.semester_id.in_(semester_ids),
                )
                .all()
            )
        if not rows:
            raise ComputationError(
                "Nothing to compile: compile the semesters of this academic year first."
            )

        per_student: Dict[int, List[StudentStanding]] = defaultdict(list)
        per_subject: Dict[int, Dict[int, List[float]]] = defaultdict(lambda: defaultdict(list))
        for row in rows:
            per_student[row.student_id].append(
                StudentStanding(row.student_id, row.total, row.average, row.subjects_count)
            )
            for s in row.subject_scores:
                per_subject[row.student_id][s.subject_id].append(s.score)

        standings = []
        scores = {}
        for student_id in sorted(per_student):
            standing = year_standing(student_id, per_student[student_id])
            if not standing.subjects_count:
                continue
            standings.append(standing)
            scores[student_id] = [
                SubjectScore(subject_id, round2(sum(values) / len(values)))
                for subject_id, values in sorted(per_subject[student_id].items())
            ]
        return standings, scores

    @staticmethod
    def _rank_and_remark(
        standings: List[StudentStanding], scores: Dict[int, List[SubjectScore]], rule: PromotionRule
    ) -> List[StudentStanding]:
        return [
            replace(s, remark=rule.evaluate(s.average, [x.value for x in scores.get(s.student_id, [])]))
            for s in rank_standings(standings)
        ]

    def rankings(self, head: User, semester_id: int) -> dict:
        """Live standings of the head's class from every entered grade.

        Nothing is stored; draft grades are included so the class head can
        follow progress before compiling.
        """
        school_class = class_for_head(self.db, head)
        semester = self.db.query(Semester).filter(Semester.id == semester_id).first()
        if semester is None:
            raise NotFoundError("Semester not found.")
        standings, scores = self._semester_standings(school_class, semester_id, compilable_only=False)
        ranked = self._rank_and_remark(standings, scores, load_rule(self.db, school_class.school_id))
        subject_names = {s.id: s.name for s in school_class.subjects}
        students = {s.id: s for s in school_class.students}
        return {
            "class": {"id": school_class.id, "name": school_class.name},
            "semester": semester.name,
            "subjects": [s.name for s in school_class.subjects],
            "class_average": class_average(ranked),
            "items": [
                {
                    "student_id": s.student_id,
                    "student_name": students[s.student_id].name,
                    "subject_scores": {
                        subject_names.get(x.subject_id, str(x.subject_id)): round2(x.value)
                        for x in scores[s.student_id]
                    },
                    "total": s.total,
                    "average": s.average,
                    "rank": s.rank,
                    "remark": s.remark,
                }
                for s in ranked
            ],
        }

    def compile(self, head: User, period: PeriodContext) -> dict:
        school_class = class_for_head(self.db, head)
        period = resolve_period(self.db, period.academic_year_id, period.semester_id)
        return self.compile_class(school_class, period)

    def compile_class(self, school_class: SchoolClass, period: PeriodContext) -> dict:
        """Compute and store totals, averages, ranks and remarks for one period."""
        total_students = len(school_class.students)
        if not total_students:
            raise ComputationError("Nothing to compile: the class has no students.")

        if period.is_year:
            standings, scores = self._year_standings(school_class, period.academic_year_id)
        else:
            standings, scores = self._semester_standings(school_class, period.semester_id)
        if not standings:
            raise ComputationError("Nothing to compile: no submitted grades for this class and period.")

        ranked = self._rank_and_remark(standings, scores, load_rule(self.db, school_class.school_id))
        compiled_at = datetime.now(UTC)
        self._replace_results(school_class, period, ranked, scores, compiled_at)

        average = class_average(ranked)
        logger.info(
            f"Compiled {len(ranked)}/{total_students} students of class {school_class.id} "
            f"for {period.describe()} (class average {average})"
        )
        return {
            "class_id": school_class.id,
            "class_name": school_class.name,
            "period": self._period_name(period),
            "academic_year_id": period.academic_year_id,
            "semester_id": period.semester_id,
            "compilation_status": "completed",
            "students_compiled": len(ranked),
            "total_students": total_students,
            "class_average": average,
            "compiled_at": compiled_at.isoformat(),
        }

    def _period_name(self, period: PeriodContext) -> Optional[str]:
        if period.is_year:
            year = self.db.query(AcademicYear).filter(AcademicYear.id == period.academic_year_id).first()
            return year.name if year else None
        semester = self.db.query(Semester).filter(Semester.id == period.semester_id).first()
        return semester.name if semester else None

    def _replace_results(
        self,
        school_class: SchoolClass,
        period: PeriodContext,
        ranked: List[StudentStanding],
        scores: Dict[int, List[SubjectScore]],
        compiled_at: datetime,
    ) -> None:
        """Swap the stored rows of the period for ``ranked`` in one transaction.

        Students already published keep their publication state.
        """
        try:
            published = {}
            for old in period_results(self.db, school_class.id, period).all():
                if old.is_published:
                    published[old.student_id] = old.published_at
                self.db.delete(old)
            self.db.flush()

            for standing in ranked:
                result = CompiledResult(
                    student_id=standing.student_id,
                    class_id=school_class.id,
                    academic_year_id=period.academic_year_id,
                    semester_id=period.semester_id,
                    total=standing.total,
                    average=standing.average,
                    subjects_count=standing.subjects_count,
                    rank=standing.rank,
                    remark=standing.remark,
                    is_published=standing.student_id in published,
                    published_at=published.get(standing.student_id),
                    compiled_at=compiled_at,
                )
                result.subject_scores = [
                    CompiledSubjectScore(subject_id=s.subject_id, score=round2(s.value))
                    for s in scores.get(standing.student_id, [])
                ]
                self.db.add(result)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Compiling class {school_class.id} for {period.describe()} failed: {e}")
            raise InternalError("Failed to compile grades.")


class PublicationService:
    def __init__(self, db: Session):
        self.db = db

    def _publish(self, rows: List[CompiledResult], now: datetime, notify: bool = False) -> int:
        for row in rows:
            if not row.is_published:
                row.is_published = True
                row.published_at = now
            if notify:
                row.notification_pending = True
        return len(rows)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise InternalError(f"Failed to {action}.")

    def publish_semester(self, head: User, period: PeriodContext) -> dict:
        """Make a compiled semester visible to students and parents."""
        school_class = class_for_head(self.db, head)
        period = resolve_period(self.db, period.academic_year_id, period.semester_id)
        if period.is_year:
            raise StateError("Use the year publication for a whole academic year.")
        rows = period_results(self.db, school_class.id, period).all()
        if not rows:
            raise StateError("No compiled results to publish. Compile grades first.")

        now = datetime.now(UTC)
        count = self._publish(rows, now)
        self._commit("publish semester results")
        logger.info(f"Published {count} results of class {school_class.id} for {period.describe()}")
        semester = self.db.query(Semester).filter(Semester.id == period.semester_id).first()
        return {
            "class_id": school_class.id,
            "class_name": school_class.name,
            "semester": semester.name if semester else None,
            "students_published": count,
            "published_at": now.isoformat(),
        }

    def publish_year(self, head: User, academic_year_id: int, send_roster: bool = False) -> dict:
        """Publish every semester of the year plus the year results.

        Year rows are flagged for notification. With ``send_roster`` the
        year roster is archived to the store house as well.
        """
        school_class = class_for_head(self.db, head)
        period = resolve_period(self.db, academic_year_id)
        semesters = (
            self.db.query(Semester)
            .filter(Semester.academic_year_id == academic_year_id)
            .order_by(Semester.number)
            .all()
        )
        semester_rows = []
        if semesters:
            semester_rows = (
                self.db.query(CompiledResult)
                .filter(
                    CompiledResult.class_id == school_class.id,
                    CompiledResult.semester_id.in_([s.id for s in semesters]),
                )
                .all()
            )
        year_rows = period_results(self.db, school_class.id, period).all()
        if not semester_rows and not year_rows:
            raise StateError("No compiled results to publish for this academic year.")

        now = datetime.now(UTC)
        self._publish(semester_rows, now)
        students_published = self._publish(year_rows, now, notify=True)
        self._commit("publish year results")
        logger.info(
            f"Published year {academic_year_id} for class {school_class.id}: "
            f"{len(semester_rows)} semester and {len(year_rows)} year results"
        )

        data = {
            "class_id": school_class.id,
            "class_name": school_class.name,
            "academic_year_id": academic_year_id,
            "semesters_included": [s.name for s in semesters],
            "students_published": students_published or len({r.student_id for r in semester_rows}),
            "published_at": now.isoformat(),
            "sent_to_store_house": False,
        }
        if send_roster:
            from gradebook.storehouse.service import ArchiveService

            data["roster"] = ArchiveService(self.db).send_roster(head, period)
            data["sent_to_store_house"] = True
        return data

    def student_results(
        self,
        viewer: User,
        student_id: int,
        academic_year_id: Optional[int] = None,
        semester_id: Optional[int] = None,
    ) -> dict:
        """Stored results of one student; students and parents get published ones only."""
        student = get_student(self.db, student_id)
        ensure_can_view_student(viewer, student)

        query = self.db.query(CompiledResult).filter(CompiledResult.student_id == student.id)
        if semester_id is not None:
            query = query.filter(CompiledResult.semester_id == semester_id)
        if academic_year_id is not None:
            query = query.filter(CompiledResult.academic_year_id == academic_year_id)
        rows = query.order_by(
            CompiledResult.academic_year_id, CompiledResult.semester_id.is_(None), CompiledResult.semester_id
        ).all()

        if viewer.role in RESTRICTED_VIEWERS:
            visible = [r for r in rows if r.is_published]
            if rows and not visible:
                raise NotFoundError("Results for this period are not yet published.")
            rows = visible
        if not rows:
            raise NotFoundError("No results found for this student.")

        return {
            "student_id": student.id,
            "student_name": student.name,
            "student_code": student.student_code,
            "class_id": student.class_id,
            "results": [result_to_dict(r) for r in rows],
        }

