"""Test cases for compiling class results."""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from gradebook.errors import ComputationError, ForbiddenError, InternalError, NotFoundError, ValidationError
from gradebook.grading import PeriodContext
from gradebook.models import AcademicYear, CompiledResult, CompiledSubjectScore, Grade, SubmissionStatus
from gradebook.results.service import CompilationService, PublicationService


@pytest.fixture
def compiler(db_session):
    return CompilationService(db_session)


def semester_period(semester):
    return PeriodContext(academic_year_id=semester.academic_year_id, semester_id=semester.id)


def stored(db_session, semester_id):
    db_session.expire_all()
    return {
        r.student_id: r
        for r in db_session.query(CompiledResult).filter(CompiledResult.semester_id == semester_id)
    }


class TestSemesterCompilation:
    """Test cases for compiling one semester."""

    def test_totals_averages_ranks_and_remarks(self, compiler, db_session, class_head, students, graded_semester):
        summary = compiler.compile(class_head, semester_period(graded_semester))

        assert summary["compilation_status"] == "completed"
        assert summary["students_compiled"] == 3
        assert summary["total_students"] == 3
        assert summary["period"] == "Semester 1"
        assert summary["class_average"] == pytest.approx(65.33)

        alem, bruk, dina = students
        rows = stored(db_session, graded_semester.id)
        assert (rows[alem.id].total, rows[alem.id].average, rows[alem.id].rank) == (152, 76, 1)
        assert (rows[dina.id].total, rows[dina.id].average, rows[dina.id].rank) == (152, 76, 2)
        assert (rows[bruk.id].total, rows[bruk.id].average, rows[bruk.id].rank) == (88, 44, 3)
        assert rows[alem.id].remark == "Promoted"
        assert rows[dina.id].remark == "Promoted"
        assert rows[bruk.id].remark == "Not Promoted"
        assert all(not r.is_published for r in rows.values())
        assert all(r.subjects_count == 2 for r in rows.values())

    def test_subject_scores_are_stored(self, compiler, db_session, class_head, students, subjects, graded_semester):
        compiler.compile(class_head, semester_period(graded_semester))

        row = stored(db_session, graded_semester.id)[students[1].id]
        assert {s.subject_id: s.score for s in row.subject_scores} == {
            subjects["Mathematics"].id: 42,
            subjects["English"].id: 46,
        }

    def test_draft_subjects_are_left_out(self, compiler, db_session, class_head, students, subjects,
                                         graded_semester, set_submission):
        set_submission(subjects["Mathematics"], graded_semester, SubmissionStatus.draft)

        compiler.compile(class_head, semester_period(graded_semester))

        alem, bruk, dina = students
        rows = stored(db_session, graded_semester.id)
        assert [rows[s.id].average for s in (alem, bruk, dina)] == [70, 46, 82]
        assert [rows[s.id].rank for s in (dina, alem, bruk)] == [1, 2, 3]
        assert rows[alem.id].subjects_count == 1

    def test_students_without_scores_are_skipped(self, compiler, db_session, class_head, students, subjects,
                                                 assessment_types, semester_one, add_grades, set_submission):
        """A student missing from every sheet gets no result row."""
        add_grades(subjects["Mathematics"], semester_one, {
            students[0]: {assessment_types["Final"]: 90},
            students[1]: {assessment_types["Final"]: 60},
        })
        set_submission(subjects["Mathematics"], semester_one)

        summary = compiler.compile(class_head, semester_period(semester_one))

        assert summary["students_compiled"] == 2
        assert summary["total_students"] == 3
        assert students[2].id not in stored(db_session, semester_one.id)

    def test_empty_class(self, compiler, db_session, class_head, school_class, semester_one):
        with pytest.raises(ComputationError) as exc:
            compiler.compile(class_head, semester_period(semester_one))

        assert "no students" in exc.value.message
        assert db_session.query(CompiledResult).count() == 0

    def test_nothing_submitted(self, compiler, db_session, class_head, students, subjects, assessment_types,
                               semester_one, add_grades):
        add_grades(subjects["Mathematics"], semester_one, {students[0]: {assessment_types["Final"]: 90}})

        with pytest.raises(ComputationError):
            compiler.compile(class_head, semester_period(semester_one))

        assert db_session.query(CompiledResult).count() == 0

    def test_compiling_twice_replaces_rows(self, compiler, db_session, class_head, graded_semester):
        compiler.compile(class_head, semester_period(graded_semester))
        first = {sid: (r.total, r.average, r.rank, r.remark) for sid, r in stored(db_session, graded_semester.id).items()}

        compiler.compile(class_head, semester_period(graded_semester))
        second = {sid: (r.total, r.average, r.rank, r.remark) for sid, r in stored(db_session, graded_semester.id).items()}

        assert first == second
        assert db_session.query(CompiledResult).count() == 3
        assert db_session.query(CompiledSubjectScore).count() == 6

    def test_recompile_keeps_publication(self, compiler, db_session, class_head, graded_semester):
        period = semester_period(graded_semester)
        compiler.compile(class_head, period)
        PublicationService(db_session).publish_semester(class_head, period)

        compiler.compile(class_head, period)

        rows = stored(db_session, graded_semester.id)
        assert all(r.is_published for r in rows.values())
        assert all(r.published_at is not None for r in rows.values())

    def test_failed_write_keeps_previous_rows(self, compiler, db_session, class_head, students, subjects,
                                              graded_semester):
        period = semester_period(graded_semester)
        compiler.compile(class_head, period)
        before = {sid: (r.total, r.average, r.rank, r.remark) for sid, r in stored(db_session, graded_semester.id).items()}
        bruk = students[1]
        grade = db_session.query(Grade).filter_by(student_id=bruk.id, subject_id=subjects["Mathematics"].id).first()
        grade.score = grade.max_score
        db_session.commit()

        with patch.object(db_session, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(InternalError):
                compiler.compile(class_head, period)

        rows = stored(db_session, graded_semester.id)
        assert {sid: (r.total, r.average, r.rank, r.remark) for sid, r in rows.items()} == before
        assert db_session.query(CompiledSubjectScore).count() == 6
        assert {s.subject_id: s.score for s in rows[bruk.id].subject_scores}[subjects["Mathematics"].id] == 42

    def test_only_a_class_head_compiles(self, compiler, teacher, graded_semester):
        with pytest.raises(ForbiddenError):
            compiler.compile(teacher, semester_period(graded_semester))

    def test_semester_must_belong_to_year(self, compiler, db_session, class_head, academic_year, graded_semester):
        other = AcademicYear(
            school_id=academic_year.school_id, name="2026/2027",
            start_date=date(2026, 9, 1), end_date=date(2027, 6, 30),
        )
        db_session.add(other)
        db_session.commit()

        with pytest.raises(ValidationError):
            compiler.compile(class_head, PeriodContext(academic_year_id=other.id, semester_id=graded_semester.id))

    def test_unknown_year(self, compiler, class_head, school_class):
        with pytest.raises(NotFoundError):
            compiler.compile(class_head, PeriodContext(academic_year_id=999))


class TestYearCompilation:
    """Test cases for year results built from compiled semesters."""

    @pytest.fixture
    def second_semester(self, students, subjects, assessment_types, semester_two, add_grades, set_submission):
        """Mathematics only, every student at 50."""
        add_grades(subjects["Mathematics"], semester_two, {
            student: {assessment_types["Final"]: 100} for student in students
        })
        set_submission(subjects["Mathematics"], semester_two)
        return semester_two

    def test_requires_compiled_semesters(self, compiler, db_session, class_head, academic_year, students):
        with pytest.raises(ComputationError):
            compiler.compile(class_head, PeriodContext(academic_year_id=academic_year.id))

        assert db_session.query(CompiledResult).count() == 0

    def test_mean_of_semesters(self, compiler, db_session, class_head, academic_year, students, subjects,
                               graded_semester, second_semester):
        compiler.compile(class_head, semester_period(graded_semester))
        compiler.compile(class_head, semester_period(second_semester))

        summary = compiler.compile(class_head, PeriodContext(academic_year_id=academic_year.id))

        assert summary["period"] == "2025/2026"
        assert summary["semester_id"] is None
        alem, bruk, dina = students
        rows = stored(db_session, None)
        assert (rows[alem.id].total, rows[alem.id].average, rows[alem.id].rank) == (101, 63, 1)
        assert (rows[dina.id].average, rows[dina.id].rank) == (63, 2)
        assert (rows[bruk.id].total, rows[bruk.id].average, rows[bruk.id].rank) == (69, 47, 3)
        assert rows[bruk.id].remark == "Not Promoted"
        assert {s.subject_id: s.score for s in rows[alem.id].subject_scores} == {
            subjects["Mathematics"].id: 66,
            subjects["English"].id: 70,
        }

    def test_single_semester_year(self, compiler, db_session, class_head, academic_year, students, graded_semester):
        compiler.compile(class_head, semester_period(graded_semester))

        compiler.compile(class_head, PeriodContext(academic_year_id=academic_year.id))

        rows = stored(db_session, None)
        assert rows[students[0].id].average == 76
        assert rows[students[1].id].average == 44


class TestRankingsPreview:
    """Test cases for the live rankings view."""

    def test_preview_includes_drafts_and_stores_nothing(self, compiler, db_session, class_head, students,
                                                        subjects, graded_semester, set_submission):
        set_submission(subjects["Mathematics"], graded_semester, SubmissionStatus.draft)

        data = compiler.rankings(class_head, graded_semester.id)

        assert data["class"]["name"] == "9A"
        assert data["subjects"] == ["English", "Mathematics"]
        assert data["class_average"] == pytest.approx(65.33)
        assert [(i["student_name"], i["rank"]) for i in data["items"]] == [
            ("Alem Tesfaye", 1), ("Dina Yusuf", 2), ("Bruk Haile", 3),
        ]
        assert data["items"][0]["subject_scores"] == {"Mathematics": 82, "English": 70}
        assert data["items"][2]["remark"] == "Not Promoted"
        assert db_session.query(CompiledResult).count() == 0

    def test_unknown_semester(self, compiler, class_head, school_class):
        with pytest.raises(NotFoundError):
            compiler.rankings(class_head, 999)
