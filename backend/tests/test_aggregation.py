"""Test cases for weighted aggregation, totals and ranking."""

import pytest

from gradebook.grading import (
    AssessmentWeight, ScoreEntry, StudentStanding, SubjectScore,
    class_average, promotion_remark, rank_standings, subject_score, summarize, year_standing,
)


class TestSubjectScore:
    """Test cases for the weighted subject score."""

    def test_weighted_sum_of_components(self):
        """Midterm 80/100 at 40% and Final 45/50 at 60% give 86."""
        weights = [AssessmentWeight(1, 40), AssessmentWeight(2, 60)]
        entries = [ScoreEntry(1, 80, 100), ScoreEntry(2, 45, 50)]

        assert subject_score(entries, weights) == pytest.approx(86.0)

    def test_missing_component_is_excluded(self):
        """Only entered components count; the sum is not rescaled."""
        weights = [AssessmentWeight(1, 40), AssessmentWeight(2, 60)]

        assert subject_score([ScoreEntry(1, 80, 100)], weights) == pytest.approx(32.0)

    def test_null_score_is_excluded(self):
        weights = [AssessmentWeight(1, 40), AssessmentWeight(2, 60)]
        entries = [ScoreEntry(1, 80, 100), ScoreEntry(2, None, 50)]

        assert subject_score(entries, weights) == pytest.approx(32.0)

    def test_no_scores_returns_none(self):
        weights = [AssessmentWeight(1, 100)]

        assert subject_score([], weights) is None
        assert subject_score([ScoreEntry(1, None, 100)], weights) is None

    def test_unweighted_type_contributes_zero(self):
        weights = [AssessmentWeight(1, 100)]
        entries = [ScoreEntry(1, 50, 100), ScoreEntry(9, 100, 100)]

        assert subject_score(entries, weights) == pytest.approx(50.0)

    def test_zero_max_score_contributes_zero(self):
        assert subject_score([ScoreEntry(1, 10, 0)], [AssessmentWeight(1, 100)]) == 0.0

    def test_full_marks_reach_one_hundred(self):
        weights = [AssessmentWeight(1, 20), AssessmentWeight(2, 30), AssessmentWeight(3, 50)]
        entries = [ScoreEntry(1, 20, 20), ScoreEntry(2, 50, 50), ScoreEntry(3, 100, 100)]

        assert subject_score(entries, weights) == pytest.approx(100.0)


class TestSummarize:
    """Test cases for per-student totals and averages."""

    def test_total_and_average(self):
        standing = summarize(7, [SubjectScore(1, 90), SubjectScore(2, 80)])

        assert standing.student_id == 7
        assert standing.total == 170
        assert standing.average == 85
        assert standing.subjects_count == 2

    def test_average_uses_recorded_subjects_only(self):
        """One score out of two subjects is averaged over one subject."""
        standing = summarize(1, [SubjectScore(1, 72)])

        assert standing.subjects_count == 1
        assert standing.average == 72

    def test_values_are_rounded_to_two_decimals(self):
        standing = summarize(1, [SubjectScore(1, 33.333), SubjectScore(2, 33.3349), SubjectScore(3, 10)])

        assert standing.total == 76.67
        assert standing.average == 25.56

    def test_no_subjects(self):
        standing = summarize(1, [])

        assert standing.total == 0
        assert standing.average == 0
        assert standing.subjects_count == 0


class TestRanking:
    """Test cases for rank assignment."""

    def test_three_student_scenario(self):
        standings = [
            summarize(1, [SubjectScore(1, 90), SubjectScore(2, 80)]),
            summarize(2, [SubjectScore(1, 70), SubjectScore(2, 60)]),
            summarize(3, [SubjectScore(1, 50), SubjectScore(2, 40)]),
        ]

        ranked = rank_standings(standings)

        assert [s.total for s in ranked] == [170, 130, 90]
        assert [s.average for s in ranked] == [85, 65, 45]
        assert [s.rank for s in ranked] == [1, 2, 3]
        assert [promotion_remark(s.average) for s in ranked] == ["Promoted", "Promoted", "Not Promoted"]

    def test_ranks_follow_average_not_input_order(self):
        standings = [
            StudentStanding(1, 100, 50, 2),
            StudentStanding(2, 180, 90, 2),
            StudentStanding(3, 140, 70, 2),
        ]

        ranked = rank_standings(standings)

        assert [(s.student_id, s.rank) for s in ranked] == [(2, 1), (3, 2), (1, 3)]

    def test_equal_averages_break_ties_by_student_id(self):
        standings = [StudentStanding(9, 150, 75, 2), StudentStanding(4, 150, 75, 2), StudentStanding(6, 160, 80, 2)]

        ranked = rank_standings(standings)

        assert [(s.student_id, s.rank) for s in ranked] == [(6, 1), (4, 2), (9, 3)]

    def test_ranks_are_consecutive_and_averages_non_increasing(self):
        standings = [StudentStanding(i, 0, avg, 1) for i, avg in enumerate([40, 90, 90, 12.5, 66, 66.01], start=1)]

        ranked = rank_standings(standings)

        assert [s.rank for s in ranked] == list(range(1, len(standings) + 1))
        averages = [s.average for s in ranked]
        assert averages == sorted(averages, reverse=True)

    def test_ranking_does_not_mutate_input(self):
        original = StudentStanding(1, 100, 50, 2)

        rank_standings([original])

        assert original.rank == 0

    def test_empty(self):
        assert rank_standings([]) == []


class TestYearStanding:
    """Test cases for year figures built from semesters."""

    def test_mean_of_both_semesters(self):
        year = year_standing(1, [StudentStanding(1, 160, 80, 2), StudentStanding(1, 140, 70, 2)])

        assert year.total == 150
        assert year.average == 75
        assert year.subjects_count == 2

    def test_single_semester_with_data(self):
        """An empty semester does not halve the year average."""
        year = year_standing(1, [StudentStanding(1, 160, 80, 2), StudentStanding(1, 0, 0, 0)])

        assert year.average == 80
        assert year.total == 160

    def test_no_data(self):
        year = year_standing(1, [])

        assert year.average == 0
        assert year.subjects_count == 0


class TestClassAverage:

    def test_mean_of_student_averages(self):
        standings = [StudentStanding(1, 0, 80, 1), StudentStanding(2, 0, 65.5, 1)]

        assert class_average(standings) == 72.75

    def test_empty_class(self):
        assert class_average([]) == 0.0
