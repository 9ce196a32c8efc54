"""Tests for assessment scoring and weak-tag extraction."""

import pytest

from learnpath.errors import InvalidAssessment
from learnpath.models.lesson import AnswerItem, Assessment
from learnpath.services.scoring import round_half_up, score_submission

from conftest import all_correct, four_question_lesson, make_question, three_correct


def _questions():
    return Assessment.model_validate(four_question_lesson()["assessment"]).questions


def _answers(raw):
    return [AnswerItem.model_validate(a) for a in raw]


class TestScenarios:
    def test_three_of_four_correct(self):
        result = score_submission(_questions(), _answers(three_correct()))

        assert result.score == 75
        assert result.correct_count == 3
        assert result.total_questions == 4
        assert result.weak_tags == {"equivalence", "simplifying"}
        assert not result.passed(80)

    def test_all_correct(self):
        result = score_submission(_questions(), _answers(all_correct()))

        assert result.score == 100
        assert result.weak_tags == set()
        assert result.passed(80)

    def test_boundary_score_equal_to_passing_score_passes(self):
        result = score_submission(_questions(), _answers(three_correct()))
        assert result.passed(75)


class TestSubmissionEdges:
    def test_unknown_question_ids_are_ignored(self):
        answers = three_correct() + [
            {"questionId": "stale-q", "selectedOptionId": "a"},
            {"questionId": "q99", "selectedOptionId": "b"},
        ]
        result = score_submission(_questions(), _answers(answers))

        assert result.score == 75
        assert result.weak_tags == {"equivalence", "simplifying"}

    def test_partial_submission_scored_against_full_assessment(self):
        """Omitted answers count as wrong but add no tags."""
        result = score_submission(_questions(), _answers(all_correct()[:2]))

        assert result.score == 50
        assert result.weak_tags == set()

    def test_empty_submission(self):
        result = score_submission(_questions(), [])
        assert result.score == 0
        assert result.weak_tags == set()

    def test_repeated_answers_count_once(self):
        answers = [{"questionId": "q1", "selectedOptionId": "a"}] * 6
        result = score_submission(_questions(), _answers(answers))

        assert result.score == 25
        assert result.correct_count == 1

    def test_first_answer_to_a_question_wins(self):
        answers = [
            {"questionId": "q1", "selectedOptionId": "b"},
            {"questionId": "q1", "selectedOptionId": "a"},
        ]
        result = score_submission(_questions(), _answers(answers))

        assert result.correct_count == 0
        assert result.weak_tags == {"numerator"}

    def test_zero_questions_is_invalid(self):
        with pytest.raises(InvalidAssessment):
            score_submission([], _answers(all_correct()))


class TestWeakTags:
    def test_correct_answers_contribute_no_tags(self):
        questions = Assessment.model_validate({
            "passingScore": 50,
            "questions": [
                make_question("q1", "a", ["shared", "only-correct"]),
                make_question("q2", "a", ["shared", "only-wrong"]),
            ],
        }).questions
        answers = _answers([
            {"questionId": "q1", "selectedOptionId": "a"},
            {"questionId": "q2", "selectedOptionId": "b"},
        ])

        result = score_submission(questions, answers)

        assert "only-correct" not in result.weak_tags
        assert result.weak_tags == {"shared", "only-wrong"}

    def test_wrong_answers_deduplicate_tags(self):
        questions = Assessment.model_validate({
            "questions": [
                make_question("q1", "a", ["fractions"]),
                make_question("q2", "a", ["fractions"]),
            ],
        }).questions
        answers = _answers([
            {"questionId": "q1", "selectedOptionId": "b"},
            {"questionId": "q2", "selectedOptionId": "b"},
        ])

        assert score_submission(questions, answers).weak_tags == {"fractions"}


class TestRounding:
    @pytest.mark.parametrize(
        "correct,total,expected",
        [(1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 8, 63), (0, 7, 0), (7, 7, 100), (1, 200, 1)],
    )
    def test_round_half_up(self, correct, total, expected):
        assert round_half_up(correct, total) == expected

    def test_score_is_always_an_integer_percentage(self):
        for total in range(1, 13):
            questions = Assessment.model_validate(
                {"questions": [make_question(f"q{i}") for i in range(total)]}
            ).questions
            for correct in range(total + 1):
                answers = _answers(
                    [{"questionId": f"q{i}", "selectedOptionId": "a"} for i in range(correct)]
                )
                score = score_submission(questions, answers).score
                assert isinstance(score, int)
                assert 0 <= score <= 100
