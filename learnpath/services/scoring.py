"""
scoring.py - Assessment scoring

Provides:
- score_submission(questions, answers) - score + weak concept tags
- round_half_up(numerator, denominator) - percentage rounding used for scores
"""

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from learnpath.errors import InvalidAssessment
from learnpath.models.lesson import AnswerItem, Question


@dataclass
class ScoreResult:
    score: int
    weak_tags: set[str] = field(default_factory=set)
    correct_count: int = 0
    total_questions: int = 0

    def passed(self, passing_score: int) -> bool:
        return self.score >= passing_score


def round_half_up(numerator: int, denominator: int) -> int:
    """Round numerator/denominator * 100 to an integer, .5 rounding up."""
    return (200 * numerator + denominator) // (2 * denominator)


def score_submission(questions: Sequence[Question], answers: Iterable[AnswerItem]) -> ScoreResult:
    """
    Score submitted answers against an assessment's questions.

    The score is taken over the full question count: omitted questions count
    as wrong but add no weak tags. Answers to unknown question ids are ignored,
    and only the first answer to a question counts.
    Raises InvalidAssessment when the assessment has no questions.
    """
    if not questions:
        raise InvalidAssessment("Assessment has no questions")

    by_id = {q.id: q for q in questions}
    answered: set[str] = set()
    correct_count = 0
    weak_tags: set[str] = set()

    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None or question.id in answered:
            continue
        answered.add(question.id)
        if question.correct_answer_id == answer.selected_option_id:
            correct_count += 1
        else:
            weak_tags.update(question.tags)

    return ScoreResult(
        score=round_half_up(correct_count, len(questions)),
        weak_tags=weak_tags,
        correct_count=correct_count,
        total_questions=len(questions),
    )
