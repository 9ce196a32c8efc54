"""
submission.py - Grades an assessment submission and routes the learner

Flow per request:
    validate payload -> load lesson -> score -> record attempt
      -> passed: resolve next lesson
      -> failed: pick remediation (snippets or a generated lesson)

Input and lookup problems raise BadRequest / NotFound / InvalidAssessment.
Remediation failures are reported in the response ("remediationError"),
never raised. Anything unexpected becomes InternalError.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from learnpath.db import documents
from learnpath.errors import AppError, BadRequest, InternalError, NotFound
from learnpath.models.lesson import AnswerSubmission
from learnpath.services import progress_ledger
from learnpath.services.next_unit import resolve_next
from learnpath.services.remediation import RemediationSelector
from learnpath.services.scoring import score_submission

logger = logging.getLogger(__name__)

STATUS_PASSED = "passed"
STATUS_REQUIRES_REVIEW = "requires_review"


def parse_submission(payload: Any) -> AnswerSubmission:
    """Validate {"answers": [{"questionId": str, "selectedOptionId": str}, ...]}."""
    if not isinstance(payload, dict):
        raise BadRequest("Invalid submission format")
    try:
        return AnswerSubmission.model_validate(payload)
    except ValidationError as exc:
        raise BadRequest("Invalid submission format") from exc


async def submit_assessment(
    db,
    user_id: str,
    lesson_id: str,
    payload: Any,
    remediation: RemediationSelector,
) -> Dict[str, Any]:
    submission = parse_submission(payload)
    try:
        return await _grade_and_route(db, user_id, lesson_id, submission, remediation)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("Error submitting assessment %s for user %s", lesson_id, user_id)
        raise InternalError() from exc


async def _grade_and_route(
    db,
    user_id: str,
    lesson_id: str,
    submission: AnswerSubmission,
    remediation: RemediationSelector,
) -> Dict[str, Any]:
    lesson = await documents.get_lesson(db, lesson_id)
    if lesson is None:
        raise NotFound("Lesson not found")

    assessment = lesson.assessment
    result = score_submission(assessment.questions, submission.answers)

    # Recorded on pass and on fail
    await progress_ledger.record_attempt(
        db, user_id, lesson_id, result.score, submission.answers, assessment.passing_score
    )

    if result.passed(assessment.passing_score):
        next_lesson_id = await resolve_next(db, lesson)
        logger.info(
            "User %s passed lesson %s with %d%% (next: %s)",
            user_id, lesson_id, result.score, next_lesson_id or "topic complete",
        )
        return {
            "status": STATUS_PASSED,
            "score": result.score,
            "xpEarned": lesson.xp,
            "nextLessonId": next_lesson_id,
        }

    outcome = await remediation.select(
        db, result.weak_tags, user_id=user_id, lesson_id=lesson_id
    )
    if outcome.error is not None:
        logger.warning(
            "Remediation unavailable for user %s on lesson %s (%s); returning score only",
            user_id, lesson_id, outcome.error.value,
        )
    else:
        logger.info(
            "User %s needs review on lesson %s with %d%% (weak: %s)",
            user_id, lesson_id, result.score, ", ".join(sorted(result.weak_tags)) or "none",
        )

    return {
        "status": STATUS_REQUIRES_REVIEW,
        "score": result.score,
        "weakTags": sorted(result.weak_tags),
        "remediation": outcome.payload(),
        "remediationError": outcome.error.value if outcome.error else None,
    }
