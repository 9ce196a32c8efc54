"""Assessment endpoints: submission grading, the caller's progress and remedial lessons."""

import logging
from fastapi import APIRouter, Depends, Request

from learnpath.db import documents
from learnpath.db.database import get_db
from learnpath.dependencies import get_remediation_selector
from learnpath.errors import BadRequest, NotFound
from learnpath.routes.auth import get_current_user
from learnpath.services import progress_ledger
from learnpath.services.submission import submit_assessment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessments", tags=["assessments"])


@router.post("/{lesson_id}/submit")
async def submit_lesson_assessment(
    lesson_id: str,
    request: Request,
    db=Depends(get_db),
    remediation=Depends(get_remediation_selector),
):
    """
    Grade a submission and return either the next lesson or remediation.

    Request body:
    {
        "answers": [
            {"questionId": "q1", "selectedOptionId": "b"},
            ...
        ]
    }
    """
    user = await get_current_user(request)

    try:
        payload = await request.json()
    except ValueError:
        raise BadRequest("Invalid submission format")

    return await submit_assessment(db, user["id"], lesson_id, payload, remediation)


@router.get("/{lesson_id}/progress")
async def get_lesson_progress(lesson_id: str, request: Request, db=Depends(get_db)):
    """The caller's progress record for a lesson, with every attempt."""
    user = await get_current_user(request)

    record = await progress_ledger.get_progress(db, user["id"], lesson_id)
    if record is None:
        raise NotFound("No progress for this lesson")
    return record.model_dump(by_alias=True)


@router.get("/{lesson_id}/remedial-lessons")
async def list_remedial_lessons(lesson_id: str, request: Request, db=Depends(get_db)):
    """Remedial lessons generated for the caller on this lesson, oldest first."""
    user = await get_current_user(request)

    return await documents.get_remedial_lessons(db, user["id"], lesson_id)
