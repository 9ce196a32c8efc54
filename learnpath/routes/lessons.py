import re
from fastapi import APIRouter, Depends, Request

from learnpath.db import documents
from learnpath.db.database import get_db
from learnpath.errors import BadRequest
from learnpath.routes.auth import get_current_user

router = APIRouter(prefix="/lessons", tags=["lessons"])

_TOPIC_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

# Answer keys stay server-side until the learner submits
_HIDDEN_QUESTION_FIELDS = {"assessment": {"questions": {"__all__": {"correct_answer_id", "explanation"}}}}


@router.get("/{topic_id}")
async def list_topic_lessons(topic_id: str, request: Request, db=Depends(get_db)):
    """All lessons of a topic in order; [] when the topic has none."""
    await get_current_user(request)

    if not _TOPIC_ID_RE.match(topic_id):
        raise BadRequest("A valid topicId is required")

    lessons = await documents.get_lessons_by_topic(db, topic_id)
    return [lesson.model_dump(by_alias=True, exclude=_HIDDEN_QUESTION_FIELDS) for lesson in lessons]
