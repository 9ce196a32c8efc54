"""Bulk lesson generation: topic names in, stored lessons out."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, StrictStr, StringConstraints

from learnpath.config import settings
from learnpath.db.database import get_db
from learnpath.dependencies import get_ai_client
from learnpath.routes.auth import get_current_user
from learnpath.services.lesson_batch import generate_lessons

router = APIRouter(prefix="/generate-lessons", tags=["generation"])

TopicName = Annotated[StrictStr, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class GenerateLessonsRequest(BaseModel):
    topics: list[TopicName]


@router.post("")
async def generate_topic_lessons(
    body: GenerateLessonsRequest,
    request: Request,
    db=Depends(get_db),
    client=Depends(get_ai_client),
):
    await get_current_user(request)

    results = await generate_lessons(
        db,
        client,
        body.topics,
        count=settings.lessons_per_topic,
        max_block_chars=settings.max_block_chars,
    )
    return {"status": "ok", "results": results}
