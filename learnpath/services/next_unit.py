import logging
from typing import Optional

from learnpath.db import documents
from learnpath.models.lesson import Lesson

logger = logging.getLogger(__name__)


async def resolve_next(db, lesson: Lesson) -> Optional[str]:
    """ID of the lesson that follows `lesson` in its topic, or None at the end of the topic."""
    candidates = sorted(await documents.get_lesson_ids_at_order(db, lesson.topic_id, lesson.order + 1))
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning(
            "Data integrity: topic %s has %d lessons at order %d (%s); using %s",
            lesson.topic_id, len(candidates), lesson.order + 1,
            ", ".join(candidates), candidates[0],
        )
    return candidates[0]
