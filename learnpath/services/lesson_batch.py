"""
lesson_batch.py - Bulk lesson generation for a list of topic names

For each topic: upsert the topic by name, ask the generator for a JSON array
of lessons, validate each lesson and insert the valid ones in one
transaction, numbering them after the topic's existing lessons.
A failing topic yields an empty list and never stops the others.
"""

import json
import logging
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from learnpath.db import documents
from learnpath.db.database import atomic
from learnpath.errors import GenerationError, GenerationErrorKind
from learnpath.models.generation import BLOCK_TYPES, DEFAULT_MAX_BLOCK_CHARS, GeneratedLesson
from learnpath.services.content_synthesizer import parse_json_reply
from learnpath.services.prompts import load_prompt

logger = logging.getLogger(__name__)


def parse_lesson_batch(
    text: str,
    *,
    max_block_chars: int = DEFAULT_MAX_BLOCK_CHARS,
) -> List[GeneratedLesson]:
    """Validate a generated JSON array of lessons, skipping invalid elements.

    Raises GenerationError(INVALID_SHAPE) when the reply is not an array or
    holds no valid lesson at all.
    """
    _, data = parse_json_reply(text)
    if not isinstance(data, list):
        raise GenerationError(
            GenerationErrorKind.INVALID_SHAPE,
            f"Expected a JSON array of lessons, got {type(data).__name__}",
        )

    lessons = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning("Skipping generated lesson %d: not an object", index)
            continue
        try:
            lessons.append(
                GeneratedLesson.model_validate_json(
                    json.dumps(item), context={"max_block_chars": max_block_chars}
                )
            )
        except ValidationError as exc:
            logger.warning("Skipping generated lesson %d: %d validation error(s)", index, exc.error_count())

    if not lessons:
        raise GenerationError(GenerationErrorKind.INVALID_SHAPE, "No valid lessons in reply")
    return lessons


def build_messages(topic: str, count: int, max_block_chars: int) -> list[dict]:
    prompt = load_prompt("topic_lessons.yaml")
    user_message = prompt["user_template"].format(
        topic=topic,
        count=count,
        block_types=", ".join(BLOCK_TYPES),
        max_block_chars=max_block_chars,
    )
    return [
        {"role": "system", "content": prompt["system_prompt"]},
        {"role": "user", "content": user_message},
    ]


async def generate_topic_lessons(
    db,
    client,
    topic_name: str,
    *,
    count: int = 5,
    max_block_chars: int = DEFAULT_MAX_BLOCK_CHARS,
) -> List[Dict[str, Any]]:
    async with atomic(db):
        topic = await documents.upsert_topic(db, topic_name)

    text = await client.chat(
        build_messages(topic_name, count, max_block_chars),
        use_case="lesson",
        temperature=0.4,
    )
    lessons = parse_lesson_batch(text, max_block_chars=max_block_chars)

    created = []
    async with atomic(db):
        # Writing first takes the write lock, so the max order read below
        # cannot interleave with another batch for the same topic
        topic = await documents.upsert_topic(db, topic_name)
        start = await documents.get_max_order(db, topic.id)
        for offset, lesson in enumerate(lessons, start=1):
            doc = lesson.model_dump(by_alias=True)
            lesson_id = await documents.create_lesson(db, topic.id, doc, order=start + offset)
            created.append({"id": lesson_id, "topicId": topic.id, "order": start + offset, **doc})

    logger.info("Generated %d lessons for topic %r (%s)", len(created), topic_name, topic.id)
    return created


async def generate_lessons(
    db,
    client,
    topics: Iterable[str],
    *,
    count: int = 5,
    max_block_chars: int = DEFAULT_MAX_BLOCK_CHARS,
) -> Dict[str, List[Dict[str, Any]]]:
    results: Dict[str, List[Dict[str, Any]]] = {}
    for topic_name in dict.fromkeys(topics):
        try:
            results[topic_name] = await generate_topic_lessons(
                db, client, topic_name, count=count, max_block_chars=max_block_chars
            )
        except Exception as exc:
            logger.error("Failed to generate lessons for topic %r: %s", topic_name, exc)
            results[topic_name] = []
    return results
