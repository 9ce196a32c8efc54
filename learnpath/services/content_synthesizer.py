"""
content_synthesizer.py - Generates a remedial lesson for a set of weak concepts

The generator's reply is untrusted text. It is stripped of code fences,
parsed as JSON and validated into GeneratedRemedialLesson; anything else is
rejected with GenerationError(INVALID_SHAPE). The generator is called once
per synthesize() call.
"""

import asyncio
import json
import logging
import re
from typing import Iterable

from pydantic import ValidationError

from learnpath.errors import GenerationError, GenerationErrorKind
from learnpath.models.generation import (
    BLOCK_TYPES,
    DEFAULT_MAX_BLOCK_CHARS,
    MAX_BLOCKS,
    GeneratedRemedialLesson,
)
from learnpath.services.prompts import load_prompt

logger = logging.getLogger(__name__)

# The prompt asks for at least two blocks; validation accepts one.
PROMPT_MIN_BLOCKS = 2

# One fence pair wrapping the whole reply; fences inside string values are content
_OUTER_FENCE_RE = re.compile(r"\A\s*```(?:json)?[ \t]*\n?([\s\S]*?)\s*```\s*\Z", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence (```json / ```) wrapping generated JSON."""
    text = (text or "").strip()
    match = _OUTER_FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def parse_json_reply(text: str):
    """Fence-strip and JSON-decode a generator reply; INVALID_SHAPE if it is not JSON."""
    clean = strip_code_fences(text)
    try:
        return clean, json.loads(clean)
    except json.JSONDecodeError as exc:
        raise GenerationError(
            GenerationErrorKind.INVALID_SHAPE, f"Generator reply is not valid JSON: {exc}"
        ) from exc


def parse_remedial_lesson(
    text: str,
    *,
    max_block_chars: int = DEFAULT_MAX_BLOCK_CHARS,
) -> GeneratedRemedialLesson:
    clean, data = parse_json_reply(text)
    if not isinstance(data, dict):
        raise GenerationError(
            GenerationErrorKind.INVALID_SHAPE,
            f"Expected a JSON object, got {type(data).__name__}",
        )
    try:
        return GeneratedRemedialLesson.model_validate_json(
            clean, context={"max_block_chars": max_block_chars}
        )
    except ValidationError as exc:
        raise GenerationError(
            GenerationErrorKind.INVALID_SHAPE,
            f"Generated lesson failed validation: {exc.error_count()} error(s)",
        ) from exc


class ContentSynthesizer:
    def __init__(self, client, *, max_block_chars: int = DEFAULT_MAX_BLOCK_CHARS):
        self.client = client
        self.max_block_chars = max_block_chars

    def build_messages(self, concepts: list[str]) -> list[dict]:
        prompt = load_prompt("remedial_lesson.yaml")
        user_message = prompt["user_template"].format(
            concepts="\n".join(f"- {c}" for c in concepts),
            min_blocks=PROMPT_MIN_BLOCKS,
            max_blocks=MAX_BLOCKS,
            block_types=", ".join(BLOCK_TYPES),
            max_block_chars=self.max_block_chars,
        )
        return [
            {"role": "system", "content": prompt["system_prompt"]},
            {"role": "user", "content": user_message},
        ]

    async def synthesize(self, weak_tags: Iterable[str]) -> GeneratedRemedialLesson:
        """Generate one remedial lesson covering all weak tags.

        Raises GenerationError with kind TIMEOUT, UPSTREAM_FAILURE or INVALID_SHAPE.
        """
        concepts = sorted(set(weak_tags))
        if not concepts:
            raise ValueError("synthesize() needs at least one concept")

        messages = self.build_messages(concepts)
        try:
            text = await self.client.chat(
                messages,
                use_case="remediation",
                temperature=0.4,
                json_mode=True,
            )
        except (asyncio.TimeoutError, TimeoutError) as exc:
            logger.warning("Remedial lesson generation timed out for %s", concepts)
            raise GenerationError(GenerationErrorKind.TIMEOUT, "Generator timed out") from exc
        except Exception as exc:
            logger.warning("Remedial lesson generation failed for %s: %s", concepts, exc)
            raise GenerationError(
                GenerationErrorKind.UPSTREAM_FAILURE, "Generator request failed"
            ) from exc

        try:
            lesson = parse_remedial_lesson(text, max_block_chars=self.max_block_chars)
        except GenerationError as exc:
            logger.warning("Rejected generated remedial lesson for %s: %s", concepts, exc.message)
            raise

        return lesson.model_copy(update={"concepts": concepts})
