"""
remediation.py - Picks remedial content for a failed assessment

Two deployment modes (REMEDIATION_MODE):
- retrieval: pre-authored content snippets sharing any weak tag
- synthesis: one generated lesson covering all weak tags together

Generation failures are returned in RemediationOutcome.error instead of
being raised; the learner's grade never depends on remediation succeeding.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from learnpath.db import documents
from learnpath.db.database import atomic
from learnpath.errors import GenerationError, GenerationErrorKind
from learnpath.models.generation import GeneratedRemedialLesson

logger = logging.getLogger(__name__)

MODE_RETRIEVAL = "retrieval"
MODE_SYNTHESIS = "synthesis"


@dataclass
class RemediationOutcome:
    mode: Optional[str] = None
    snippets: List[str] = field(default_factory=list)
    lesson: Optional[GeneratedRemedialLesson] = None
    error: Optional[GenerationErrorKind] = None

    def payload(self) -> Optional[Dict[str, Any]]:
        """Remediation as returned to the client, or None when there is none."""
        if self.mode == MODE_RETRIEVAL:
            return {"mode": MODE_RETRIEVAL, "snippets": self.snippets}
        if self.mode == MODE_SYNTHESIS and self.lesson is not None:
            return {"mode": MODE_SYNTHESIS, "lesson": self.lesson.model_dump(by_alias=True)}
        return None


class RemediationSelector:
    def __init__(self, mode: str, synthesizer=None, *, persist: bool = True):
        if mode not in (MODE_RETRIEVAL, MODE_SYNTHESIS):
            raise ValueError(f"Unknown remediation mode: {mode}")
        if mode == MODE_SYNTHESIS and synthesizer is None:
            raise ValueError("Synthesis mode needs a ContentSynthesizer")
        self.mode = mode
        self.synthesizer = synthesizer
        self.persist = persist

    async def select(
        self,
        db,
        weak_tags: Iterable[str],
        *,
        user_id: str,
        lesson_id: str,
    ) -> RemediationOutcome:
        tags = sorted(set(weak_tags))
        if not tags:
            return RemediationOutcome()

        if self.mode == MODE_RETRIEVAL:
            snippets = await documents.get_snippets_by_tags(db, tags)
            return RemediationOutcome(mode=MODE_RETRIEVAL, snippets=[s.content for s in snippets])

        try:
            lesson = await self.synthesizer.synthesize(tags)
        except GenerationError as exc:
            return RemediationOutcome(mode=MODE_SYNTHESIS, error=exc.kind)

        if self.persist:
            await self._store(db, user_id, lesson_id, tags, lesson)
        return RemediationOutcome(mode=MODE_SYNTHESIS, lesson=lesson)

    async def _store(self, db, user_id, lesson_id, tags, lesson: GeneratedRemedialLesson):
        # Independent of the progress write; losing it only loses the archive copy
        try:
            async with atomic(db):
                await documents.create_remedial_lesson(
                    db, user_id, lesson_id, tags, lesson.model_dump(by_alias=True)
                )
        except Exception:
            logger.exception(
                "Failed to store remedial lesson for user %s, lesson %s", user_id, lesson_id
            )
