"""
progress_ledger.py - Per-(user, lesson) progress with append-only attempt history

The only writer of user_progress and quiz_attempts.

Provides:
- record_attempt(db, user_id, lesson_id, score, answers, pass_threshold)
- get_progress(db, user_id, lesson_id)
"""

import json
import logging
from typing import Optional, Sequence

from learnpath.db.database import atomic
from learnpath.models.lesson import AnswerItem, Attempt, ProgressRecord

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_REQUIRES_REVIEW = "requires_review"


def status_for(score: int, pass_threshold: int) -> str:
    return STATUS_COMPLETED if score >= pass_threshold else STATUS_REQUIRES_REVIEW


async def record_attempt(
    db,
    user_id: str,
    lesson_id: str,
    score: int,
    answers: Sequence[AnswerItem],
    pass_threshold: int,
) -> ProgressRecord:
    """
    Append one attempt and set the latest score/status for (user_id, lesson_id).

    The attempt row is a plain INSERT and the progress row an upsert on its
    unique key, so concurrent submissions for the same key never overwrite
    each other's history. Every call adds an attempt; replays are not
    deduplicated.
    """
    status = status_for(score, pass_threshold)
    answers_json = json.dumps([a.model_dump(by_alias=True) for a in answers])

    async with atomic(db):
        await db.execute(
            """INSERT INTO quiz_attempts (user_id, lesson_id, score, answers_json)
               VALUES (?, ?, ?, ?)""",
            (user_id, lesson_id, score, answers_json),
        )
        await db.execute(
            """INSERT INTO user_progress (user_id, lesson_id, score, status)
               VALUES (?, ?, ?, ?)
               ON CONFLICT (user_id, lesson_id) DO UPDATE SET
                   score = excluded.score,
                   status = excluded.status,
                   updated_at = CURRENT_TIMESTAMP""",
            (user_id, lesson_id, score, status),
        )
        record = await get_progress(db, user_id, lesson_id)

    logger.info(
        "Recorded attempt %d for user %s on lesson %s: score=%d status=%s",
        len(record.attempts), user_id, lesson_id, score, status,
    )
    return record


async def get_progress(db, user_id: str, lesson_id: str) -> Optional[ProgressRecord]:
    """Progress record with its attempts in submission order, or None."""
    cursor = await db.execute(
        """SELECT user_id, lesson_id, score, status, updated_at
           FROM user_progress WHERE user_id = ? AND lesson_id = ?""",
        (user_id, lesson_id),
    )
    row = await cursor.fetchone()
    if not row:
        return None

    cursor = await db.execute(
        """SELECT score, answers_json, submitted_at FROM quiz_attempts
           WHERE user_id = ? AND lesson_id = ?
           ORDER BY id""",
        (user_id, lesson_id),
    )
    attempts = [
        Attempt(
            timestamp=r["submitted_at"],
            score=r["score"],
            answers=json.loads(r["answers_json"]),
        )
        for r in await cursor.fetchall()
    ]

    return ProgressRecord(
        user_id=row["user_id"],
        lesson_id=row["lesson_id"],
        score=row["score"],
        status=row["status"],
        attempts=attempts,
        updated_at=row["updated_at"],
    )
