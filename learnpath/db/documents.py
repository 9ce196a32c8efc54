"""
documents.py - Query helpers for the lesson catalogue

Provides insert/fetch functions for:
- topics
- lessons
- content_snippets (+ content_snippet_tags)
- remedial_lessons
- user_profiles

Helpers never commit: writers wrap them in database.atomic().
user_progress and quiz_attempts are written only by services.progress_ledger.
"""

import json
import uuid
from typing import Optional, List, Dict, Any

from learnpath.models.lesson import ContentSnippet, Lesson, Topic


def new_id() -> str:
    return uuid.uuid4().hex


def _placeholders(values) -> str:
    return ", ".join("?" for _ in values)


# ══════════════════════════════════════════════════════════════════════════════
# TOPICS
# ══════════════════════════════════════════════════════════════════════════════

async def get_topic_by_name(db, name: str) -> Optional[Topic]:
    cursor = await db.execute("SELECT id, name FROM topics WHERE name = ?", (name,))
    row = await cursor.fetchone()
    if not row:
        return None
    return Topic(id=row["id"], name=row["name"])


async def upsert_topic(db, name: str) -> Topic:
    """Return the topic with this name, creating it if needed.

    Relies on the UNIQUE constraint on topics.name, so two concurrent
    callers end up with the same topic row. The no-op update locks that row
    until the caller's transaction ends.
    """
    await db.execute(
        "INSERT INTO topics (id, name) VALUES (?, ?) "
        "ON CONFLICT (name) DO UPDATE SET name = excluded.name",
        (new_id(), name),
    )
    topic = await get_topic_by_name(db, name)
    if topic is None:
        raise RuntimeError(f"Topic {name!r} missing after upsert")
    return topic


# ══════════════════════════════════════════════════════════════════════════════
# LESSONS
# ══════════════════════════════════════════════════════════════════════════════

def _lesson_from_row(row) -> Lesson:
    return Lesson(
        id=row["id"],
        topic_id=row["topic_id"],
        order=row["order_index"],
        title=row["title"] or "",
        xp=row["xp"] or 0,
        estimated_minutes=row["estimated_minutes"],
        difficulty=row["difficulty"] or "",
        tags=json.loads(row["tags_json"]) if row["tags_json"] else [],
        content=json.loads(row["content_json"]) if row["content_json"] else [],
        assessment=json.loads(row["assessment_json"]),
        created_at=row["created_at"],
    )


async def create_lesson(
    db,
    topic_id: str,
    lesson: Dict[str, Any],
    order: int,
    lesson_id: Optional[str] = None,
) -> str:
    """Insert a lesson document (camelCase keys, as generated). Returns its ID."""
    lesson_id = lesson_id or new_id()
    await db.execute(
        """INSERT INTO lessons
           (id, topic_id, order_index, title, xp, estimated_minutes, difficulty,
            tags_json, content_json, assessment_json)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            lesson_id,
            topic_id,
            order,
            lesson.get("title", ""),
            lesson.get("xp", 0),
            lesson.get("estimatedMinutes"),
            lesson.get("difficulty"),
            json.dumps(lesson.get("tags", [])),
            json.dumps(lesson.get("content", [])),
            json.dumps(lesson.get("assessment", {})),
        ),
    )
    return lesson_id


async def get_lesson(db, lesson_id: str) -> Optional[Lesson]:
    cursor = await db.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,))
    row = await cursor.fetchone()
    if not row:
        return None
    return _lesson_from_row(row)


async def get_lessons_by_topic(db, topic_id: str) -> List[Lesson]:
    """All lessons of a topic in ordering-index order."""
    cursor = await db.execute(
        "SELECT * FROM lessons WHERE topic_id = ? ORDER BY order_index, id",
        (topic_id,),
    )
    rows = await cursor.fetchall()
    return [_lesson_from_row(r) for r in rows]


async def get_lesson_ids_at_order(db, topic_id: str, order: int) -> List[str]:
    cursor = await db.execute(
        "SELECT id FROM lessons WHERE topic_id = ? AND order_index = ? ORDER BY id",
        (topic_id, order),
    )
    rows = await cursor.fetchall()
    return [r["id"] for r in rows]


async def get_max_order(db, topic_id: str) -> int:
    cursor = await db.execute(
        "SELECT COALESCE(MAX(order_index), 0) AS max_order FROM lessons WHERE topic_id = ?",
        (topic_id,),
    )
    row = await cursor.fetchone()
    return row["max_order"] if row else 0


# ══════════════════════════════════════════════════════════════════════════════
# CONTENT SNIPPETS
# ══════════════════════════════════════════════════════════════════════════════

async def create_snippet(
    db,
    content: str,
    tags: List[str],
    snippet_id: Optional[str] = None,
) -> str:
    snippet_id = snippet_id or new_id()
    await db.execute(
        "INSERT INTO content_snippets (id, content) VALUES (?, ?)",
        (snippet_id, content),
    )
    for tag in dict.fromkeys(tags):
        await db.execute(
            "INSERT INTO content_snippet_tags (snippet_id, tag) VALUES (?, ?)",
            (snippet_id, tag),
        )
    return snippet_id


async def get_snippets_by_tags(db, tags: List[str]) -> List[ContentSnippet]:
    """Snippets carrying at least one of the given tags, ordered by ID."""
    if not tags:
        return []
    cursor = await db.execute(
        f"""SELECT s.id, s.content FROM content_snippets s
            WHERE s.id IN (
                SELECT snippet_id FROM content_snippet_tags WHERE tag IN ({_placeholders(tags)})
            )
            ORDER BY s.id""",
        tuple(tags),
    )
    rows = await cursor.fetchall()
    if not rows:
        return []

    ids = [r["id"] for r in rows]
    cursor = await db.execute(
        f"""SELECT snippet_id, tag FROM content_snippet_tags
            WHERE snippet_id IN ({_placeholders(ids)})
            ORDER BY id""",
        tuple(ids),
    )
    tags_by_snippet: Dict[str, List[str]] = {}
    for r in await cursor.fetchall():
        tags_by_snippet.setdefault(r["snippet_id"], []).append(r["tag"])

    return [
        ContentSnippet(id=r["id"], content=r["content"], tags=tags_by_snippet.get(r["id"], []))
        for r in rows
    ]


# ══════════════════════════════════════════════════════════════════════════════
# REMEDIAL LESSONS
# ══════════════════════════════════════════════════════════════════════════════

async def create_remedial_lesson(
    db,
    user_id: str,
    lesson_id: str,
    weak_tags: List[str],
    lesson_json: Dict[str, Any],
) -> str:
    remedial_id = new_id()
    await db.execute(
        """INSERT INTO remedial_lessons (id, user_id, lesson_id, weak_tags_json, lesson_json)
           VALUES (?, ?, ?, ?, ?)""",
        (remedial_id, user_id, lesson_id, json.dumps(weak_tags), json.dumps(lesson_json)),
    )
    return remedial_id


async def get_remedial_lessons(db, user_id: str, lesson_id: str) -> List[Dict[str, Any]]:
    cursor = await db.execute(
        """SELECT * FROM remedial_lessons
           WHERE user_id = ? AND lesson_id = ?
           ORDER BY created_at, id""",
        (user_id, lesson_id),
    )
    rows = await cursor.fetchall()
    return [
        {
            "id": r["id"],
            "userId": r["user_id"],
            "lessonId": r["lesson_id"],
            "weakTags": json.loads(r["weak_tags_json"]),
            "lesson": json.loads(r["lesson_json"]),
            "createdAt": r["created_at"],
        }
        for r in rows
    ]


# ══════════════════════════════════════════════════════════════════════════════
# USER PROFILES
# ══════════════════════════════════════════════════════════════════════════════

async def upsert_user_profile(db, user_id: str, profile: Dict[str, Any]) -> None:
    await db.execute(
        """INSERT INTO user_profiles (user_id, profile_json) VALUES (?, ?)
           ON CONFLICT (user_id) DO UPDATE SET profile_json = excluded.profile_json""",
        (user_id, json.dumps(profile)),
    )


async def get_user_profile(db, user_id: str) -> Optional[Dict[str, Any]]:
    cursor = await db.execute(
        "SELECT profile_json FROM user_profiles WHERE user_id = ?",
        (user_id,),
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return json.loads(row["profile_json"])
