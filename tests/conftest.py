"""Shared fixtures: a migrated temporary SQLite database, seed data, a fake generator."""

import json
import os
import sys
from pathlib import Path

# Settings are validated at import time
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-0123456789abcdef0123456789")
os.environ.setdefault("API_KEY", "sk-test-not-a-real-key")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import aiosqlite
import pytest

from learnpath.config import settings
from learnpath.db import documents
from learnpath.db.database import atomic, run_migrations


def make_question(qid, correct="a", tags=()):
    return {
        "id": qid,
        "questionText": f"Question {qid}",
        "quizType": "multiple-choice",
        "tags": list(tags),
        "options": [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}],
        "correctAnswerId": correct,
        "explanation": f"Because {correct}",
    }


def four_question_lesson(xp=50, passing_score=80):
    """The 4-question assessment used throughout the tests."""
    return {
        "title": "Fractions basics",
        "xp": xp,
        "estimatedMinutes": 5,
        "difficulty": "beginner",
        "tags": ["fractions"],
        "content": [{"type": "info", "text": "A fraction is a part of a whole."}],
        "assessment": {
            "passingScore": passing_score,
            "questions": [
                make_question("q1", "a", ["numerator"]),
                make_question("q2", "b", ["denominator"]),
                make_question("q3", "a", ["equivalence", "simplifying"]),
                make_question("q4", "b", ["comparison"]),
            ],
        },
    }


def all_correct():
    return [
        {"questionId": "q1", "selectedOptionId": "a"},
        {"questionId": "q2", "selectedOptionId": "b"},
        {"questionId": "q3", "selectedOptionId": "a"},
        {"questionId": "q4", "selectedOptionId": "b"},
    ]


def three_correct():
    """q3 answered wrong."""
    answers = all_correct()
    answers[2] = {"questionId": "q3", "selectedOptionId": "b"}
    return answers


def remedial_reply(**overrides):
    """A valid generated remedial lesson as the generator would send it."""
    doc = {
        "title": "Equivalent fractions, again",
        "estimatedMinutes": 5,
        "difficulty": "beginner",
        "content": [
            {"type": "info", "text": "Multiplying top and bottom by the same number keeps the value."},
            {"type": "quiz", "text": "Is 2/4 equal to 1/2?"},
        ],
    }
    doc.update(overrides)
    return json.dumps(doc)


def lesson_batch_reply(titles=("Parts of a whole", "Comparing fractions"), **overrides):
    lessons = []
    for title in titles:
        doc = {
            "title": title,
            "xp": 100,
            "estimatedMinutes": 5,
            "difficulty": "beginner",
            "tags": ["fractions"],
            "content": [{"type": "info", "text": f"About {title.lower()}."}],
            "assessment": {
                "passingScore": 80,
                "questions": [make_question("q1", "a", ["fractions"])],
            },
        }
        doc.update(overrides)
        lessons.append(doc)
    return json.dumps(lessons)


async def open_db(path) -> aiosqlite.Connection:
    db = await aiosqlite.connect(str(path), timeout=30, isolation_level="IMMEDIATE")
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA foreign_keys = ON")
    return db


class FakeAIClient:
    """Stands in for AIClient: returns canned replies or raises a canned error."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    async def chat(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        if self.error is not None:
            raise self.error
        if not self.replies:
            raise AssertionError("FakeAIClient has no reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "learnpath-test.db"
    run_migrations(f"sqlite:///{path}")
    monkeypatch.setattr(settings, "database_path", str(path))
    monkeypatch.setattr(settings, "database_url", "")
    return path


@pytest.fixture
async def db(db_path):
    conn = await open_db(db_path)
    try:
        yield conn
    finally:
        await conn.close()


@pytest.fixture
async def topic(db):
    async with atomic(db):
        return await documents.upsert_topic(db, "Fractions")


@pytest.fixture
async def lessons(db, topic):
    """Three lessons in topic order 1, 2, 3; returns their ids."""
    ids = []
    async with atomic(db):
        for order in (1, 2, 3):
            ids.append(
                await documents.create_lesson(
                    db, topic.id, four_question_lesson(), order=order, lesson_id=f"lesson-{order}"
                )
            )
    return ids
