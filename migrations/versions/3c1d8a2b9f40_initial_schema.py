"""initial_schema

Topics, lessons with embedded assessments, content snippets, per-user
progress with its append-only attempt history, and user profiles.

Revision ID: 3c1d8a2b9f40
Revises:
Create Date: 2026-09-28 10:14:03.512870

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3c1d8a2b9f40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS topics (
        id         TEXT PRIMARY KEY,
        name       TEXT NOT NULL UNIQUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS lessons (
        id                TEXT PRIMARY KEY,
        topic_id          TEXT NOT NULL REFERENCES topics(id),
        order_index       INTEGER NOT NULL DEFAULT 0,
        title             TEXT NOT NULL DEFAULT '',
        xp                INTEGER NOT NULL DEFAULT 0,
        estimated_minutes INTEGER,
        difficulty        TEXT,
        tags_json         TEXT,
        content_json      TEXT,
        assessment_json   TEXT NOT NULL,
        created_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_lessons_topic_order ON lessons(topic_id, order_index)",
    """
    CREATE TABLE IF NOT EXISTS content_snippets (
        id         TEXT PRIMARY KEY,
        content    TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_snippet_tags (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        snippet_id TEXT NOT NULL REFERENCES content_snippets(id),
        tag        TEXT NOT NULL,
        UNIQUE (snippet_id, tag)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_snippet_tags_tag ON content_snippet_tags(tag)",
    """
    CREATE TABLE IF NOT EXISTS user_progress (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id    TEXT NOT NULL,
        lesson_id  TEXT NOT NULL REFERENCES lessons(id),
        score      INTEGER NOT NULL,
        status     TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, lesson_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quiz_attempts (
        id           INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id      TEXT NOT NULL,
        lesson_id    TEXT NOT NULL REFERENCES lessons(id),
        score        INTEGER NOT NULL,
        answers_json TEXT NOT NULL,
        submitted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user_lesson ON quiz_attempts(user_id, lesson_id)",
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        id           INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id      TEXT NOT NULL UNIQUE,
        profile_json TEXT NOT NULL,
        created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def _adapt_sql(sql: str, dialect_name: str) -> str:
    """Adapt DDL for the target database dialect."""
    if dialect_name == "postgresql":
        # AUTOINCREMENT → SERIAL for PostgreSQL
        sql = sql.replace("INTEGER PRIMARY KEY AUTOINCREMENT", "SERIAL PRIMARY KEY")
    return sql


def upgrade() -> None:
    dialect_name = op.get_bind().dialect.name
    for statement in SCHEMA:
        op.execute(sa.text(_adapt_sql(statement.strip(), dialect_name)))


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    tables = [
        "user_profiles",
        "quiz_attempts",
        "user_progress",
        "content_snippet_tags",
        "content_snippets",
        "lessons",
        "topics",
    ]
    for table in tables:
        op.drop_table(table)
