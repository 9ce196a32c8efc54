"""add_remedial_lessons

Stores synthesized remedial lessons per (user, lesson) so generated
content can be reviewed later. Written independently of user_progress.

Revision ID: 8e4b0f6c21d7
Revises: 3c1d8a2b9f40
Create Date: 2026-10-06

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "8e4b0f6c21d7"
down_revision: Union[str, Sequence[str], None] = "3c1d8a2b9f40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.text("""
        CREATE TABLE IF NOT EXISTS remedial_lessons (
            id             TEXT PRIMARY KEY,
            user_id        TEXT NOT NULL,
            lesson_id      TEXT NOT NULL REFERENCES lessons(id),
            weak_tags_json TEXT NOT NULL,
            lesson_json    TEXT NOT NULL,
            created_at     TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """))
    op.execute(sa.text(
        "CREATE INDEX IF NOT EXISTS idx_remedial_lessons_user_lesson "
        "ON remedial_lessons(user_id, lesson_id)"
    ))


def downgrade() -> None:
    op.execute(sa.text("DROP TABLE IF EXISTS remedial_lessons"))
