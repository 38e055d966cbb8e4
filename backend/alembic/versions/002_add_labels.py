"""Add labels table and task label_id

Revision ID: 002
Revises: 001
Create Date: 2026-10-12

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS labels (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL,
            color TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """))

    # No foreign key: deleting a label leaves tasks pointing at nothing
    columns = {row[1] for row in conn.execute(text("PRAGMA table_info(tasks)")).fetchall()}
    if "label_id" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN label_id TEXT"))


def downgrade() -> None:
    # SQLite doesn't support DROP COLUMN easily; only the labels table is dropped
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS labels"))
