"""Documents table.

Creates the single ``documents`` table holding every record as a JSONB
document keyed by (collection, key), plus an index for leaderboard scans.

Revision ID: 001_documents
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_documents"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS documents (
            collection VARCHAR(64) NOT NULL,
            key VARCHAR(256) NOT NULL,
            data JSONB NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            PRIMARY KEY (collection, key)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_documents_leaderboard_scope
        ON documents ((data->>'quiz_id'), (data->>'date_completed'))
        WHERE collection = 'leaderboard_entries'
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_documents_leaderboard_date
        ON documents ((data->>'date_completed'))
        WHERE collection = 'leaderboard_entries'
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS documents CASCADE")
