"""Initial schema – kv_entries

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Users, sessions, the password salt and the server / email configs all live
as keys of this single table.
"""

from alembic import op
import sqlalchemy as sa

# Alembic revision identifiers
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kv_entries",
        sa.Column("key", sa.String(255), primary_key=True),
        # JSON document – never parsed by the database
        sa.Column("value", sa.Text(), nullable=False),
        # Unix epoch seconds; NULL = never expires
        sa.Column("expires_at", sa.Float(), nullable=True),
    )

    op.create_index("ix_kv_entries_expires_at", "kv_entries", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_kv_entries_expires_at", table_name="kv_entries")
    op.drop_table("kv_entries")
