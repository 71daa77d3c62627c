"""Add weighted full-text search vector to notes

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEARCH_VECTOR_SQL = (
    "setweight(to_tsvector('english', coalesce(title, '')), 'A') || "
    "setweight(to_tsvector('english', coalesce(content, '')), 'B')"
)


def upgrade() -> None:
    columns = {c["name"] for c in sa.inspect(op.get_bind()).get_columns("notes")}
    if "search_vector" not in columns:
        op.add_column(
            "notes",
            sa.Column("search_vector", postgresql.TSVECTOR(), sa.Computed(SEARCH_VECTOR_SQL, persisted=True)),
        )
    op.create_index("idx_notes_search", "notes", ["search_vector"], postgresql_using="gin", if_not_exists=True)


def downgrade() -> None:
    op.drop_index("idx_notes_search", table_name="notes")
    op.drop_column("notes", "search_vector")
