"""Add pinned flag and tags array to notes, fold legacy category into tags

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    columns = {c["name"] for c in sa.inspect(op.get_bind()).get_columns("notes")}
    if "pinned" not in columns:
        op.add_column(
            "notes",
            sa.Column("pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        )
    if "tags" not in columns:
        op.add_column(
            "notes",
            sa.Column("tags", postgresql.ARRAY(sa.Text()), nullable=False, server_default="{}"),
        )
    if "category" in columns:
        op.execute(
            """
            UPDATE notes
            SET tags = array_append(tags, btrim(category)::text)
            WHERE category IS NOT NULL
              AND btrim(category) <> ''
              AND NOT (btrim(category)::text = ANY(tags))
            """
        )
        op.drop_column("notes", "category")
    op.create_index("ix_notes_tags", "notes", ["tags"], postgresql_using="gin", if_not_exists=True)


def downgrade() -> None:
    op.drop_index("ix_notes_tags", table_name="notes")
    op.drop_column("notes", "tags")
    op.drop_column("notes", "pinned")
