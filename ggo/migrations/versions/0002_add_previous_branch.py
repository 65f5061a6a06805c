"""Add previous_branch pointer table.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-05
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str = "0001"
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_table(
        "previous_branch",
        sa.Column("repo_path", sa.Text, primary_key=True),
        sa.Column("branch_name", sa.Text, nullable=False),
        sa.Column("updated_at", sa.Integer, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("previous_branch")
