"""Initial schema: usage records and aliases.

Revision ID: 0001
Revises:
Create Date: 2026-10-03
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("repo_path", sa.Text, nullable=False),
        sa.Column("branch_name", sa.Text, nullable=False),
        sa.Column(
            "switch_count", sa.Integer, nullable=False, server_default=sa.text("1")
        ),
        sa.Column("last_used", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "repo_path", "branch_name", name="uq_branches_repo_branch"
        ),
    )

    op.create_table(
        "aliases",
        sa.Column("repo_path", sa.Text, primary_key=True),
        sa.Column("alias", sa.Text, primary_key=True),
        sa.Column("branch_name", sa.Text, nullable=False),
        sa.Column("created_at", sa.Integer, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("aliases")
    op.drop_table("branches")
