"""Add indexes for cleanup-by-age and alias lookup by branch.

Databases created before migrations existed are stamped at 0001 or 0002,
so this revision is also where they pick up the indexes.

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-09
"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0003"
down_revision: str = "0002"
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_index("idx_branches_last_used", "branches", ["last_used"])
    op.create_index(
        "idx_aliases_repo_branch", "aliases", ["repo_path", "branch_name"]
    )


def downgrade() -> None:
    op.drop_index("idx_aliases_repo_branch", table_name="aliases")
    op.drop_index("idx_branches_last_used", table_name="branches")
