"""SQLAlchemy ORM models for ggo."""

from __future__ import annotations

from sqlalchemy import Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class BranchUsage(Base):
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repo_path: Mapped[str] = mapped_column(Text, nullable=False)
    branch_name: Mapped[str] = mapped_column(Text, nullable=False)
    switch_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_used: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("repo_path", "branch_name", name="uq_branches_repo_branch"),
        Index("idx_branches_last_used", "last_used"),
    )


class BranchAlias(Base):
    __tablename__ = "aliases"

    repo_path: Mapped[str] = mapped_column(Text, primary_key=True)
    alias: Mapped[str] = mapped_column(Text, primary_key=True)
    branch_name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("idx_aliases_repo_branch", "repo_path", "branch_name"),)


class PreviousBranch(Base):
    __tablename__ = "previous_branch"

    repo_path: Mapped[str] = mapped_column(Text, primary_key=True)
    branch_name: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)
