"""Request-scoped copies of persisted rows.

The store hands these out instead of live ORM objects so callers can never
mutate persisted state behind the store's back.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class UsageRecord:
    repository_identity: str
    branch_name: str
    switch_count: int
    last_used: int


@dataclass(frozen=True, slots=True)
class Alias:
    repository_identity: str
    alias_name: str
    target_branch_name: str
    created_at: int


@dataclass(frozen=True, slots=True)
class PreviousPointer:
    repository_identity: str
    branch_name: str
    updated_at: int


@dataclass(frozen=True, slots=True)
class StoreStats:
    total_switches: int
    unique_branches: int
    unique_repos: int
    db_path: Path
