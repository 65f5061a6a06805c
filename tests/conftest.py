"""Shared fixtures for the ggo test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from ggo.config import Settings
from ggo.db import Store
from ggo.errors import CheckoutFailed

REPO = "/work/project"
OTHER_REPO = "/work/other"

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeVcs:
    """In-memory ``VcsAdapter``; records every checkout."""

    def __init__(self, branches: list[str], current: str | None = None) -> None:
        self.branches = list(branches)
        self.current = current
        self.checkouts: list[str] = []
        self.refuse_checkout: str | None = None

    def list_branches(self, repository_identity: str) -> list[str]:
        return list(self.branches)

    def current_branch(self, repository_identity: str) -> str | None:
        return self.current

    def checkout(self, repository_identity: str, branch_name: str) -> None:
        if self.refuse_checkout is not None:
            raise CheckoutFailed(branch_name, self.refuse_checkout)
        self.checkouts.append(branch_name)
        self.current = branch_name


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ggo" / "data.db"


@pytest.fixture()
def store(db_path: Path):
    """A freshly migrated store in a temp directory."""
    s = Store.open(db_path)
    yield s
    s.close()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def vcs() -> FakeVcs:
    return FakeVcs(["main", "develop", "feature-auth", "feature-api"], current="main")


@pytest.fixture()
def settings() -> Settings:
    return Settings()
