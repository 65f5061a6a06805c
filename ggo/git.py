"""git adapter: branch listing, checkout and repository identity.

Everything shells out to the ``git`` binary; nothing is cached, so each
call reflects the live repository state.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from ggo.errors import CheckoutFailed, GgoError, NotARepository
from ggo.validation import validate_repo_path

logger = logging.getLogger(__name__)


class VcsAdapter(Protocol):
    """What the resolver needs from version control."""

    def list_branches(self, repository_identity: str) -> list[str]: ...

    def current_branch(self, repository_identity: str) -> str | None: ...

    def checkout(self, repository_identity: str, branch_name: str) -> None: ...


class GitError(GgoError):
    """A git command failed for a reason other than a refused checkout."""


def run_git(args: list[str], cwd: Path | str) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            ["git", *args], cwd=cwd, text=True, capture_output=True
        )
    except FileNotFoundError as e:
        raise GitError("git executable not found", "Install git and retry.") from e


def _detail(proc: subprocess.CompletedProcess[str]) -> str:
    return proc.stderr.strip() or proc.stdout.strip() or "command failed"


def repository_identity(cwd: Path | str | None = None) -> str:
    """Canonical absolute path of the work tree containing *cwd*."""
    where = Path(cwd) if cwd is not None else Path.cwd()
    if not where.is_dir():
        raise NotARepository(str(where))
    proc = run_git(["rev-parse", "--show-toplevel"], cwd=where)
    if proc.returncode != 0 or not proc.stdout.strip():
        raise NotARepository(str(where))
    return validate_repo_path(str(Path(proc.stdout.strip()).resolve()))


class GitAdapter:
    """``VcsAdapter`` backed by the git command line."""

    def list_branches(self, repository_identity: str) -> list[str]:
        proc = run_git(
            ["for-each-ref", "--format=%(refname:short)", "refs/heads/"],
            cwd=repository_identity,
        )
        if proc.returncode != 0:
            raise GitError(f"Failed to list branches: {_detail(proc)}")
        return [line.strip() for line in proc.stdout.splitlines() if line.strip()]

    def current_branch(self, repository_identity: str) -> str | None:
        """Name of the checked-out branch, ``None`` on a detached HEAD."""
        proc = run_git(["symbolic-ref", "--quiet", "--short", "HEAD"], cwd=repository_identity)
        if proc.returncode != 0:
            logger.debug("HEAD is detached in %s", repository_identity)
            return None
        return proc.stdout.strip() or None

    def checkout(self, repository_identity: str, branch_name: str) -> None:
        # "--" keeps a branch that shares a name with a path from being
        # read as a pathspec
        proc = run_git(["checkout", branch_name, "--"], cwd=repository_identity)
        if proc.returncode != 0:
            raise CheckoutFailed(branch_name, _detail(proc))
        logger.debug("Checked out %s in %s", branch_name, repository_identity)
