"""Input validation for branch names, aliases, patterns and repository paths."""

from __future__ import annotations

import re
from pathlib import Path

from ggo.errors import InvalidInput

MAX_BRANCH_NAME_LENGTH = 255
MAX_PATTERN_LENGTH = 255
MAX_ALIAS_LENGTH = 50
MAX_REPO_PATH_LENGTH = 4096

# Words the CLI treats as subcommands; an alias named like one could never
# be reached.
RESERVED_ALIASES = frozenset({"stats", "alias", "list", "remove", "cleanup"})

_ALIAS_RE = re.compile(r"^[\w-]+$")

_BRANCH_RULES: list[tuple[str, str]] = [
    ("..", "cannot contain '..'"),
    ("//", "cannot contain '//'"),
    (" ", "cannot contain spaces"),
    ("~", "cannot contain '~' (git revision syntax)"),
    ("^", "cannot contain '^' (git revision syntax)"),
    (":", "cannot contain ':' (git ref syntax)"),
    ("@{", "cannot contain '@{' (git revision syntax)"),
    ("?", "cannot contain wildcards (?, *, [)"),
    ("*", "cannot contain wildcards (?, *, [)"),
    ("[", "cannot contain wildcards (?, *, [)"),
]


def validate_branch_name(name: str) -> str:
    """Return *name* unchanged, or raise ``InvalidInput``."""
    if not name:
        raise InvalidInput("branch name", name, "Branch name cannot be empty")
    if len(name) > MAX_BRANCH_NAME_LENGTH:
        raise InvalidInput(
            "branch name",
            name,
            f"Branch name too long (max {MAX_BRANCH_NAME_LENGTH} characters)",
        )
    if any(c in name for c in "\0\n\r"):
        raise InvalidInput(
            "branch name", name, "Branch name contains null, newline or carriage return"
        )
    if name.startswith("-"):
        raise InvalidInput("branch name", name, "Branch name cannot start with '-'")
    if name.startswith("."):
        raise InvalidInput("branch name", name, "Branch name cannot start with '.'")
    if name.endswith("/") or name.endswith("."):
        raise InvalidInput("branch name", name, "Branch name cannot end with '/' or '.'")
    for needle, reason in _BRANCH_RULES:
        if needle in name:
            raise InvalidInput("branch name", name, f"Branch name {reason}")
    return name


def validate_pattern(pattern: str) -> str:
    """Patterns are permissive: empty is fine (it matches everything)."""
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise InvalidInput(
            "pattern",
            pattern,
            f"Search pattern too long (max {MAX_PATTERN_LENGTH} characters)",
        )
    if "\0" in pattern:
        raise InvalidInput("pattern", pattern, "Search pattern contains null bytes")
    return pattern


def validate_alias_name(alias: str) -> str:
    if not alias:
        raise InvalidInput("alias", alias, "Alias name cannot be empty")
    if len(alias) > MAX_ALIAS_LENGTH:
        raise InvalidInput(
            "alias", alias, f"Alias name too long (max {MAX_ALIAS_LENGTH} characters)"
        )
    if alias.startswith("-"):
        raise InvalidInput("alias", alias, "Alias name cannot start with '-'")
    if alias in RESERVED_ALIASES:
        raise InvalidInput("alias", alias, f"Alias name '{alias}' is reserved")
    if not _ALIAS_RE.match(alias):
        raise InvalidInput(
            "alias",
            alias,
            "Alias name must contain only letters, digits, '-' or '_'",
        )
    return alias


def validate_repo_path(path: str) -> str:
    if not path:
        raise InvalidInput("repository path", path, "Repository path cannot be empty")
    if len(path) > MAX_REPO_PATH_LENGTH:
        raise InvalidInput(
            "repository path",
            path,
            f"Repository path too long (max {MAX_REPO_PATH_LENGTH} characters)",
        )
    if "\0" in path:
        raise InvalidInput("repository path", path, "Repository path contains null bytes")
    p = Path(path)
    if not p.is_absolute():
        raise InvalidInput("repository path", path, "Repository path must be absolute")
    if not p.is_dir():
        raise InvalidInput(
            "repository path", path, "Repository path is not an existing directory"
        )
    return path
