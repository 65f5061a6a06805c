"""Failure taxonomy for ggo.

Every failure the resolver can report is one of these classes.  The
resolver hands them back inside ``Failed`` outcomes; the storage and git
layers raise them directly.  ``str(err)`` is the user-facing message and
``err.hint`` an optional follow-up suggestion.
"""

from __future__ import annotations


class GgoError(Exception):
    """Base class for every ggo failure."""

    hint: str | None = None

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class NotARepository(GgoError):
    """The working directory is not inside a git work tree."""

    def __init__(self, path: str | None = None) -> None:
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(
            f"Not in a git repository{where}",
            "Run this command from within a git repository.",
        )


class NoMatch(GgoError):
    """No branch matched the pattern."""

    def __init__(self, pattern: str, branches: list[str] | None = None) -> None:
        self.pattern = pattern
        self.branches = list(branches or [])
        super().__init__(
            f"No branches match pattern '{pattern}'",
            "Try a shorter pattern, 'ggo --list \"\"' to see all branches, "
            "or case-insensitive mode with '-i'.",
        )


class StaleAlias(GgoError):
    """An alias points at a branch that no longer exists."""

    def __init__(self, alias: str, branch: str) -> None:
        self.alias = alias
        self.branch = branch
        super().__init__(
            f"Alias '{alias}' points to '{branch}', which no longer exists",
            f"Update it with 'ggo alias {alias} <branch>' "
            f"or remove it with 'ggo alias {alias} --remove'.",
        )


class NoPreviousBranch(GgoError):
    """No previous-branch pointer has been recorded for the repository."""

    def __init__(self) -> None:
        super().__init__(
            "No previous branch found",
            "You need to switch branches at least once before using 'ggo -'.",
        )


class StalePrevious(GgoError):
    """The recorded previous branch no longer exists."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(
            f"Previous branch '{branch}' no longer exists",
            "It may have been deleted. Run 'git branch' to see available branches.",
        )


class BranchVanished(GgoError):
    """The chosen branch disappeared between listing and checkout."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(
            f"Branch '{branch}' no longer exists",
            "It may have been deleted after the initial search. "
            "Run 'git branch' to see available branches.",
        )


class CheckoutFailed(GgoError):
    """git refused to switch branches."""

    def __init__(self, branch: str, reason: str) -> None:
        self.branch = branch
        self.reason = reason
        super().__init__(f"Failed to checkout branch '{branch}': {reason}")


class StoreUnavailable(GgoError):
    """The usage database could not be opened, read or written."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Database error: {detail}")


class UserCancelled(GgoError):
    """The user dismissed the interactive chooser."""

    def __init__(self) -> None:
        super().__init__("User cancelled operation")


class InvalidInput(GgoError):
    """A branch name, alias, pattern or path failed validation."""

    def __init__(self, kind: str, value: str, reason: str) -> None:
        self.kind = kind
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {kind}: {value!r}", reason)


class ConfigError(GgoError):
    """The configuration file is malformed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            f"Configuration error: {detail}",
            "Check your config file (default ~/.config/ggo/config.toml).",
        )
