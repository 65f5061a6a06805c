"""Branch resolution: pattern -> exactly one branch, or a ranked choice.

Per invocation the resolver moves through::

    Start -> PreviousLookup | AliasLookup | Matching
          -> AutoSelected | AwaitingUserChoice
          -> Finalizing -> Done | Failed

``resolve()`` covers everything up to the selection and never writes.
``AwaitingChoice`` hands control back to the caller, which shows the
candidates to the user and later calls ``finalize()`` with the pick.
``finalize()`` is the only step with durable side effects: it checks out
the branch and, only once git has confirmed the switch, records the
previous-branch pointer and then the usage record.

Failures are returned as ``Failed(error)`` values, never raised.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar, Union

from ggo import matcher
from ggo.config import Settings
from ggo.db import Store
from ggo.errors import (
    BranchVanished,
    GgoError,
    NoMatch,
    NoPreviousBranch,
    NotARepository,
    StaleAlias,
    StalePrevious,
    StoreUnavailable,
)
from ggo.frecency import frecency_map
from ggo.git import VcsAdapter
from ggo.validation import validate_pattern

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREVIOUS_SENTINEL = "-"

# ------------------------------------------------------------------
# Inputs and outcomes
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ResolveOptions:
    ignore_case: bool = False
    fuzzy: bool = True
    # always defer to the user, even when there is a clear winner
    interactive: bool = False


@dataclass(frozen=True, slots=True)
class Candidate:
    branch: str
    match_quality: float
    frecency: float
    combined: float
    switch_count: int = 0
    last_used: int | None = None
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AutoSelected:
    branch: str
    via: str  # "previous" | "alias" | "match"


@dataclass(frozen=True, slots=True)
class AwaitingChoice:
    candidates: tuple[Candidate, ...]

    @property
    def branches(self) -> list[str]:
        return [c.branch for c in self.candidates]


@dataclass(frozen=True, slots=True)
class Failed:
    error: GgoError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True, slots=True)
class Done:
    branch: str
    switched: bool = True
    warnings: tuple[str, ...] = field(default_factory=tuple)


Outcome = Union[AutoSelected, AwaitingChoice, Failed, Done]


def is_clear_winner(candidates: list[Candidate], threshold: float) -> bool:
    """True when the top candidate may be picked without asking.

    A lone candidate always wins.  Otherwise the top combined score must be
    at least ``threshold`` times the runner-up's, so a runner-up at 0 always
    loses, even to a top score of 0.
    """
    if not candidates:
        return False
    if len(candidates) == 1:
        return True
    top, second = candidates[0].combined, candidates[1].combined
    return top >= threshold * second


# ------------------------------------------------------------------
# Resolver
# ------------------------------------------------------------------


class Resolver:
    """Resolve patterns against one repository's live branches.

    *store* may be ``None`` when the usage database could not be opened;
    resolution then runs as if there were no history and finalize reports
    the missing tracking as a warning.
    """

    def __init__(
        self,
        store: Store | None,
        vcs: VcsAdapter,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._vcs = vcs
        self._settings = settings or Settings()
        self._clock = clock

    @property
    def settings(self) -> Settings:
        return self._settings

    def default_options(self) -> ResolveOptions:
        return ResolveOptions(
            ignore_case=self._settings.default_ignore_case,
            fuzzy=self._settings.default_fuzzy,
        )

    # -------------------------------------------------------------- store access

    def _read(self, what: str, fn: Callable[[Store], T], default: T) -> T:
        if self._store is None:
            return default
        try:
            return fn(self._store)
        except StoreUnavailable as e:
            logger.warning("Could not load %s (%s); continuing without it", what, e)
            return default

    def _write(self, warnings: list[str], what: str, fn: Callable[[Store], None]) -> None:
        if self._store is None:
            warnings.append(f"Usage database unavailable; {what} not recorded")
            return
        try:
            fn(self._store)
        except StoreUnavailable as e:
            logger.warning("Could not save %s: %s", what, e)
            warnings.append(f"Could not save {what}: {e}")

    # -------------------------------------------------------------- ranking

    def rank(
        self,
        repository_identity: str,
        pattern: str,
        options: ResolveOptions | None = None,
        branches: list[str] | None = None,
    ) -> list[Candidate]:
        """Match *pattern* and order candidates by combined score.

        ``combined = match_quality + frecency * frecency_weight``; ties go to
        the lexically smaller branch name.
        """
        options = options or self.default_options()
        if branches is None:
            branches = self._vcs.list_branches(repository_identity)
        records = self._read(
            "branch history",
            lambda s: s.get_usage_records(repository_identity),
            [],
        )
        usage = {r.branch_name: r for r in records}
        aliases: dict[str, list[str]] = {}
        for a in self._read(
            "aliases", lambda s: s.list_aliases(repository_identity), []
        ):
            aliases.setdefault(a.target_branch_name, []).append(a.alias_name)
        scores = frecency_map(records, self._clock(), self._settings.half_life_seconds)
        weight = self._settings.frecency_weight

        candidates = []
        for m in matcher.match(branches, pattern, options.ignore_case, options.fuzzy):
            f = scores.get(m.branch, 0.0)
            rec = usage.get(m.branch)
            candidates.append(
                Candidate(
                    branch=m.branch,
                    match_quality=m.quality,
                    frecency=f,
                    combined=m.quality + f * weight,
                    switch_count=rec.switch_count if rec else 0,
                    last_used=rec.last_used if rec else None,
                    aliases=tuple(aliases.get(m.branch, ())),
                )
            )
        candidates.sort(key=lambda c: (-c.combined, c.branch))
        return candidates

    def decide(
        self, candidates: list[Candidate], options: ResolveOptions | None = None
    ) -> Outcome:
        """Apply the auto-select policy to already ranked *candidates*."""
        options = options or self.default_options()
        if not options.interactive and is_clear_winner(
            candidates, self._settings.auto_select_threshold
        ):
            logger.debug("state=AutoSelected branch=%s", candidates[0].branch)
            return AutoSelected(candidates[0].branch, via="match")
        logger.debug("state=AwaitingUserChoice candidates=%d", len(candidates))
        return AwaitingChoice(tuple(candidates))

    # -------------------------------------------------------------- resolve

    def resolve(
        self,
        repository_identity: str,
        pattern: str,
        options: ResolveOptions | None = None,
    ) -> Outcome:
        """Resolve *pattern*: previous sentinel, then alias, then matching."""
        if not repository_identity:
            return Failed(NotARepository())
        options = options or self.default_options()
        logger.debug("state=Start repo=%s pattern=%r", repository_identity, pattern)

        try:
            validate_pattern(pattern)
            branches = self._vcs.list_branches(repository_identity)
        except GgoError as e:
            return Failed(e)

        if pattern == PREVIOUS_SENTINEL:
            logger.debug("state=PreviousLookup")
            pointer = self._read(
                "previous branch", lambda s: s.get_previous(repository_identity), None
            )
            if pointer is None:
                return Failed(NoPreviousBranch())
            if pointer.branch_name not in branches:
                return Failed(StalePrevious(pointer.branch_name))
            return AutoSelected(pointer.branch_name, via="previous")

        logger.debug("state=AliasLookup")
        alias = self._read(
            "aliases", lambda s: s.get_alias(repository_identity, pattern), None
        )
        if alias is not None:
            if alias.target_branch_name not in branches:
                return Failed(StaleAlias(alias.alias_name, alias.target_branch_name))
            logger.debug("Alias %r -> %r", pattern, alias.target_branch_name)
            return AutoSelected(alias.target_branch_name, via="alias")

        logger.debug("state=Matching fuzzy=%s", options.fuzzy)
        candidates = self.rank(repository_identity, pattern, options, branches=branches)
        if not candidates:
            return Failed(NoMatch(pattern, branches))
        return self.decide(candidates, options)

    # -------------------------------------------------------------- finalize

    def finalize(self, repository_identity: str, branch: str) -> Outcome:
        """Switch to *branch* and record it.

        Order: re-check the branch still exists, check it out, then write the
        previous pointer, then the usage record.  A refused checkout leaves
        the store untouched.  Store failures after a successful switch become
        warnings on ``Done``.
        """
        if not repository_identity:
            return Failed(NotARepository())
        logger.debug("state=Finalizing repo=%s branch=%s", repository_identity, branch)

        try:
            live = self._vcs.list_branches(repository_identity)
            if branch not in live:
                return Failed(BranchVanished(branch))
            current = self._vcs.current_branch(repository_identity)
        except GgoError as e:
            return Failed(e)

        warnings: list[str] = []
        now = int(self._clock())

        if current == branch:
            # no switch: "go back" must keep pointing where it did
            self._write(
                warnings,
                "branch usage",
                lambda s: s.upsert_usage(repository_identity, branch, now),
            )
            logger.debug("state=Done already on %s", branch)
            return Done(branch, switched=False, warnings=tuple(warnings))

        try:
            self._vcs.checkout(repository_identity, branch)
        except GgoError as e:
            logger.debug("state=Failed checkout of %s: %s", branch, e)
            return Failed(e)

        if current is not None:
            self._write(
                warnings,
                "previous branch",
                lambda s: s.upsert_previous(repository_identity, current, now),
            )
        self._write(
            warnings,
            "branch usage",
            lambda s: s.upsert_usage(repository_identity, branch, now),
        )
        logger.debug("state=Done switched to %s", branch)
        return Done(branch, switched=True, warnings=tuple(warnings))
