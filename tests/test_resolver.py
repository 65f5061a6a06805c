"""Tests for ggo.resolver: selection policy and finalize side effects."""

from __future__ import annotations

import logging

import pytest
from conftest import NOW, REPO, FakeVcs

from ggo.config import Settings
from ggo.errors import (
    BranchVanished,
    CheckoutFailed,
    NoMatch,
    NoPreviousBranch,
    NotARepository,
    StaleAlias,
    StalePrevious,
    StoreUnavailable,
)
from ggo.resolver import (
    AutoSelected,
    AwaitingChoice,
    Candidate,
    Done,
    Failed,
    Resolver,
    ResolveOptions,
    is_clear_winner,
)


def cand(branch: str, combined: float) -> Candidate:
    return Candidate(branch=branch, match_quality=combined, frecency=0.0, combined=combined)


class BrokenStore:
    """Every store call fails as if the database were locked or corrupt."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise StoreUnavailable("database is locked")

        return _fail


class SpyStore:
    """Delegates to a real store and records the order of calls."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.calls: list[str] = []

    def __getattr__(self, name):
        target = getattr(self._inner, name)

        def _call(*args, **kwargs):
            self.calls.append(name)
            return target(*args, **kwargs)

        return _call


@pytest.fixture()
def resolver(store, vcs, settings, clock) -> Resolver:
    return Resolver(store, vcs, settings, clock=clock)


# -----------------------------------------------------------------------
# auto-select policy
# -----------------------------------------------------------------------


class TestClearWinner:
    def test_single_candidate(self):
        assert is_clear_winner([cand("a", 0.0)], 2.0)

    def test_empty(self):
        assert not is_clear_winner([], 2.0)

    def test_dominant_top(self):
        assert is_clear_winner([cand("feature-a", 10), cand("feature-b", 4)], 2.0)

    def test_close_scores(self):
        assert not is_clear_winner([cand("feature-a", 10), cand("feature-b", 6)], 2.0)

    def test_exactly_threshold(self):
        assert is_clear_winner([cand("a", 10), cand("b", 5)], 2.0)

    def test_zero_runner_up(self):
        assert is_clear_winner([cand("a", 0.5), cand("b", 0.0)], 2.0)

    def test_all_zero_picks_top(self):
        assert is_clear_winner([cand("a", 0.0), cand("b", 0.0)], 2.0)

    def test_threshold_is_configurable(self):
        pair = [cand("a", 10), cand("b", 4)]
        assert not is_clear_winner(pair, 3.0)


class TestDecide:
    def test_auto_selects_clear_winner(self, resolver):
        outcome = resolver.decide([cand("feature-a", 10), cand("feature-b", 4)])
        assert outcome == AutoSelected("feature-a", via="match")

    def test_awaits_choice_in_rank_order(self, resolver):
        outcome = resolver.decide([cand("feature-a", 10), cand("feature-b", 6)])
        assert isinstance(outcome, AwaitingChoice)
        assert outcome.branches == ["feature-a", "feature-b"]

    def test_interactive_forces_choice(self, resolver):
        outcome = resolver.decide(
            [cand("feature-a", 10)], ResolveOptions(interactive=True)
        )
        assert isinstance(outcome, AwaitingChoice)


# -----------------------------------------------------------------------
# resolve
# -----------------------------------------------------------------------


class TestResolve:
    def test_single_match_auto_selects(self, resolver):
        assert resolver.resolve(REPO, "develop") == AutoSelected("develop", via="match")

    def test_no_match(self, resolver, vcs):
        outcome = resolver.resolve(REPO, "zzz")
        assert isinstance(outcome, Failed)
        assert isinstance(outcome.error, NoMatch)
        assert outcome.error.branches == vcs.branches

    def test_ambiguous_match_awaits_choice(self, resolver):
        outcome = resolver.resolve(REPO, "feature")
        assert isinstance(outcome, AwaitingChoice)
        assert set(outcome.branches) == {"feature-api", "feature-auth"}

    def test_frecency_reorders_candidates(self, resolver, store):
        for _ in range(3):
            store.upsert_usage(REPO, "feature-auth", NOW)
        outcome = resolver.resolve(REPO, "feature")
        assert outcome.branches[0] == "feature-auth"
        top = outcome.candidates[0]
        assert top.switch_count == 3
        assert top.combined == pytest.approx(top.match_quality + 30.0)

    def test_frecency_weight_zero_ignores_history(self, store, vcs, clock):
        for _ in range(3):
            store.upsert_usage(REPO, "feature-auth", NOW)
        r = Resolver(store, vcs, Settings(frecency_weight=0.0), clock=clock)
        assert r.resolve(REPO, "feature").branches[0] == "feature-api"

    def test_empty_pattern_without_history_takes_first_by_name(self, resolver, vcs):
        outcome = resolver.resolve(REPO, "")
        assert outcome == AutoSelected(sorted(vcs.branches)[0], via="match")

    def test_empty_pattern_follows_history(self, resolver, store):
        store.upsert_usage(REPO, "feature-api", NOW)
        assert resolver.resolve(REPO, "") == AutoSelected("feature-api", via="match")

    def test_exact_mode(self, resolver):
        outcome = resolver.resolve(REPO, "fauth", ResolveOptions(fuzzy=False))
        assert isinstance(outcome.error, NoMatch)

    def test_ignore_case(self, resolver):
        assert isinstance(resolver.resolve(REPO, "DEVELOP").error, NoMatch)
        outcome = resolver.resolve(REPO, "DEVELOP", ResolveOptions(ignore_case=True))
        assert outcome == AutoSelected("develop", via="match")

    def test_interactive_option(self, resolver):
        outcome = resolver.resolve(REPO, "develop", ResolveOptions(interactive=True))
        assert isinstance(outcome, AwaitingChoice)
        assert outcome.branches == ["develop"]

    def test_resolve_never_writes(self, resolver, store):
        resolver.resolve(REPO, "develop")
        resolver.resolve(REPO, "feature")
        assert store.get_usage_records(REPO) == []
        assert store.get_previous(REPO) is None

    def test_missing_repository_identity(self, resolver):
        outcome = resolver.resolve("", "main")
        assert isinstance(outcome.error, NotARepository)

    def test_pattern_validation(self, resolver):
        outcome = resolver.resolve(REPO, "x" * 300)
        assert isinstance(outcome, Failed)
        assert "too long" in outcome.error.hint


class TestAliases:
    def test_alias_overrides_matching(self, resolver, store, vcs):
        vcs.branches.append("x-feature")
        store.set_alias(REPO, "x", "develop", NOW)
        assert resolver.resolve(REPO, "x") == AutoSelected("develop", via="alias")

    def test_stale_alias_fails_without_fallthrough(self, resolver, store):
        store.set_alias(REPO, "main", "gone", NOW)
        outcome = resolver.resolve(REPO, "main")
        assert isinstance(outcome.error, StaleAlias)
        assert outcome.error.branch == "gone"

    def test_alias_in_other_repo_is_ignored(self, resolver, store):
        store.set_alias("/work/other", "d", "main", NOW)
        outcome = resolver.resolve(REPO, "d")
        assert outcome == AutoSelected("develop", via="match")

    def test_same_alias_resolves_per_repository(self, resolver, store):
        other = "/work/other"
        store.set_alias(REPO, "m", "main", NOW)
        store.set_alias(other, "m", "develop", NOW)
        for _ in range(5):
            store.upsert_usage(other, "feature-api", NOW)
        assert resolver.resolve(REPO, "m") == AutoSelected("main", via="alias")
        assert resolver.resolve(other, "m") == AutoSelected("develop", via="alias")
        ranked = resolver.rank(REPO, "feature")
        assert all(c.frecency == 0.0 for c in ranked)

    def test_rank_reports_aliases(self, resolver, store):
        store.set_alias(REPO, "fa", "feature-auth", NOW)
        ranked = resolver.rank(REPO, "feature")
        by_name = {c.branch: c for c in ranked}
        assert by_name["feature-auth"].aliases == ("fa",)
        assert by_name["feature-api"].aliases == ()


class TestPrevious:
    def test_no_pointer(self, resolver):
        assert isinstance(resolver.resolve(REPO, "-").error, NoPreviousBranch)

    def test_pointer_auto_selects(self, resolver, store):
        store.upsert_previous(REPO, "develop", NOW)
        assert resolver.resolve(REPO, "-") == AutoSelected("develop", via="previous")

    def test_stale_pointer(self, resolver, store):
        store.upsert_previous(REPO, "gone", NOW)
        outcome = resolver.resolve(REPO, "-")
        assert isinstance(outcome.error, StalePrevious)

    def test_ping_pong(self, resolver, vcs):
        assert resolver.finalize(REPO, "develop").switched
        for expected in ("main", "develop", "main"):
            outcome = resolver.resolve(REPO, "-")
            assert outcome.branch == expected
            assert resolver.finalize(REPO, outcome.branch).switched
        assert vcs.checkouts == ["develop", "main", "develop", "main"]


# -----------------------------------------------------------------------
# finalize
# -----------------------------------------------------------------------


class TestFinalize:
    def test_records_pointer_and_usage(self, resolver, store):
        done = resolver.finalize(REPO, "develop")
        assert done == Done("develop", switched=True, warnings=())
        assert store.get_previous(REPO).branch_name == "main"
        [rec] = store.get_usage_records(REPO)
        assert (rec.branch_name, rec.switch_count, rec.last_used) == ("develop", 1, NOW)

    def test_pointer_written_before_usage(self, store, vcs, clock):
        spy = SpyStore(store)
        Resolver(spy, vcs, clock=clock).finalize(REPO, "develop")
        assert spy.calls == ["upsert_previous", "upsert_usage"]

    def test_self_switch_keeps_pointer(self, resolver, store, vcs):
        store.upsert_previous(REPO, "develop", NOW - 10)
        done = resolver.finalize(REPO, "main")
        assert done.switched is False
        assert vcs.checkouts == []
        assert store.get_previous(REPO).branch_name == "develop"
        assert store.get_usage_records(REPO)[0].branch_name == "main"

    def test_failed_checkout_writes_nothing(self, resolver, store, vcs):
        vcs.refuse_checkout = "local changes would be overwritten"
        outcome = resolver.finalize(REPO, "develop")
        assert isinstance(outcome.error, CheckoutFailed)
        assert "local changes" in outcome.reason
        assert store.get_usage_records(REPO) == []
        assert store.get_previous(REPO) is None

    def test_vanished_branch(self, resolver, store, vcs):
        outcome = resolver.finalize(REPO, "deleted-meanwhile")
        assert isinstance(outcome.error, BranchVanished)
        assert vcs.checkouts == []
        assert store.get_usage_records(REPO) == []

    def test_detached_head_skips_pointer(self, store, clock):
        vcs = FakeVcs(["main", "develop"], current=None)
        done = Resolver(store, vcs, clock=clock).finalize(REPO, "develop")
        assert done.switched
        assert store.get_previous(REPO) is None
        assert store.get_usage_records(REPO)[0].branch_name == "develop"

    def test_repeated_switches_accumulate(self, resolver, store, clock):
        resolver.finalize(REPO, "develop")
        clock.advance(60)
        resolver.finalize(REPO, "main")
        clock.advance(60)
        resolver.finalize(REPO, "develop")
        counts = {r.branch_name: r.switch_count for r in store.get_usage_records(REPO)}
        assert counts == {"develop": 2, "main": 1}


# -----------------------------------------------------------------------
# degraded store
# -----------------------------------------------------------------------


class TestDegradedStore:
    def test_read_failure_resolves_without_history(self, vcs, clock, caplog):
        r = Resolver(BrokenStore(), vcs, clock=clock)
        with caplog.at_level(logging.WARNING, logger="ggo.resolver"):
            outcome = r.resolve(REPO, "develop")
        assert outcome == AutoSelected("develop", via="match")
        assert "database is locked" in caplog.text

    def test_read_failure_on_previous(self, vcs, clock):
        r = Resolver(BrokenStore(), vcs, clock=clock)
        assert isinstance(r.resolve(REPO, "-").error, NoPreviousBranch)

    def test_write_failure_is_a_warning(self, vcs, clock):
        done = Resolver(BrokenStore(), vcs, clock=clock).finalize(REPO, "develop")
        assert isinstance(done, Done)
        assert done.switched
        assert len(done.warnings) == 2
        assert vcs.current == "develop"

    def test_no_store(self, vcs, clock):
        r = Resolver(None, vcs, clock=clock)
        assert r.resolve(REPO, "develop") == AutoSelected("develop", via="match")
        done = r.finalize(REPO, "develop")
        assert done.switched
        assert done.warnings
