"""Frecency: how likely the user wants a branch right now.

    score = switch_count * exp(-lambda * age),  lambda = ln(2) / half_life

which is the same as ``switch_count * 0.5 ** (age / half_life)``; the
second form is what we compute, so a record exactly one half-life old
scores exactly half of a fresh one.  Ages are clamped at zero so a
``last_used`` in the future (clock skew) scores as brand new.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ggo.config import DAY_SECONDS, DEFAULT_HALF_LIFE_DAYS
from ggo.records import UsageRecord

DEFAULT_HALF_LIFE_SECONDS = DEFAULT_HALF_LIFE_DAYS * DAY_SECONDS

HOUR_SECONDS = 3_600
WEEK_SECONDS = 7 * DAY_SECONDS
MONTH_SECONDS = 30 * DAY_SECONDS


@dataclass(frozen=True, slots=True)
class ScoredBranch:
    name: str
    score: float
    switch_count: int
    last_used: int


def score(
    record: UsageRecord,
    now: float,
    half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
) -> float:
    """Frecency of *record* at time *now* (Unix seconds)."""
    age = max(0.0, float(now) - float(record.last_used))
    return record.switch_count * 0.5 ** (age / half_life_seconds)


def frecency_map(
    records: Iterable[UsageRecord],
    now: float,
    half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
) -> dict[str, float]:
    """Branch name -> frecency.  Branches without a record are simply absent."""
    return {r.branch_name: score(r, now, half_life_seconds) for r in records}


def rank_records(
    records: Iterable[UsageRecord],
    now: float,
    half_life_seconds: float = DEFAULT_HALF_LIFE_SECONDS,
) -> list[ScoredBranch]:
    """Score *records* and sort them best first (ties by name)."""
    scored = [
        ScoredBranch(
            name=r.branch_name,
            score=score(r, now, half_life_seconds),
            switch_count=r.switch_count,
            last_used=r.last_used,
        )
        for r in records
    ]
    scored.sort(key=lambda s: (-s.score, s.name))
    return scored


def format_relative_time(timestamp: int, now: float) -> str:
    """Render *timestamp* as ``"just now"``, ``"5m ago"``, ``"3d ago"`` ..."""
    age = int(now) - int(timestamp)
    if age < 60:
        return "just now"
    if age < HOUR_SECONDS:
        return f"{age // 60}m ago"
    if age < DAY_SECONDS:
        return f"{age // HOUR_SECONDS}h ago"
    if age < WEEK_SECONDS:
        return f"{age // DAY_SECONDS}d ago"
    if age < MONTH_SECONDS:
        return f"{age // WEEK_SECONDS}w ago"
    return f"{age // MONTH_SECONDS}mo ago"
