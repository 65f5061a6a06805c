"""Branch-name matching.

Two modes:

* **exact** – the pattern must occur as a contiguous substring.  Earlier and
  tighter matches score higher.
* **fuzzy** – the pattern characters must occur in order, gaps allowed.
  Scoring rewards consecutive runs, matches anchored at word boundaries
  (string start, or after ``/ - _ .``), few gap characters and short names.

Quality scores are only comparable within one call.  Every non-empty
match scores strictly above zero; the empty pattern matches everything
with a neutral score of ``0.0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

SCORE_MATCH = 16.0
BONUS_START = 12.0
BONUS_BOUNDARY = 9.0
BONUS_CONSECUTIVE = 8.0
GAP_START = 3.0
GAP_EXTENSION = 1.0
POSITION_PENALTY = 1.0
LENGTH_PENALTY = 0.2

BOUNDARY_CHARS = frozenset("/-_.")

_NEG_INF = float("-inf")


@dataclass(frozen=True, slots=True)
class Match:
    branch: str
    quality: float


def _fold(text: str, ignore_case: bool) -> str:
    return text.lower() if ignore_case else text


def _positive(raw: float) -> float:
    """Map a raw score onto (0, inf), keeping the order."""
    if raw > 1.0:
        return raw
    return 1.0 / (2.0 - raw)


def _ranked(matches: Iterable[Match]) -> list[Match]:
    return sorted(matches, key=lambda m: (-m.quality, m.branch))


def _unique(branches: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(branches))


# ------------------------------------------------------------------
# Exact substring
# ------------------------------------------------------------------


def exact_quality(branch: str, pattern: str, ignore_case: bool = False) -> float | None:
    """Quality of *pattern* as a substring of *branch*, or ``None``."""
    if not pattern:
        return 0.0
    pos = _fold(branch, ignore_case).find(_fold(pattern, ignore_case))
    if pos < 0:
        return None
    raw = (
        (SCORE_MATCH + BONUS_CONSECUTIVE) * len(pattern)
        - POSITION_PENALTY * pos
        - LENGTH_PENALTY * len(branch)
    )
    return _positive(raw)


def exact_matches(
    branches: Iterable[str], pattern: str, ignore_case: bool = False
) -> list[Match]:
    out = []
    for branch in _unique(branches):
        q = exact_quality(branch, pattern, ignore_case)
        if q is not None:
            out.append(Match(branch, q))
    return _ranked(out)


# ------------------------------------------------------------------
# Fuzzy subsequence
# ------------------------------------------------------------------


def is_subsequence(needle: str, hay: str) -> bool:
    it = iter(hay)
    return all(ch in it for ch in needle)


def _char_bonus(hay: str, j: int) -> float:
    if j == 0:
        return BONUS_START
    if hay[j - 1] in BOUNDARY_CHARS:
        return BONUS_BOUNDARY
    return 0.0


def fuzzy_quality(branch: str, pattern: str, ignore_case: bool = False) -> float | None:
    """Best alignment score of *pattern* within *branch*, or ``None``.

    ``best[j]`` holds the best score of the pattern prefix so far ending
    with its last character matched at ``hay[j]``.  Gaps are affine
    (``GAP_START + GAP_EXTENSION * (len - 1)``), so the best predecessor
    can be carried as a running maximum and each row is linear.
    """
    if not pattern:
        return 0.0
    hay = _fold(branch, ignore_case)
    needle = _fold(pattern, ignore_case)
    if not is_subsequence(needle, hay):
        return None

    n = len(hay)
    prev = [_NEG_INF] * n
    for j in range(n):
        if hay[j] == needle[0]:
            prev[j] = SCORE_MATCH + _char_bonus(hay, j)

    for ch in needle[1:]:
        cur = [_NEG_INF] * n
        # max over k <= j-2 of prev[k] + GAP_EXTENSION * k
        carried = _NEG_INF
        for j in range(1, n):
            if j >= 2 and prev[j - 2] != _NEG_INF:
                carried = max(carried, prev[j - 2] + GAP_EXTENSION * (j - 2))
            if hay[j] != ch:
                continue
            best = _NEG_INF
            if prev[j - 1] != _NEG_INF:
                best = prev[j - 1] + BONUS_CONSECUTIVE
            if carried != _NEG_INF:
                gapped = carried - GAP_START - GAP_EXTENSION * (j - 2)
                best = max(best, gapped)
            if best != _NEG_INF:
                cur[j] = best + SCORE_MATCH + _char_bonus(hay, j)
        prev = cur

    raw = max(prev) - LENGTH_PENALTY * n
    return _positive(raw)


def fuzzy_matches(
    branches: Iterable[str], pattern: str, ignore_case: bool = False
) -> list[Match]:
    out = []
    for branch in _unique(branches):
        q = fuzzy_quality(branch, pattern, ignore_case)
        if q is not None:
            out.append(Match(branch, q))
    return _ranked(out)


def match(
    branches: Iterable[str],
    pattern: str,
    ignore_case: bool = False,
    fuzzy: bool = True,
) -> list[Match]:
    """Candidates for *pattern*, best first, ties by branch name."""
    if fuzzy:
        return fuzzy_matches(branches, pattern, ignore_case)
    return exact_matches(branches, pattern, ignore_case)
