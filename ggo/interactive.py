"""Numbered terminal menu for picking one of several candidate branches."""

from __future__ import annotations

import logging
from typing import Sequence

import click

from ggo.errors import UserCancelled
from ggo.frecency import format_relative_time
from ggo.resolver import Candidate

logger = logging.getLogger(__name__)

MAX_NAME_WIDTH = 40


def _truncate(name: str, width: int = MAX_NAME_WIDTH) -> str:
    if len(name) <= width:
        return name
    return name[: width - 3] + "..."


def format_row(index: int, candidate: Candidate, now: float) -> str:
    """One menu line: number, branch, frecency score and usage summary."""
    name = _truncate(candidate.branch)
    if candidate.last_used is None or candidate.switch_count == 0:
        return f"{index:>3}) {name:<{MAX_NAME_WIDTH}}  {'new':>6}  never used"
    used = format_relative_time(candidate.last_used, now)
    noun = "switch" if candidate.switch_count == 1 else "switches"
    return (
        f"{index:>3}) {name:<{MAX_NAME_WIDTH}}  {candidate.frecency:>6.1f}  "
        f"{candidate.switch_count} {noun}, last {used}"
    )


def choose_branch(candidates: Sequence[Candidate], now: float) -> str:
    """Show *candidates* and return the branch the user picks.

    Empty input, ``q`` or Ctrl-C/Ctrl-D raise ``UserCancelled``.  Anything
    that is not a listed number re-prompts.
    """
    if not candidates:
        raise UserCancelled()

    click.echo("Multiple branches match. Select one:", err=True)
    for i, cand in enumerate(candidates, start=1):
        click.echo(format_row(i, cand, now), err=True)

    while True:
        try:
            answer = click.prompt(
                f"Branch [1-{len(candidates)}, q to cancel]",
                default="",
                show_default=False,
                err=True,
            )
        except click.Abort:
            raise UserCancelled() from None

        answer = answer.strip()
        if answer in ("", "q", "Q"):
            raise UserCancelled()
        if answer.isdigit() and 1 <= int(answer) <= len(candidates):
            picked = candidates[int(answer) - 1].branch
            logger.debug("User picked %s", picked)
            return picked
        click.echo(f"Please enter a number between 1 and {len(candidates)}.", err=True)
