"""ggo command line: ``ggo PATTERN`` plus the stats/alias/cleanup commands.

Anything that is not a subcommand name is handed to the hidden ``go``
command, so ``ggo feat``, ``ggo -`` and ``ggo -l auth`` all resolve
branches while ``ggo stats`` runs the statistics report.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Sequence

import click

from ggo import __version__
from ggo.config import DAY_SECONDS, ConfigManager, Settings
from ggo.db import Store
from ggo.errors import GgoError, NoMatch, StoreUnavailable, UserCancelled
from ggo.frecency import format_relative_time, rank_records
from ggo.git import GitAdapter, VcsAdapter, repository_identity
from ggo.interactive import choose_branch
from ggo.resolver import (
    AwaitingChoice,
    Candidate,
    Failed,
    Resolver,
    ResolveOptions,
)
from ggo.validation import validate_alias_name, validate_branch_name

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

# ------------------------------------------------------------------
# Invocation state
# ------------------------------------------------------------------


@dataclass
class AppState:
    """Collaborators for one invocation; tests swap in fakes via ``obj=``."""

    vcs: VcsAdapter = field(default_factory=GitAdapter)
    locate: Callable[[], str] = repository_identity
    clock: Callable[[], float] = time.time
    chooser: Callable[[Sequence[Candidate], float], str] = choose_branch
    config: ConfigManager | None = None
    db_path: Path | None = None

    @property
    def settings(self) -> Settings:
        return (self.config or ConfigManager.default()).settings()


def configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        name = os.environ.get("GGO_LOG", "").upper()
        level = getattr(logging, name, logging.WARNING) if name else logging.WARNING
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("ggo").setLevel(level)


@contextmanager
def _reporting() -> Iterator[None]:
    """Print ``GgoError`` as a red message and exit (130 on cancel, else 1)."""
    try:
        yield
    except UserCancelled as e:
        click.secho(str(e), fg="yellow", err=True)
        raise SystemExit(130) from None
    except GgoError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        if e.hint:
            click.echo(f"Hint: {e.hint}", err=True)
        raise SystemExit(1) from None


def _open_store(state: AppState) -> Store:
    if state.db_path is None:
        raise RuntimeError("Database not configured. Pass --db or set GGO_DB.")
    return Store.open(state.db_path)


def _open_store_or_none(state: AppState) -> Store | None:
    """Branch switching still works without history when the store is broken."""
    try:
        return _open_store(state)
    except StoreUnavailable as e:
        click.secho(f"Warning: {e}; continuing without history", fg="yellow", err=True)
        return None


# ------------------------------------------------------------------
# Group
# ------------------------------------------------------------------


class DefaultGroup(click.Group):
    """A group that routes unknown first arguments to ``default_command``."""

    default_command = "go"

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        args = list(args)
        params = {
            name: p
            for p in self.get_params(ctx)
            if isinstance(p, click.Option)
            for name in (*p.opts, *p.secondary_opts)
        }
        i = 0
        while i < len(args):
            token = args[i]
            opt = params.get(token.split("=", 1)[0])
            if opt is None:
                break
            i += 1 if (opt.is_flag or "=" in token) else 2
        # the default command is hidden, so its own name is a pattern too
        if i < len(args) and (
            args[i] not in self.commands or args[i] == self.default_command
        ):
            args.insert(i, self.default_command)
        return super().parse_args(ctx, args)


@click.group(cls=DefaultGroup)
@click.version_option(__version__, prog_name="ggo")
@click.option(
    "--db",
    "db",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the usage database (default: $GGO_DB or ~/.config/ggo/data.db).",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.toml (default: $GGO_CONFIG or ~/.config/ggo/config.toml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(
    ctx: click.Context, db: Path | None, config_path: Path | None, verbose: bool
) -> None:
    """Smart git branch switching: ggo PATTERN checks out the best match.

    \b
    Examples:
      ggo feat           switch to the branch best matching "feat"
      ggo -              switch back to the previous branch
      ggo -l auth        list matching branches with their scores
      ggo alias m main   make "ggo m" switch to main
    """
    configure_logging(verbose)
    state = ctx.ensure_object(AppState)
    with _reporting():
        if state.config is None:
            state.config = ConfigManager.load(config_path)
        if db is not None:
            state.db_path = db.expanduser()
        elif state.db_path is None:
            state.db_path = state.config.db_path()
    logger.debug("Using database %s", state.db_path)


# ------------------------------------------------------------------
# go
# ------------------------------------------------------------------


def _print_candidates(candidates: Sequence[Candidate]) -> None:
    width = max(len(c.branch) for c in candidates)
    for i, cand in enumerate(candidates):
        marker = "*" if i == 0 else " "
        line = f"{marker} {cand.branch:<{width}}  (score: {cand.combined:.1f})"
        if cand.aliases:
            line += f" [alias: {', '.join(cand.aliases)}]"
        click.secho(line, fg="green" if i == 0 else None)


def _list_matches(
    resolver: Resolver,
    vcs: VcsAdapter,
    repo: str,
    pattern: str,
    options: ResolveOptions,
) -> None:
    candidates = resolver.rank(repo, pattern, options)
    if not candidates:
        raise NoMatch(pattern, vcs.list_branches(repo))
    _print_candidates(candidates)


@cli.command("go", hidden=True)
@click.argument("pattern")
@click.option(
    "-l", "--list", "list_only", is_flag=True, help="List matches without switching."
)
@click.option("-i", "--ignore-case", is_flag=True, help="Case-insensitive matching.")
@click.option("--no-fuzzy", is_flag=True, help="Exact substring matching only.")
@click.option(
    "--interactive", is_flag=True, help="Always choose from a menu, even with a clear winner."
)
@click.pass_obj
def go(
    state: AppState,
    pattern: str,
    list_only: bool,
    ignore_case: bool,
    no_fuzzy: bool,
    interactive: bool,
) -> None:
    """Switch to the branch best matching PATTERN ("-" for the previous one)."""
    settings = state.settings
    options = ResolveOptions(
        ignore_case=ignore_case or settings.default_ignore_case,
        fuzzy=settings.default_fuzzy and not no_fuzzy,
        interactive=interactive,
    )
    with _reporting():
        repo = state.locate()
        store = _open_store_or_none(state)
        try:
            resolver = Resolver(store, state.vcs, settings, clock=state.clock)

            if list_only:
                _list_matches(resolver, state.vcs, repo, pattern, options)
                return

            outcome = resolver.resolve(repo, pattern, options)
            if isinstance(outcome, Failed):
                raise outcome.error
            if isinstance(outcome, AwaitingChoice):
                branch = state.chooser(outcome.candidates, state.clock())
            else:
                branch = outcome.branch

            done = resolver.finalize(repo, branch)
            if isinstance(done, Failed):
                raise done.error
            for warning in done.warnings:
                click.secho(f"Warning: {warning}", fg="yellow", err=True)
            if done.switched:
                click.echo(f"Switched to branch '{done.branch}'")
            else:
                click.echo(f"Already on '{done.branch}'")
        finally:
            if store is not None:
                store.close()


# ------------------------------------------------------------------
# stats
# ------------------------------------------------------------------


@cli.command()
@click.option("--top", default=10, show_default=True, type=click.IntRange(min=1))
@click.pass_obj
def stats(state: AppState, top: int) -> None:
    """Show usage statistics across all repositories."""
    with _reporting(), _open_store(state) as store:
        s = store.stats()
        records = store.all_usage_records()

    click.echo(f"Total switches:    {s.total_switches}")
    click.echo(f"Unique branches:   {s.unique_branches}")
    click.echo(f"Repositories:      {s.unique_repos}")
    click.echo(f"Database:          {s.db_path}")
    if not records:
        return

    now = state.clock()
    click.echo("")
    click.echo("Top branches:")
    for scored in rank_records(records, now, state.settings.half_life_seconds)[:top]:
        click.echo(
            f"  {scored.name:<40} {scored.score:>7.2f}  "
            f"{scored.switch_count:>4}x  {format_relative_time(scored.last_used, now)}"
        )


# ------------------------------------------------------------------
# alias
# ------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.argument("branch", required=False)
@click.option("--list", "list_all", is_flag=True, help="List aliases for this repository.")
@click.option("--remove", is_flag=True, help="Remove alias NAME.")
@click.pass_obj
def alias(
    state: AppState,
    name: str | None,
    branch: str | None,
    list_all: bool,
    remove: bool,
) -> None:
    """Manage aliases: ``ggo alias NAME BRANCH`` makes ``ggo NAME`` go to BRANCH."""
    with _reporting():
        repo = state.locate()
        with _open_store(state) as store:
            if list_all or name is None:
                aliases = store.list_aliases(repo)
                if not aliases:
                    click.echo("No aliases defined for this repository.")
                    return
                width = max(len(a.alias_name) for a in aliases)
                for a in aliases:
                    click.echo(f"{a.alias_name:<{width}} -> {a.target_branch_name}")
                return

            if remove:
                if branch is not None:
                    raise click.UsageError("--remove takes only the alias name")
                if not store.remove_alias(repo, name):
                    raise GgoError(
                        f"Alias '{name}' not found",
                        "Run 'ggo alias --list' to see defined aliases.",
                    )
                click.echo(f"Removed alias '{name}'")
                return

            if branch is None:
                existing = store.get_alias(repo, name)
                if existing is None:
                    raise GgoError(
                        f"Alias '{name}' not found",
                        f"Create it with 'ggo alias {name} <branch>'.",
                    )
                click.echo(f"{existing.alias_name} -> {existing.target_branch_name}")
                return

            validate_alias_name(name)
            validate_branch_name(branch)
            if branch not in state.vcs.list_branches(repo):
                raise GgoError(
                    f"Branch '{branch}' does not exist",
                    "Run 'git branch' to see available branches.",
                )
            store.set_alias(repo, name, branch, int(state.clock()))
            click.echo(f"Alias '{name}' -> '{branch}'")


# ------------------------------------------------------------------
# cleanup
# ------------------------------------------------------------------


def _human_size(n: int) -> str:
    size = float(n)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@cli.command()
@click.option("--deleted", is_flag=True, help="Forget branches deleted from this repository.")
@click.option(
    "--older-than",
    "older_than",
    type=click.IntRange(min=1),
    default=None,
    metavar="DAYS",
    help="Forget branches not used in DAYS days (all repositories).",
)
@click.option("--optimize", is_flag=True, help="VACUUM and ANALYZE the database.")
@click.option("--size", "show_size", is_flag=True, help="Print the database size.")
@click.pass_obj
def cleanup(
    state: AppState,
    deleted: bool,
    older_than: int | None,
    optimize: bool,
    show_size: bool,
) -> None:
    """Prune and maintain the usage database."""
    if not (deleted or older_than or optimize or show_size):
        raise click.UsageError(
            "Nothing to do: pass --deleted, --older-than DAYS, --optimize or --size"
        )
    with _reporting(), _open_store(state) as store:
        if deleted:
            repo = state.locate()
            removed = store.cleanup_missing_branches(repo, state.vcs.list_branches(repo))
            click.echo(f"Removed {removed} record(s) for deleted branches")
        if older_than:
            cutoff = int(state.clock()) - older_than * DAY_SECONDS
            removed = store.cleanup_older_than(cutoff)
            click.echo(f"Removed {removed} record(s) older than {older_than} days")
        if optimize:
            store.optimize()
            click.echo("Database optimized")
        if show_size:
            click.echo(f"Database size: {_human_size(store.size_bytes())}")


def main() -> None:
    cli(prog_name="ggo")


if __name__ == "__main__":
    main()
