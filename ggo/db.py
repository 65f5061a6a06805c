"""SQLAlchemy storage layer for usage records, aliases and previous-branch pointers."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from sqlalchemy import Engine, create_engine, delete, event, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from alembic import command
from alembic.config import Config
from alembic.migration import MigrationContext
from alembic.script import ScriptDirectory
from alembic.util import CommandError
from ggo.errors import StoreUnavailable
from ggo.models import BranchAlias, BranchUsage, PreviousBranch
from ggo.records import Alias, PreviousPointer, StoreStats, UsageRecord

logger = logging.getLogger(__name__)

_BEGIN_OPTION = "ggo_begin"

# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------


def create_store_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with explicit transaction control.

    pysqlite's own transaction handling is switched off so that every
    transaction starts with a real ``BEGIN`` we emit ourselves.  Writers use
    ``BEGIN IMMEDIATE`` which takes the database write lock up front;
    concurrent processes queue on ``busy_timeout`` instead of failing on a
    lock upgrade halfway through.
    """
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        mode = conn.get_execution_options().get(_BEGIN_OPTION, "IMMEDIATE")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


# ------------------------------------------------------------------
# Alembic helpers
# ------------------------------------------------------------------

_MIGRATIONS_DIR = str(Path(__file__).resolve().parent / "migrations")

# Databases written before migrations existed carry no alembic_version row.
# Stamp them at the newest revision whose tables are all present.
_LEGACY_REVISIONS: list[tuple[str, set[str]]] = [
    ("0002", {"branches", "aliases", "previous_branch"}),
    ("0001", {"branches", "aliases"}),
]


def _alembic_config(connection: Any) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", _MIGRATIONS_DIR)
    cfg.attributes["connection"] = connection
    return cfg


def head_revision() -> str | None:
    """Return the newest migration revision shipped with this package."""
    cfg = Config()
    cfg.set_main_option("script_location", _MIGRATIONS_DIR)
    return ScriptDirectory.from_config(cfg).get_current_head()


def _current_revision(connection: Any) -> str | None:
    return MigrationContext.configure(connection).get_current_revision()


def _run_alembic_upgrade(connection: Any) -> bool:
    """Bring the schema to head on *connection*.

    Returns ``True`` when any revision was applied or stamped.
    """
    cfg = _alembic_config(connection)
    current = _current_revision(connection)
    if current == head_revision():
        return False

    if current is None:
        existing = set(sa_inspect(connection).get_table_names())
        for revision, tables in _LEGACY_REVISIONS:
            if tables <= existing:
                logger.info("Stamping pre-migration database at revision %s", revision)
                command.stamp(cfg, revision)
                break

    command.upgrade(cfg, "head")
    return True


# ------------------------------------------------------------------
# Store
# ------------------------------------------------------------------


class Store:
    """Durable per-repository storage.

    Every query is scoped by repository identity.  All rows are handed out
    as frozen dataclasses from :mod:`ggo.records`.

    Typical usage::

        store = Store.open(Path("~/.config/ggo/data.db").expanduser())
        store.upsert_usage("/src/project", "main", now)
    """

    def __init__(self, engine: Engine, db_path: Path, migrated: bool = False) -> None:
        self._engine = engine
        self._db_path = db_path
        self._writer = sessionmaker(bind=engine, expire_on_commit=False)
        self._reader = sessionmaker(
            bind=engine.execution_options(**{_BEGIN_OPTION: "DEFERRED"}),
            expire_on_commit=False,
        )
        self.migrated = migrated

    # -------------------------------------------------------------- lifecycle

    @classmethod
    def open(cls, location: Path | str) -> Store:
        """Open (creating if needed) the store at *location* and migrate it.

        Migrations run inside a single ``BEGIN IMMEDIATE`` transaction, so a
        crash leaves either the old or the new schema fully in place.  A
        store that is already at head is only read, never written.
        """
        db_path = Path(location).expanduser()
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_store_engine(db_path)
            head = head_revision()
            with engine.connect().execution_options(
                **{_BEGIN_OPTION: "DEFERRED"}
            ) as conn:
                up_to_date = _current_revision(conn) == head
            migrated = False
            if not up_to_date:
                with engine.begin() as conn:
                    migrated = _run_alembic_upgrade(conn)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"cannot open {db_path}: {e}") from e
        except CommandError as e:
            # stamped by a newer ggo, or an unknown revision
            raise StoreUnavailable(f"cannot migrate {db_path}: {e}") from e

        if migrated:
            logger.info("Migrated %s to schema revision %s", db_path, head)
        return cls(engine, db_path, migrated=migrated)

    def close(self) -> None:
        self._engine.dispose()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def path(self) -> Path:
        return self._db_path

    @contextmanager
    def session(self, write: bool = True) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        factory = self._writer if write else self._reader
        try:
            with factory() as sess:
                yield sess
                sess.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    def schema_version(self) -> str | None:
        try:
            with self._engine.connect().execution_options(
                **{_BEGIN_OPTION: "DEFERRED"}
            ) as conn:
                return _current_revision(conn)
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    # -------------------------------------------------------------- reads

    def get_usage_records(self, repository_identity: str) -> list[UsageRecord]:
        with self.session(write=False) as sess:
            stmt = (
                select(BranchUsage)
                .where(BranchUsage.repo_path == repository_identity)
                .order_by(BranchUsage.branch_name.asc())
            )
            return [_usage(row) for row in sess.execute(stmt).scalars().all()]

    def all_usage_records(self) -> list[UsageRecord]:
        with self.session(write=False) as sess:
            stmt = select(BranchUsage).order_by(
                BranchUsage.repo_path.asc(), BranchUsage.branch_name.asc()
            )
            return [_usage(row) for row in sess.execute(stmt).scalars().all()]

    def get_alias(self, repository_identity: str, name: str) -> Alias | None:
        with self.session(write=False) as sess:
            stmt = (
                select(BranchAlias)
                .where(
                    BranchAlias.repo_path == repository_identity,
                    BranchAlias.alias == name,
                )
                .limit(1)
            )
            row = sess.execute(stmt).scalars().first()
            return None if row is None else _alias(row)

    def list_aliases(self, repository_identity: str) -> list[Alias]:
        with self.session(write=False) as sess:
            stmt = (
                select(BranchAlias)
                .where(BranchAlias.repo_path == repository_identity)
                .order_by(BranchAlias.alias.asc())
            )
            return [_alias(row) for row in sess.execute(stmt).scalars().all()]

    def aliases_for_branch(self, repository_identity: str, branch_name: str) -> list[str]:
        with self.session(write=False) as sess:
            stmt = (
                select(BranchAlias.alias)
                .where(
                    BranchAlias.repo_path == repository_identity,
                    BranchAlias.branch_name == branch_name,
                )
                .order_by(BranchAlias.alias.asc())
            )
            return [str(r[0]) for r in sess.execute(stmt).all()]

    def get_previous(self, repository_identity: str) -> PreviousPointer | None:
        with self.session(write=False) as sess:
            stmt = (
                select(PreviousBranch)
                .where(PreviousBranch.repo_path == repository_identity)
                .limit(1)
            )
            row = sess.execute(stmt).scalars().first()
            if row is None:
                return None
            return PreviousPointer(
                repository_identity=row.repo_path,
                branch_name=row.branch_name,
                updated_at=row.updated_at,
            )

    def stats(self) -> StoreStats:
        with self.session(write=False) as sess:
            stmt = select(
                func.coalesce(func.sum(BranchUsage.switch_count), 0),
                func.count(),
                func.count(func.distinct(BranchUsage.repo_path)),
            )
            total, branches, repos = sess.execute(stmt).one()
        return StoreStats(
            total_switches=int(total),
            unique_branches=int(branches),
            unique_repos=int(repos),
            db_path=self._db_path,
        )

    # -------------------------------------------------------------- writes

    def upsert_usage(self, repository_identity: str, branch_name: str, now: int) -> None:
        """Record one checkout of *branch_name*.

        Creates the row with ``switch_count=1`` or increments it in the same
        statement; ``last_used`` never moves backwards.
        """
        stmt = sqlite_insert(BranchUsage).values(
            repo_path=repository_identity,
            branch_name=branch_name,
            switch_count=1,
            last_used=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[BranchUsage.repo_path, BranchUsage.branch_name],
            set_={
                "switch_count": BranchUsage.switch_count + 1,
                "last_used": func.max(BranchUsage.last_used, stmt.excluded.last_used),
            },
        )
        with self.session() as sess:
            sess.execute(stmt)

    def upsert_previous(self, repository_identity: str, branch_name: str, now: int) -> None:
        stmt = sqlite_insert(PreviousBranch).values(
            repo_path=repository_identity, branch_name=branch_name, updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PreviousBranch.repo_path],
            set_={
                "branch_name": stmt.excluded.branch_name,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.session() as sess:
            sess.execute(stmt)

    def set_alias(
        self, repository_identity: str, name: str, branch_name: str, now: int
    ) -> None:
        stmt = sqlite_insert(BranchAlias).values(
            repo_path=repository_identity,
            alias=name,
            branch_name=branch_name,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[BranchAlias.repo_path, BranchAlias.alias],
            set_={
                "branch_name": stmt.excluded.branch_name,
                "created_at": stmt.excluded.created_at,
            },
        )
        with self.session() as sess:
            sess.execute(stmt)

    def remove_alias(self, repository_identity: str, name: str) -> bool:
        """Delete an alias; returns ``False`` when it did not exist."""
        stmt = delete(BranchAlias).where(
            BranchAlias.repo_path == repository_identity, BranchAlias.alias == name
        )
        with self.session() as sess:
            result = sess.execute(stmt)
            return bool(result.rowcount)

    # -------------------------------------------------------------- maintenance

    def cleanup_older_than(self, cutoff: int) -> int:
        """Remove usage records not touched since *cutoff* (Unix seconds)."""
        stmt = delete(BranchUsage).where(BranchUsage.last_used < cutoff)
        with self.session() as sess:
            return int(sess.execute(stmt).rowcount or 0)

    def cleanup_missing_branches(
        self, repository_identity: str, existing: Iterable[str]
    ) -> int:
        """Remove usage records for branches of one repository that are gone."""
        keep = list(existing)
        stmt = delete(BranchUsage).where(
            BranchUsage.repo_path == repository_identity,
            BranchUsage.branch_name.not_in(keep),
        )
        with self.session() as sess:
            return int(sess.execute(stmt).rowcount or 0)

    def optimize(self) -> None:
        """Run VACUUM and ANALYZE (both refuse to run inside a transaction)."""
        raw = self._engine.raw_connection()
        try:
            raw.driver_connection.execute("VACUUM")
            raw.driver_connection.execute("ANALYZE")
        except sqlite3.Error as e:
            raise StoreUnavailable(f"optimize failed: {e}") from e
        finally:
            raw.close()

    def size_bytes(self) -> int:
        """Size of the database file plus its WAL, in bytes."""
        total = 0
        for suffix in ("", "-wal"):
            p = Path(f"{self._db_path}{suffix}")
            if p.exists():
                total += p.stat().st_size
        return total


def _usage(row: BranchUsage) -> UsageRecord:
    return UsageRecord(
        repository_identity=row.repo_path,
        branch_name=row.branch_name,
        switch_count=row.switch_count,
        last_used=row.last_used,
    )


def _alias(row: BranchAlias) -> Alias:
    return Alias(
        repository_identity=row.repo_path,
        alias_name=row.alias,
        target_branch_name=row.branch_name,
        created_at=row.created_at,
    )
