"""Alembic environment configuration.

Migrations are only ever run programmatically: ``Store.open()`` passes a
live connection via ``config.attributes["connection"]`` so that every
pending revision runs inside the store's own ``BEGIN IMMEDIATE``
transaction.  A ``sqlalchemy.url`` main option is honoured as a fallback
for running the scripts against a database file by hand.
"""

from __future__ import annotations

from sqlalchemy import create_engine, pool

from alembic import context
from ggo.models import Base

config = context.config

target_metadata = Base.metadata


def run_migrations_online() -> None:
    """Run migrations against a live SQLite database."""
    connection = config.attributes.get("connection", None)

    if connection is not None:
        # Reuse the connection (and its open transaction) from ggo.db.
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()
        return

    url = config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("No connection or sqlalchemy.url given to migrations")
    connectable = create_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as conn:
        context.configure(
            connection=conn, target_metadata=target_metadata, render_as_batch=True
        )
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


run_migrations_online()
