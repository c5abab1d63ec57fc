"""Alembic migration environment for ISMS Workbench.

The database URL comes from ``Settings.DATABASE_URL`` (env / .env), never
from an ini file. SQLite runs in batch mode so the risk assessment CHECK
constraints can be altered by copy-and-move.
"""

import asyncio
import logging

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

from isms.config.settings import get_settings
from isms.db.session import Base
import isms.db.tables  # noqa: F401 - registers the ORM models

settings = get_settings()
logging.basicConfig(level=settings.LOG_LEVEL.value, format="%(levelname)-5.5s [%(name)s] %(message)s")
logger = logging.getLogger("alembic.env")

config = context.config
target_metadata = Base.metadata

DATABASE_URL = config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL
RENDER_AS_BATCH = make_url(DATABASE_URL).get_backend_name() == "sqlite"


def _skip_empty_autogenerate(context_, revision, directives) -> None:
    """Drop an autogenerated revision that would contain no operations."""
    if getattr(config.cmd_opts, "autogenerate", False) and directives:
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No schema changes detected; revision not written")


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=RENDER_AS_BATCH,
        process_revision_directives=_skip_empty_autogenerate,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout."""
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
