from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context
from skillzcollab.config import get_database_config
from skillzcollab.db import Base
import skillzcollab.models.user  # ensure models are registered
import skillzcollab.models.brand
import skillzcollab.models.brief
import skillzcollab.models.tag
import skillzcollab.models.submission
import skillzcollab.models.reaction
import skillzcollab.models.portfolio

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
# `alembic -x url=...` targets another database than the configured one
database_url = context.get_x_argument(as_dictionary=True).get("url") or get_database_config().url
batch = database_url.startswith("sqlite")

def run_migrations_offline():
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=batch,
    )
    with context.begin_transaction():
        context.run_migrations()

def do_run_migrations(connection: Connection):
    context.configure(
        connection=connection, target_metadata=target_metadata, compare_type=True, render_as_batch=batch
    )
    with context.begin_transaction():
        context.run_migrations()

async def run_migrations_online():
    connectable = create_async_engine(database_url, poolclass=pool.NullPool, future=True)
    async with connectable.begin() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()

if context.is_offline_mode():
    run_migrations_offline()
else:
    import asyncio
    asyncio.run(run_migrations_online())
