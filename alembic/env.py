import asyncio
import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel

load_dotenv()

from app.core.config import get_settings  # noqa: E402
from app.models import Task, User  # noqa: E402,F401

config = context.config
config.set_main_option(
    "sqlalchemy.url", os.getenv("DATABASE_URL") or get_settings().database_url
)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def render_item(type_, obj, autogen_context):
    """Emit sa.String for sqlmodel's AutoString columns."""
    from sqlmodel.sql.sqltypes import AutoString

    if isinstance(type_, type) and issubclass(type_, AutoString):
        length = getattr(obj, "length", None)
        return f"sa.String(length={length})" if length else "sa.String()"
    return False


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, render_item=render_item, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def _run_with_connection(connection: Connection) -> None:
    # sqlite cannot ALTER most columns in place
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_with_connection)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
