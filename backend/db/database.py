from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    # Naive UTC, stored as-is in DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


SQLITE_BUSY_TIMEOUT = 30


def _configure_sqlite_connection(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # The driver would only open a transaction before the first write, so
    # consecutive reads could see different commits. BEGIN is emitted in
    # _begin_sqlite_transaction instead.
    dbapi_connection.isolation_level = None


def _begin_sqlite_transaction(conn):
    # IMMEDIATE takes the write lock up front: a transaction never has to
    # upgrade a read lock, which SQLite answers with "database is locked"
    # instead of waiting.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """
    Create an async engine.

    SQLite connections get foreign key enforcement and real transactions:
    every statement of a session transaction, reads included, runs between
    one BEGIN and its COMMIT/ROLLBACK.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"timeout": SQLITE_BUSY_TIMEOUT})
    engine = create_async_engine(database_url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_sqlite_transaction)
    return engine


engine = build_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def import_models() -> None:
    # Registers every table on Base.metadata
    from db import location, sync_config  # noqa: F401
    from db.inventory import item, log  # noqa: F401


async def create_db_and_tables(bind: AsyncEngine | None = None):
    import_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
