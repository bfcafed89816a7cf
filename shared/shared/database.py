from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

def get_engine(database_url: str, echo: bool = False):
    engine = create_async_engine(database_url, echo=echo, future=True)
    if engine.dialect.name == "sqlite":
        _serialize_sqlite_writers(engine)
    return engine

def _serialize_sqlite_writers(engine):
    # sqlite only waits on the busy timeout when the write lock is taken up front;
    # a deferred transaction upgrading to a write fails with "database is locked"
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

Base = declarative_base()

def get_session(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False
    )

@asynccontextmanager
async def transaction(session: AsyncSession):
    """
    Commit everything done on `session` inside the block, or nothing.
    Works whether or not the session has already autobegun.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
