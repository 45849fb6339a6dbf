"""Database engine and session factory"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from lender_gateway.config import settings
from lender_gateway.infrastructure.database.models import Base


def serialize_sqlite_transactions(engine: Engine) -> Engine:
    """
    Open every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write and SQLite ignores
    SELECT ... FOR UPDATE, so read-modify-write sequences from two
    connections could interleave. Taking the write lock up front makes
    each session's transaction run alone.
    """

    @event.listens_for(engine, "connect")
    def disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str) -> Engine:
    """Pooled engine; SQLite needs cross-thread access for the fan-out tasks"""
    if database_url.startswith("sqlite"):
        return serialize_sqlite_transactions(
            create_engine(database_url, connect_args={"check_same_thread": False})
        )

    # Recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)
