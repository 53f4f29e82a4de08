from sqlmodel import create_engine, SQLModel, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from config import Settings, get_settings

# Registers the table metadata
import models  # noqa: F401


def _configure_sqlite(engine: Engine) -> Engine:
    """
    Enforce foreign keys and take the write lock when a transaction begins

    SQLite ignores SELECT ... FOR UPDATE; BEGIN IMMEDIATE holds the lock
    from the first read until commit instead.
    """
    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from emitting its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str, timeout_seconds: float = 5, echo: bool = False) -> Engine:
    """
    Create an engine whose connection waits are bounded by timeout_seconds

    Args:
        database_url: SQLAlchemy database URL
        timeout_seconds: SQLite busy timeout, or pool checkout timeout elsewhere
        echo: Log emitted SQL

    Returns:
        Configured engine
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each checkout sees an empty database
            return _configure_sqlite(create_engine(
                database_url,
                echo=echo,
                connect_args=connect_args,
                poolclass=StaticPool,
            ))
        return _configure_sqlite(create_engine(database_url, echo=echo, connect_args=connect_args))

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=timeout_seconds,
    )


_engine: Engine = None


def get_engine(settings: Settings = None) -> Engine:
    """Process-wide engine, created on first use"""
    global _engine
    if _engine is None:
        settings = settings or get_settings()
        _engine = build_engine(
            settings.database_url,
            timeout_seconds=settings.db_timeout_seconds,
            echo=settings.sql_echo,
        )
    return _engine


def create_db_and_tables(engine: Engine = None):
    """Create all tables in the database"""
    SQLModel.metadata.create_all(engine or get_engine())


def get_session():
    """Get database session - used as FastAPI dependency"""
    with Session(get_engine()) as session:
        yield session
