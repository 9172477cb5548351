"""
Database engine and session management.

The engine (and its connection pool) is owned by a ``Database`` instance
that the application builds at startup and disposes at shutdown. Nothing
here opens a connection at import time.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the SQLAlchemy engine, its connection pool and the session factory.

    Lifecycle:
    - ``create_schema()`` on startup (CREATE TABLE IF NOT EXISTS semantics)
    - ``session()`` per unit of work
    - ``dispose()`` on shutdown to drain the pool

    The pool is safe for concurrent checkout from many worker threads.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        busy_timeout: int = 30,
        echo: bool = False,
    ):
        self.url = make_url(database_url)
        self.engine = create_engine(
            self.url,
            echo=echo,
            pool_pre_ping=not self.is_sqlite,
            **self._engine_options(pool_size, max_overflow, pool_timeout, busy_timeout)
        )
        if self.is_sqlite:
            _enable_sqlite_transactions(self.engine)

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            busy_timeout=settings.db_busy_timeout,
            echo=settings.db_echo,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and self.url.database in (None, "", ":memory:")

    def _engine_options(
        self,
        pool_size: int,
        max_overflow: int,
        pool_timeout: int,
        busy_timeout: int,
    ) -> dict:
        options = {}
        if self.is_sqlite:
            # Worker threads share the pool, so connections cross threads
            options["connect_args"] = {
                "check_same_thread": False,
                "timeout": busy_timeout,
            }
        # In-memory SQLite gets SingletonThreadPool, which has no overflow
        if not self.is_memory:
            options["pool_size"] = pool_size
            options["max_overflow"] = max_overflow
            options["pool_timeout"] = pool_timeout
        return options

    def create_schema(self) -> None:
        """Create tables and indexes that do not exist yet."""
        # Import models so they are registered with Base
        from shortlink_app.models import URL  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Schema ready on %s", self.url.render_as_string(hide_password=True))

    def drop_schema(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        """Open a new session; use as a context manager."""
        return self.SessionLocal()

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
        logger.info("Database pool disposed")


def _enable_sqlite_transactions(engine: Engine) -> None:
    """
    Let SQLAlchemy, not pysqlite, emit BEGIN.

    pysqlite's implicit transaction handling breaks SAVEPOINT. BEGIN
    IMMEDIATE takes the write lock up front so concurrent writers wait on
    the busy timeout instead of failing with "database is locked".
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
