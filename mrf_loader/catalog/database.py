"""
Database connection and session management.

`Database` is the explicitly constructed handle for the store: it owns the
engine and its connection pool, hands out one session per unit of work and is
disposed at the end of a run.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool, StaticPool

from mrf_loader.catalog.models import Base
from mrf_loader.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Store unreachable or credentials rejected."""
    pass


class SchemaError(Exception):
    """Schema creation failed."""
    pass


def build_database_url(settings: Settings) -> URL:
    """
    Build the SQLAlchemy URL from settings.

    `database_url` wins when set; otherwise the URL is assembled from the
    individual db_* options.
    """
    if settings.database_url:
        return make_url(settings.database_url)

    query: Dict[str, str] = {}
    if settings.db_ssl and settings.db_driver.startswith("postgresql"):
        query["sslmode"] = "require"

    return URL.create(
        drivername=settings.db_driver,
        username=settings.db_user,
        password=settings.db_password or None,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        query=query,
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(settings: Settings) -> Engine:
    """
    Create the engine with a bounded connection pool.

    SQLite (used by the test suite) gets a single shared connection for
    in-memory databases and has foreign key enforcement switched on.
    """
    url = build_database_url(settings)

    if url.get_backend_name() == "sqlite":
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=settings.db_echo, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    connect_args: Dict[str, Any] = {}
    if settings.db_ssl and url.get_backend_name() == "mysql":
        connect_args["ssl"] = {}

    # pool_pre_ping: verify connections before use
    # pool_recycle: drop connections older than the configured lifetime
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=settings.db_pool_recycle_seconds,
        echo=settings.db_echo,
        connect_args=connect_args,
    )


# Databases to connect to when the target database may not exist yet
MAINTENANCE_DATABASES = {"postgresql": "postgres"}

DATABASE_EXISTS_QUERIES = {
    "postgresql": "SELECT 1 FROM pg_database WHERE datname = :name",
    "mysql": "SELECT 1 FROM information_schema.schemata WHERE schema_name = :name",
}


def create_database(settings: Optional[Settings] = None) -> bool:
    """
    Create the configured database on its server if it is absent.

    Connects to the server's maintenance database (none on MySQL) in
    autocommit mode; CREATE DATABASE cannot run inside a transaction.
    For SQLite the database file is created.

    Returns:
        True if the database was created, False if it already existed

    Raises:
        DatabaseConnectionError: If the server cannot be reached
        SchemaError: If the database cannot be created
    """
    settings = settings or get_settings()
    url = build_database_url(settings)
    name = url.database
    backend = url.get_backend_name()

    if backend == "sqlite":
        return _create_sqlite_database(name)
    if not name:
        raise SchemaError("No database name configured (DB_NAME)")
    if backend not in DATABASE_EXISTS_QUERIES:
        raise SchemaError(f"Creating databases is not supported for {backend}")

    server_url = url.set(database=MAINTENANCE_DATABASES.get(backend))
    statement = f"CREATE DATABASE {url.get_dialect()().identifier_preparer.quote(name)}"
    if backend == "mysql":
        statement += " CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"

    engine = create_engine(server_url, isolation_level="AUTOCOMMIT", poolclass=NullPool)
    try:
        try:
            conn = engine.connect()
        except SQLAlchemyError as e:
            location = server_url.render_as_string(hide_password=True)
            raise DatabaseConnectionError(f"Cannot connect to {location}: {e}") from e

        with conn:
            try:
                if conn.scalar(text(DATABASE_EXISTS_QUERIES[backend]), {"name": name}):
                    logger.info(f"Database {name!r} already exists")
                    return False
                conn.execute(text(statement))
            except SQLAlchemyError as e:
                raise SchemaError(f"Failed to create database {name!r}: {e}") from e
    finally:
        engine.dispose()

    logger.info(f"Created database {name!r}")
    return True


def _create_sqlite_database(path: Optional[str]) -> bool:
    if path in (None, "", ":memory:"):
        return False
    target = Path(path)
    if target.exists():
        return False
    try:
        # An empty file is a valid empty SQLite database
        target.touch()
    except OSError as e:
        raise SchemaError(f"Failed to create database file {target}: {e}") from e
    logger.info(f"Created database file {target}")
    return True


class Database:
    """Handle for the relational store used by ingestion and reporting."""

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[Engine] = None):
        self.settings = settings or get_settings()
        self.engine = engine or create_db_engine(self.settings)
        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def verify_connection(self) -> None:
        """
        Check that the store is reachable and accepts our credentials.

        Raises:
            DatabaseConnectionError: If a trivial query cannot be executed
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            url = self.engine.url.render_as_string(hide_password=True)
            raise DatabaseConnectionError(f"Cannot connect to {url}: {e}") from e
        logger.info(f"Connected to {self.engine.url.get_backend_name()} database "
                    f"{self.engine.url.database!r}")

    def server_info(self) -> Dict[str, Any]:
        """
        Describe the server behind the engine.

        Returns:
            Dictionary with dialect, server version and database name
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                version = conn.dialect.server_version_info
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Cannot read server information: {e}") from e

        return {
            "dialect": self.engine.dialect.name,
            "server_version": ".".join(str(part) for part in version) if version else "unknown",
            "database": self.engine.url.database,
            "host": self.engine.url.host,
        }

    def ensure_schema(self) -> None:
        """
        Create the catalog tables and indexes if they are absent.

        Safe to call on every startup: existing tables, indexes and rows are
        left untouched.

        Raises:
            SchemaError: If the DDL cannot be applied
        """
        try:
            with self.engine.begin() as conn:
                Base.metadata.create_all(bind=conn, checkfirst=True)
        except SQLAlchemyError as e:
            raise SchemaError(f"Failed to create catalog tables: {e}") from e
        logger.info("Database tables are in place")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Transactional scope around one unit of work.

        Commits on success, rolls back on any exception and always returns
        the connection to the pool.

        Usage:
            with database.session_scope() as session:
                session.add(service)
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
