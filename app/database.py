"""
Database engine setup for SQLAlchemy 2.0.
The key-value store lives in a single SQLite file accessed through aiosqlite.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()

# Execution option marking a connection that will write.
# Such connections take the SQLite write lock when the transaction begins.
WRITE_OPTION = "kv_write"


def create_kv_engine(url: str, timeout: float = 15.0, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the key-value store.

    pysqlite's implicit transaction handling is disabled so that every
    transaction starts with an explicit BEGIN. Multi-statement reads then see
    one snapshot, and write transactions take the write lock up front.

    Args:
        url: SQLAlchemy URL, e.g. sqlite+aiosqlite:///frame.db
        timeout: Seconds SQLite waits for a lock held by another process
        echo: Log every SQL statement

    Returns:
        AsyncEngine: Configured engine
    """
    is_valid, diagnostic = _validate_database_url(url)
    if not is_valid:
        logger.error(f"Invalid DATABASE_URL: {diagnostic}")
        raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"timeout": timeout},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # Disable pysqlite's emitting of the BEGIN statement entirely
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        if conn.get_execution_options().get(WRITE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")

    logger.info(f"Database engine created: {diagnostic}")
    return engine


def _validate_database_url(url: str) -> tuple[bool, str]:
    """
    Validate database URL and provide diagnostic information.
    Returns (is_valid, diagnostic_message)
    """
    if not url:
        return False, "DATABASE_URL is empty"

    if not url.startswith("sqlite+aiosqlite://"):
        scheme = urlparse(url).scheme or "none"
        return False, f"Invalid database URL scheme. Expected sqlite+aiosqlite://, got: {scheme}"

    path = url.split(":///", 1)[-1] if ":///" in url else ""
    if not path or path == ":memory:":
        # Each pooled connection would get its own private in-memory database
        return False, "The key-value store needs a file path, in-memory databases are not shared"
    return True, f"SQLite store file: {path}"
