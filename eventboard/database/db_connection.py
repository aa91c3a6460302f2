"""
PostgreSQL connection helper.
Provides a process-wide connection pool and get_db() for use by services.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from psycopg2.extensions import connection as PgConnection
from psycopg2.extras import DictCursor
from psycopg2.pool import PoolError, ThreadedConnectionPool
from dotenv import load_dotenv
from werkzeug.exceptions import ServiceUnavailable

# Load .env variables from the project root
load_dotenv()

_pool: Optional[ThreadedConnectionPool] = None


def init_db_pool(database_url: Optional[str] = None) -> ThreadedConnectionPool:
    """
    Open the connection pool. Call this once at process start.

    Args:
        database_url (str, optional): Overrides the DATABASE_URL environment variable.

    Returns:
        ThreadedConnectionPool: The pool shared by all requests.

    Raises:
        RuntimeError: If no database URL is configured.
        psycopg2.Error: If the initial connections cannot be opened.
    """
    global _pool

    if _pool is not None:
        return _pool

    dsn = database_url or os.getenv("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

    min_conn = int(os.getenv("DB_POOL_MIN", 1))
    max_conn = int(os.getenv("DB_POOL_MAX", 10))

    _pool = ThreadedConnectionPool(min_conn, max_conn, dsn, cursor_factory=DictCursor)
    logging.info(f"Database pool ready ({min_conn}-{max_conn} connections)")
    return _pool


def close_db_pool() -> None:
    """Close every pooled connection. Safe to call more than once."""
    global _pool

    if _pool is None:
        return
    _pool.closeall()
    _pool = None
    logging.info("Database pool closed")


@contextmanager
def get_db() -> Iterator[PgConnection]:
    """
    Borrow a connection from the pool for one unit of work.

    The transaction is committed when the block exits normally and rolled
    back when it raises. The connection always goes back to the pool.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Raises:
        RuntimeError: If init_db_pool() has not been called.
        ServiceUnavailable: If all DB_POOL_MAX connections are in use. The
            pool does not queue callers, so the request fails with 503.
    """
    if _pool is None:
        raise RuntimeError("Database pool is not initialised. Call init_db_pool() first.")

    try:
        conn = _pool.getconn()
    except PoolError:
        logging.warning("Database pool exhausted, rejecting request")
        raise ServiceUnavailable("Database is busy, try again shortly")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        _pool.putconn(conn)

