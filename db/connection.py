"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.
Uses psycopg2's ThreadedConnectionPool so concurrent sessions each get
their own connection. Callers wait for a free connection once all
`max_conn` are checked out.
"""

import threading
from typing import Optional

import psycopg2
from psycopg2 import pool

from config import DB_POOL_MAX, DB_POOL_MIN, DB_POOL_TIMEOUT, DbConfig, load_db_config
from utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionPool:
    """
    Lazily-created pool of database connections.

    The underlying psycopg2 pool is built on first use and reused until
    `close()` is called. Instances are passed to sessions explicitly.
    """

    def __init__(
        self,
        config: DbConfig,
        min_conn: int = DB_POOL_MIN,
        max_conn: int = DB_POOL_MAX,
        acquire_timeout: Optional[float] = DB_POOL_TIMEOUT,
    ):
        self.config = config
        self.min_conn = min_conn
        self.max_conn = max_conn
        self.acquire_timeout = acquire_timeout
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._lock = threading.Lock()
        # psycopg2 raises on exhaustion; this makes callers queue instead
        self._slots = threading.BoundedSemaphore(max_conn)

    def get_pool(self) -> pool.ThreadedConnectionPool:
        """
        Return the psycopg2 pool, creating it on first call.

        Raises:
            psycopg2.OperationalError: If the database is unreachable.
        """
        if self._pool is None:
            with self._lock:
                if self._pool is None:
                    try:
                        self._pool = pool.ThreadedConnectionPool(
                            self.min_conn, self.max_conn, **self.config.as_kwargs()
                        )
                    except psycopg2.OperationalError as e:
                        logger.error(f"Failed to initialize database pool: {e}")
                        raise
                    logger.info(
                        f"Database connection pool initialized "
                        f"({self.config.host}:{self.config.port}/{self.config.database})."
                    )
        return self._pool

    def get_client(self):
        """
        Acquire one connection from the pool, waiting while all are in use.

        The connection is switched to autocommit so that the owning session
        issues BEGIN / COMMIT / ROLLBACK itself.

        Raises:
            psycopg2.pool.PoolError: If no connection frees up within
                `acquire_timeout` seconds.
        """
        timeout = -1 if self.acquire_timeout is None else self.acquire_timeout
        if not self._slots.acquire(timeout=timeout):
            logger.warning(f"Timed out after {self.acquire_timeout}s waiting for a database connection.")
            raise pool.PoolError("timed out waiting for a free connection")
        try:
            conn = self.get_pool().getconn()
            conn.autocommit = True
        except Exception:
            self._slots.release()
            raise
        return conn

    def release(self, conn) -> None:
        """Return a connection back to the pool and wake one waiter."""
        try:
            if self._pool is not None:
                self._pool.putconn(conn)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close all connections. A later `get_client()` builds a new pool."""
        with self._lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None
                logger.info("Database connection pool closed.")

    @property
    def is_open(self) -> bool:
        return self._pool is not None


_default_pool: Optional[ConnectionPool] = None
_default_lock = threading.Lock()


def get_pool() -> ConnectionPool:
    """Return the process-wide pool built from environment configuration."""
    global _default_pool
    if _default_pool is None:
        with _default_lock:
            if _default_pool is None:
                _default_pool = ConnectionPool(load_db_config())
    return _default_pool


def get_client():
    """Acquire a connection from the process-wide pool."""
    return get_pool().get_client()


def close_pool() -> None:
    """Close the process-wide pool, if one was created."""
    global _default_pool
    with _default_lock:
        if _default_pool is not None:
            _default_pool.close()
            _default_pool = None
