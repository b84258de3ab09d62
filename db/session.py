"""
db/session.py
-------------
One pooled connection plus an optional transaction, scoped to one logical
unit of work.

Usage:
    with DbSession.create(pool, SessionMode.READ_WRITE) as session:
        session.query("INSERT INTO ...", (...))

Leaving the block commits; an exception rolls back. Either way the
connection goes back to the pool exactly once.
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Sequence

from psycopg2 import extras

from db.connection import ConnectionPool, get_pool
from utils.logger import get_logger

logger = get_logger(__name__)

_SAVEPOINT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SessionMode(Enum):
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


class SessionError(RuntimeError):
    """Misuse of the session API by calling code."""


class SessionNotInitializedError(SessionError):
    pass


class UnresolvedTransactionError(SessionError):
    pass


@dataclass
class QueryResult:
    """Rows (as dicts) and affected row count of one statement."""
    rows: list[dict] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> Optional[dict]:
        return self.rows[0] if self.rows else None


class DbSession:
    """
    Base session. Use `DbSession.create()` rather than instantiating
    directly; it returns a `ReadOnlySession` or a `ReadWriteSession`
    that is already active.

    States: uninitialized -> active -> completed.
    """

    mode: SessionMode

    def __init__(self, pool: ConnectionPool):
        self.pool = pool
        self._conn = None
        self._completed = False

    # ── LIFECYCLE ─────────────────────────────────────────

    @staticmethod
    def create(
        pool: Optional[ConnectionPool] = None,
        mode: SessionMode = SessionMode.READ_ONLY,
    ) -> "DbSession":
        """
        Acquire a connection and, for read-write sessions, open a transaction.

        Args:
            pool: Pool to draw from; the process-wide pool when omitted.
            mode: SessionMode.READ_ONLY or SessionMode.READ_WRITE.
        """
        session_cls = ReadWriteSession if mode is SessionMode.READ_WRITE else ReadOnlySession
        session = session_cls(pool or get_pool())
        session._init()
        return session

    def _init(self) -> None:
        conn = self.pool.get_client()
        if not self.read_only:
            try:
                self._execute(conn, "BEGIN")
            except Exception:
                self._completed = True
                self.pool.release(conn)
                raise
            logger.debug("Transaction opened.")
        self._conn = conn

    def _finish(self, commit: Optional[bool]) -> None:
        if self._completed or self._conn is None:
            return
        self._completed = True
        conn = self._conn
        try:
            if commit is not None:
                self._execute(conn, "COMMIT" if commit else "ROLLBACK")
                logger.debug("Transaction committed." if commit else "Transaction rolled back.")
            elif not self.read_only:
                raise UnresolvedTransactionError(
                    "transaction has been opened, requires information if commit or rollback needed"
                )
        finally:
            self._conn = None
            self.pool.release(conn)

    @property
    def read_only(self) -> bool:
        return self.mode is SessionMode.READ_ONLY

    @property
    def state(self) -> str:
        if self._completed:
            return "completed"
        return "active" if self._conn is not None else "uninitialized"

    # ── QUERIES ───────────────────────────────────────────

    def query(self, sql: str, params: Sequence = ()) -> QueryResult:
        """
        Execute a parameterized statement on this session's connection.

        Raises:
            SessionNotInitializedError: Before init or after completion.
        """
        if self._conn is None:
            raise SessionNotInitializedError("db client not initialized")
        with self._conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = [dict(r) for r in cur.fetchall()] if cur.description else []
            return QueryResult(rows=rows, rowcount=cur.rowcount)

    def get_last_insert_id(self, table: str, id_column: str) -> int:
        """Current value of the serial sequence behind `table.id_column`."""
        result = self.query(
            "SELECT currval(pg_get_serial_sequence(%s, %s)) AS id", (table, id_column)
        )
        return int(result.rows[0]["id"])

    @staticmethod
    def _execute(conn, statement: str) -> None:
        with conn.cursor() as cur:
            cur.execute(statement)

    # ── CONTEXT MANAGER ───────────────────────────────────

    def __enter__(self) -> "DbSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self._finish(None if self.read_only else True)
            return False
        try:
            self._finish(None if self.read_only else False)
        except Exception as e:
            logger.error(f"Failed to roll back after {exc_type.__name__}: {e}")
        return False


class ReadOnlySession(DbSession):
    """Session without a transaction; statements run in autocommit."""

    mode = SessionMode.READ_ONLY

    def complete(self) -> None:
        """Release the connection. Safe to call more than once."""
        self._finish(None)


class ReadWriteSession(DbSession):
    """Session wrapped in BEGIN ... COMMIT/ROLLBACK."""

    mode = SessionMode.READ_WRITE

    def complete(self, commit: bool) -> None:
        """
        Commit or roll back, then release the connection.
        Safe to call more than once; only the first call has an effect.

        Raises:
            UnresolvedTransactionError: If `commit` is None. The
                connection is still released.
        """
        self._finish(commit)

    @contextmanager
    def savepoint(self, name: str) -> Iterator["ReadWriteSession"]:
        """
        Run a block inside a savepoint. On error the block's statements
        are undone and the exception re-raised; the outer transaction
        stays usable.
        """
        if not _SAVEPOINT_NAME.match(name):
            raise ValueError(f"invalid savepoint name: {name!r}")
        self.query(f"SAVEPOINT {name}")
        try:
            yield self
        except Exception:
            self.query(f"ROLLBACK TO SAVEPOINT {name}")
            raise
        self.query(f"RELEASE SAVEPOINT {name}")
