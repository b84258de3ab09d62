"""
Pytest configuration and shared fixtures.

Sessions run against an in-process fake of the psycopg2 pool: every
statement is recorded, and a handler decides what rows come back.
"""

import os
import re
from datetime import datetime, timedelta
from itertools import count

import psycopg2
import pytest

# config.py refuses to import without DB_PORT
os.environ.setdefault("DB_PORT", "5432")

from db.session import DbSession, SessionMode  # noqa: E402
from models.contact import MessagePermission  # noqa: E402


def normalize(sql: str) -> str:
    return re.sub(r"\s+", " ", sql).strip()


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self.rowcount = -1
        self._rows: list[dict] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        statement = normalize(sql)
        self.conn.executed.append((statement, params))
        for fragment, error in self.conn.failures:
            if fragment in statement:
                raise error
        rows = self.conn.handler(statement, params) if self.conn.handler else None
        if rows is None:
            self.description, self._rows, self.rowcount = None, [], -1
        else:
            self.description = [("column",)]
            self._rows = list(rows)
            self.rowcount = len(self._rows)

    def fetchall(self):
        return self._rows


class FakeConnection:
    def __init__(self, handler=None, failures=None):
        self.handler = handler
        self.failures = failures if failures is not None else []
        self.executed: list[tuple] = []
        self.autocommit = False

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    @property
    def statements(self) -> list[str]:
        return [s for s, _ in self.executed]


class FakePool:
    """Stands in for db.connection.ConnectionPool."""

    def __init__(self, handler=None):
        self.handler = handler
        self.failures: list[tuple] = []
        self.connections: list[FakeConnection] = []
        self.released: list[FakeConnection] = []

    def fail_on(self, fragment: str, error: Exception = None) -> None:
        self.failures.append((fragment, error or psycopg2.Error(f"failed on {fragment}")))

    def get_client(self) -> FakeConnection:
        conn = FakeConnection(self.handler, self.failures)
        conn.autocommit = True
        self.connections.append(conn)
        return conn

    def release(self, conn) -> None:
        self.released.append(conn)

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


class FakeMessageDb:
    """
    In-memory stand-in for the message tables. Understands exactly the
    statements issued by MessageRepository, plus savepoints.
    """

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.messages: list[dict] = []
        self.decrypted: list[dict] = []
        self._mids = count(1)
        self._decrypted_mids = count(1)
        self._clock = start
        self._savepoints: dict[str, int] = {}
        self.insert_returns_nothing = False

    def tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def __call__(self, statement: str, params):
        if statement.startswith("SAVEPOINT "):
            self._savepoints[statement.split()[-1]] = len(self.decrypted)
        elif statement.startswith("ROLLBACK TO SAVEPOINT "):
            del self.decrypted[self._savepoints[statement.split()[-1]]:]
        elif statement.startswith("INSERT INTO message "):
            if self.insert_returns_nothing:
                return []
            sender, receiver, content, nonce = params
            row = {
                "mid": next(self._mids), "sender_uid": sender, "receiver_uid": receiver,
                "content": content, "nonce": nonce, "timestamp": self.tick(),
            }
            self.messages.append(row)
            return [dict(row)]
        elif statement.startswith("INSERT INTO decrypted_messages "):
            sender, receiver, content, timestamp = params
            if content == "boom":
                raise psycopg2.Error("value too long")
            row = {
                "mid": next(self._decrypted_mids), "sender_uid": sender, "receiver_uid": receiver,
                "content": content, "timestamp": timestamp or self.tick(),
            }
            self.decrypted.append(row)
            return [dict(row)]
        elif "FROM message m" in statement:
            return self._conversation(self.messages, params)
        elif "FROM decrypted_messages d" in statement:
            return self._conversation(self.decrypted, params)
        return None

    @staticmethod
    def _conversation(table: list[dict], params) -> list[dict]:
        a, b = params[0], params[1]
        rows = [dict(r) for r in table if {r["sender_uid"], r["receiver_uid"]} == {a, b}]
        return sorted(rows, key=lambda r: (r["timestamp"], r["mid"]))


class FakeRules:
    """ContactRules with fixed users, contacts and permissions."""

    def __init__(self, users=(1, 2, 3), contacts=((1, 2), (2, 1)), permissions=None):
        self.users = set(users)
        self.contacts = set(contacts)
        self.permissions = dict(permissions or {})

    def is_valid_user_id(self, uid) -> bool:
        return isinstance(uid, int) and not isinstance(uid, bool) and uid > 0

    def user_exists(self, uid: int) -> bool:
        return uid in self.users

    def has_contact_with(self, uid: int, contact_uid: int) -> bool:
        return (uid, contact_uid) in self.contacts

    def can_send_message(self, sender_uid: int, receiver_uid: int) -> MessagePermission:
        return self.permissions.get((sender_uid, receiver_uid), MessagePermission.allowed())


@pytest.fixture()
def pool() -> FakePool:
    return FakePool()


@pytest.fixture()
def message_db() -> FakeMessageDb:
    return FakeMessageDb()


@pytest.fixture()
def message_pool(message_db) -> FakePool:
    return FakePool(handler=message_db)


@pytest.fixture()
def rules() -> FakeRules:
    return FakeRules()


@pytest.fixture()
def write_session(message_pool):
    session = DbSession.create(message_pool, SessionMode.READ_WRITE)
    yield session
    session.complete(False)


@pytest.fixture()
def read_session(message_pool):
    session = DbSession.create(message_pool, SessionMode.READ_ONLY)
    yield session
    session.complete()
