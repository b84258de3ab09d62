"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from typing import Optional

import psycopg2

from db.connection import ConnectionPool
from db.session import DbSession, SessionMode
from utils.logger import get_logger

logger = get_logger(__name__)


class SchemaInitError(RuntimeError):
    """Raised when the schema could not be created."""


# Ordered: every table referencing account comes after it.
SCHEMA_STATEMENTS: tuple[str, ...] = (
    # Accounts: never physically deleted, `is_deleted` is a soft-delete flag
    """
    CREATE TABLE IF NOT EXISTS account (
        uid                 SERIAL PRIMARY KEY,
        username            VARCHAR(255) NOT NULL UNIQUE,
        password_hash       VARCHAR(255) NOT NULL,
        created_at          TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        display_name        VARCHAR(255),
        is_deleted          BOOLEAN NOT NULL DEFAULT FALSE,
        shadow_mode         BOOLEAN NOT NULL DEFAULT FALSE,
        full_name_search    BOOLEAN NOT NULL DEFAULT FALSE,
        private_key         VARCHAR(5000),
        public_key          VARCHAR(5000)
    )
    """,
    # Encrypted messages: immutable once inserted
    """
    CREATE TABLE IF NOT EXISTS message (
        mid                 SERIAL PRIMARY KEY,
        sender_uid          INTEGER NOT NULL,
        receiver_uid        INTEGER NOT NULL,
        content             TEXT NOT NULL,
        nonce               VARCHAR(255) NOT NULL,
        timestamp           TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (sender_uid) REFERENCES account(uid),
        FOREIGN KEY (receiver_uid) REFERENCES account(uid)
    )
    """,
    # Directed contact relationships, one row per (user, contact user)
    """
    CREATE TABLE IF NOT EXISTS contact (
        contact_id          SERIAL PRIMARY KEY,
        user_id             INTEGER NOT NULL,
        contact_user_id     INTEGER NOT NULL,
        status              VARCHAR(20) NOT NULL DEFAULT 'incoming_request',
        created_at          TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES account(uid),
        FOREIGN KEY (contact_user_id) REFERENCES account(uid),
        UNIQUE (user_id, contact_user_id),
        CHECK (status IN ('incoming_request', 'outgoing_request', 'accepted', 'rejected', 'blocked', 'deleted'))
    )
    """,
    # Plaintext copies pushed back by clients
    """
    CREATE TABLE IF NOT EXISTS decrypted_messages (
        mid                 SERIAL PRIMARY KEY,
        sender_uid          INTEGER NOT NULL,
        receiver_uid        INTEGER NOT NULL,
        content             TEXT NOT NULL,
        timestamp           TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (sender_uid) REFERENCES account(uid),
        FOREIGN KEY (receiver_uid) REFERENCES account(uid)
    )
    """,
    # Conversation lookups filter on the pair and sort by time
    "CREATE INDEX IF NOT EXISTS idx_message_pair_time ON message(sender_uid, receiver_uid, timestamp)",
)


def ensure_tables_created(pool: Optional[ConnectionPool] = None) -> None:
    """
    Execute the schema statements in one transaction.
    Safe to call multiple times (uses IF NOT EXISTS).

    Raises:
        SchemaInitError: If no connection could be opened or any statement
            fails; the transaction is rolled back.
    """
    try:
        session = DbSession.create(pool, SessionMode.READ_WRITE)
    except psycopg2.Error as e:
        logger.error(f"Failed to open a session for schema init: {e}")
        raise SchemaInitError(f"failed creating tables: {e}") from e

    try:
        for statement in SCHEMA_STATEMENTS:
            session.query(statement)
        session.complete(True)
    except Exception as e:
        try:
            session.complete(False)
        except psycopg2.Error as rollback_error:
            logger.error(f"Rollback after schema failure also failed: {rollback_error}")
        logger.error(f"Failed to initialize schema: {e}")
        raise SchemaInitError(f"failed creating tables: {e}") from e
    logger.info("Database schema initialized successfully.")


if __name__ == "__main__":
    from db.connection import close_pool

    try:
        ensure_tables_created()
    finally:
        close_pool()
    print("Database schema created successfully.")
