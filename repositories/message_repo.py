"""
repositories/message_repo.py
-----------------------------
Data access layer for the `message` and `decrypted_messages` tables.
"""

from typing import Optional

from db.session import DbSession
from models.message import DecryptedMessage, Message


class MessageRepository:
    """SQL for inserting and reading messages within one session."""

    def __init__(self, session: DbSession):
        self.session = session

    # ── CREATE ────────────────────────────────────────────

    def add(self, sender_uid: int, receiver_uid: int, content: str, nonce: str) -> Optional[Message]:
        """
        Insert an encrypted message.

        Returns:
            The stored Message with `mid` and `timestamp` populated, or None
            if no row was inserted.
        """
        sql = """
            INSERT INTO message (sender_uid, receiver_uid, content, nonce)
            VALUES (%s, %s, %s, %s)
            RETURNING mid, sender_uid, receiver_uid, content, nonce, timestamp;
        """
        result = self.session.query(sql, (sender_uid, receiver_uid, content, nonce))
        if result.rowcount == 0 or not result.rows:
            return None
        return Message.from_row(result.rows[0])

    def add_decrypted(self, message: DecryptedMessage) -> DecryptedMessage:
        """Insert one plaintext message; the client-supplied timestamp is kept."""
        sql = """
            INSERT INTO decrypted_messages (sender_uid, receiver_uid, content, timestamp)
            VALUES (%s, %s, %s, COALESCE(%s, CURRENT_TIMESTAMP))
            RETURNING mid, sender_uid, receiver_uid, content, timestamp;
        """
        result = self.session.query(sql, (
            message.sender_uid, message.receiver_uid, message.content, message.timestamp,
        ))
        return DecryptedMessage.from_row(result.rows[0])

    # ── READ ──────────────────────────────────────────────

    def get_conversation(self, uid_a: int, uid_b: int) -> list[Message]:
        """All messages between two users in either direction, oldest first."""
        sql = """
            SELECT m.mid, m.sender_uid, m.receiver_uid, m.content, m.nonce, m.timestamp
            FROM message m
            WHERE (m.sender_uid = %s AND m.receiver_uid = %s)
               OR (m.sender_uid = %s AND m.receiver_uid = %s)
            ORDER BY m.timestamp ASC, m.mid ASC;
        """
        result = self.session.query(sql, (uid_a, uid_b, uid_b, uid_a))
        return [Message.from_row(r) for r in result.rows]

    def get_decrypted_conversation(self, uid_a: int, uid_b: int) -> list[DecryptedMessage]:
        sql = """
            SELECT d.mid, d.sender_uid, d.receiver_uid, d.content, d.timestamp
            FROM decrypted_messages d
            WHERE (d.sender_uid = %s AND d.receiver_uid = %s)
               OR (d.sender_uid = %s AND d.receiver_uid = %s)
            ORDER BY d.timestamp ASC, d.mid ASC;
        """
        result = self.session.query(sql, (uid_a, uid_b, uid_b, uid_a))
        return [DecryptedMessage.from_row(r) for r in result.rows]
