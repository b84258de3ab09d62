"""
services/message_service.py
----------------------------
Business logic for sending, storing and fetching messages between contacts.

Every public operation validates its inputs before touching the message
tables and returns a Response envelope. Database errors are logged and
reported as a generic 500; only misuse of the session raises.
"""

from http import HTTPStatus
from typing import Iterable, Optional, Union

import psycopg2

from db.session import DbSession, SessionError
from models.contact import BlockReason
from models.message import DecryptedMessage, Message
from models.response import Response, failure, success
from repositories.message_repo import MessageRepository
from services.contact_rules import ContactRules, ContactRulesService
from utils.logger import get_logger

logger = get_logger(__name__)

_BLOCK_MESSAGES = {
    BlockReason.YOU_BLOCKED.value: "Cannot message, you have blocked this user",
    BlockReason.USER_BLOCKED.value: "Cannot message user, user has blocked you",
}
_DEFAULT_BLOCK_MESSAGE = "Cannot send message to this user"


class MessageService:
    """
    Message operations bound to one DbSession.

    Workflow per operation:
        1. Validate ids, existence and the self-target rule.
        2. Check the contact relationship (writes only).
        3. Run the statements on the session.
        4. Wrap the outcome in a Response.

    The caller owns the session and decides whether to commit.
    """

    def __init__(self, session: DbSession, rules: Optional[ContactRules] = None):
        self.session = session
        self.rules = rules or ContactRulesService(session)
        self.repo = MessageRepository(session)

    # ── WRITE ─────────────────────────────────────────────

    def send_message(self, sender_uid: int, receiver_uid: int, content: str, nonce: str) -> Response[Message]:
        """
        Store an encrypted message from one contact to another.

        Returns:
            200 with the stored Message (including `mid` and `timestamp`),
            or an error envelope (400, 403, 404, 500).
        """
        self._require_write("send_message")

        rejected = self._check_pair(sender_uid, receiver_uid, "Cannot send message to self")
        if rejected is None:
            rejected = self._check_contact(sender_uid, receiver_uid)
        if rejected is None:
            rejected = self._check_permission(sender_uid, receiver_uid)
        if rejected is not None:
            return rejected

        try:
            message = self.repo.add(sender_uid, receiver_uid, content, nonce)
        except psycopg2.Error as e:
            logger.error(f"Error sending message {sender_uid} -> {receiver_uid}: {e}")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to send message.")

        if message is None:
            logger.error(f"Insert of message {sender_uid} -> {receiver_uid} affected no rows")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to send message")

        logger.info(f"Stored message #{message.mid} {sender_uid} -> {receiver_uid}")
        return success(message)

    def store_decrypted_messages(
        self,
        sender_uid: int,
        receiver_uid: int,
        messages: Iterable[Union[DecryptedMessage, dict]],
    ) -> Response[list[DecryptedMessage]]:
        """
        Store a client-supplied batch of plaintext messages, in input order.
        Every entry must be between `sender_uid` and `receiver_uid`.

        The batch runs inside a savepoint: if any insert fails, the rows
        already inserted by this call are undone and a 500 is returned.
        """
        self._require_write("store_decrypted_messages")

        rejected = self._check_pair(sender_uid, receiver_uid, "Cannot send message to self")
        if rejected is None:
            rejected = self._check_contact(sender_uid, receiver_uid)
        if rejected is not None:
            return rejected

        try:
            batch = [self._coerce_decrypted(m) for m in messages]
        except (KeyError, TypeError) as e:
            logger.info(f"Rejected malformed decrypted message batch: {e}")
            return failure(HTTPStatus.BAD_REQUEST, "Invalid message entry")
        if not batch:
            return failure(HTTPStatus.BAD_REQUEST, "No Messages to push")

        # only the checked pair may appear in the batch, in either direction
        pair = {sender_uid, receiver_uid}
        if any({m.sender_uid, m.receiver_uid} != pair for m in batch):
            logger.warning(f"Rejected decrypted batch for {sender_uid} -> {receiver_uid}: entry outside the pair")
            return failure(HTTPStatus.BAD_REQUEST, "Invalid message entry")

        stored: list[DecryptedMessage] = []
        try:
            with self.session.savepoint("store_decrypted_messages"):
                for message in batch:
                    stored.append(self.repo.add_decrypted(message))
        except psycopg2.Error as e:
            logger.error(
                f"Error storing decrypted messages {sender_uid} -> {receiver_uid} "
                f"after {len(stored)}/{len(batch)} rows: {e}"
            )
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Error processing message")

        logger.info(f"Stored {len(stored)} decrypted messages {sender_uid} -> {receiver_uid}")
        return success(stored, HTTPStatus.OK)

    # ── READ ──────────────────────────────────────────────

    def fetch_message(self, sender_uid: int, receiver_uid: int) -> Response[list[Message]]:
        """
        Fetch all messages exchanged between two users, oldest first.
        Symmetric: swapping the ids yields the same list.
        """
        rejected = self._check_pair(sender_uid, receiver_uid, "Cannot fetch messages with self")
        if rejected is not None:
            return rejected

        try:
            messages = self.repo.get_conversation(sender_uid, receiver_uid)
        except psycopg2.Error as e:
            logger.error(f"Error fetching messages {sender_uid} <-> {receiver_uid}: {e}")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to fetch messages.")
        return success(messages)

    def fetch_decrypted_messages(self, sender_uid: int, receiver_uid: int) -> Response[list[DecryptedMessage]]:
        """Plaintext counterpart of `fetch_message`."""
        rejected = self._check_pair(sender_uid, receiver_uid, "Cannot fetch messages with self")
        if rejected is not None:
            return rejected

        try:
            messages = self.repo.get_decrypted_conversation(sender_uid, receiver_uid)
        except psycopg2.Error as e:
            logger.error(f"Error fetching decrypted messages {sender_uid} <-> {receiver_uid}: {e}")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to fetch messages.")
        return success(messages)

    # ── CHECKS ────────────────────────────────────────────

    def _check_pair(self, sender_uid, receiver_uid, self_error: str) -> Optional[Response]:
        """Id format, existence, then self-target."""
        if not self.rules.is_valid_user_id(sender_uid) or not self.rules.is_valid_user_id(receiver_uid):
            return failure(HTTPStatus.BAD_REQUEST, "Invalid UID")

        try:
            exists = self.rules.user_exists(sender_uid) and self.rules.user_exists(receiver_uid)
        except psycopg2.Error as e:
            logger.error(f"Error looking up users {sender_uid}, {receiver_uid}: {e}")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")
        if not exists:
            return failure(HTTPStatus.NOT_FOUND, "User not found")

        if sender_uid == receiver_uid:
            return failure(HTTPStatus.BAD_REQUEST, self_error)
        return None

    def _check_contact(self, sender_uid: int, receiver_uid: int) -> Optional[Response]:
        try:
            is_contact = self.rules.has_contact_with(sender_uid, receiver_uid)
        except psycopg2.Error as e:
            logger.error(f"Error checking contact {sender_uid} -> {receiver_uid}: {e}")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")
        if not is_contact:
            return failure(HTTPStatus.FORBIDDEN, "Users are not contacts")
        return None

    def _check_permission(self, sender_uid: int, receiver_uid: int) -> Optional[Response]:
        try:
            permission = self.rules.can_send_message(sender_uid, receiver_uid)
        except psycopg2.Error as e:
            logger.error(f"Error checking permission {sender_uid} -> {receiver_uid}: {e}")
            return failure(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")
        if permission.can_send:
            return None
        logger.info(f"Message {sender_uid} -> {receiver_uid} refused: {permission.reason}")
        return failure(HTTPStatus.FORBIDDEN, _BLOCK_MESSAGES.get(permission.reason, _DEFAULT_BLOCK_MESSAGE))

    def _require_write(self, operation: str) -> None:
        if self.session.read_only:
            raise SessionError(f"{operation} requires a read-write session")

    @staticmethod
    def _coerce_decrypted(entry: Union[DecryptedMessage, dict]) -> DecryptedMessage:
        if isinstance(entry, DecryptedMessage):
            return entry
        if not isinstance(entry, dict):
            raise TypeError(f"unsupported message entry: {type(entry).__name__}")
        return DecryptedMessage(
            sender_uid=entry["sender_uid"],
            receiver_uid=entry["receiver_uid"],
            content=entry["content"],
            timestamp=entry.get("timestamp"),
        )
