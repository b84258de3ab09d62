"""
services/contact_rules.py
--------------------------
Identity and relationship checks that gate message operations.
"""

from typing import Protocol

from db.session import DbSession
from models.contact import BlockReason, ContactStatus, MessagePermission
from repositories.contact_repo import ContactRepository


class ContactRules(Protocol):
    """Checks the message service depends on."""

    def is_valid_user_id(self, uid: object) -> bool: ...

    def user_exists(self, uid: int) -> bool: ...

    def has_contact_with(self, uid: int, contact_uid: int) -> bool: ...

    def can_send_message(self, sender_uid: int, receiver_uid: int) -> MessagePermission: ...


class ContactRulesService:
    """ContactRules backed by the `account` and `contact` tables."""

    def __init__(self, session: DbSession):
        self.repo = ContactRepository(session)

    @staticmethod
    def is_valid_user_id(uid: object) -> bool:
        """Ids are positive integers; bools are rejected."""
        return isinstance(uid, int) and not isinstance(uid, bool) and uid > 0

    def user_exists(self, uid: int) -> bool:
        return self.repo.account_exists(uid)

    def has_contact_with(self, uid: int, contact_uid: int) -> bool:
        """True if `uid` has a relationship row towards `contact_uid` that is not deleted."""
        status = self.repo.get_status(uid, contact_uid)
        return status is not None and status is not ContactStatus.DELETED

    def can_send_message(self, sender_uid: int, receiver_uid: int) -> MessagePermission:
        """
        Blocks are checked in both directions before acceptance, so the
        caller can report who blocked whom.
        """
        outgoing = self.repo.get_status(sender_uid, receiver_uid)
        if outgoing is ContactStatus.BLOCKED:
            return MessagePermission.denied(BlockReason.YOU_BLOCKED.value)

        incoming = self.repo.get_status(receiver_uid, sender_uid)
        if incoming is ContactStatus.BLOCKED:
            return MessagePermission.denied(BlockReason.USER_BLOCKED.value)

        if outgoing is not ContactStatus.ACCEPTED:
            return MessagePermission.denied(BlockReason.NOT_ACCEPTED.value)
        return MessagePermission.allowed()
