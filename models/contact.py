"""
models/contact.py
-----------------
Contact relationship states and the message permission derived from them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ContactStatus(str, Enum):
    """Status of a directed relationship between two accounts."""
    INCOMING_REQUEST = "incoming_request"
    OUTGOING_REQUEST = "outgoing_request"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"
    DELETED = "deleted"


class BlockReason(str, Enum):
    YOU_BLOCKED = "you_blocked"
    USER_BLOCKED = "user_blocked"
    NOT_ACCEPTED = "not_accepted"


@dataclass(frozen=True)
class MessagePermission:
    """Outcome of a can-send check; `reason` is set only when denied."""
    can_send: bool
    reason: Optional[str] = None

    @classmethod
    def allowed(cls) -> "MessagePermission":
        return cls(can_send=True)

    @classmethod
    def denied(cls, reason: str) -> "MessagePermission":
        return cls(can_send=False, reason=reason)
