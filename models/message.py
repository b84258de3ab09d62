"""
models/message.py
-----------------
Domain models for stored messages.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Message:
    """
    An encrypted message as stored on the server.

    Attributes:
        mid: Database primary key, assigned on insert.
        sender_uid: Account id of the sender.
        receiver_uid: Account id of the receiver.
        content: Opaque ciphertext.
        nonce: Nonce the client needs to decrypt `content`.
        timestamp: Server-assigned insert time.
    """
    mid: int
    sender_uid: int
    receiver_uid: int
    content: str
    nonce: str
    timestamp: datetime

    @classmethod
    def from_row(cls, row: dict) -> "Message":
        return cls(
            mid=row["mid"],
            sender_uid=row["sender_uid"],
            receiver_uid=row["receiver_uid"],
            content=row["content"],
            nonce=row["nonce"],
            timestamp=row["timestamp"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DecryptedMessage:
    """
    A plaintext message pushed back by a client after decryption.
    `mid` is None for entries not yet stored.
    """
    sender_uid: int
    receiver_uid: int
    content: str
    timestamp: Optional[datetime] = None
    mid: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "DecryptedMessage":
        return cls(
            mid=row["mid"],
            sender_uid=row["sender_uid"],
            receiver_uid=row["receiver_uid"],
            content=row["content"],
            timestamp=row["timestamp"],
        )

    def to_dict(self) -> dict:
        return asdict(self)
