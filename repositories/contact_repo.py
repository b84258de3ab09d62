"""
repositories/contact_repo.py
-----------------------------
Read-only lookups on `account` and `contact` used for permission checks.
"""

from typing import Optional

from db.session import DbSession
from models.contact import ContactStatus


class ContactRepository:
    """Queries for account existence and directed contact status."""

    def __init__(self, session: DbSession):
        self.session = session

    def account_exists(self, uid: int) -> bool:
        """True if an account with `uid` exists and is not soft-deleted."""
        sql = "SELECT 1 AS found FROM account WHERE uid = %s AND is_deleted = FALSE;"
        return bool(self.session.query(sql, (uid,)).rows)

    def get_status(self, user_id: int, contact_user_id: int) -> Optional[ContactStatus]:
        """
        Status of the relationship `user_id -> contact_user_id`.

        Returns:
            The ContactStatus, or None if there is no row.
        """
        sql = """
            SELECT status FROM contact
            WHERE user_id = %s AND contact_user_id = %s;
        """
        row = self.session.query(sql, (user_id, contact_user_id)).first()
        return ContactStatus(row["status"]) if row else None
