"""
Contacts Repository.

Responsibilities:
- Query and write the contacts table inside the caller's transaction.
- Hide soft-deleted rows from every read.

Non-Responsibilities:
- No transaction management (the caller begins, commits, rolls back).
- No clustering or primary election.
- No normalization.

Invariant:
Repositories must not encode domain decisions.
Every read returns contacts ordered by (created_at, id).
"""

from typing import Iterable, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from .database import SECONDARY, Contact, utcnow


class ContactStore:
    """Contact store bound to one session (and so to one transaction)."""

    def __init__(self, session: Session):
        self.session = session

    def _active(self):
        return select(Contact).where(Contact.deleted_at.is_(None))

    def _fetch(self, stmt) -> List[Contact]:
        stmt = stmt.order_by(Contact.created_at, Contact.id)
        return list(self.session.scalars(stmt))

    def find_by_email_or_phone(self, email: Optional[str], phone: Optional[str]) -> List[Contact]:
        """Contacts whose email equals `email` OR whose phone equals `phone`."""
        conditions = []
        if email is not None:
            conditions.append(Contact.email == email)
        if phone is not None:
            conditions.append(Contact.phone_number == phone)
        if not conditions:
            return []
        return self._fetch(self._active().where(or_(*conditions)))

    def find_by_any_of(
        self,
        emails: Iterable[str],
        phones: Iterable[str],
        exclude_ids: Iterable[int] = (),
    ) -> List[Contact]:
        """Contacts matching any of the given values, minus the excluded ids."""
        emails = sorted(set(emails))
        phones = sorted(set(phones))
        conditions = []
        if emails:
            conditions.append(Contact.email.in_(emails))
        if phones:
            conditions.append(Contact.phone_number.in_(phones))
        if not conditions:
            return []

        stmt = self._active().where(or_(*conditions))
        exclude_ids = sorted(set(exclude_ids))
        if exclude_ids:
            stmt = stmt.where(Contact.id.notin_(exclude_ids))
        return self._fetch(stmt)

    def find_by_primary_or_linked(self, primary_id: int) -> List[Contact]:
        """The primary itself plus every contact linked directly to it."""
        stmt = self._active().where(
            or_(Contact.id == primary_id, Contact.linked_id == primary_id)
        )
        return self._fetch(stmt)

    def create(
        self,
        email: Optional[str],
        phone: Optional[str],
        precedence: str,
        linked_id: Optional[int] = None,
    ) -> Contact:
        """Insert a contact and flush so its id and created_at are assigned."""
        contact = Contact(
            email=email,
            phone_number=phone,
            link_precedence=precedence,
            linked_id=linked_id,
        )
        self.session.add(contact)
        self.session.flush()
        return contact

    def update_many_to_secondary(self, ids: Iterable[int], linked_id: int) -> int:
        """Demote the given contacts to secondaries of `linked_id` in one statement."""
        ids = sorted(set(ids))
        if not ids:
            return 0
        stmt = (
            update(Contact)
            .where(Contact.id.in_(ids))
            .values(link_precedence=SECONDARY, linked_id=linked_id, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount

    def get(self, contact_id: int) -> Optional[Contact]:
        """Non-deleted contact by id."""
        stmt = self._active().where(Contact.id == contact_id)
        return self.session.scalars(stmt).first()

    def all_active(self) -> List[Contact]:
        return self._fetch(self._active())
