"""
Cluster Resolution.

Responsibilities:
- Seed a working group from contacts sharing the observed email or phone.
- Expand the group until no contact outside it shares an email or phone
  with a contact inside it.

Non-Responsibilities:
- No primary election.
- No writes.
- No in-memory graph: connectedness is re-derived from the store on
  every call.

Invariant:
An id already in the group is never fetched again, so every expansion
round either grows the group or ends the search.
"""

from typing import List, Optional

from .database import Contact
from .logger import get_logger
from .storage import ContactStore

logger = get_logger()


def _identifying_values(group: List[Contact]):
    emails = {c.email for c in group if c.email}
    phones = {c.phone_number for c in group if c.phone_number}
    return emails, phones


def resolve_cluster(store: ContactStore, email: Optional[str], phone: Optional[str]) -> List[Contact]:
    """
    Find every active contact transitively connected to the observation.

    Args:
        store: Store bound to the current transaction
        email: Normalized email (or None)
        phone: Normalized phone (or None)

    Returns:
        Contacts ordered by (created_at, id); empty if nothing matched directly
    """
    group = store.find_by_email_or_phone(email, phone)
    if not group:
        return []

    group_ids = {c.id for c in group}
    rounds = 0
    while True:
        emails, phones = _identifying_values(group)
        additions = store.find_by_any_of(emails, phones, exclude_ids=group_ids)
        additions = [c for c in additions if c.id not in group_ids]
        if not additions:
            break
        rounds += 1
        group.extend(additions)
        group_ids.update(c.id for c in additions)

    group.sort(key=lambda c: c.sort_key)
    logger.debug(
        "Resolved cluster",
        seed_email=email,
        seed_phone=phone,
        size=len(group),
        expansion_rounds=rounds,
    )
    return group


def find_root_primary(store: ContactStore, contact_id: int) -> Optional[Contact]:
    """
    Follow linked_id from a contact to the primary at the end of its chain.

    A secondary linked to a contact that was later demoted still points at
    the demoted contact; this walks on to the current primary.

    Returns:
        The primary, or None if a contact on the chain is missing, deleted,
        or already visited
    """
    seen = set()
    contact = store.get(contact_id)
    while contact is not None and not contact.is_primary:
        if contact.id in seen or contact.linked_id is None:
            logger.warning("Broken link chain", contact_id=contact_id, at=contact.id)
            return None
        seen.add(contact.id)
        contact = store.get(contact.linked_id)
    return contact
