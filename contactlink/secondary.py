"""
Secondary creation.

A request only produces a row when it tells us something the cluster
does not already know. Repeating a request is therefore a no-op.
"""

from typing import Optional, Sequence, Set, Tuple

from .database import SECONDARY, Contact
from .logger import get_logger
from .normalize import normalize_email, normalize_phone
from .storage import ContactStore

logger = get_logger()


def known_values(group: Sequence[Contact]) -> Tuple[Set[str], Set[str]]:
    """Normalized emails and phones present in a cluster."""
    # Stored values are re-normalized so legacy unnormalized rows still match.
    emails = {normalize_email(c.email) for c in group} - {None}
    phones = {normalize_phone(c.phone_number) for c in group} - {None}
    return emails, phones


def has_new_information(group: Sequence[Contact], email: Optional[str], phone: Optional[str]) -> bool:
    """True if the observation carries an email or phone the cluster lacks.

    A missing attribute is never new information.
    """
    emails, phones = known_values(group)
    if email is not None and email not in emails:
        return True
    if phone is not None and phone not in phones:
        return True
    return False


def write_secondary_if_new(
    store: ContactStore,
    primary: Contact,
    email: Optional[str],
    phone: Optional[str],
) -> Optional[Contact]:
    """
    Append a secondary to the primary's cluster if the observation is new.

    Args:
        store: Store bound to the current transaction
        primary: Elected primary (already merged)
        email: Normalized email from the request
        phone: Normalized phone from the request

    Returns:
        The created secondary, or None when nothing new was observed
    """
    group = store.find_by_primary_or_linked(primary.id)
    if not has_new_information(group, email, phone):
        return None

    contact = store.create(email, phone, SECONDARY, linked_id=primary.id)
    logger.info("Created secondary contact", contact_id=contact.id, primary_id=primary.id)
    return contact
