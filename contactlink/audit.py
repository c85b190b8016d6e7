"""
Cluster invariant audit.

Walks every active contact and reports rows that break the one-primary
shape: missing identifying values, broken or dangling links, and
secondaries linked to a contact that has since been demoted.
"""

from typing import List

from .database import SECONDARY
from .storage import ContactStore


def audit_clusters(store: ContactStore) -> List[str]:
    """
    Check link invariants across the whole store.

    Returns:
        Human-readable problems; empty list means every cluster is well formed
    """
    contacts = store.all_active()
    by_id = {c.id: c for c in contacts}
    problems: List[str] = []

    for c in contacts:
        if not c.email and not c.phone_number:
            problems.append(f"Contact {c.id} has neither email nor phone number")

        if c.is_primary:
            if c.linked_id is not None:
                problems.append(f"Primary contact {c.id} has linked_id {c.linked_id}")
            continue

        if c.link_precedence != SECONDARY:
            problems.append(f"Contact {c.id} has unknown link precedence {c.link_precedence!r}")
            continue
        if c.linked_id is None:
            problems.append(f"Secondary contact {c.id} has no linked_id")
            continue

        target = by_id.get(c.linked_id)
        if target is None:
            problems.append(f"Secondary contact {c.id} links to missing contact {c.linked_id}")
        elif not target.is_primary:
            problems.append(
                f"Secondary contact {c.id} links to contact {target.id}, "
                f"which is itself secondary of {target.linked_id}"
            )

    return problems
