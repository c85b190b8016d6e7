"""
Primary Election.

Responsibilities:
- Pick the earliest-created contact of a resolved cluster as its primary.
- Demote every other primary in the cluster to a secondary of the winner.

Non-Responsibilities:
- No cluster discovery.
- No re-parenting of contacts that are already secondary.

Invariant:
After merge_primaries, the cluster holds exactly one primary.
"""

from typing import List, Sequence, Tuple

from .database import Contact
from .logger import get_logger
from .storage import ContactStore

logger = get_logger()


def elect_primary(group: Sequence[Contact]) -> Contact:
    """Earliest (created_at, id) wins, whatever its current precedence."""
    if not group:
        raise ValueError("Cannot elect a primary from an empty cluster")
    return min(group, key=lambda c: c.sort_key)


def competing_primaries(group: Sequence[Contact], primary: Contact) -> List[Contact]:
    return [c for c in group if c.id != primary.id and c.is_primary]


def merge_primaries(store: ContactStore, group: Sequence[Contact]) -> Tuple[Contact, List[int]]:
    """
    Elect the cluster's primary and demote the others in one batched update.

    Secondaries keep their existing linked_id even when it points at a
    primary being demoted here.

    Returns:
        Tuple of (elected primary, ids of demoted primaries)
    """
    primary = elect_primary(group)
    demoted_ids = [c.id for c in competing_primaries(group, primary)]
    if demoted_ids:
        store.update_many_to_secondary(demoted_ids, primary.id)
        logger.info("Merged primaries", primary_id=primary.id, demoted_ids=demoted_ids)
    return primary, demoted_ids
