"""Deterministic, deduplicated view of a cluster."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .database import SECONDARY, Contact


@dataclass
class ContactCluster:
    primary_id: int
    emails: List[str] = field(default_factory=list)
    phone_numbers: List[str] = field(default_factory=list)
    secondary_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Dict]:
        """Wire shape of the /identify response ("primaryContatctId" spelling included)."""
        return {
            "contact": {
                "primaryContatctId": self.primary_id,
                "emails": list(self.emails),
                "phoneNumbers": list(self.phone_numbers),
                "secondaryContactIds": list(self.secondary_ids),
            }
        }


def _ordered_unique(first: Optional[str], values: List[Optional[str]]) -> List[str]:
    result = []
    seen = set()
    for value in [first] + values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def project_cluster(primary_id: int, group: Sequence[Contact]) -> ContactCluster:
    """
    Build the external view of the cluster rooted at `primary_id`.

    The primary's own email and phone come first; the remaining values follow
    in the creation order of the first contact carrying them.
    """
    primary = next((c for c in group if c.id == primary_id), None)
    if primary is None:
        raise ValueError(f"Primary contact {primary_id} is not part of the cluster")

    ordered = sorted(group, key=lambda c: c.sort_key)
    secondary_ids = sorted(
        c.id for c in ordered
        if c.link_precedence == SECONDARY and c.linked_id == primary_id
    )
    return ContactCluster(
        primary_id=primary_id,
        emails=_ordered_unique(primary.email, [c.email for c in ordered]),
        phone_numbers=_ordered_unique(primary.phone_number, [c.phone_number for c in ordered]),
        secondary_ids=secondary_ids,
    )
