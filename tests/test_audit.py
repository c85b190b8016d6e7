"""
Tests for the cluster invariant audit.
"""

from contactlink.audit import audit_clusters
from contactlink.database import SECONDARY


class TestAuditClusters:
    """Test invariant reporting."""

    def test_clean_store(self, reconciler, store):
        """Test that a store built by reconciliation has no problems."""
        reconciler.reconcile(email="a@x.com")
        reconciler.reconcile(email="a@x.com", phone="1")
        reconciler.reconcile(email="b@x.com", phone="2")

        assert audit_clusters(store) == []

    def test_reports_link_to_demoted_primary(self, reconciler, store):
        """Test that a secondary pointing at a demoted primary is reported."""
        reconciler.reconcile(email="a@x.com")
        b = reconciler.reconcile(email="b@x.com")
        stale_id = reconciler.reconcile(email="b@x.com", phone="77").secondary_ids[0]
        reconciler.reconcile(email="a@x.com", phone="77")

        problems = audit_clusters(store)

        assert len(problems) == 1
        assert f"Secondary contact {stale_id} links to contact {b.primary_id}" in problems[0]

    def test_reports_dangling_link(self, seed, store):
        """Test that a link to a nonexistent contact is reported."""
        s = seed(email="a@x.com", precedence=SECONDARY, linked_id=999)

        assert audit_clusters(store) == [f"Secondary contact {s.id} links to missing contact 999"]

    def test_reports_link_to_deleted_primary(self, seed, store):
        """Test that a link to a soft-deleted primary is reported."""
        p = seed(email="a@x.com", deleted=True)
        s = seed(email="a@x.com", phone="1", precedence=SECONDARY, linked_id=p.id, minutes=1)

        assert audit_clusters(store) == [f"Secondary contact {s.id} links to missing contact {p.id}"]
