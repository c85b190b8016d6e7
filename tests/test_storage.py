"""
Tests for storage.py - the contact repository.
"""

from contactlink.database import PRIMARY, SECONDARY
from contactlink.storage import ContactStore


class TestFindByEmailOrPhone:
    """Seed queries."""

    def test_matches_either_value(self, seed, store):
        """Test that a contact matching either value is returned."""
        a = seed(email="a@x.com", minutes=0)
        b = seed(phone="555", minutes=1)
        seed(email="other@x.com", phone="999", minutes=2)

        found = store.find_by_email_or_phone("a@x.com", "555")

        assert [c.id for c in found] == [a.id, b.id]

    def test_absent_side_is_skipped(self, seed, store):
        """Test that an absent email or phone is left out of the query."""
        seed(email="a@x.com", phone="555")

        assert store.find_by_email_or_phone(None, "555")
        assert store.find_by_email_or_phone("a@x.com", None)
        assert store.find_by_email_or_phone(None, None) == []

    def test_soft_deleted_contacts_are_invisible(self, seed, store):
        """Test that soft-deleted contacts are not returned."""
        seed(email="a@x.com", deleted=True)

        assert store.find_by_email_or_phone("a@x.com", None) == []

    def test_ordered_by_created_at_not_id(self, seed, store):
        """Test that results are ordered by created_at, not id."""
        younger = seed(email="a@x.com", minutes=10)
        older = seed(phone="555", minutes=1)

        found = store.find_by_email_or_phone("a@x.com", "555")

        assert [c.id for c in found] == [older.id, younger.id]


class TestFindByAnyOf:
    """Expansion queries."""

    def test_excludes_given_ids(self, seed, store):
        """Test that excluded ids are left out."""
        a = seed(email="a@x.com", phone="1")
        b = seed(phone="1", minutes=1)

        found = store.find_by_any_of(["a@x.com"], ["1"], exclude_ids=[a.id])

        assert [c.id for c in found] == [b.id]

    def test_matches_any_value_in_lists(self, seed, store):
        """Test that any listed email or phone matches."""
        a = seed(email="a@x.com")
        b = seed(email="b@x.com", minutes=1)
        c = seed(phone="3", minutes=2)
        seed(phone="4", minutes=3)

        found = store.find_by_any_of(["a@x.com", "b@x.com"], ["3"])

        assert [x.id for x in found] == [a.id, b.id, c.id]

    def test_empty_values_return_nothing(self, seed, store):
        """Test that empty value lists match nothing."""
        seed(email="a@x.com")

        assert store.find_by_any_of([], [], exclude_ids=[]) == []

    def test_soft_deleted_contacts_are_invisible(self, seed, store):
        """Test that soft-deleted contacts are not returned."""
        seed(email="a@x.com", deleted=True)

        assert store.find_by_any_of(["a@x.com"], []) == []


class TestFindByPrimaryOrLinked:
    """Cluster re-fetch."""

    def test_returns_primary_and_direct_secondaries(self, seed, store):
        """Test that only the primary and its direct secondaries are returned."""
        p = seed(email="p@x.com")
        s1 = seed(phone="1", precedence=SECONDARY, linked_id=p.id, minutes=1)
        other = seed(email="q@x.com", minutes=2)
        seed(phone="2", precedence=SECONDARY, linked_id=other.id, minutes=3)

        found = store.find_by_primary_or_linked(p.id)

        assert [c.id for c in found] == [p.id, s1.id]

    def test_skips_deleted_secondaries(self, seed, store):
        """Test that deleted secondaries are left out."""
        p = seed(email="p@x.com")
        seed(phone="1", precedence=SECONDARY, linked_id=p.id, minutes=1, deleted=True)

        assert [c.id for c in store.find_by_primary_or_linked(p.id)] == [p.id]


class TestWrites:
    """Create and demote."""

    def test_create_assigns_id_and_timestamps(self, store):
        """Test that create assigns an id and timestamps."""
        contact = store.create("a@x.com", None, PRIMARY)

        assert contact.id is not None
        assert contact.created_at is not None
        assert contact.linked_id is None

    def test_create_secondary(self, store):
        """Test that create links a secondary."""
        p = store.create("a@x.com", None, PRIMARY)
        s = store.create("a@x.com", "555", SECONDARY, linked_id=p.id)

        assert s.link_precedence == SECONDARY
        assert s.linked_id == p.id

    def test_update_many_to_secondary(self, seed, store):
        """Test that the given contacts are demoted in one call."""
        p = seed(email="p@x.com")
        q = seed(email="q@x.com", minutes=1)
        r = seed(email="r@x.com", minutes=2)

        updated = store.update_many_to_secondary([q.id, r.id], p.id)

        assert updated == 2
        for contact in store.find_by_primary_or_linked(p.id)[1:]:
            assert contact.link_precedence == SECONDARY
            assert contact.linked_id == p.id
        assert store.get(p.id).is_primary

    def test_update_many_with_no_ids_is_noop(self, store):
        """Test that an empty id list updates nothing."""
        assert store.update_many_to_secondary([], 1) == 0

    def test_update_visible_to_loaded_objects(self, seed, store):
        """Objects already in the session reflect the bulk update."""
        p = seed(email="p@x.com")
        q = seed(email="q@x.com", minutes=1)
        loaded = store.get(q.id)

        store.update_many_to_secondary([q.id], p.id)

        assert loaded.link_precedence == SECONDARY
        assert loaded.linked_id == p.id


class TestReads:
    """Point lookups."""

    def test_get_ignores_deleted(self, seed, store):
        """Test that get ignores soft-deleted contacts."""
        gone = seed(email="a@x.com", deleted=True)
        kept = seed(email="b@x.com")

        assert store.get(gone.id) is None
        assert store.get(kept.id).email == "b@x.com"

    def test_all_active(self, seed, session):
        """Test that all_active skips soft-deleted contacts."""
        seed(email="a@x.com")
        seed(email="b@x.com", deleted=True)

        assert [c.email for c in ContactStore(session).all_active()] == ["a@x.com"]
