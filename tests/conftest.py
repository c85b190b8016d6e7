"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timedelta
from typing import Optional

from contactlink.database import PRIMARY, Contact, get_session_factory, init_database
from contactlink.logger import get_logger
from contactlink.reconcile import Reconciler
from contactlink.storage import ContactStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Every test starts with zeroed reconciliation counters."""
    get_logger().reset_metrics()
    yield


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "contacts.db"


@pytest.fixture
def engine(db_path):
    """File-backed SQLite engine with the contacts table created."""
    engine = init_database(db_path)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def session(session_factory):
    """Session with an open transaction; rolled back after the test."""
    with session_factory() as session:
        session.begin()
        yield session
        session.rollback()


@pytest.fixture
def store(session):
    return ContactStore(session)


@pytest.fixture
def reconciler(session_factory):
    return Reconciler(session_factory, base_delay=0)


@pytest.fixture
def seed(session_factory):
    """
    Insert a contact directly, bypassing reconciliation.

    `minutes` offsets created_at from a fixed base time so tests control
    creation order explicitly.
    """
    def _seed(
        email: Optional[str] = None,
        phone: Optional[str] = None,
        precedence: str = PRIMARY,
        linked_id: Optional[int] = None,
        minutes: int = 0,
        deleted: bool = False,
    ) -> Contact:
        created_at = BASE_TIME + timedelta(minutes=minutes)
        contact = Contact(
            email=email,
            phone_number=phone,
            link_precedence=precedence,
            linked_id=linked_id,
            created_at=created_at,
            updated_at=created_at,
            deleted_at=created_at if deleted else None,
        )
        with session_factory() as session, session.begin():
            session.add(contact)
        return contact

    return _seed


@pytest.fixture
def fetch(session_factory):
    """Read a contact's current state in a fresh session."""
    def _fetch(contact_id: int) -> Contact:
        with session_factory() as session:
            return session.get(Contact, contact_id)

    return _fetch


@pytest.fixture
def count_contacts(session_factory):
    def _count() -> int:
        with session_factory() as session:
            return session.query(Contact).count()

    return _count
