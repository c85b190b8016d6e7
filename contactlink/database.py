"""
Database schema and connection management.

Contacts live in a single SQLAlchemy table. SQLite is the default backend;
any SQLAlchemy URL with serializable transactions (e.g. PostgreSQL) works.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

PRIMARY = "primary"
SECONDARY = "secondary"


def utcnow() -> datetime:
    """Naive UTC timestamp; stored times never shift with local DST."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Contact(Base):
    """One observed (email, phone) pair and its place in a cluster."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=True, index=True)
    phone_number = Column(String(32), nullable=True, index=True)
    linked_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    link_precedence = Column(String(10), nullable=False, default=PRIMARY)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            link_precedence.in_([PRIMARY, SECONDARY]),
            name="valid_link_precedence",
        ),
        CheckConstraint(
            "(email IS NOT NULL) OR (phone_number IS NOT NULL)",
            name="contact_info_required",
        ),
        CheckConstraint(
            "(link_precedence = 'primary' AND linked_id IS NULL) OR "
            "(link_precedence = 'secondary' AND linked_id IS NOT NULL)",
            name="secondary_requires_linked_id",
        ),
        Index("ix_contacts_precedence_linked", link_precedence, linked_id),
    )

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == PRIMARY

    @property
    def sort_key(self):
        """Creation order; id breaks timestamp ties."""
        return (self.created_at, self.id)

    def __repr__(self):
        return (
            f"<Contact(id={self.id}, email={self.email!r}, phone={self.phone_number!r}, "
            f"precedence={self.link_precedence}, linked_id={self.linked_id})>"
        )


def database_url(target: Union[str, Path]) -> str:
    """Accept either a SQLAlchemy URL or a path to a SQLite file."""
    if isinstance(target, Path):
        return f"sqlite:///{target}"
    return target


def _use_immediate_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write; take the write lock up front
    # so concurrent reconciliations serialize instead of interleaving reads.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine(target: Union[str, Path], busy_timeout: float = 5.0) -> Engine:
    """
    Create an engine for the contact store.

    Args:
        target: SQLAlchemy URL or path to a SQLite database file
        busy_timeout: Seconds SQLite waits on a locked database before failing

    Returns:
        SQLAlchemy engine
    """
    url = make_url(database_url(target))
    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        url,
        connect_args={"timeout": busy_timeout, "check_same_thread": False},
    )
    _use_immediate_transactions(engine)
    return engine


def init_database(target: Union[str, Path, Engine]) -> Engine:
    """
    Initialize database and create tables.

    Args:
        target: Engine, SQLAlchemy URL, or path to a SQLite database file

    Returns:
        The engine the tables were created on
    """
    engine = target if isinstance(target, Engine) else get_engine(target)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Session factory used for one-transaction-per-request work."""
    return sessionmaker(bind=engine, expire_on_commit=False)
