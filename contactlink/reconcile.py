"""
Reconciliation entry point.

Runs normalize -> resolve -> elect/merge -> write secondary -> project as one
serializable transaction, and re-runs the whole transaction when the store
reports a serialization conflict.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .arbiter import merge_primaries
from .database import PRIMARY
from .errors import Conflict, InvalidInput, StoreError
from .logger import get_logger
from .normalize import Observation, normalize_observation
from .projector import ContactCluster, project_cluster
from .resolver import find_root_primary, resolve_cluster
from .retry import RetryError, is_serialization_conflict, retry_with_backoff
from .secondary import write_secondary_if_new
from .storage import ContactStore

logger = get_logger()

MAX_ATTEMPTS = 3
BASE_DELAY = 0.02
ISOLATION_LEVEL = "SERIALIZABLE"


@dataclass
class ReconcileOutcome:
    """What one committed transaction did."""

    cluster: ContactCluster
    created_primary: bool = False
    created_secondary_id: Optional[int] = None
    demoted_ids: List[int] = field(default_factory=list)


def reconcile_in_transaction(store: ContactStore, observation: Observation) -> ReconcileOutcome:
    """
    Reconcile one normalized observation using a store bound to an open transaction.

    Safe to re-run from scratch after a rollback.
    """
    email, phone = observation
    group = resolve_cluster(store, email, phone)

    if not group:
        contact = store.create(email, phone, PRIMARY)
        logger.info("Created primary contact", contact_id=contact.id)
        return ReconcileOutcome(
            cluster=project_cluster(contact.id, [contact]),
            created_primary=True,
        )

    primary, demoted_ids = merge_primaries(store, group)
    created = write_secondary_if_new(store, primary, email, phone)
    final_group = store.find_by_primary_or_linked(primary.id)
    return ReconcileOutcome(
        cluster=project_cluster(primary.id, final_group),
        created_secondary_id=created.id if created is not None else None,
        demoted_ids=demoted_ids,
    )


class Reconciler:
    """
    Reconciles contact observations against a SQLAlchemy-backed store.

    Each call opens its own session and serializable transaction; the
    session factory is shared for the life of the process.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    def _in_transaction(self, work):
        with self.session_factory() as session:
            with session.begin():
                session.connection(execution_options={"isolation_level": ISOLATION_LEVEL})
                return work(ContactStore(session))

    def _attempt(self, observation: Observation) -> ReconcileOutcome:
        return self._in_transaction(
            lambda store: reconcile_in_transaction(store, observation)
        )

    def _on_conflict(self, attempt: int, error: Exception, delay: float):
        logger.record_conflict_retry()
        logger.warning(
            "Serialization conflict, retrying",
            attempt=attempt,
            max_attempts=self.max_attempts,
            delay_seconds=delay,
        )

    def reconcile(self, email: Optional[str] = None, phone: Optional[str] = None) -> ContactCluster:
        """
        Fold an observation into the contact graph and return its cluster.

        Args:
            email: Raw email (optional)
            phone: Raw phone number (optional)

        Returns:
            ContactCluster for the cluster the observation belongs to

        Raises:
            InvalidInput: Neither email nor phone is present after normalization
            Conflict: Serialization conflicts outlasted the retry budget
            StoreError: Any other store failure
        """
        observation = normalize_observation(email, phone)
        if observation.is_empty:
            logger.record_error("InvalidInput")
            logger.warning("Rejected observation without email or phone")
            raise InvalidInput("Either email or phoneNumber must be provided")

        run = retry_with_backoff(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            exceptions=(DBAPIError,),
            retry_if=is_serialization_conflict,
            on_retry=self._on_conflict,
        )(self._attempt)

        try:
            outcome = run(observation)
        except RetryError as e:
            logger.record_error("Conflict")
            logger.error("Reconciliation conflicted on every attempt", attempts=e.attempts)
            raise Conflict(str(e), attempts=e.attempts) from e.__cause__
        except SQLAlchemyError as e:
            logger.record_error("StoreError")
            logger.error("Contact store failure", error=str(e), error_type=type(e).__name__)
            raise StoreError(f"Contact store failure: {e}") from e

        logger.record_reconciliation()
        if outcome.created_primary:
            logger.record_primary_created()
        if outcome.created_secondary_id is not None:
            logger.record_secondary_created()
        if outcome.demoted_ids:
            logger.record_demotions(len(outcome.demoted_ids))
        return outcome.cluster

    def lookup(self, contact_id: int) -> Optional[ContactCluster]:
        """
        Read-only view of the cluster containing a contact.

        Follows linked_id until it reaches a primary, so a secondary still
        linked to a since-demoted contact resolves to the current primary.

        Returns:
            ContactCluster, or None if the contact (or its primary) is unknown,
            deleted, or the link chain loops
        """
        def _project(store: ContactStore) -> Optional[ContactCluster]:
            primary = find_root_primary(store, contact_id)
            if primary is None:
                return None
            return project_cluster(primary.id, store.find_by_primary_or_linked(primary.id))

        try:
            return self._in_transaction(_project)
        except SQLAlchemyError as e:
            logger.record_error("StoreError")
            logger.error("Contact store failure", error=str(e), error_type=type(e).__name__)
            raise StoreError(f"Contact store failure: {e}") from e


def reconcile(
    session_factory: sessionmaker,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> ContactCluster:
    """Reconcile one observation with the default retry budget."""
    return Reconciler(session_factory).reconcile(email=email, phone=phone)
