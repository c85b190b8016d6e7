"""
Error taxonomy for contact reconciliation.

Callers only need to handle ReconcileError; the subclasses tell them
whether the request was bad, the store was contended, or the store failed.
"""


class ReconcileError(Exception):
    """Base class for reconciliation failures."""
    pass


class InvalidInput(ReconcileError):
    """Neither an email nor a phone number survived normalization."""
    pass


class Conflict(ReconcileError):
    """Serializable transaction kept conflicting until the retry budget ran out."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class StoreError(ReconcileError):
    """Any non-conflict failure reported by the contact store."""
    pass
