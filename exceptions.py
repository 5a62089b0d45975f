"""
Domain Exceptions
Error types raised by the Auralyst store, services and engine
"""


class AuralystError(Exception):
    """Base class for all Auralyst errors"""


class StoreUnavailable(AuralystError):
    """The persistence layer could not complete a read or write"""


class ConflictError(AuralystError):
    """A write collided with an existing record (unique constraint)"""


class InvariantViolation(AuralystError, ValueError):
    """A record would break a model invariant (e.g. interval schedule without an anchor)"""


class NotFoundError(AuralystError, LookupError):
    """A requested record does not exist"""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


__all__ = [
    "AuralystError",
    "StoreUnavailable",
    "ConflictError",
    "InvariantViolation",
    "NotFoundError",
]
