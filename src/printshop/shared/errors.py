"""Error kinds and business-rule exceptions shared across the printshop domain.

Validation problems are raised as protean ``ValidationError`` and missing
records as ``ObjectNotFoundError``. Rule violations that are not about a
malformed request raise a ``BusinessRuleError`` subclass whose ``kind`` tells
callers how to react.
"""

from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    STATE = "state"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class BusinessRuleError(Exception):
    kind = ErrorKind.STATE

    def __init__(self, messages: dict[str, list[str]]):
        super().__init__(messages)
        self.messages = messages


class InvalidTransition(BusinessRuleError):
    """The requested status change is not allowed from the current status."""


class PhotoInUse(BusinessRuleError):
    """The photo is referenced by at least one order."""


class StaleRevision(BusinessRuleError):
    """The order changed since the caller last read it."""

    kind = ErrorKind.CONFLICT


class SequenceConflict(BusinessRuleError):
    """Another writer claimed the same identifier first. Safe to retry."""

    kind = ErrorKind.CONFLICT


class DuplicateOrderNumber(SequenceConflict):
    """Another order was stored with the same number. Retried with a fresh number."""


class DuplicateEntry(BusinessRuleError):
    kind = ErrorKind.CONFLICT
