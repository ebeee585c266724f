"""Explicit results at the application seam.

Command handlers raise; callers of the domain (the HTTP layer, batch jobs)
go through ``dispatch`` and branch on ``Outcome.failure.kind`` instead of
catching exceptions themselves.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from printshop.shared.errors import BusinessRuleError, ErrorKind

logger = structlog.get_logger(__name__)

GENERIC_FAILURE = {"_error": ["Something went wrong. Please try again later."]}
NOT_FOUND = {"_entity": ["Not found"]}


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    messages: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Outcome:
    value: Any = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value=None) -> "Outcome":
        return cls(value=value)

    @classmethod
    def failed(cls, kind: ErrorKind, messages: dict) -> "Outcome":
        return cls(failure=Failure(kind=kind, messages=messages))


def classify(exc: Exception) -> Failure:
    """Map an exception onto the error taxonomy."""
    if isinstance(exc, ValidationError):
        return Failure(ErrorKind.VALIDATION, exc.messages)
    if isinstance(exc, ObjectNotFoundError):
        # Never echo identifiers back: "not yours" must read exactly like "missing"
        return Failure(ErrorKind.NOT_FOUND, NOT_FOUND)
    if isinstance(exc, BusinessRuleError):
        return Failure(exc.kind, exc.messages)
    return Failure(ErrorKind.INTERNAL, GENERIC_FAILURE)


def attempt(operation, *args, **kwargs) -> Outcome:
    """Run ``operation`` and capture its result or classified failure."""
    return _run(getattr(operation, "__name__", repr(operation)), operation, *args, **kwargs)


def dispatch(command) -> Outcome:
    """Process a command synchronously and wrap the handler's return value."""
    return _run(type(command).__name__, current_domain.process, command, asynchronous=False)


def _run(label: str, operation, *args, **kwargs) -> Outcome:
    try:
        return Outcome.success(operation(*args, **kwargs))
    except (ValidationError, ObjectNotFoundError, BusinessRuleError) as exc:
        failure = classify(exc)
        logger.info("Operation rejected", operation=label, kind=failure.kind.value)
        return Outcome(failure=failure)
    except Exception:
        logger.exception("Operation failed unexpectedly", operation=label)
        return Outcome.failed(ErrorKind.INTERNAL, GENERIC_FAILURE)


def submit(command_cls, **fields) -> Outcome:
    """Build and process a command; invalid command fields become a validation failure."""
    return _run(command_cls.__name__, _build_and_process, command_cls, fields)


def _build_and_process(command_cls, fields):
    return current_domain.process(command_cls(**fields), asynchronous=False)
