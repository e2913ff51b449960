"""
plebiscite.errors — Exception Hierarchy
========================================

Every failure the domain core surfaces to callers derives from
:class:`PlebisciteError` and carries a stable ``code``.  Storage errors
raised by SQLAlchemy propagate untouched except where a service recovers
from them (the vote-casting uniqueness race).
"""

from __future__ import annotations

from typing import Any


class PlebisciteError(Exception):
    """Base exception for all Plebiscite errors."""

    code = "PLEBISCITE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(PlebisciteError):
    """Field-level domain validation failed; nothing was persisted."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{field} {msg}" for field, msg in self.errors.items())
        super().__init__(f"Validation failed: {detail}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}


class IllegalTransitionError(PlebisciteError):
    """The lifecycle event is not valid from the idea's current state."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, state: str, event: str) -> None:
        self.state = str(state)
        self.event = str(event)
        super().__init__(f"Cannot {self.event} an idea that is {self.state}")


class NotFoundError(PlebisciteError):
    """A referenced row does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class IntegrityViolationError(PlebisciteError):
    """A uniqueness race that persisted after the single retry."""

    code = "INTEGRITY_VIOLATION"


class MergeFailedError(PlebisciteError):
    """A merge was rolled back; ``step`` names where it broke."""

    code = "MERGE_FAILED"

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Merge failed during {step}: {cause}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "step": self.step}
