"""Exception types raised by the rota engine.

Every exception carries a message meant to be shown to a person as-is.
"""

from __future__ import annotations

from typing import Optional


class RotaError(Exception):
    """Base class for all rota errors."""
    pass


class DataValidationError(RotaError):
    """Raised when school data fails validation."""
    pass


class MissingReferenceError(RotaError):
    """An operation referenced an entity that is not in the current dataset."""

    def __init__(self, entity: str, entity_id: str, hint: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity.capitalize()} '{entity_id}' was not found"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)


class SwapRejectedError(RotaError):
    """A lesson swap could not be planned; nothing was written."""
    pass


class ConfirmationRequiredError(RotaError):
    """A busy teacher was picked without confirming the merger."""
    pass


class CandidateDeclinedError(RotaError):
    """A teacher who declined the lesson was picked for one-click assignment."""
    pass


class ReferenceInUseError(RotaError):
    """An entity cannot be deleted while lessons still reference it."""
    pass


class NoSchoolDayError(RotaError):
    """A date-scoped operation was requested for a weekend."""
    pass
