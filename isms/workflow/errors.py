"""Workflow error taxonomy and database-error translation.

Every error carries a message fit to show the user as-is. The API layer
maps each class to an HTTP status (see ``isms.api.errors``).
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from isms.db.tables import SLE_BREAKDOWN_CONSTRAINT
from isms.models.common import PHASE_LABELS, PhaseKey

SLE_BREAKDOWN_MISMATCH_MESSAGE = "SLE breakdown values must add up to the total SLE amount."
DUPLICATE_ASSOCIATION_MESSAGE = "This control is already associated with this boundary"
DUPLICATE_BOUNDARY_NAME_MESSAGE = "A boundary with this name already exists in this project"
INVALID_REFERENCE_MESSAGE = "The boundary or control ID is invalid or does not exist"


class WorkflowError(Exception):
    """Base class for all user-facing workflow errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(WorkflowError):
    """Field-level validation failure; ``errors`` maps field -> message."""

    def __init__(self, errors: dict[str, str], message: str | None = None) -> None:
        self.errors = dict(errors)
        super().__init__(
            message or "Please fix the validation errors in the highlighted fields before saving."
        )


class NotFoundOrForbidden(WorkflowError):
    """Record missing, or not owned by the current user."""


class DuplicateAssociationError(WorkflowError):
    def __init__(self, message: str = DUPLICATE_ASSOCIATION_MESSAGE) -> None:
        super().__init__(message)


class DuplicateBoundaryNameError(WorkflowError):
    def __init__(self, message: str = DUPLICATE_BOUNDARY_NAME_MESSAGE) -> None:
        super().__init__(message)


class InvalidReferenceError(WorkflowError):
    def __init__(self, message: str = INVALID_REFERENCE_MESSAGE) -> None:
        super().__init__(message)


class StorageError(WorkflowError):
    """Evidence file could not be stored, read or removed."""


class PhaseResetRequired(WorkflowError):
    """A mutation would reset completed phases and was not confirmed."""

    def __init__(self, project_id: UUID, phases: Iterable[PhaseKey]) -> None:
        self.project_id = project_id
        self.phases = list(phases)
        labels = ", ".join(PHASE_LABELS[p] for p in self.phases)
        super().__init__(
            f"This will reset the completion status of the {labels} phase. "
            "Confirm to continue."
        )


def translate_integrity_error(exc: IntegrityError) -> WorkflowError:
    """Map a unique / foreign-key / check violation onto a workflow error.

    Postgres and SQLite both include the constraint name (or the violated
    column list) in the driver message, which is what is matched here.
    """
    text = str(exc.orig).lower()
    if SLE_BREAKDOWN_CONSTRAINT in text:
        return ValidationFailed(
            {"sle_breakdown": "SLE breakdown values must add up to the total SLE."},
            message=SLE_BREAKDOWN_MISMATCH_MESSAGE,
        )
    if "uq_boundary_control" in text or "boundary_controls.boundary_id" in text:
        return DuplicateAssociationError()
    if "uq_boundary_project_name" in text or "boundaries.project_id" in text:
        return DuplicateBoundaryNameError()
    if "foreign key" in text:
        return InvalidReferenceError()
    if "unique" in text or "duplicate key" in text:
        return WorkflowError("This record already exists.")
    return WorkflowError("The change was rejected by the database.")
