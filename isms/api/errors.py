"""Map workflow errors onto HTTP responses.

Every response carries ``detail`` (a message fit to show as-is);
validation failures add ``errors`` (field -> message) and phase resets
add ``phases``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from isms.workflow.errors import (
    DuplicateAssociationError,
    DuplicateBoundaryNameError,
    InvalidReferenceError,
    NotFoundOrForbidden,
    PhaseResetRequired,
    StorageError,
    ValidationFailed,
    WorkflowError,
)
from isms.workflow.risk_edit import InvalidEditTransition

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[WorkflowError], int] = {
    ValidationFailed: 422,
    InvalidReferenceError: 422,
    NotFoundOrForbidden: 404,
    DuplicateAssociationError: 409,
    DuplicateBoundaryNameError: 409,
    PhaseResetRequired: 409,
    InvalidEditTransition: 409,
    StorageError: 502,
}


def status_for(exc: WorkflowError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 400


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = status_for(exc)
    body: dict = {"detail": exc.message}
    if isinstance(exc, ValidationFailed):
        body["errors"] = exc.errors
    if isinstance(exc, PhaseResetRequired):
        body["phases"] = [p.value for p in exc.phases]
        body["requires_confirmation"] = True
    log = logger.error if status_code >= 500 else logger.info
    log("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WorkflowError, workflow_error_handler)
