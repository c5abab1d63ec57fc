"""FastAPI Statement of Applicability endpoints.

GET    /v1/controls                                                   - catalog, grouped by domain
GET    /v1/controls/domains                                           - domain filter values
GET    /v1/projects/{project_id}/boundary-controls                    - all associations
POST   /v1/projects/{project_id}/boundary-controls                    - associate
PATCH  /v1/projects/{project_id}/boundary-controls/{id}               - applicability / assessment
DELETE /v1/projects/{project_id}/boundary-controls/{id}               - remove association
GET    /v1/projects/{project_id}/boundaries/{boundary_id}/controls    - a boundary's associations
GET    /v1/projects/{project_id}/boundaries/{boundary_id}/available-controls
POST   /v1/projects/{project_id}/boundaries/{boundary_id}/drop        - drag-and-drop
POST   /v1/projects/{project_id}/boundaries/{boundary_id}/assign      - bulk assign

Mutations reset a completed SOA phase (compliance-assessment edits reset
Evidence & Gaps); pass ``confirm_reset=true`` to acknowledge.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from isms.api.dependencies import (
    get_boundary_control_service,
    get_current_user_id,
    require_project,
)
from isms.models.common import ComplianceStatus
from isms.models.soa import BoundaryControl, BoundaryControlWithDetails, Control, ControlGroup
from isms.workflow.soa import BoundaryControlService

controls_router = APIRouter(prefix="/v1/controls", tags=["controls"])

router = APIRouter(
    prefix="/v1/projects",
    tags=["soa"],
    dependencies=[Depends(require_project)],
)


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class CreateBoundaryControlRequest(BaseModel):
    boundary_id: UUID
    control_id: UUID
    is_applicable: bool = True
    reason_inclusion: str | None = None
    reason_exclusion: str | None = None
    status: str | None = None


class UpdateBoundaryControlRequest(BaseModel):
    """Partial update; identity fields are ignored if sent."""

    model_config = {"extra": "ignore"}

    is_applicable: bool | None = None
    reason_inclusion: str | None = None
    reason_exclusion: str | None = None
    status: str | None = None
    compliance_status: ComplianceStatus | None = None
    assessment_date: date | None = None
    assessment_notes: str | None = None


class DropRequest(BaseModel):
    control_id: UUID


class DropResponse(BaseModel):
    accepted: bool
    boundary_control: BoundaryControlWithDetails | None = None


class AssignRequest(BaseModel):
    control_ids: list[UUID] = Field(..., min_length=1)
    is_applicable: bool = True


# ---------------------------------------------------------------------------
# Control catalog
# ---------------------------------------------------------------------------


@controls_router.get("", response_model=list[ControlGroup])
async def list_controls(
    search: str | None = None,
    domain: str | None = None,
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> list[ControlGroup]:
    return await service.list_controls(search, domain)


@controls_router.get("/domains", response_model=list[str])
async def list_control_domains(
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> list[str]:
    return await service.list_domains()


# ---------------------------------------------------------------------------
# Boundary controls
# ---------------------------------------------------------------------------


@router.get("/{project_id}/boundary-controls", response_model=list[BoundaryControlWithDetails])
async def list_boundary_controls(
    project_id: UUID,
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> list[BoundaryControlWithDetails]:
    return await service.list_for_project(project_id)


@router.post(
    "/{project_id}/boundary-controls",
    status_code=201,
    response_model=BoundaryControlWithDetails,
)
async def create_boundary_control(
    project_id: UUID,
    body: CreateBoundaryControlRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> BoundaryControlWithDetails:
    return await service.create(
        project_id, body.boundary_id, body.control_id,
        user_id=user_id, confirm_reset=confirm_reset,
        is_applicable=body.is_applicable,
        reason_inclusion=body.reason_inclusion,
        reason_exclusion=body.reason_exclusion,
        status=body.status,
    )


@router.patch(
    "/{project_id}/boundary-controls/{boundary_control_id}",
    response_model=BoundaryControlWithDetails,
)
async def update_boundary_control(
    project_id: UUID,
    boundary_control_id: UUID,
    body: UpdateBoundaryControlRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> BoundaryControlWithDetails:
    return await service.update(
        project_id, boundary_control_id, body.model_dump(exclude_unset=True),
        user_id=user_id, confirm_reset=confirm_reset,
    )


@router.delete("/{project_id}/boundary-controls/{boundary_control_id}", status_code=204)
async def delete_boundary_control(
    project_id: UUID,
    boundary_control_id: UUID,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> None:
    await service.delete(
        project_id, boundary_control_id, user_id=user_id, confirm_reset=confirm_reset,
    )


@router.get(
    "/{project_id}/boundaries/{boundary_id}/controls",
    response_model=list[BoundaryControlWithDetails],
)
async def list_controls_for_boundary(
    project_id: UUID,
    boundary_id: UUID,
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> list[BoundaryControlWithDetails]:
    return await service.list_for_boundary(project_id, boundary_id)


@router.get("/{project_id}/boundaries/{boundary_id}/available-controls",
            response_model=list[Control])
async def list_available_controls(
    project_id: UUID,
    boundary_id: UUID,
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> list[Control]:
    """Controls not yet associated with the boundary (the draggable ones)."""
    return await service.unassociated_controls(project_id, boundary_id)


@router.post("/{project_id}/boundaries/{boundary_id}/drop", response_model=DropResponse)
async def drop_control(
    project_id: UUID,
    boundary_id: UUID,
    body: DropRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> DropResponse:
    """Drop a control on a boundary; a boundary already holding it refuses silently."""
    created = await service.drop(
        project_id, boundary_id, body.control_id,
        user_id=user_id, confirm_reset=confirm_reset,
    )
    return DropResponse(accepted=created is not None, boundary_control=created)


@router.post("/{project_id}/boundaries/{boundary_id}/assign",
             status_code=201, response_model=list[BoundaryControl])
async def assign_controls(
    project_id: UUID,
    boundary_id: UUID,
    body: AssignRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryControlService = Depends(get_boundary_control_service),
) -> list[BoundaryControl]:
    return await service.bulk_assign(
        project_id, boundary_id, body.control_ids,
        user_id=user_id, is_applicable=body.is_applicable,
        confirm_reset=confirm_reset,
    )
