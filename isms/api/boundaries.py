"""FastAPI boundary endpoints.

GET    /v1/projects/{project_id}/boundaries                - list
POST   /v1/projects/{project_id}/boundaries                - create
GET    /v1/projects/{project_id}/boundaries/{boundary_id}  - get
PATCH  /v1/projects/{project_id}/boundaries/{boundary_id}  - update
DELETE /v1/projects/{project_id}/boundaries/{boundary_id}  - delete

Mutations reset a completed Boundaries phase; pass ``confirm_reset=true``
to acknowledge (409 otherwise).
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from isms.api.dependencies import get_boundary_service, get_current_user_id, require_project
from isms.models.boundary import Boundary
from isms.models.common import BoundaryType
from isms.workflow.boundaries import BoundaryService

router = APIRouter(
    prefix="/v1/projects",
    tags=["boundaries"],
    dependencies=[Depends(require_project)],
)


class CreateBoundaryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: BoundaryType
    description: str | None = None
    included: bool = True
    notes: str | None = None
    asset_value_qualitative: str | None = Field(default=None, max_length=50)
    asset_value_quantitative: float | None = Field(default=None, ge=0.0)


class UpdateBoundaryRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: BoundaryType | None = None
    description: str | None = None
    included: bool | None = None
    notes: str | None = None
    asset_value_qualitative: str | None = Field(default=None, max_length=50)
    asset_value_quantitative: float | None = Field(default=None, ge=0.0)


@router.get("/{project_id}/boundaries", response_model=list[Boundary])
async def list_boundaries(
    project_id: UUID,
    service: BoundaryService = Depends(get_boundary_service),
) -> list[Boundary]:
    return [Boundary.model_validate(r) for r in await service.list_for_project(project_id)]


@router.post("/{project_id}/boundaries", status_code=201, response_model=Boundary)
async def create_boundary(
    project_id: UUID,
    body: CreateBoundaryRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryService = Depends(get_boundary_service),
) -> Boundary:
    row = await service.create(
        project_id, user_id=user_id, confirm_reset=confirm_reset, **body.model_dump(),
    )
    return Boundary.model_validate(row)


@router.get("/{project_id}/boundaries/{boundary_id}", response_model=Boundary)
async def get_boundary(
    project_id: UUID,
    boundary_id: UUID,
    service: BoundaryService = Depends(get_boundary_service),
) -> Boundary:
    return Boundary.model_validate(await service.get(project_id, boundary_id))


@router.patch("/{project_id}/boundaries/{boundary_id}", response_model=Boundary)
async def update_boundary(
    project_id: UUID,
    boundary_id: UUID,
    body: UpdateBoundaryRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryService = Depends(get_boundary_service),
) -> Boundary:
    row = await service.update(
        project_id, boundary_id, body.model_dump(exclude_unset=True),
        user_id=user_id, confirm_reset=confirm_reset,
    )
    return Boundary.model_validate(row)


@router.delete("/{project_id}/boundaries/{boundary_id}", status_code=204)
async def delete_boundary(
    project_id: UUID,
    boundary_id: UUID,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: BoundaryService = Depends(get_boundary_service),
) -> None:
    await service.delete(project_id, boundary_id, user_id=user_id, confirm_reset=confirm_reset)
