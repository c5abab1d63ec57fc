"""FastAPI project endpoints.

POST   /v1/projects                                       - create
GET    /v1/projects                                       - list (with derived status)
GET    /v1/projects/stats                                 - counts by derived status
GET    /v1/projects/{project_id}                          - get
PATCH  /v1/projects/{project_id}                          - update
DELETE /v1/projects/{project_id}                          - delete
GET    /v1/projects/{project_id}/phases                   - phase progress
POST   /v1/projects/{project_id}/phases/{phase}/complete  - mark phase complete
DELETE /v1/projects/{project_id}/phases/{phase}/complete  - unmark phase
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from isms.api.dependencies import get_current_user_id, get_project_service, require_project
from isms.db.tables import ProjectRow
from isms.models.common import PhaseKey, ProjectStatus
from isms.models.project import PhaseProgress, ProjectStats, ProjectWithStatus
from isms.workflow.projects import ProjectService

router = APIRouter(prefix="/v1/projects", tags=["projects"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateProjectRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus = ProjectStatus.IN_PROGRESS


class UpdateProjectRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus | None = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=ProjectWithStatus)
async def create_project(
    body: CreateProjectRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectWithStatus:
    row = await service.create(user_id=user_id, **body.model_dump())
    return service.with_status(row)


@router.get("", response_model=list[ProjectWithStatus])
async def list_projects(
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectWithStatus]:
    return [service.with_status(row) for row in await service.list_for_user(user_id)]


@router.get("/stats", response_model=ProjectStats)
async def project_stats(
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectStats:
    return await service.stats(user_id)


@router.get("/{project_id}", response_model=ProjectWithStatus)
async def get_project(
    project: ProjectRow = Depends(require_project),
    service: ProjectService = Depends(get_project_service),
) -> ProjectWithStatus:
    return service.with_status(project)


@router.patch("/{project_id}", response_model=ProjectWithStatus)
async def update_project(
    project_id: UUID,
    body: UpdateProjectRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectWithStatus:
    row = await service.update(project_id, body.model_dump(exclude_unset=True), user_id=user_id)
    return service.with_status(row)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> None:
    await service.delete(project_id, user_id=user_id)


@router.get("/{project_id}/phases", response_model=list[PhaseProgress])
async def get_phase_progress(
    project: ProjectRow = Depends(require_project),
    service: ProjectService = Depends(get_project_service),
) -> list[PhaseProgress]:
    return service.with_status(project).phases


@router.post("/{project_id}/phases/{phase}/complete", response_model=ProjectWithStatus)
async def mark_phase_complete(
    project_id: UUID,
    phase: PhaseKey,
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectWithStatus:
    row = await service.mark_phase_complete(project_id, phase, user_id=user_id)
    return service.with_status(row)


@router.delete("/{project_id}/phases/{phase}/complete", response_model=ProjectWithStatus)
async def unmark_phase_complete(
    project_id: UUID,
    phase: PhaseKey,
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectWithStatus:
    row = await service.unmark_phase_complete(project_id, phase, user_id=user_id)
    return service.with_status(row)
