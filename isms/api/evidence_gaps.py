"""FastAPI evidence & gap endpoints.

GET    /v1/projects/{project_id}/gaps                                    - list
GET    /v1/projects/{project_id}/boundary-controls/{bc_id}/gaps          - list for association
POST   /v1/projects/{project_id}/boundary-controls/{bc_id}/gaps          - record gap
PATCH  /v1/projects/{project_id}/gaps/{gap_id}                           - update
DELETE /v1/projects/{project_id}/gaps/{gap_id}                           - delete
GET    /v1/projects/{project_id}/evidence                                - list
GET    /v1/projects/{project_id}/boundary-controls/{bc_id}/evidence      - list for association
POST   /v1/projects/{project_id}/boundary-controls/{bc_id}/evidence      - upload (multipart)
DELETE /v1/projects/{project_id}/evidence/{evidence_id}                  - delete
GET    /v1/projects/{project_id}/evidence/{evidence_id}/download-url     - signed URL
GET    /v1/evidence-files/{storage_key}?expires=&signature=              - signed download

Mutations reset a completed Evidence & Gaps phase; pass
``confirm_reset=true`` to acknowledge.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field

from isms.api.dependencies import (
    get_current_user_id,
    get_evidence_service,
    get_evidence_store,
    get_gap_service,
    require_project,
)
from isms.models.common import GapSeverity, GapStatus
from isms.models.evidence_gaps import Evidence, Gap
from isms.storage.evidence_store import EvidenceStore
from isms.workflow.evidence_gaps import EvidenceService, GapService

router = APIRouter(
    prefix="/v1/projects",
    tags=["evidence-gaps"],
    dependencies=[Depends(require_project)],
)

files_router = APIRouter(prefix="/v1/evidence-files", tags=["evidence-gaps"])


class CreateGapRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str
    severity: GapSeverity
    status: GapStatus = GapStatus.IDENTIFIED


class UpdateGapRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    severity: GapSeverity | None = None
    status: GapStatus | None = None


class DownloadUrlResponse(BaseModel):
    url: str
    expires_in: int


# ---------------------------------------------------------------------------
# Gaps
# ---------------------------------------------------------------------------


@router.get("/{project_id}/gaps", response_model=list[Gap])
async def list_gaps(
    project_id: UUID,
    service: GapService = Depends(get_gap_service),
) -> list[Gap]:
    return [Gap.model_validate(r) for r in await service.list_for_project(project_id)]


@router.get("/{project_id}/boundary-controls/{boundary_control_id}/gaps",
            response_model=list[Gap])
async def list_gaps_for_boundary_control(
    project_id: UUID,
    boundary_control_id: UUID,
    service: GapService = Depends(get_gap_service),
) -> list[Gap]:
    rows = await service.list_for_boundary_control(project_id, boundary_control_id)
    return [Gap.model_validate(r) for r in rows]


@router.post("/{project_id}/boundary-controls/{boundary_control_id}/gaps",
             status_code=201, response_model=Gap)
async def create_gap(
    project_id: UUID,
    boundary_control_id: UUID,
    body: CreateGapRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: GapService = Depends(get_gap_service),
) -> Gap:
    row = await service.create(
        project_id, boundary_control_id,
        user_id=user_id, confirm_reset=confirm_reset, **body.model_dump(),
    )
    return Gap.model_validate(row)


@router.patch("/{project_id}/gaps/{gap_id}", response_model=Gap)
async def update_gap(
    project_id: UUID,
    gap_id: UUID,
    body: UpdateGapRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: GapService = Depends(get_gap_service),
) -> Gap:
    row = await service.update(
        project_id, gap_id, body.model_dump(exclude_unset=True),
        user_id=user_id, confirm_reset=confirm_reset,
    )
    return Gap.model_validate(row)


@router.delete("/{project_id}/gaps/{gap_id}", status_code=204)
async def delete_gap(
    project_id: UUID,
    gap_id: UUID,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: GapService = Depends(get_gap_service),
) -> None:
    await service.delete(project_id, gap_id, user_id=user_id, confirm_reset=confirm_reset)


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


@router.get("/{project_id}/evidence", response_model=list[Evidence])
async def list_evidence(
    project_id: UUID,
    service: EvidenceService = Depends(get_evidence_service),
) -> list[Evidence]:
    return [Evidence.model_validate(r) for r in await service.list_for_project(project_id)]


@router.get("/{project_id}/boundary-controls/{boundary_control_id}/evidence",
            response_model=list[Evidence])
async def list_evidence_for_boundary_control(
    project_id: UUID,
    boundary_control_id: UUID,
    service: EvidenceService = Depends(get_evidence_service),
) -> list[Evidence]:
    rows = await service.list_for_boundary_control(project_id, boundary_control_id)
    return [Evidence.model_validate(r) for r in rows]


@router.post("/{project_id}/boundary-controls/{boundary_control_id}/evidence",
             status_code=201, response_model=Evidence)
async def create_evidence(
    project_id: UUID,
    boundary_control_id: UUID,
    title: str = Form(..., min_length=1, max_length=500),
    description: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: EvidenceService = Depends(get_evidence_service),
) -> Evidence:
    content = await file.read() if file is not None else None
    row = await service.create(
        project_id, boundary_control_id,
        user_id=user_id, confirm_reset=confirm_reset,
        title=title, description=description,
        filename=file.filename if file is not None else None,
        content=content,
        mime_type=file.content_type if file is not None else None,
    )
    return Evidence.model_validate(row)


@router.delete("/{project_id}/evidence/{evidence_id}", status_code=204)
async def delete_evidence(
    project_id: UUID,
    evidence_id: UUID,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: EvidenceService = Depends(get_evidence_service),
) -> None:
    await service.delete(project_id, evidence_id, user_id=user_id, confirm_reset=confirm_reset)


@router.get("/{project_id}/evidence/{evidence_id}/download-url",
            response_model=DownloadUrlResponse)
async def get_download_url(
    project_id: UUID,
    evidence_id: UUID,
    service: EvidenceService = Depends(get_evidence_service),
    store: EvidenceStore = Depends(get_evidence_store),
) -> DownloadUrlResponse:
    url = await service.download_url(project_id, evidence_id)
    return DownloadUrlResponse(url=url, expires_in=store.ttl_seconds)


@files_router.get("/{storage_key:path}")
async def download_evidence_file(
    storage_key: str,
    expires: int,
    signature: str,
    store: EvidenceStore = Depends(get_evidence_store),
) -> Response:
    """Serve a file behind a signed, expiring URL (no user header needed)."""
    if not store.verify(storage_key, expires, signature):
        raise HTTPException(status_code=403, detail="Download link is invalid or has expired")
    content = store.retrieve(storage_key)
    filename = storage_key.rsplit("/", 1)[-1]
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
