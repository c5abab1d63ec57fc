"""FastAPI risk register endpoints.

GET /v1/projects/{project_id}/risk-register                 - one row per threat scenario
GET /v1/projects/{project_id}/risk-register/details         - rows with gaps, assessments, evidence
GET /v1/projects/{project_id}/risk-register/export          - Excel workbook
GET /v1/projects/{project_id}/risk-register/{scenario_id}   - one detailed row
GET /v1/projects/{project_id}/crq-summary                   - ALE bands and totals
GET /v1/projects/{project_id}/mitre-techniques              - technique -> scenarios
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from isms.api.dependencies import get_risk_register_service, require_project
from isms.db.session import get_async_session
from isms.db.tables import ProjectRow
from isms.export.register_workbook import RegisterWorkbookExporter
from isms.models.register import (
    CrqSummary,
    RiskRegisterItem,
    RiskRegisterItemWithDetails,
    TechniqueUsage,
)
from isms.workflow.crq import project_crq_summary
from isms.workflow.risk_register import RiskRegisterService

router = APIRouter(prefix="/v1/projects", tags=["risk-register"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/{project_id}/risk-register", response_model=list[RiskRegisterItem])
async def get_risk_register(
    project: ProjectRow = Depends(require_project),
    service: RiskRegisterService = Depends(get_risk_register_service),
) -> list[RiskRegisterItem]:
    return await service.register(project.id)


@router.get("/{project_id}/risk-register/details",
            response_model=list[RiskRegisterItemWithDetails])
async def get_risk_register_details(
    project: ProjectRow = Depends(require_project),
    service: RiskRegisterService = Depends(get_risk_register_service),
) -> list[RiskRegisterItemWithDetails]:
    return await service.register_with_details(project.id)


@router.get("/{project_id}/risk-register/export")
async def export_risk_register(
    project: ProjectRow = Depends(require_project),
    service: RiskRegisterService = Depends(get_risk_register_service),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    items = await service.register_with_details(project.id)
    crq = await project_crq_summary(session, project.id)
    content = RegisterWorkbookExporter().export(items, crq, project_name=project.name)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="risk-register.xlsx"'},
    )


@router.get("/{project_id}/risk-register/{scenario_id}",
            response_model=RiskRegisterItemWithDetails)
async def get_risk_register_item(
    scenario_id: UUID,
    project: ProjectRow = Depends(require_project),
    service: RiskRegisterService = Depends(get_risk_register_service),
) -> RiskRegisterItemWithDetails:
    return await service.item_with_details(project.id, scenario_id)


@router.get("/{project_id}/crq-summary", response_model=CrqSummary)
async def get_crq_summary(
    project: ProjectRow = Depends(require_project),
    session: AsyncSession = Depends(get_async_session),
) -> CrqSummary:
    return await project_crq_summary(session, project.id)


@router.get("/{project_id}/mitre-techniques", response_model=list[TechniqueUsage])
async def get_mitre_techniques(
    project: ProjectRow = Depends(require_project),
    service: RiskRegisterService = Depends(get_risk_register_service),
) -> list[TechniqueUsage]:
    return await service.techniques(project.id)
