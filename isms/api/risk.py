"""FastAPI risk endpoints - threat scenarios and the two-step risk assessment edit.

GET    /v1/projects/{project_id}/threat-scenarios                          - list
POST   /v1/projects/{project_id}/threat-scenarios                          - create
GET    /v1/projects/{project_id}/threat-scenarios/{scenario_id}            - get
PATCH  /v1/projects/{project_id}/threat-scenarios/{scenario_id}            - update
DELETE /v1/projects/{project_id}/threat-scenarios/{scenario_id}            - delete
GET    /v1/projects/{project_id}/risk-assessments                          - editable list, by ALE
POST   /v1/projects/{project_id}/risk-assessments                          - create
PATCH  /v1/projects/{project_id}/risk-assessments/{id}/core                - step 1: core fields
PATCH  /v1/projects/{project_id}/risk-assessments/{id}/breakdown           - step 2: SLE breakdown
DELETE /v1/projects/{project_id}/risk-assessments/{id}                     - delete
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from isms.api.dependencies import (
    get_current_user_id,
    get_risk_assessment_service,
    get_threat_scenario_service,
    require_project,
)
from isms.models.common import RiskSeverity
from isms.models.risk import (
    RiskAssessment,
    RiskAssessmentCore,
    RiskAssessmentWithThreat,
    SleBreakdown,
    ThreatScenario,
)
from isms.workflow.errors import ValidationFailed
from isms.workflow.risk import RiskAssessmentService, ThreatScenarioService
from isms.workflow.sle_breakdown import parse_amount, validate_core

router = APIRouter(
    prefix="/v1/projects",
    tags=["risk"],
    dependencies=[Depends(require_project)],
)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateThreatScenarioRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    threat_actor_type: str | None = None
    gap_id: UUID | None = None
    sle: float | None = Field(default=None, ge=0.0)
    aro: float | None = Field(default=None, ge=0.0)
    mitre_techniques: list[str] = Field(default_factory=list)
    relevant_iso_domains: list[str] = Field(default_factory=list)


class UpdateThreatScenarioRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    threat_actor_type: str | None = None
    gap_id: UUID | None = None
    sle: float | None = Field(default=None, ge=0.0)
    aro: float | None = Field(default=None, ge=0.0)
    mitre_techniques: list[str] | None = None
    relevant_iso_domains: list[str] | None = None


class CreateRiskAssessmentRequest(BaseModel):
    boundary_id: UUID
    threat_scenario_id: UUID
    sle: float
    aro: float
    severity: str | None = None
    assessment_notes: str | None = None
    assessment_date: datetime | None = None
    gap_id: UUID | None = None
    control_id: UUID | None = None
    breakdown: SleBreakdown | None = None


class SaveCoreRequest(BaseModel):
    """Raw form values; validated with the same rules as the edit form."""

    severity: str | None = None
    sle: Any = None
    aro: Any = None
    assessment_notes: str | None = None


def _core_from_request(body: SaveCoreRequest) -> RiskAssessmentCore:
    errors, _ = validate_core(body.model_dump())
    if errors:
        raise ValidationFailed(errors)
    return RiskAssessmentCore(
        severity=RiskSeverity(body.severity) if body.severity else None,
        sle=parse_amount(body.sle),
        aro=parse_amount(body.aro),
        assessment_notes=body.assessment_notes,
    )


# ---------------------------------------------------------------------------
# Threat scenarios
# ---------------------------------------------------------------------------


@router.get("/{project_id}/threat-scenarios", response_model=list[ThreatScenario])
async def list_threat_scenarios(
    project_id: UUID,
    service: ThreatScenarioService = Depends(get_threat_scenario_service),
) -> list[ThreatScenario]:
    return [ThreatScenario.model_validate(r) for r in await service.list_for_project(project_id)]


@router.post("/{project_id}/threat-scenarios", status_code=201, response_model=ThreatScenario)
async def create_threat_scenario(
    project_id: UUID,
    body: CreateThreatScenarioRequest,
    service: ThreatScenarioService = Depends(get_threat_scenario_service),
) -> ThreatScenario:
    row = await service.create(project_id, **body.model_dump())
    return ThreatScenario.model_validate(row)


@router.get("/{project_id}/threat-scenarios/{scenario_id}", response_model=ThreatScenario)
async def get_threat_scenario(
    project_id: UUID,
    scenario_id: UUID,
    service: ThreatScenarioService = Depends(get_threat_scenario_service),
) -> ThreatScenario:
    return ThreatScenario.model_validate(await service.get(project_id, scenario_id))


@router.patch("/{project_id}/threat-scenarios/{scenario_id}", response_model=ThreatScenario)
async def update_threat_scenario(
    project_id: UUID,
    scenario_id: UUID,
    body: UpdateThreatScenarioRequest,
    service: ThreatScenarioService = Depends(get_threat_scenario_service),
) -> ThreatScenario:
    row = await service.update(project_id, scenario_id, body.model_dump(exclude_unset=True))
    return ThreatScenario.model_validate(row)


@router.delete("/{project_id}/threat-scenarios/{scenario_id}", status_code=204)
async def delete_threat_scenario(
    project_id: UUID,
    scenario_id: UUID,
    service: ThreatScenarioService = Depends(get_threat_scenario_service),
) -> None:
    await service.delete(project_id, scenario_id)


# ---------------------------------------------------------------------------
# Risk assessments
# ---------------------------------------------------------------------------


@router.get("/{project_id}/risk-assessments", response_model=list[RiskAssessmentWithThreat])
async def list_risk_assessments(
    project_id: UUID,
    service: RiskAssessmentService = Depends(get_risk_assessment_service),
) -> list[RiskAssessmentWithThreat]:
    return await service.list_editable(project_id)


@router.post("/{project_id}/risk-assessments", status_code=201, response_model=RiskAssessment)
async def create_risk_assessment(
    project_id: UUID,
    body: CreateRiskAssessmentRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RiskAssessmentService = Depends(get_risk_assessment_service),
) -> RiskAssessment:
    row = await service.create(
        project_id, assessor_id=user_id, **body.model_dump(exclude={"breakdown"}),
        breakdown=body.breakdown,
    )
    return RiskAssessment.model_validate(row)


@router.patch("/{project_id}/risk-assessments/{assessment_id}/core",
              response_model=RiskAssessment)
async def save_risk_assessment_core(
    project_id: UUID,
    assessment_id: UUID,
    body: SaveCoreRequest,
    service: RiskAssessmentService = Depends(get_risk_assessment_service),
) -> RiskAssessment:
    """Step 1: severity, SLE, ARO and notes. The breakdown is not checked here."""
    row = await service.save_core(project_id, assessment_id, _core_from_request(body))
    return RiskAssessment.model_validate(row)


@router.patch("/{project_id}/risk-assessments/{assessment_id}/breakdown",
              response_model=RiskAssessment)
async def save_risk_assessment_breakdown(
    project_id: UUID,
    assessment_id: UUID,
    body: SleBreakdown,
    service: RiskAssessmentService = Depends(get_risk_assessment_service),
) -> RiskAssessment:
    """Step 2: the five SLE components, which must add up to the stored SLE."""
    row = await service.save_breakdown(project_id, assessment_id, body)
    return RiskAssessment.model_validate(row)


@router.delete("/{project_id}/risk-assessments/{assessment_id}", status_code=204)
async def delete_risk_assessment(
    project_id: UUID,
    assessment_id: UUID,
    service: RiskAssessmentService = Depends(get_risk_assessment_service),
) -> None:
    await service.delete(project_id, assessment_id)
