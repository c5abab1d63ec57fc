"""FastAPI dependency injection factories.

Each service factory takes the request's AsyncSession via
Depends(get_async_session); all of them share that one session (and so one
unit of work) per request.
"""

from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from isms.config.settings import Settings, get_settings
from isms.db.session import get_async_session
from isms.db.tables import ProjectRow
from isms.storage.evidence_store import EvidenceStore
from isms.workflow.boundaries import BoundaryService
from isms.workflow.evidence_gaps import EvidenceService, GapService
from isms.workflow.projects import ProjectService
from isms.workflow.records import ObjectiveService, QuestionnaireService, StakeholderService
from isms.workflow.risk import RiskAssessmentService, ThreatScenarioService
from isms.workflow.risk_register import RiskRegisterService
from isms.workflow.soa import BoundaryControlService

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> UUID:
    """Current user from the X-User-Id header set by the auth proxy."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="User not authenticated") from None


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


def get_evidence_store(request: Request) -> EvidenceStore:
    return request.app.state.evidence_store


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


async def get_project_service(
    session: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ProjectService:
    return ProjectService(session, policy=settings.PHASE_COMPLETION_POLICY)


async def require_project(
    project_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRow:
    """Resolve ``{project_id}`` to a project the current user owns (else 404)."""
    return await service.require_owned(project_id, user_id)


# ---------------------------------------------------------------------------
# Phase-scoped services
# ---------------------------------------------------------------------------


async def get_boundary_service(
    session: AsyncSession = Depends(get_async_session),
) -> BoundaryService:
    return BoundaryService(session)


async def get_boundary_control_service(
    session: AsyncSession = Depends(get_async_session),
) -> BoundaryControlService:
    return BoundaryControlService(session)


async def get_gap_service(
    session: AsyncSession = Depends(get_async_session),
) -> GapService:
    return GapService(session)


async def get_evidence_service(
    session: AsyncSession = Depends(get_async_session),
    store: EvidenceStore = Depends(get_evidence_store),
) -> EvidenceService:
    return EvidenceService(session, store)


async def get_stakeholder_service(
    session: AsyncSession = Depends(get_async_session),
) -> StakeholderService:
    return StakeholderService(session)


async def get_objective_service(
    session: AsyncSession = Depends(get_async_session),
) -> ObjectiveService:
    return ObjectiveService(session)


async def get_questionnaire_service(
    session: AsyncSession = Depends(get_async_session),
) -> QuestionnaireService:
    return QuestionnaireService(session)


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------


async def get_threat_scenario_service(
    session: AsyncSession = Depends(get_async_session),
) -> ThreatScenarioService:
    return ThreatScenarioService(session)


async def get_risk_assessment_service(
    session: AsyncSession = Depends(get_async_session),
) -> RiskAssessmentService:
    return RiskAssessmentService(session)


async def get_risk_register_service(
    session: AsyncSession = Depends(get_async_session),
) -> RiskRegisterService:
    return RiskRegisterService(session)
