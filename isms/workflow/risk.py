"""Threat scenario and risk assessment services.

Risk assessments are saved in two steps (see ``isms.workflow.risk_edit``):
``save_core`` writes severity / sle / aro / notes and ``save_breakdown``
writes the five SLE components, validated against the stored SLE. Both
apply the same validators as the edit state machine; the database CHECK
``sle_breakdown_matches_total`` is the last line and is translated into the
same message.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import RiskAssessmentRow, ThreatScenarioRow
from isms.models.common import new_uuid7
from isms.models.risk import (
    RiskAssessment,
    RiskAssessmentCore,
    RiskAssessmentWithThreat,
    SleBreakdown,
)
from isms.repositories.base import constraint_guard
from isms.repositories.boundaries import BoundaryRepository
from isms.repositories.evidence_gaps import GapRepository
from isms.repositories.risk import RiskAssessmentRepository, ThreatScenarioRepository
from isms.workflow.ale import ale_sort_key
from isms.workflow.errors import InvalidReferenceError, NotFoundOrForbidden, ValidationFailed
from isms.workflow.risk_edit import RiskEditSession
from isms.workflow.sle_breakdown import BREAKDOWN_FIELDS, validate_breakdown, validate_core

logger = logging.getLogger(__name__)

_SCENARIO_IMMUTABLE = frozenset({"id", "project_id", "created_at"})


class ThreatScenarioService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = ThreatScenarioRepository(session)
        self._gaps = GapRepository(session)

    async def list_for_project(self, project_id: UUID) -> list[ThreatScenarioRow]:
        return await self._repo.list_for_project(project_id)

    async def get(self, project_id: UUID, scenario_id: UUID) -> ThreatScenarioRow:
        row = await self._repo.get_in_project(project_id, scenario_id)
        if row is None:
            raise NotFoundOrForbidden("Threat scenario not found")
        return row

    async def create(self, project_id: UUID, *, name: str,
                     gap_id: UUID | None = None, **fields: Any) -> ThreatScenarioRow:
        await self._check_gap(project_id, gap_id)
        async with constraint_guard(self._session):
            row = await self._repo.create(
                scenario_id=new_uuid7(), project_id=project_id,
                name=name, gap_id=gap_id, **fields,
            )
        logger.info("Created threat scenario %s in project %s", row.id, project_id)
        return row

    async def update(self, project_id: UUID, scenario_id: UUID,
                     changes: Mapping[str, Any]) -> ThreatScenarioRow:
        row = await self.get(project_id, scenario_id)
        updates = {k: v for k, v in changes.items() if k not in _SCENARIO_IMMUTABLE}
        if "gap_id" in updates:
            await self._check_gap(project_id, updates["gap_id"])
        async with constraint_guard(self._session):
            await self._repo.update(row, **updates)
        return row

    async def delete(self, project_id: UUID, scenario_id: UUID) -> None:
        row = await self.get(project_id, scenario_id)
        await self._repo.delete(row)
        logger.info("Deleted threat scenario %s", scenario_id)

    async def _check_gap(self, project_id: UUID, gap_id: UUID | None) -> None:
        if gap_id is not None and await self._gaps.get_in_project(project_id, gap_id) is None:
            raise InvalidReferenceError("The linked gap does not exist in this project")


class RiskAssessmentService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = RiskAssessmentRepository(session)
        self._scenarios = ThreatScenarioRepository(session)
        self._boundaries = BoundaryRepository(session)

    async def list_editable(self, project_id: UUID) -> list[RiskAssessmentWithThreat]:
        """Assessments with their threat, highest ALE first (missing ALE last)."""
        items = await self._repo.list_with_threat(project_id)
        return sorted(items, key=lambda a: ale_sort_key(a.ale), reverse=True)

    async def get(self, project_id: UUID, assessment_id: UUID) -> RiskAssessmentRow:
        row = await self._repo.get_in_project(project_id, assessment_id)
        if row is None:
            raise NotFoundOrForbidden(
                "Risk assessment not found or you do not have permission to update it"
            )
        return row

    async def create(self, project_id: UUID, *, boundary_id: UUID,
                     threat_scenario_id: UUID, assessor_id: UUID,
                     sle: float, aro: float, severity: str | None = None,
                     assessment_notes: str | None = None,
                     assessment_date: datetime | None = None,
                     gap_id: UUID | None = None, control_id: UUID | None = None,
                     breakdown: SleBreakdown | None = None) -> RiskAssessmentRow:
        if await self._boundaries.get_in_project(project_id, boundary_id) is None:
            raise InvalidReferenceError("The boundary does not exist in this project")
        if await self._scenarios.get_in_project(project_id, threat_scenario_id) is None:
            raise InvalidReferenceError("The threat scenario does not exist in this project")

        values: dict[str, Any] = {"severity": severity, "sle": sle, "aro": aro}
        components = breakdown.model_dump() if breakdown is not None else {}
        errors, _ = validate_core(values)
        errors.update(validate_breakdown(sle, components))
        if errors:
            raise ValidationFailed(errors, message=errors.get("sle_breakdown"))

        async with constraint_guard(self._session):
            row = await self._repo.create(
                assessment_id=new_uuid7(), project_id=project_id,
                boundary_id=boundary_id, threat_scenario_id=threat_scenario_id,
                assessor_id=assessor_id, assessment_date=assessment_date,
                gap_id=gap_id, control_id=control_id, severity=severity,
                sle=sle, aro=aro, assessment_notes=assessment_notes,
                **components,
            )
        logger.info("Created risk assessment %s for boundary %s", row.id, boundary_id)
        return row

    async def save_core(self, project_id: UUID, assessment_id: UUID,
                        core: RiskAssessmentCore) -> RiskAssessmentRow:
        """First step: persist severity, sle, aro and notes only."""
        row = await self.get(project_id, assessment_id)
        errors, _ = validate_core(core.model_dump())
        if errors:
            raise ValidationFailed(errors)
        async with constraint_guard(self._session):
            await self._repo.update(
                row,
                severity=core.severity, sle=core.sle, aro=core.aro,
                assessment_notes=core.assessment_notes,
            )
        logger.info("Saved core values of risk assessment %s", assessment_id)
        return row

    async def save_breakdown(self, project_id: UUID, assessment_id: UUID,
                             breakdown: SleBreakdown) -> RiskAssessmentRow:
        """Second step: persist the five components, checked against the stored SLE."""
        row = await self.get(project_id, assessment_id)
        components = breakdown.model_dump(include=set(BREAKDOWN_FIELDS))
        errors, _ = validate_core({"severity": row.severity, "sle": row.sle, "aro": row.aro})
        errors.update(validate_breakdown(row.sle, components))
        if errors:
            raise ValidationFailed(errors, message=errors.get("sle_breakdown"))
        async with constraint_guard(self._session):
            await self._repo.update(row, **components)
        logger.info("Saved SLE breakdown of risk assessment %s", assessment_id)
        return row

    async def delete(self, project_id: UUID, assessment_id: UUID) -> None:
        row = await self.get(project_id, assessment_id)
        await self._repo.delete(row)
        logger.info("Deleted risk assessment %s", assessment_id)

    async def edit_session(self, project_id: UUID, assessment_id: UUID) -> RiskEditSession:
        """Edit state machine bound to this service's two save steps."""
        row = await self.get(project_id, assessment_id)

        async def save_core(aid: UUID, core: RiskAssessmentCore) -> RiskAssessment:
            return RiskAssessment.model_validate(await self.save_core(project_id, aid, core))

        async def save_breakdown(aid: UUID, breakdown: SleBreakdown) -> RiskAssessment:
            return RiskAssessment.model_validate(
                await self.save_breakdown(project_id, aid, breakdown)
            )

        return RiskEditSession(
            RiskAssessment.model_validate(row),
            save_core=save_core,
            save_breakdown=save_breakdown,
        )
