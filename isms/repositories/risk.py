"""Threat scenario and risk assessment repositories."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import BoundaryRow, RiskAssessmentRow, ThreatScenarioRow
from isms.models.common import utc_now
from isms.models.risk import RiskAssessment, RiskAssessmentWithThreat, ThreatRef
from isms.repositories.base import apply_changes


class ThreatScenarioRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, scenario_id: UUID, project_id: UUID, name: str,
                     description: str | None = None,
                     threat_actor_type: str | None = None,
                     gap_id: UUID | None = None,
                     sle: float | None = None, aro: float | None = None,
                     mitre_techniques: list[str] | None = None,
                     relevant_iso_domains: list[str] | None = None) -> ThreatScenarioRow:
        now = utc_now()
        row = ThreatScenarioRow(
            id=scenario_id, project_id=project_id, name=name,
            description=description, threat_actor_type=threat_actor_type,
            gap_id=gap_id, sle=sle, aro=aro,
            mitre_techniques=mitre_techniques or [],
            relevant_iso_domains=relevant_iso_domains or [],
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_in_project(self, project_id: UUID, scenario_id: UUID) -> ThreatScenarioRow | None:
        result = await self._session.execute(
            select(ThreatScenarioRow).where(
                ThreatScenarioRow.id == scenario_id,
                ThreatScenarioRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[ThreatScenarioRow]:
        result = await self._session.execute(
            select(ThreatScenarioRow)
            .where(ThreatScenarioRow.project_id == project_id)
            .order_by(ThreatScenarioRow.name)
        )
        return list(result.scalars().all())

    async def update(self, row: ThreatScenarioRow, **changes) -> ThreatScenarioRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: ThreatScenarioRow) -> None:
        await self._session.delete(row)
        await self._session.flush()


class RiskAssessmentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, assessment_id: UUID, project_id: UUID,
                     boundary_id: UUID, threat_scenario_id: UUID,
                     assessor_id: UUID | None = None,
                     assessment_date: datetime | None = None,
                     gap_id: UUID | None = None, control_id: UUID | None = None,
                     severity: str | None = None,
                     sle: float | None = None, aro: float | None = None,
                     assessment_notes: str | None = None,
                     **breakdown: float | None) -> RiskAssessmentRow:
        now = utc_now()
        row = RiskAssessmentRow(
            id=assessment_id, project_id=project_id, boundary_id=boundary_id,
            threat_scenario_id=threat_scenario_id, assessor_id=assessor_id,
            assessment_date=assessment_date or now,
            gap_id=gap_id, control_id=control_id, severity=severity,
            sle=sle, aro=aro, assessment_notes=assessment_notes,
            created_at=now, updated_at=now,
            **breakdown,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_in_project(self, project_id: UUID,
                             assessment_id: UUID) -> RiskAssessmentRow | None:
        result = await self._session.execute(
            select(RiskAssessmentRow).where(
                RiskAssessmentRow.id == assessment_id,
                RiskAssessmentRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[RiskAssessmentRow]:
        result = await self._session.execute(
            select(RiskAssessmentRow)
            .where(RiskAssessmentRow.project_id == project_id)
            .order_by(RiskAssessmentRow.created_at)
        )
        return list(result.scalars().all())

    async def list_with_threat(self, project_id: UUID) -> list[RiskAssessmentWithThreat]:
        """Assessments joined with their threat scenario and boundary name."""
        result = await self._session.execute(
            select(RiskAssessmentRow, ThreatScenarioRow, BoundaryRow.name)
            .outerjoin(ThreatScenarioRow,
                       ThreatScenarioRow.id == RiskAssessmentRow.threat_scenario_id)
            .outerjoin(BoundaryRow, BoundaryRow.id == RiskAssessmentRow.boundary_id)
            .where(RiskAssessmentRow.project_id == project_id)
        )
        items = []
        for assessment, threat, boundary_name in result.all():
            base = RiskAssessment.model_validate(assessment)
            items.append(RiskAssessmentWithThreat(
                **base.model_dump(exclude={"ale"}),
                threat_scenario=ThreatRef.model_validate(threat) if threat is not None else None,
                boundary_name=boundary_name,
            ))
        return items

    async def update(self, row: RiskAssessmentRow, **changes) -> RiskAssessmentRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: RiskAssessmentRow) -> None:
        await self._session.delete(row)
        await self._session.flush()
