"""Read-only loaders feeding the risk register aggregation.

Each loader returns the explicit join DTOs from ``isms.models.register``.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import (
    BoundaryRow,
    EvidenceRow,
    GapRow,
    RiskAssessmentRow,
    ThreatScenarioRow,
)
from isms.models.register import (
    RegisterAssessment,
    RegisterEvidence,
    RegisterGap,
    RegisterThreat,
)


class RiskRegisterRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def threats(self, project_id: UUID) -> list[RegisterThreat]:
        result = await self._session.execute(
            select(ThreatScenarioRow)
            .where(ThreatScenarioRow.project_id == project_id)
            .order_by(ThreatScenarioRow.name)
        )
        return [RegisterThreat.model_validate(r) for r in result.scalars().all()]

    async def threat(self, project_id: UUID, scenario_id: UUID) -> RegisterThreat | None:
        result = await self._session.execute(
            select(ThreatScenarioRow).where(
                ThreatScenarioRow.id == scenario_id,
                ThreatScenarioRow.project_id == project_id,
            )
        )
        row = result.scalar_one_or_none()
        return RegisterThreat.model_validate(row) if row is not None else None

    async def gaps(self, gap_ids: list[UUID]) -> list[RegisterGap]:
        if not gap_ids:
            return []
        result = await self._session.execute(select(GapRow).where(GapRow.id.in_(gap_ids)))
        return [RegisterGap.model_validate(r) for r in result.scalars().all()]

    async def assessments(self, scenario_ids: list[UUID]) -> list[RegisterAssessment]:
        if not scenario_ids:
            return []
        result = await self._session.execute(
            select(RiskAssessmentRow, BoundaryRow.name)
            .outerjoin(BoundaryRow, BoundaryRow.id == RiskAssessmentRow.boundary_id)
            .where(RiskAssessmentRow.threat_scenario_id.in_(scenario_ids))
            .order_by(RiskAssessmentRow.created_at)
        )
        items = []
        for row, boundary_name in result.all():
            item = RegisterAssessment.model_validate(row)
            if boundary_name is not None:
                item.boundary_name = boundary_name
            items.append(item)
        return items

    async def evidence_for_boundary_controls(
        self, boundary_control_ids: list[UUID],
    ) -> list[RegisterEvidence]:
        if not boundary_control_ids:
            return []
        result = await self._session.execute(
            select(EvidenceRow).where(
                EvidenceRow.boundary_control_id.in_(boundary_control_ids)
            )
        )
        return [RegisterEvidence.model_validate(r) for r in result.scalars().all()]

    async def unattached_evidence_for_controls(
        self, project_id: UUID, control_ids: list[UUID],
    ) -> list[RegisterEvidence]:
        """Evidence matched by control alone (no boundary control set)."""
        if not control_ids:
            return []
        result = await self._session.execute(
            select(EvidenceRow).where(
                EvidenceRow.project_id == project_id,
                EvidenceRow.control_id.in_(control_ids),
                EvidenceRow.boundary_control_id.is_(None),
            )
        )
        return [RegisterEvidence.model_validate(r) for r in result.scalars().all()]
