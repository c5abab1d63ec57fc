"""Risk register aggregation.

One reporting row per threat scenario, joining its (0 or 1) linked gap,
every risk assessment that references it and the evidence reachable
through the gap.

Per scenario:
- ``sle`` / ``aro``: highest across its assessments (a missing value
  counts as 0); None when there are no assessments
- ``ale``: ``sle * aro``
- ``highest_risk_value``: 8 if any assessment is high, 5 if any medium,
  2 if any low, else None (ordinal buckets, not a score)
- ``gap_count``: 1 with a linked gap, else 0
- evidence: attached to the gap's boundary control first; if there is
  none and the gap has no boundary control, evidence matched on the gap's
  control that is not attached to any boundary control
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.models.common import RiskSeverity
from isms.models.register import (
    RegisterAssessment,
    RegisterEvidence,
    RegisterGap,
    RegisterGapSummary,
    RegisterThreat,
    RiskRegisterItem,
    RiskRegisterItemWithDetails,
    TechniqueUsage,
)
from isms.repositories.register import RiskRegisterRepository
from isms.workflow.ale import ale, aro_frequency_text
from isms.workflow.errors import NotFoundOrForbidden

RISK_VALUES: dict[RiskSeverity, int] = {
    RiskSeverity.HIGH: 8,
    RiskSeverity.MEDIUM: 5,
    RiskSeverity.LOW: 2,
}


def highest(values: Sequence[float | None]) -> float | None:
    if not values:
        return None
    return max(v or 0.0 for v in values)


def highest_risk_value(severities: Iterable[str | None]) -> int | None:
    present = {str(s) for s in severities if s}
    for severity in (RiskSeverity.HIGH, RiskSeverity.MEDIUM, RiskSeverity.LOW):
        if severity.value in present:
            return RISK_VALUES[severity]
    return None


def resolve_evidence(
    gap: RegisterGap | None,
    by_boundary_control: Mapping[UUID, list[RegisterEvidence]],
    unattached_by_control: Mapping[UUID, list[RegisterEvidence]],
) -> list[RegisterEvidence]:
    if gap is None:
        return []
    found: list[RegisterEvidence] = []
    if gap.boundary_control_id is not None:
        found = list(by_boundary_control.get(gap.boundary_control_id, []))
    if not found and gap.boundary_control_id is None and gap.control_id is not None:
        found = [
            e for e in unattached_by_control.get(gap.control_id, [])
            if e.boundary_control_id is None
        ]
    return found


def build_item(threat: RegisterThreat, gap: RegisterGap | None,
               assessments: Sequence[RegisterAssessment]) -> RiskRegisterItem:
    sle = highest([a.sle for a in assessments])
    aro = highest([a.aro for a in assessments])
    return RiskRegisterItem(
        threat_scenario_id=threat.id,
        threat_name=threat.name,
        threat_description=threat.description,
        project_id=threat.project_id,
        threat_actor_type=threat.threat_actor_type,
        sle=sle,
        aro=aro,
        ale=ale(sle, aro),
        aro_frequency_text=aro_frequency_text(aro),
        gap_count=1 if gap is not None else 0,
        risk_assessment_count=len(assessments),
        highest_risk_value=highest_risk_value(a.severity for a in assessments),
    )


def build_item_with_details(
    threat: RegisterThreat,
    gap: RegisterGap | None,
    assessments: Sequence[RegisterAssessment],
    evidence: Sequence[RegisterEvidence],
) -> RiskRegisterItemWithDetails:
    item = build_item(threat, gap, assessments)
    return RiskRegisterItemWithDetails(
        **item.model_dump(),
        gaps=[RegisterGapSummary.model_validate(gap)] if gap is not None else [],
        risk_assessments=list(assessments),
        evidence=list(evidence),
        evidence_count=len(evidence),
    )


def technique_map(threats: Iterable[RegisterThreat]) -> list[TechniqueUsage]:
    """MITRE ATT&CK technique id -> the scenarios that cite it, by technique id."""
    usage: dict[str, TechniqueUsage] = {}
    for threat in threats:
        for technique in dict.fromkeys(threat.mitre_techniques):
            entry = usage.setdefault(technique, TechniqueUsage(technique_id=technique))
            entry.scenario_ids.append(threat.id)
            entry.scenario_names.append(threat.name)
    return [usage[t] for t in sorted(usage)]


class RiskRegisterService:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = RiskRegisterRepository(session)

    async def _load(self, threats: list[RegisterThreat]):
        gaps = {g.id: g for g in await self._repo.gaps(
            [t.gap_id for t in threats if t.gap_id is not None]
        )}
        by_threat: dict[UUID, list[RegisterAssessment]] = defaultdict(list)
        for assessment in await self._repo.assessments([t.id for t in threats]):
            by_threat[assessment.threat_scenario_id].append(assessment)
        return gaps, by_threat

    async def register(self, project_id: UUID) -> list[RiskRegisterItem]:
        threats = await self._repo.threats(project_id)
        gaps, by_threat = await self._load(threats)
        return [
            build_item(t, gaps.get(t.gap_id) if t.gap_id else None, by_threat[t.id])
            for t in threats
        ]

    async def register_with_details(self, project_id: UUID) -> list[RiskRegisterItemWithDetails]:
        threats = await self._repo.threats(project_id)
        return await self._with_details(project_id, threats)

    async def item_with_details(self, project_id: UUID,
                                scenario_id: UUID) -> RiskRegisterItemWithDetails:
        threat = await self._repo.threat(project_id, scenario_id)
        if threat is None:
            raise NotFoundOrForbidden("Threat scenario not found")
        return (await self._with_details(project_id, [threat]))[0]

    async def techniques(self, project_id: UUID) -> list[TechniqueUsage]:
        return technique_map(await self._repo.threats(project_id))

    async def _with_details(self, project_id: UUID,
                            threats: list[RegisterThreat]) -> list[RiskRegisterItemWithDetails]:
        gaps, by_threat = await self._load(threats)

        by_bc: dict[UUID, list[RegisterEvidence]] = defaultdict(list)
        for e in await self._repo.evidence_for_boundary_controls(
            [g.boundary_control_id for g in gaps.values() if g.boundary_control_id]
        ):
            by_bc[e.boundary_control_id].append(e)

        by_control: dict[UUID, list[RegisterEvidence]] = defaultdict(list)
        for e in await self._repo.unattached_evidence_for_controls(
            project_id,
            [g.control_id for g in gaps.values()
             if g.boundary_control_id is None and g.control_id],
        ):
            by_control[e.control_id].append(e)

        items = []
        for threat in threats:
            gap = gaps.get(threat.gap_id) if threat.gap_id else None
            evidence = resolve_evidence(gap, by_bc, by_control)
            items.append(build_item_with_details(threat, gap, by_threat[threat.id], evidence))
        return items
