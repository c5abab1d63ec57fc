"""Cyber risk quantification (CRQ) summary.

Only scenarios with both SLE and ARO take part. Each row is banded by its
ALE (see ``isms.workflow.ale``); rows are listed highest ALE first.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.models.register import CrqRow, CrqSummary
from isms.models.risk import ThreatScenario
from isms.repositories.risk import ThreatScenarioRepository
from isms.workflow.ale import BAND_BADGES, AleBand, ale, ale_band


def crq_summary(scenarios: Iterable[ThreatScenario]) -> CrqSummary:
    rows = []
    for scenario in scenarios:
        value = ale(scenario.sle, scenario.aro)
        if value is None:
            continue
        band = ale_band(value)
        rows.append(CrqRow(
            threat_scenario_id=scenario.id,
            name=scenario.name,
            sle=scenario.sle,
            aro=scenario.aro,
            ale=value,
            band=band.value,
            badge=BAND_BADGES[band],
            mitre_techniques=scenario.mitre_techniques,
        ))
    rows.sort(key=lambda r: r.ale, reverse=True)

    counts = {band.value: 0 for band in AleBand}
    for row in rows:
        counts[row.band] += 1
    return CrqSummary(
        rows=rows,
        total_ale=sum(r.ale for r in rows),
        band_counts=counts,
    )


async def project_crq_summary(session: AsyncSession, project_id: UUID) -> CrqSummary:
    rows = await ThreatScenarioRepository(session).list_for_project(project_id)
    return crq_summary(ThreatScenario.model_validate(r) for r in rows)
