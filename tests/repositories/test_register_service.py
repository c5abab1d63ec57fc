"""Tests for the risk register against stored scenarios, gaps and evidence."""

import pytest

from isms.models.common import new_uuid7
from isms.repositories.evidence_gaps import EvidenceRepository, GapRepository
from isms.repositories.soa import BoundaryControlRepository
from isms.workflow.errors import NotFoundOrForbidden
from isms.workflow.risk import RiskAssessmentService, ThreatScenarioService
from isms.workflow.risk_register import RiskRegisterService


@pytest.fixture
async def boundary_control(db_session, boundary, control, user_id):
    return await BoundaryControlRepository(db_session).create(
        boundary_control_id=new_uuid7(), boundary_id=boundary.id,
        control_id=control.id, user_id=user_id,
    )


async def _gap(db_session, project, control, user_id, boundary_control_id=None):
    return await GapRepository(db_session).create(
        gap_id=new_uuid7(), project_id=project.id, control_id=control.id,
        title="Backups untested", description="No restore test in 12 months",
        severity="High", identified_by=user_id,
        boundary_control_id=boundary_control_id,
    )


async def _evidence(db_session, project, control, user_id, boundary_control_id=None):
    return await EvidenceRepository(db_session).create(
        evidence_id=new_uuid7(), project_id=project.id, control_id=control.id,
        title="Restore test report", uploaded_by=user_id,
        boundary_control_id=boundary_control_id,
    )


class TestRegister:
    @pytest.mark.anyio
    async def test_row_per_scenario_with_highest_values(
        self, db_session, project, boundary, control, boundary_control, user_id,
    ) -> None:
        gap = await _gap(db_session, project, control, user_id, boundary_control.id)
        scenario = await ThreatScenarioService(db_session).create(
            project.id, name="Ransomware", gap_id=gap.id,
        )
        assessments = RiskAssessmentService(db_session)
        for sle, aro, severity in [(20000.0, 0.5, "medium"), (50000.0, 0.1, "low")]:
            await assessments.create(
                project.id, boundary_id=boundary.id, threat_scenario_id=scenario.id,
                assessor_id=user_id, sle=sle, aro=aro, severity=severity,
            )
        await ThreatScenarioService(db_session).create(project.id, name="Insider fraud")

        items = await RiskRegisterService(db_session).register(project.id)

        by_name = {i.threat_name: i for i in items}
        ransomware = by_name["Ransomware"]
        assert (ransomware.sle, ransomware.aro, ransomware.ale) == (50000.0, 0.5, 25000.0)
        assert ransomware.highest_risk_value == 5
        assert ransomware.gap_count == 1
        assert ransomware.risk_assessment_count == 2
        insider = by_name["Insider fraud"]
        assert insider.ale is None
        assert insider.gap_count == 0

    @pytest.mark.anyio
    async def test_details_list_boundary_control_evidence(
        self, db_session, project, control, boundary_control, user_id,
    ) -> None:
        gap = await _gap(db_session, project, control, user_id, boundary_control.id)
        attached = await _evidence(db_session, project, control, user_id, boundary_control.id)
        await _evidence(db_session, project, control, user_id)
        scenario = await ThreatScenarioService(db_session).create(
            project.id, name="Ransomware", gap_id=gap.id,
        )

        item = await RiskRegisterService(db_session).item_with_details(project.id, scenario.id)

        assert [e.id for e in item.evidence] == [attached.id]
        assert item.evidence_count == 1
        assert item.gaps[0].title == "Backups untested"

    @pytest.mark.anyio
    async def test_gap_without_boundary_control_falls_back_to_control_evidence(
        self, db_session, project, control, boundary_control, user_id,
    ) -> None:
        gap = await _gap(db_session, project, control, user_id)
        loose = await _evidence(db_session, project, control, user_id)
        await _evidence(db_session, project, control, user_id, boundary_control.id)
        await ThreatScenarioService(db_session).create(
            project.id, name="Ransomware", gap_id=gap.id,
        )

        items = await RiskRegisterService(db_session).register_with_details(project.id)

        assert [e.id for e in items[0].evidence] == [loose.id]

    @pytest.mark.anyio
    async def test_unknown_scenario(self, db_session, project) -> None:
        with pytest.raises(NotFoundOrForbidden):
            await RiskRegisterService(db_session).item_with_details(project.id, new_uuid7())

    @pytest.mark.anyio
    async def test_techniques(self, db_session, project) -> None:
        service = ThreatScenarioService(db_session)
        await service.create(project.id, name="Phishing", mitre_techniques=["T1566"])
        await service.create(project.id, name="Account takeover",
                             mitre_techniques=["T1078", "T1566"])

        usage = await RiskRegisterService(db_session).techniques(project.id)

        assert [u.technique_id for u in usage] == ["T1078", "T1566"]
        assert sorted(usage[1].scenario_names) == ["Account takeover", "Phishing"]
