"""Tests for the risk assessment service's two-step save and the breakdown CHECK."""

import logging

import pytest

from isms.models.risk import RiskAssessmentCore, SleBreakdown
from isms.workflow.errors import InvalidReferenceError, NotFoundOrForbidden, ValidationFailed
from isms.workflow.risk import RiskAssessmentService, ThreatScenarioService
from isms.workflow.risk_edit import Viewing

FULL_BREAKDOWN = SleBreakdown(
    sle_direct_operational_costs=4500,
    sle_technical_remediation_costs=2500,
    sle_data_related_costs=1200,
    sle_compliance_legal_costs=800,
    sle_reputational_management_costs=1000,
)


@pytest.fixture
async def scenario(db_session, project):
    return await ThreatScenarioService(db_session).create(
        project.id, name="Ransomware on finance file share",
        mitre_techniques=["T1486"],
    )


@pytest.fixture
async def assessment(db_session, project, boundary, scenario, user_id):
    return await RiskAssessmentService(db_session).create(
        project.id, boundary_id=boundary.id, threat_scenario_id=scenario.id,
        assessor_id=user_id, sle=10000.0, aro=0.5, severity="high",
    )


class TestCreate:
    @pytest.mark.anyio
    async def test_create_without_breakdown(self, assessment) -> None:
        assert assessment.sle == 10000.0
        assert assessment.sle_direct_operational_costs is None

    @pytest.mark.anyio
    async def test_create_rejects_mismatched_breakdown(
        self, db_session, project, boundary, scenario, user_id,
    ) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            await RiskAssessmentService(db_session).create(
                project.id, boundary_id=boundary.id, threat_scenario_id=scenario.id,
                assessor_id=user_id, sle=20000.0, aro=1.0, breakdown=FULL_BREAKDOWN,
            )
        assert exc_info.value.message == (
            "SLE breakdown total (10000.00) must equal SLE (20000.00)"
        )

    @pytest.mark.anyio
    async def test_create_rejects_foreign_boundary(
        self, db_session, project, scenario, user_id,
    ) -> None:
        from isms.models.common import new_uuid7

        with pytest.raises(InvalidReferenceError):
            await RiskAssessmentService(db_session).create(
                project.id, boundary_id=new_uuid7(), threat_scenario_id=scenario.id,
                assessor_id=user_id, sle=1.0, aro=1.0,
            )


class TestTwoStepSave:
    @pytest.mark.anyio
    async def test_core_then_breakdown(self, db_session, project, assessment, caplog) -> None:
        caplog.set_level(logging.INFO, logger="isms.workflow.risk")
        service = RiskAssessmentService(db_session)
        await service.save_core(project.id, assessment.id, RiskAssessmentCore(
            severity="medium", sle=10000.0, aro=2.0, assessment_notes="Quick estimate",
        ))
        row = await service.save_breakdown(project.id, assessment.id, FULL_BREAKDOWN)
        assert row.aro == 2.0
        assert row.severity == "medium"
        assert row.sle_direct_operational_costs == 4500.0
        messages = [r.getMessage() for r in caplog.records]
        assert f"Saved core values of risk assessment {assessment.id}" in messages
        assert f"Saved SLE breakdown of risk assessment {assessment.id}" in messages

    @pytest.mark.anyio
    async def test_breakdown_checked_against_stored_sle(
        self, db_session, project, assessment,
    ) -> None:
        short = FULL_BREAKDOWN.model_copy(update={"sle_direct_operational_costs": 4100.0})
        with pytest.raises(ValidationFailed) as exc_info:
            await RiskAssessmentService(db_session).save_breakdown(
                project.id, assessment.id, short,
            )
        assert exc_info.value.errors["sle_breakdown_remaining"] == "Remaining: $400.00"

    @pytest.mark.anyio
    async def test_core_change_conflicting_with_stored_breakdown_is_rejected(
        self, db_session, project, assessment,
    ) -> None:
        project_id, assessment_id = project.id, assessment.id
        service = RiskAssessmentService(db_session)
        await service.save_breakdown(project_id, assessment_id, FULL_BREAKDOWN)

        with pytest.raises(ValidationFailed) as exc_info:
            await service.save_core(project_id, assessment_id,
                                    RiskAssessmentCore(sle=5000.0, aro=0.5))
        assert exc_info.value.message == "SLE breakdown values must add up to the total SLE amount."

        row = await service.get(project_id, assessment_id)
        assert row.sle == 10000.0

    @pytest.mark.anyio
    async def test_zero_breakdown_is_not_checked(self, db_session, project, assessment) -> None:
        zeros = SleBreakdown(**{f: 0.0 for f in SleBreakdown.model_fields})
        row = await RiskAssessmentService(db_session).save_breakdown(
            project.id, assessment.id, zeros,
        )
        assert row.sle_data_related_costs == 0.0

    @pytest.mark.anyio
    async def test_unknown_assessment(self, db_session, project) -> None:
        from isms.models.common import new_uuid7

        with pytest.raises(NotFoundOrForbidden):
            await RiskAssessmentService(db_session).save_core(
                project.id, new_uuid7(), RiskAssessmentCore(sle=1.0, aro=1.0),
            )


class TestEditSession:
    @pytest.mark.anyio
    async def test_edit_session_persists_both_steps(
        self, db_session, project, assessment,
    ) -> None:
        service = RiskAssessmentService(db_session)
        edit = await service.edit_session(project.id, assessment.id)
        edit.edit()
        edit.set_field("aro", "4")
        await edit.save_core()
        for field, value in FULL_BREAKDOWN.model_dump().items():
            edit.set_field(field, value)
        assert isinstance(await edit.save_breakdown(), Viewing)

        row = await service.get(project.id, assessment.id)
        assert row.aro == 4.0
        assert row.sle_reputational_management_costs == 1000.0
        assert edit.ale == 40000.0

    @pytest.mark.anyio
    async def test_blanked_sle_and_aro_are_not_saved(
        self, db_session, project, assessment,
    ) -> None:
        service = RiskAssessmentService(db_session)
        edit = await service.edit_session(project.id, assessment.id)
        edit.edit()
        edit.set_field("sle", "")
        edit.set_field("aro", "")

        with pytest.raises(ValidationFailed) as exc_info:
            await edit.save_core()
        assert exc_info.value.errors == {"sle": "Required", "aro": "Required"}

        row = await service.get(project.id, assessment.id)
        assert row.sle == 10000.0
        assert row.aro == 0.5
        assert edit.ale == 5000.0


class TestListEditable:
    @pytest.mark.anyio
    async def test_sorted_by_ale_with_threat(
        self, db_session, project, boundary, scenario, assessment, user_id,
    ) -> None:
        service = RiskAssessmentService(db_session)
        await service.create(
            project.id, boundary_id=boundary.id, threat_scenario_id=scenario.id,
            assessor_id=user_id, sle=100000.0, aro=1.0,
        )
        rows = await service.list_editable(project.id)
        assert [r.ale for r in rows] == [100000.0, 5000.0]
        assert rows[0].threat_scenario.name == "Ransomware on finance file share"
        assert rows[0].boundary_name == "Finance"
