"""Tests for the Phase-Completion Guard against a real (SQLite) session."""

import pytest

from isms.models.common import PhaseKey
from isms.repositories.projects import ProjectRepository
from isms.workflow.errors import DuplicateAssociationError, PhaseResetRequired
from isms.workflow.phase_guard import PhaseGuard
from isms.workflow.records import StakeholderService
from isms.workflow.soa import BoundaryControlService


async def _stamp(db_session, project_id, phase):
    stamps = await ProjectRepository(db_session).get_phase_timestamps(project_id, [phase])
    return stamps[phase]


class TestMarkAndUnmark:
    @pytest.mark.anyio
    async def test_mark_sets_timestamp(self, db_session, project) -> None:
        guard = PhaseGuard(db_session)
        await guard.mark_phase_complete(project.id, PhaseKey.SOA)
        assert await _stamp(db_session, project.id, PhaseKey.SOA) is not None
        assert await guard.completed_phases(project.id, list(PhaseKey)) == [PhaseKey.SOA]

    @pytest.mark.anyio
    async def test_unmark_clears_timestamp(self, db_session, project) -> None:
        guard = PhaseGuard(db_session)
        await guard.mark_phase_complete(project.id, PhaseKey.SOA)
        await guard.unmark_phase_complete(project.id, PhaseKey.SOA)
        assert await _stamp(db_session, project.id, PhaseKey.SOA) is None


class TestGuardedMutation:
    @pytest.mark.anyio
    async def test_unconfirmed_mutation_on_completed_phase_is_refused(
        self, db_session, project, user_id,
    ) -> None:
        await PhaseGuard(db_session).mark_phase_complete(project.id, PhaseKey.STAKEHOLDERS)
        service = StakeholderService(db_session)

        with pytest.raises(PhaseResetRequired) as exc_info:
            await service.create(project.id, user_id=user_id, name="CISO")

        assert exc_info.value.phases == [PhaseKey.STAKEHOLDERS]
        assert await service.list_for_project(project.id) == []
        assert await _stamp(db_session, project.id, PhaseKey.STAKEHOLDERS) is not None

    @pytest.mark.anyio
    async def test_confirmed_mutation_unmarks_phase(self, db_session, project, user_id) -> None:
        await PhaseGuard(db_session).mark_phase_complete(project.id, PhaseKey.STAKEHOLDERS)
        service = StakeholderService(db_session)

        await service.create(project.id, user_id=user_id, name="CISO", confirm_reset=True)

        assert len(await service.list_for_project(project.id)) == 1
        assert await _stamp(db_session, project.id, PhaseKey.STAKEHOLDERS) is None

    @pytest.mark.anyio
    async def test_incomplete_phase_needs_no_confirmation(
        self, db_session, project, user_id,
    ) -> None:
        service = StakeholderService(db_session)
        await service.create(project.id, user_id=user_id, name="CISO")
        assert await _stamp(db_session, project.id, PhaseKey.STAKEHOLDERS) is None

    @pytest.mark.anyio
    async def test_other_phases_are_untouched(self, db_session, project, user_id) -> None:
        guard = PhaseGuard(db_session)
        await guard.mark_phase_complete(project.id, PhaseKey.BOUNDARIES)
        await guard.mark_phase_complete(project.id, PhaseKey.SOA)

        await StakeholderService(db_session).create(project.id, user_id=user_id, name="DPO")

        assert await guard.completed_phases(project.id, list(PhaseKey)) == [
            PhaseKey.BOUNDARIES, PhaseKey.SOA,
        ]

    @pytest.mark.anyio
    async def test_failed_mutation_does_not_unmark(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        await PhaseGuard(db_session).mark_phase_complete(project.id, PhaseKey.SOA)
        service = BoundaryControlService(db_session)
        await service.create(project.id, boundary.id, control.id,
                             user_id=user_id, confirm_reset=True)
        await PhaseGuard(db_session).mark_phase_complete(project.id, PhaseKey.SOA)

        with pytest.raises(DuplicateAssociationError):
            await service.create(project.id, boundary.id, control.id,
                                 user_id=user_id, confirm_reset=True)

        assert await _stamp(db_session, project.id, PhaseKey.SOA) is not None

    @pytest.mark.anyio
    async def test_unmark_failure_keeps_mutation(
        self, db_session, project, user_id, monkeypatch,
    ) -> None:
        await PhaseGuard(db_session).mark_phase_complete(project.id, PhaseKey.STAKEHOLDERS)

        async def broken_unmark(self, project_id, phase):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(PhaseGuard, "unmark_phase_complete", broken_unmark)
        service = StakeholderService(db_session)

        await service.create(project.id, user_id=user_id, name="CISO", confirm_reset=True)

        assert len(await service.list_for_project(project.id)) == 1
        assert await _stamp(db_session, project.id, PhaseKey.STAKEHOLDERS) is not None

    @pytest.mark.anyio
    async def test_update_resolves_phase_from_payload(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        bc = await service.create(project.id, boundary.id, control.id, user_id=user_id)
        guard = PhaseGuard(db_session)
        await guard.mark_phase_complete(project.id, PhaseKey.SOA)
        await guard.mark_phase_complete(project.id, PhaseKey.EVIDENCE_GAPS)

        await service.update(project.id, bc.id, {"compliance_status": "Compliant"},
                             user_id=user_id, confirm_reset=True)

        assert await guard.completed_phases(project.id, [PhaseKey.SOA, PhaseKey.EVIDENCE_GAPS]) == [
            PhaseKey.SOA,
        ]


class TestBoundaryControlResetsSoa:
    @pytest.fixture
    async def association(self, db_session, project, boundary, control, user_id):
        return await BoundaryControlService(db_session).create(
            project.id, boundary.id, control.id, user_id=user_id,
        )

    @pytest.fixture
    def phase_writes(self, monkeypatch) -> list:
        writes = []
        original = ProjectRepository.set_phase_timestamp

        async def recording(self, project_id, phase, value):
            writes.append((phase, value))
            return await original(self, project_id, phase, value)

        monkeypatch.setattr(ProjectRepository, "set_phase_timestamp", recording)
        return writes

    @pytest.mark.anyio
    async def test_applicability_update_unmarks_soa(
        self, db_session, project, association, user_id,
    ) -> None:
        project_id = project.id
        await PhaseGuard(db_session).mark_phase_complete(project_id, PhaseKey.SOA)

        await BoundaryControlService(db_session).update(
            project_id, association.id, {"is_applicable": False},
            user_id=user_id, confirm_reset=True,
        )

        assert await _stamp(db_session, project_id, PhaseKey.SOA) is None

    @pytest.mark.anyio
    async def test_delete_unmarks_soa(self, db_session, project, association, user_id) -> None:
        project_id = project.id
        await PhaseGuard(db_session).mark_phase_complete(project_id, PhaseKey.SOA)

        await BoundaryControlService(db_session).delete(
            project_id, association.id, user_id=user_id, confirm_reset=True,
        )

        assert await _stamp(db_session, project_id, PhaseKey.SOA) is None

    @pytest.mark.anyio
    async def test_unconfirmed_delete_is_refused(
        self, db_session, project, association, user_id,
    ) -> None:
        project_id = project.id
        await PhaseGuard(db_session).mark_phase_complete(project_id, PhaseKey.SOA)
        service = BoundaryControlService(db_session)

        with pytest.raises(PhaseResetRequired):
            await service.delete(project_id, association.id, user_id=user_id)

        assert len(await service.list_for_project(project_id)) == 1
        assert await _stamp(db_session, project_id, PhaseKey.SOA) is not None

    @pytest.mark.anyio
    async def test_update_of_incomplete_soa_writes_no_timestamp(
        self, db_session, project, association, user_id, phase_writes,
    ) -> None:
        project_id = project.id
        await BoundaryControlService(db_session).update(
            project_id, association.id, {"is_applicable": False}, user_id=user_id,
        )

        assert phase_writes == []
        assert await _stamp(db_session, project_id, PhaseKey.SOA) is None

    @pytest.mark.anyio
    async def test_delete_of_incomplete_soa_writes_no_timestamp(
        self, db_session, project, association, user_id, phase_writes,
    ) -> None:
        project_id = project.id
        await BoundaryControlService(db_session).delete(
            project_id, association.id, user_id=user_id,
        )

        assert phase_writes == []
        assert await _stamp(db_session, project_id, PhaseKey.SOA) is None
