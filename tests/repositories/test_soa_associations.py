"""Tests for boundary-control associations: uniqueness, references, drag and drop."""

import pytest

from isms.models.common import new_uuid7
from isms.repositories.base import constraint_guard
from isms.repositories.soa import BoundaryControlRepository, ControlRepository
from isms.workflow.errors import (
    DuplicateAssociationError,
    InvalidReferenceError,
    NotFoundOrForbidden,
)
from isms.workflow.soa import BoundaryControlService


class TestCreate:
    @pytest.mark.anyio
    async def test_create_returns_joined_details(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        bc = await service.create(project.id, boundary.id, control.id, user_id=user_id,
                                  reason_inclusion="Handles payroll data")
        assert bc.control.reference == "A.5.1"
        assert bc.boundary.name == "Finance"
        assert bc.is_applicable is True

    @pytest.mark.anyio
    async def test_second_association_of_same_pair_is_rejected(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        await service.create(project.id, boundary.id, control.id, user_id=user_id)

        with pytest.raises(DuplicateAssociationError) as exc_info:
            await service.create(project.id, boundary.id, control.id, user_id=user_id)

        assert exc_info.value.message == "This control is already associated with this boundary"
        assert len(await service.list_for_boundary(project.id, boundary.id)) == 1

    @pytest.mark.anyio
    async def test_unique_constraint_backs_up_the_check(
        self, db_session, boundary, control, user_id,
    ) -> None:
        """A racing insert that slips past the pre-check still fails cleanly."""
        repo = BoundaryControlRepository(db_session)
        await repo.create(boundary_control_id=new_uuid7(), boundary_id=boundary.id,
                          control_id=control.id, user_id=user_id)

        with pytest.raises(DuplicateAssociationError):
            async with constraint_guard(db_session):
                await repo.create(boundary_control_id=new_uuid7(), boundary_id=boundary.id,
                                  control_id=control.id, user_id=user_id)

        assert len(await repo.list_for_boundary(boundary.id)) == 1

    @pytest.mark.anyio
    async def test_unknown_control_is_an_invalid_reference(
        self, db_session, project, boundary, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        with pytest.raises(InvalidReferenceError) as exc_info:
            await service.create(project.id, boundary.id, new_uuid7(), user_id=user_id)
        assert exc_info.value.message == (
            "The boundary or control ID is invalid or does not exist"
        )

    @pytest.mark.anyio
    async def test_same_control_on_two_boundaries_is_fine(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        from isms.workflow.boundaries import BoundaryService

        other = await BoundaryService(db_session).create(
            project.id, user_id=user_id, name="Payroll System", type="System",
        )
        service = BoundaryControlService(db_session)
        await service.create(project.id, boundary.id, control.id, user_id=user_id)
        await service.create(project.id, other.id, control.id, user_id=user_id)
        assert len(await service.list_for_project(project.id)) == 2


class TestDragAndDrop:
    @pytest.mark.anyio
    async def test_drop_refused_when_boundary_holds_control(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        first = await service.drop(project.id, boundary.id, control.id, user_id=user_id)
        second = await service.drop(project.id, boundary.id, control.id, user_id=user_id)
        assert first is not None
        assert second is None

    @pytest.mark.anyio
    async def test_unassociated_controls_exclude_held_ones(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        other = await ControlRepository(db_session).create(
            control_id=new_uuid7(), reference="A.8.13", description="Information backup",
            domain="Technological controls",
        )
        service = BoundaryControlService(db_session)
        await service.create(project.id, boundary.id, control.id, user_id=user_id)

        available = await service.unassociated_controls(project.id, boundary.id)
        assert [c.id for c in available] == [other.id]

    @pytest.mark.anyio
    async def test_bulk_assign_skips_held_controls(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        other = await ControlRepository(db_session).create(
            control_id=new_uuid7(), reference="A.8.13", description="Information backup",
        )
        service = BoundaryControlService(db_session)
        await service.create(project.id, boundary.id, control.id, user_id=user_id)

        created = await service.bulk_assign(project.id, boundary.id, [control.id, other.id],
                                            user_id=user_id)
        assert [bc.control_id for bc in created] == [other.id]


class TestUpdateDelete:
    @pytest.mark.anyio
    async def test_identity_fields_cannot_be_changed(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        bc = await service.create(project.id, boundary.id, control.id, user_id=user_id)
        updated = await service.update(
            project.id, bc.id,
            {"control_id": new_uuid7(), "is_applicable": False,
             "reason_exclusion": "Outsourced"},
            user_id=user_id,
        )
        assert updated.control_id == control.id
        assert updated.is_applicable is False
        assert updated.reason_exclusion == "Outsourced"

    @pytest.mark.anyio
    async def test_only_owner_can_update(
        self, db_session, project, boundary, control, user_id, other_user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        bc = await service.create(project.id, boundary.id, control.id, user_id=user_id)
        with pytest.raises(NotFoundOrForbidden):
            await service.update(project.id, bc.id, {"status": "Planned"},
                                 user_id=other_user_id)

    @pytest.mark.anyio
    async def test_delete_frees_the_pair(
        self, db_session, project, boundary, control, user_id,
    ) -> None:
        service = BoundaryControlService(db_session)
        bc = await service.create(project.id, boundary.id, control.id, user_id=user_id)
        await service.delete(project.id, bc.id, user_id=user_id)
        again = await service.create(project.id, boundary.id, control.id, user_id=user_id)
        assert again.id != bc.id
