"""Boundary-control association workflow (Statement of Applicability).

Controls come from the global catalog; a boundary control records whether
one control applies to one boundary, why, and how compliant it is. Each
(boundary, control) pair is associated at most once: the service checks
first and the unique constraint backs it up.

Applicability edits belong to the SOA phase; compliance-assessment edits
belong to the Evidence & Gaps phase.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.models.common import PhaseKey, new_uuid7
from isms.models.soa import (
    APPLICABILITY_FIELDS,
    ASSESSMENT_FIELDS,
    IMMUTABLE_ASSOCIATION_FIELDS,
    BoundaryControl,
    BoundaryControlWithDetails,
    Control,
    ControlGroup,
)
from isms.repositories.base import constraint_guard
from isms.repositories.boundaries import BoundaryRepository
from isms.repositories.soa import BoundaryControlRepository, ControlRepository
from isms.workflow.errors import (
    DuplicateAssociationError,
    InvalidReferenceError,
    NotFoundOrForbidden,
)
from isms.workflow.phase_guard import PhaseGuard, unmarks_phase

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

BOUNDARY_CONTROL_NOT_FOUND = (
    "Boundary control not found or you do not have permission to update it"
)


# ---------------------------------------------------------------------------
# Controls panel: filtering, grouping, drag and drop
# ---------------------------------------------------------------------------


def filter_controls(controls: Iterable[Control], search: str | None = None,
                    domain: str | None = None) -> list[Control]:
    """Case-insensitive substring search plus exact domain match."""
    needle = (search or "").strip().lower()
    matched = []
    for control in controls:
        if domain and control.domain != domain:
            continue
        if needle and not any(
            needle in (text or "").lower()
            for text in (control.reference, control.description, control.domain)
        ):
            continue
        matched.append(control)
    return matched


def group_controls(controls: Iterable[Control]) -> list[ControlGroup]:
    """Group by domain; domains ascending, controls by reference."""
    grouped: dict[str, list[Control]] = {}
    for control in controls:
        grouped.setdefault(control.domain or UNCATEGORIZED, []).append(control)
    return [
        ControlGroup(domain=name, controls=sorted(items, key=lambda c: c.reference))
        for name, items in sorted(grouped.items())
    ]


def list_domains(controls: Iterable[Control]) -> list[str]:
    return sorted({c.domain for c in controls if c.domain})


def can_drag(control_id: UUID, associated_control_ids: set[UUID]) -> bool:
    """A control is draggable only while not associated with the viewed boundary."""
    return control_id not in associated_control_ids


def can_drop(control_id: UUID, target_control_ids: set[UUID]) -> bool:
    """A drop target refuses a control it already holds."""
    return control_id not in target_control_ids


def touched_phases(changes: Mapping[str, Any]) -> list[PhaseKey]:
    """Phases a partial boundary-control update belongs to."""
    phases = []
    if APPLICABILITY_FIELDS & changes.keys():
        phases.append(PhaseKey.SOA)
    if ASSESSMENT_FIELDS & changes.keys():
        phases.append(PhaseKey.EVIDENCE_GAPS)
    return phases


def _update_phases(boundary_control_id: UUID, changes: Mapping[str, Any],
                   *args: Any, **kwargs: Any) -> list[PhaseKey]:
    return touched_phases(changes)


def strip_immutable(changes: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in changes.items() if k not in IMMUTABLE_ASSOCIATION_FIELDS}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BoundaryControlService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._guard = PhaseGuard(session)
        self._boundaries = BoundaryRepository(session)
        self._controls = ControlRepository(session)
        self._repo = BoundaryControlRepository(session)

    async def list_controls(self, search: str | None = None,
                            domain: str | None = None) -> list[ControlGroup]:
        controls = [Control.model_validate(r) for r in await self._controls.list_all()]
        return group_controls(filter_controls(controls, search, domain))

    async def list_domains(self) -> list[str]:
        controls = [Control.model_validate(r) for r in await self._controls.list_all()]
        return list_domains(controls)

    async def list_for_project(self, project_id: UUID) -> list[BoundaryControlWithDetails]:
        return await self._repo.list_for_project(project_id)

    async def list_for_boundary(self, project_id: UUID,
                                boundary_id: UUID) -> list[BoundaryControlWithDetails]:
        await self._require_boundary(project_id, boundary_id)
        return await self._repo.list_for_boundary(boundary_id)

    async def unassociated_controls(self, project_id: UUID,
                                    boundary_id: UUID) -> list[Control]:
        await self._require_boundary(project_id, boundary_id)
        held = await self._repo.control_ids_for_boundary(boundary_id)
        return [
            Control.model_validate(r)
            for r in await self._controls.list_all()
            if can_drag(r.id, held)
        ]

    @unmarks_phase(PhaseKey.SOA)
    async def create(self, project_id: UUID, boundary_id: UUID, control_id: UUID, *,
                     user_id: UUID, is_applicable: bool = True,
                     reason_inclusion: str | None = None,
                     reason_exclusion: str | None = None,
                     status: str | None = None) -> BoundaryControlWithDetails:
        boundary = await self._boundaries.get_in_project(project_id, boundary_id)
        control = await self._controls.get(control_id)
        if boundary is None or control is None:
            raise InvalidReferenceError()
        if await self._repo.find_pair(boundary_id, control_id) is not None:
            raise DuplicateAssociationError()

        bc_id = new_uuid7()
        async with constraint_guard(self._session):
            await self._repo.create(
                boundary_control_id=bc_id, boundary_id=boundary_id,
                control_id=control_id, user_id=user_id,
                is_applicable=is_applicable,
                reason_inclusion=reason_inclusion,
                reason_exclusion=reason_exclusion,
                status=status,
            )
        logger.info("Associated control %s with boundary %s", control.reference, boundary_id)
        return await self._repo.get_with_details(bc_id)

    async def drop(self, project_id: UUID, boundary_id: UUID, control_id: UUID, *,
                   user_id: UUID, confirm_reset: bool = False) -> BoundaryControlWithDetails | None:
        """Drop a control onto a boundary; None when the target refuses it."""
        held = await self._repo.control_ids_for_boundary(boundary_id)
        if not can_drop(control_id, held):
            return None
        return await self.create(
            project_id, boundary_id, control_id,
            user_id=user_id, confirm_reset=confirm_reset,
        )

    @unmarks_phase(PhaseKey.SOA)
    async def bulk_assign(self, project_id: UUID, boundary_id: UUID,
                          control_ids: list[UUID], *, user_id: UUID,
                          is_applicable: bool = True) -> list[BoundaryControl]:
        """Associate several controls with one boundary, skipping held ones."""
        await self._require_boundary(project_id, boundary_id)
        held = await self._repo.control_ids_for_boundary(boundary_id)
        known = {c.id for c in await self._controls.list_by_ids(control_ids)}
        missing = [cid for cid in control_ids if cid not in known]
        if missing:
            raise InvalidReferenceError()

        created = []
        async with constraint_guard(self._session):
            for control_id in dict.fromkeys(control_ids):
                if control_id in held:
                    continue
                row = await self._repo.create(
                    boundary_control_id=new_uuid7(), boundary_id=boundary_id,
                    control_id=control_id, user_id=user_id,
                    is_applicable=is_applicable,
                )
                created.append(BoundaryControl.model_validate(row))
        return created

    @unmarks_phase(resolve=_update_phases)
    async def update(self, project_id: UUID, boundary_control_id: UUID,
                     changes: Mapping[str, Any], *,
                     user_id: UUID) -> BoundaryControlWithDetails:
        row = await self._repo.get_in_project(project_id, boundary_control_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(BOUNDARY_CONTROL_NOT_FOUND)
        async with constraint_guard(self._session):
            await self._repo.update(row, **strip_immutable(changes))
        return await self._repo.get_with_details(boundary_control_id)

    @unmarks_phase(PhaseKey.SOA)
    async def delete(self, project_id: UUID, boundary_control_id: UUID, *,
                     user_id: UUID) -> None:
        row = await self._repo.get_in_project(project_id, boundary_control_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Boundary control not found or you do not have permission to delete it"
            )
        await self._repo.delete(row)

    async def _require_boundary(self, project_id: UUID, boundary_id: UUID) -> None:
        if await self._boundaries.get_in_project(project_id, boundary_id) is None:
            raise NotFoundOrForbidden("Boundary not found")
