"""Gap and evidence services - mutations belong to the Evidence & Gaps phase.

Evidence with a file is uploaded first and recorded second; if recording
fails the upload is removed again. Deleting evidence removes the row
first and the file second; a file that cannot be removed is only logged.
"""

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import EvidenceRow, GapRow
from isms.models.common import PhaseKey, new_uuid7
from isms.repositories.base import constraint_guard
from isms.repositories.evidence_gaps import EvidenceRepository, GapRepository
from isms.repositories.soa import BoundaryControlRepository
from isms.storage.evidence_store import EvidenceStore, StoredFile
from isms.workflow.errors import (
    InvalidReferenceError,
    NotFoundOrForbidden,
    StorageError,
)
from isms.workflow.phase_guard import PhaseGuard, unmarks_phase

logger = logging.getLogger(__name__)

_GAP_IMMUTABLE = frozenset({"id", "project_id", "boundary_control_id", "control_id",
                            "identified_by", "identified_at"})


class GapService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._guard = PhaseGuard(session)
        self._repo = GapRepository(session)
        self._boundary_controls = BoundaryControlRepository(session)

    async def list_for_project(self, project_id: UUID) -> list[GapRow]:
        return await self._repo.list_for_project(project_id)

    async def list_for_boundary_control(self, project_id: UUID,
                                        boundary_control_id: UUID) -> list[GapRow]:
        if await self._boundary_controls.get_in_project(project_id, boundary_control_id) is None:
            raise NotFoundOrForbidden("Boundary control not found")
        return await self._repo.list_for_boundary_control(boundary_control_id)

    @unmarks_phase(PhaseKey.EVIDENCE_GAPS)
    async def create(self, project_id: UUID, boundary_control_id: UUID, *,
                     user_id: UUID, title: str, description: str,
                     severity: str, status: str = "Identified") -> GapRow:
        """Record a gap against a boundary control (its control is copied over)."""
        bc = await self._boundary_controls.get_in_project(project_id, boundary_control_id)
        if bc is None:
            raise InvalidReferenceError("Boundary control not found")
        async with constraint_guard(self._session):
            row = await self._repo.create(
                gap_id=new_uuid7(), project_id=project_id,
                boundary_control_id=boundary_control_id,
                control_id=bc.control_id, title=title,
                description=description, severity=severity,
                status=status, identified_by=user_id,
            )
        return row

    @unmarks_phase(PhaseKey.EVIDENCE_GAPS)
    async def update(self, project_id: UUID, gap_id: UUID,
                     changes: Mapping[str, Any], *, user_id: UUID) -> GapRow:
        row = await self._repo.get_in_project(project_id, gap_id)
        if row is None or row.identified_by != user_id:
            raise NotFoundOrForbidden("Gap not found or you do not have permission to update it")
        updates = {k: v for k, v in changes.items() if k not in _GAP_IMMUTABLE}
        return await self._repo.update(row, **updates)

    @unmarks_phase(PhaseKey.EVIDENCE_GAPS)
    async def delete(self, project_id: UUID, gap_id: UUID, *, user_id: UUID) -> None:
        row = await self._repo.get_in_project(project_id, gap_id)
        if row is None or row.identified_by != user_id:
            raise NotFoundOrForbidden("Gap not found or you do not have permission to delete it")
        await self._repo.delete(row)


class EvidenceService:
    def __init__(self, session: AsyncSession, store: EvidenceStore) -> None:
        self._session = session
        self._guard = PhaseGuard(session)
        self._store = store
        self._repo = EvidenceRepository(session)
        self._boundary_controls = BoundaryControlRepository(session)

    async def list_for_project(self, project_id: UUID) -> list[EvidenceRow]:
        return await self._repo.list_for_project(project_id)

    async def list_for_boundary_control(self, project_id: UUID,
                                        boundary_control_id: UUID) -> list[EvidenceRow]:
        if await self._boundary_controls.get_in_project(project_id, boundary_control_id) is None:
            raise NotFoundOrForbidden("Boundary control not found")
        return await self._repo.list_for_boundary_control(boundary_control_id)

    @unmarks_phase(PhaseKey.EVIDENCE_GAPS)
    async def create(self, project_id: UUID, boundary_control_id: UUID, *,
                     user_id: UUID, title: str, description: str | None = None,
                     filename: str | None = None, content: bytes | None = None,
                     mime_type: str | None = None) -> EvidenceRow:
        bc = await self._boundary_controls.get_in_project(project_id, boundary_control_id)
        if bc is None:
            raise InvalidReferenceError("Boundary control not found")

        stored: StoredFile | None = None
        if content:
            stored = self._store.upload(
                owner_id=boundary_control_id,
                filename=filename or "evidence",
                content=content,
                mime_type=mime_type or "application/octet-stream",
            )

        try:
            async with constraint_guard(self._session):
                row = await self._repo.create(
                    evidence_id=new_uuid7(), project_id=project_id,
                    control_id=bc.control_id,
                    boundary_control_id=boundary_control_id,
                    title=title, description=description,
                    file_path=stored.storage_key if stored else None,
                    file_name=stored.file_name if stored else None,
                    file_type=stored.file_type if stored else None,
                    uploaded_by=user_id,
                )
        except Exception:
            if stored is not None:
                self._discard(stored.storage_key)
            raise
        return row

    @unmarks_phase(PhaseKey.EVIDENCE_GAPS)
    async def delete(self, project_id: UUID, evidence_id: UUID, *, user_id: UUID) -> None:
        row = await self._repo.get_in_project(project_id, evidence_id)
        if row is None or row.uploaded_by != user_id:
            raise NotFoundOrForbidden(
                "Evidence not found or you do not have permission to delete it"
            )
        file_path = row.file_path
        await self._repo.delete(row)
        if file_path:
            self._discard(file_path)

    async def download_url(self, project_id: UUID, evidence_id: UUID) -> str:
        row = await self._repo.get_in_project(project_id, evidence_id)
        if row is None:
            raise NotFoundOrForbidden("Evidence not found")
        if not row.file_path:
            raise NotFoundOrForbidden("This evidence has no attached file")
        return self._store.signed_url(row.file_path)

    def _discard(self, storage_key: str) -> None:
        try:
            self._store.delete(storage_key)
        except StorageError:
            logger.exception("Failed to remove evidence file %s", storage_key)
