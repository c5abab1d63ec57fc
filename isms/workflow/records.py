"""Stakeholder, objective and questionnaire services.

Each mutation belongs to the phase of the same name.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import ObjectiveRow, QuestionnaireAnswerRow, StakeholderRow
from isms.models.common import PhaseKey, new_uuid7
from isms.models.records import QuestionnaireProgress, QuestionnaireQuestion
from isms.repositories.base import constraint_guard
from isms.repositories.records import (
    ObjectiveRepository,
    QuestionnaireRepository,
    StakeholderRepository,
)
from isms.workflow.errors import InvalidReferenceError, NotFoundOrForbidden
from isms.workflow.phase_guard import PhaseGuard, unmarks_phase

_IMMUTABLE = frozenset({"id", "project_id", "user_id", "created_at"})


def _mutable(changes: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in changes.items() if k not in _IMMUTABLE}


class StakeholderService:
    def __init__(self, session: AsyncSession) -> None:
        self._guard = PhaseGuard(session)
        self._repo = StakeholderRepository(session)

    async def list_for_project(self, project_id: UUID) -> list[StakeholderRow]:
        return await self._repo.list_for_project(project_id)

    @unmarks_phase(PhaseKey.STAKEHOLDERS)
    async def create(self, project_id: UUID, *, user_id: UUID, name: str,
                     role: str | None = None, email: str | None = None,
                     responsibilities: str | None = None) -> StakeholderRow:
        return await self._repo.create(
            stakeholder_id=new_uuid7(), project_id=project_id, user_id=user_id,
            name=name, role=role, email=email, responsibilities=responsibilities,
        )

    @unmarks_phase(PhaseKey.STAKEHOLDERS)
    async def update(self, project_id: UUID, stakeholder_id: UUID,
                     changes: Mapping[str, Any], *, user_id: UUID) -> StakeholderRow:
        row = await self._repo.get_in_project(project_id, stakeholder_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Stakeholder not found or you do not have permission to update it"
            )
        return await self._repo.update(row, **_mutable(changes))

    @unmarks_phase(PhaseKey.STAKEHOLDERS)
    async def delete(self, project_id: UUID, stakeholder_id: UUID, *, user_id: UUID) -> None:
        row = await self._repo.get_in_project(project_id, stakeholder_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Stakeholder not found or you do not have permission to delete it"
            )
        await self._repo.delete(row)


class ObjectiveService:
    def __init__(self, session: AsyncSession) -> None:
        self._guard = PhaseGuard(session)
        self._repo = ObjectiveRepository(session)

    async def list_for_project(self, project_id: UUID) -> list[ObjectiveRow]:
        return await self._repo.list_for_project(project_id)

    @unmarks_phase(PhaseKey.OBJECTIVES)
    async def create(self, project_id: UUID, *, user_id: UUID, title: str,
                     description: str | None = None,
                     target_date: date | None = None,
                     status: str = "Not Started") -> ObjectiveRow:
        return await self._repo.create(
            objective_id=new_uuid7(), project_id=project_id, user_id=user_id,
            title=title, description=description, target_date=target_date,
            status=status,
        )

    @unmarks_phase(PhaseKey.OBJECTIVES)
    async def update(self, project_id: UUID, objective_id: UUID,
                     changes: Mapping[str, Any], *, user_id: UUID) -> ObjectiveRow:
        row = await self._repo.get_in_project(project_id, objective_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Objective not found or you do not have permission to update it"
            )
        return await self._repo.update(row, **_mutable(changes))

    @unmarks_phase(PhaseKey.OBJECTIVES)
    async def delete(self, project_id: UUID, objective_id: UUID, *, user_id: UUID) -> None:
        row = await self._repo.get_in_project(project_id, objective_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Objective not found or you do not have permission to delete it"
            )
        await self._repo.delete(row)


class QuestionnaireService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._guard = PhaseGuard(session)
        self._repo = QuestionnaireRepository(session)

    async def questions_by_domain(self) -> dict[str, list[QuestionnaireQuestion]]:
        grouped: dict[str, list[QuestionnaireQuestion]] = {}
        for row in await self._repo.list_questions():
            grouped.setdefault(row.iso_domain, []).append(
                QuestionnaireQuestion.model_validate(row)
            )
        return dict(sorted(grouped.items()))

    async def answers(self, project_id: UUID) -> list[QuestionnaireAnswerRow]:
        return await self._repo.list_answers(project_id)

    async def progress(self, project_id: UUID) -> QuestionnaireProgress:
        return QuestionnaireProgress(
            answered=await self._repo.count_answered(project_id),
            total=await self._repo.count_questions(),
        )

    @unmarks_phase(PhaseKey.QUESTIONNAIRE)
    async def answer(self, project_id: UUID, question_id: UUID, *, user_id: UUID,
                     answer_status: str | None = None,
                     evidence_notes: str | None = None) -> QuestionnaireAnswerRow:
        if await self._repo.get_question(question_id) is None:
            raise InvalidReferenceError("Questionnaire question not found")
        async with constraint_guard(self._session):
            row = await self._repo.upsert_answer(
                answer_id=new_uuid7(), project_id=project_id,
                question_id=question_id, answered_by=user_id,
                answer_status=answer_status, evidence_notes=evidence_notes,
            )
        return row
