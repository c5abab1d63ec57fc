"""Stakeholder, objective and questionnaire repositories."""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import (
    ObjectiveRow,
    QuestionnaireAnswerRow,
    QuestionnaireQuestionRow,
    StakeholderRow,
)
from isms.models.common import utc_now
from isms.repositories.base import apply_changes


class StakeholderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, stakeholder_id: UUID, project_id: UUID, user_id: UUID,
                     name: str, role: str | None = None, email: str | None = None,
                     responsibilities: str | None = None) -> StakeholderRow:
        now = utc_now()
        row = StakeholderRow(
            id=stakeholder_id, project_id=project_id, user_id=user_id,
            name=name, role=role, email=email,
            responsibilities=responsibilities,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_in_project(self, project_id: UUID, stakeholder_id: UUID) -> StakeholderRow | None:
        result = await self._session.execute(
            select(StakeholderRow).where(
                StakeholderRow.id == stakeholder_id,
                StakeholderRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[StakeholderRow]:
        result = await self._session.execute(
            select(StakeholderRow)
            .where(StakeholderRow.project_id == project_id)
            .order_by(StakeholderRow.name)
        )
        return list(result.scalars().all())

    async def update(self, row: StakeholderRow, **changes) -> StakeholderRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: StakeholderRow) -> None:
        await self._session.delete(row)
        await self._session.flush()


class ObjectiveRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, objective_id: UUID, project_id: UUID, user_id: UUID,
                     title: str, description: str | None = None,
                     target_date: date | None = None,
                     status: str = "Not Started") -> ObjectiveRow:
        now = utc_now()
        row = ObjectiveRow(
            id=objective_id, project_id=project_id, user_id=user_id,
            title=title, description=description, target_date=target_date,
            status=status, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_in_project(self, project_id: UUID, objective_id: UUID) -> ObjectiveRow | None:
        result = await self._session.execute(
            select(ObjectiveRow).where(
                ObjectiveRow.id == objective_id,
                ObjectiveRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[ObjectiveRow]:
        result = await self._session.execute(
            select(ObjectiveRow)
            .where(ObjectiveRow.project_id == project_id)
            .order_by(ObjectiveRow.created_at)
        )
        return list(result.scalars().all())

    async def update(self, row: ObjectiveRow, **changes) -> ObjectiveRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: ObjectiveRow) -> None:
        await self._session.delete(row)
        await self._session.flush()


class QuestionnaireRepository:
    """Global questions plus per-project answers (one per question)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_question(self, *, question_id: UUID, iso_domain: str,
                              question_text: str,
                              guidance: str | None = None) -> QuestionnaireQuestionRow:
        row = QuestionnaireQuestionRow(
            id=question_id, iso_domain=iso_domain,
            question_text=question_text, guidance=guidance,
            created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_question(self, question_id: UUID) -> QuestionnaireQuestionRow | None:
        return await self._session.get(QuestionnaireQuestionRow, question_id)

    async def find_question(self, iso_domain: str,
                            question_text: str) -> QuestionnaireQuestionRow | None:
        result = await self._session.execute(
            select(QuestionnaireQuestionRow).where(
                QuestionnaireQuestionRow.iso_domain == iso_domain,
                QuestionnaireQuestionRow.question_text == question_text,
            )
        )
        return result.scalars().first()

    async def list_questions(self) -> list[QuestionnaireQuestionRow]:
        result = await self._session.execute(
            select(QuestionnaireQuestionRow).order_by(
                QuestionnaireQuestionRow.iso_domain,
                QuestionnaireQuestionRow.created_at,
            )
        )
        return list(result.scalars().all())

    async def count_questions(self) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(QuestionnaireQuestionRow)
        )
        return result.scalar_one()

    async def list_answers(self, project_id: UUID) -> list[QuestionnaireAnswerRow]:
        result = await self._session.execute(
            select(QuestionnaireAnswerRow).where(
                QuestionnaireAnswerRow.project_id == project_id
            )
        )
        return list(result.scalars().all())

    async def get_answer(self, project_id: UUID,
                         question_id: UUID) -> QuestionnaireAnswerRow | None:
        result = await self._session.execute(
            select(QuestionnaireAnswerRow).where(
                QuestionnaireAnswerRow.project_id == project_id,
                QuestionnaireAnswerRow.question_id == question_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_answer(self, *, answer_id: UUID, project_id: UUID,
                            question_id: UUID, answered_by: UUID,
                            answer_status: str | None = None,
                            evidence_notes: str | None = None) -> QuestionnaireAnswerRow:
        now = utc_now()
        row = await self.get_answer(project_id, question_id)
        if row is None:
            row = QuestionnaireAnswerRow(
                id=answer_id, project_id=project_id, question_id=question_id,
                created_at=now,
            )
            self._session.add(row)
        row.answer_status = answer_status
        row.evidence_notes = evidence_notes
        row.answered_by = answered_by
        row.answered_at = now
        row.updated_at = now
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def count_answered(self, project_id: UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(QuestionnaireAnswerRow)
            .where(
                QuestionnaireAnswerRow.project_id == project_id,
                QuestionnaireAnswerRow.answer_status.is_not(None),
            )
        )
        return result.scalar_one()
