"""Simple project-scoped records - stakeholders, objectives, questionnaire."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from isms.models.common import (
    AnswerStatus,
    ISMSBase,
    ObjectiveStatus,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)


class Stakeholder(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    user_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    role: str | None = None
    email: str | None = None
    responsibilities: str | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class Objective(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    target_date: date | None = None
    status: ObjectiveStatus = ObjectiveStatus.NOT_STARTED
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class QuestionnaireQuestion(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    iso_domain: str
    question_text: str
    guidance: str | None = None


class QuestionnaireAnswer(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    question_id: UUID
    answer_status: AnswerStatus | None = None
    evidence_notes: str | None = None
    answered_by: UUID | None = None
    answered_at: datetime | None = None


class QuestionnaireProgress(ISMSBase):
    answered: int = 0
    total: int = 0

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.answered / self.total * 100)
