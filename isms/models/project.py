"""Project model - the top-level container for one ISMS engagement."""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field

from isms.models.common import (
    ISMSBase,
    PhaseKey,
    ProjectStatus,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)


class Project(ISMSBase):
    """A project owns boundaries, stakeholders, the SOA, evidence, gaps and risks.

    Each workflow phase carries its own completion timestamp; ``status`` is
    the manually chosen tri-state, not the displayed one (see
    ``isms.workflow.project_status``).
    """

    id: UUIDv7 = Field(default_factory=new_uuid7)
    user_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus = ProjectStatus.IN_PROGRESS
    boundaries_completed_at: datetime | None = None
    stakeholders_completed_at: datetime | None = None
    soa_completed_at: datetime | None = None
    evidence_gaps_completed_at: datetime | None = None
    questionnaire_completed_at: datetime | None = None
    objectives_completed_at: datetime | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    def phase_completed_at(self, phase: PhaseKey) -> datetime | None:
        return getattr(self, phase.column)


class PhaseProgress(ISMSBase):
    phase: PhaseKey
    label: str
    completed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


class ProjectWithStatus(Project):
    """Project plus its derived display status and phase progress."""

    derived_status: ProjectStatus
    completion_percentage: int = Field(default=0, ge=0, le=100)
    phases: list[PhaseProgress] = Field(default_factory=list)


class ProjectStats(ISMSBase):
    total: int = 0
    in_progress: int = 0
    completed: int = 0
    on_hold: int = 0
