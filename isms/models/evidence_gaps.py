"""Gap and Evidence models - compliance shortfalls and supporting artifacts."""

from uuid import UUID

from pydantic import Field

from isms.models.common import (
    GapSeverity,
    GapStatus,
    ISMSBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)


class Gap(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    boundary_control_id: UUID | None = None
    control_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: str
    severity: GapSeverity
    status: GapStatus = GapStatus.IDENTIFIED
    identified_by: UUID
    identified_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class Evidence(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    control_id: UUID
    boundary_control_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    file_path: str | None = None
    file_name: str | None = None
    file_type: str | None = None
    uploaded_by: UUID
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)
