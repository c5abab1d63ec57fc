"""Boundary model - an ISMS scoping unit within a project."""

from uuid import UUID

from pydantic import Field

from isms.models.common import (
    BoundaryType,
    ISMSBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)


class Boundary(ISMSBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    user_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    type: BoundaryType
    description: str | None = None
    included: bool = True
    notes: str | None = None
    asset_value_qualitative: str | None = Field(default=None, max_length=50)
    asset_value_quantitative: float | None = Field(default=None, ge=0.0)
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)
