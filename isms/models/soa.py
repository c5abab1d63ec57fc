"""Statement of Applicability models - Control, BoundaryControl and join shapes."""

from datetime import date
from uuid import UUID

from pydantic import Field

from isms.models.common import (
    ComplianceStatus,
    ISMSBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)

# Fields a caller may never change on an existing association.
IMMUTABLE_ASSOCIATION_FIELDS = frozenset({"id", "user_id", "boundary_id", "control_id"})

# Partial-update fields grouped by the phase they belong to.
APPLICABILITY_FIELDS = frozenset({
    "is_applicable",
    "reason_inclusion",
    "reason_exclusion",
    "status",
})
ASSESSMENT_FIELDS = frozenset({
    "compliance_status",
    "assessment_date",
    "assessment_notes",
})


class Control(ISMSBase):
    """Catalog compliance requirement, e.g. ISO 27001 A.5.1."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    reference: str = Field(..., min_length=1, max_length=50)
    description: str
    domain: str | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class BoundaryControl(ISMSBase):
    """Applicability and compliance record for one control on one boundary."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    boundary_id: UUID
    control_id: UUID
    user_id: UUID
    is_applicable: bool = True
    reason_inclusion: str | None = None
    reason_exclusion: str | None = None
    status: str | None = None
    compliance_status: ComplianceStatus | None = None
    assessment_date: date | None = None
    assessment_notes: str | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class BoundaryRef(ISMSBase):
    id: UUID
    name: str
    type: str | None = None


class BoundaryControlWithDetails(BoundaryControl):
    """BoundaryControl joined with its control and boundary."""

    control: Control
    boundary: BoundaryRef | None = None


class ControlGroup(ISMSBase):
    """Controls sharing one domain, as listed in the controls panel."""

    domain: str
    controls: list[Control] = Field(default_factory=list)
