"""Risk models - ThreatScenario, RiskAssessment and the SLE breakdown."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, computed_field

from isms.models.common import (
    ISMSBase,
    Money,
    RiskSeverity,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)
from isms.workflow.ale import ale


class ThreatScenario(ISMSBase):
    """A named risk scenario, optionally tied to one gap."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    gap_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    threat_actor_type: str | None = None
    sle: Money | None = None
    aro: float | None = Field(default=None, ge=0.0)
    mitre_techniques: list[str] = Field(default_factory=list)
    relevant_iso_domains: list[str] = Field(default_factory=list)
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    @computed_field
    @property
    def ale(self) -> float | None:
        return ale(self.sle, self.aro)


class SleBreakdown(ISMSBase):
    """Itemized components of a single loss estimate."""

    sle_direct_operational_costs: Money | None = None
    sle_technical_remediation_costs: Money | None = None
    sle_data_related_costs: Money | None = None
    sle_compliance_legal_costs: Money | None = None
    sle_reputational_management_costs: Money | None = None

    def components(self) -> list[float | None]:
        return [
            self.sle_direct_operational_costs,
            self.sle_technical_remediation_costs,
            self.sle_data_related_costs,
            self.sle_compliance_legal_costs,
            self.sle_reputational_management_costs,
        ]


class RiskAssessmentCore(ISMSBase):
    """Fields persisted by the first step of the two-step edit."""

    severity: RiskSeverity | None = None
    sle: Money
    aro: float = Field(..., ge=0.0)
    assessment_notes: str | None = None


class RiskAssessment(SleBreakdown):
    """One asset (boundary) assessed against one threat scenario."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    boundary_id: UUID
    threat_scenario_id: UUID
    gap_id: UUID | None = None
    control_id: UUID | None = None
    assessor_id: UUID | None = None
    assessment_date: datetime | None = None
    severity: RiskSeverity | None = None
    sle: Money
    aro: float = Field(..., ge=0.0)
    assessment_notes: str | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    @computed_field
    @property
    def ale(self) -> float | None:
        return ale(self.sle, self.aro)

    def breakdown(self) -> SleBreakdown:
        return SleBreakdown.model_validate(self.model_dump(include=set(SleBreakdown.model_fields)))


class ThreatRef(ISMSBase):
    id: UUID
    name: str
    description: str | None = None
    threat_actor_type: str | None = None


class RiskAssessmentWithThreat(RiskAssessment):
    """Editable register row: an assessment joined with its threat scenario."""

    threat_scenario: ThreatRef | None = None
    boundary_name: str | None = None
