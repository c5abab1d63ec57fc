"""Risk register join shapes - one reporting row per threat scenario."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from isms.models.common import ISMSBase


class RegisterGap(ISMSBase):
    """Gap columns the register reads, including the links used for evidence."""

    id: UUID
    title: str
    description: str
    severity: str
    status: str
    boundary_control_id: UUID | None = None
    control_id: UUID | None = None


class RegisterAssessment(ISMSBase):
    id: UUID
    threat_scenario_id: UUID
    boundary_id: UUID
    boundary_name: str = "Unknown"
    assessment_date: datetime | None = None
    assessor_id: UUID | None = None
    severity: str | None = None
    sle: float | None = None
    aro: float | None = None


class RegisterEvidence(ISMSBase):
    id: UUID
    title: str
    description: str | None = None
    file_name: str | None = None
    file_path: str | None = None
    file_type: str | None = None
    boundary_control_id: UUID | None = None
    control_id: UUID


class RegisterThreat(ISMSBase):
    id: UUID
    project_id: UUID
    name: str
    description: str | None = None
    threat_actor_type: str | None = None
    gap_id: UUID | None = None
    mitre_techniques: list[str] = Field(default_factory=list)


class RiskRegisterItem(ISMSBase):
    threat_scenario_id: UUID
    threat_name: str
    threat_description: str | None = None
    project_id: UUID
    threat_actor_type: str | None = None
    sle: float | None = None
    aro: float | None = None
    ale: float | None = None
    aro_frequency_text: str | None = None
    gap_count: int = 0
    risk_assessment_count: int = 0
    highest_risk_value: int | None = None


class RegisterGapSummary(ISMSBase):
    id: UUID
    title: str
    description: str
    severity: str
    status: str


class RiskRegisterItemWithDetails(RiskRegisterItem):
    gaps: list[RegisterGapSummary] = Field(default_factory=list)
    risk_assessments: list[RegisterAssessment] = Field(default_factory=list)
    evidence: list[RegisterEvidence] = Field(default_factory=list)
    evidence_count: int = 0


class CrqRow(ISMSBase):
    threat_scenario_id: UUID
    name: str
    sle: float
    aro: float
    ale: float
    band: str
    badge: str
    mitre_techniques: list[str] = Field(default_factory=list)


class CrqSummary(ISMSBase):
    rows: list[CrqRow] = Field(default_factory=list)
    total_ale: float = 0.0
    band_counts: dict[str, int] = Field(default_factory=dict)


class TechniqueUsage(ISMSBase):
    """Scenarios mapped to one MITRE ATT&CK technique id."""

    technique_id: str
    scenario_ids: list[UUID] = Field(default_factory=list)
    scenario_names: list[str] = Field(default_factory=list)
