"""SQLAlchemy ORM table models for ISMS Workbench.

All tables defined in a single file. Uses FlexJSON (JSONB on Postgres,
JSON on SQLite) for list-valued columns.

Categories:
- CATALOG: Control, QuestionnaireQuestion (global, read-only to projects)
- PROJECT-SCOPED: everything else, owned by the creating user
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from isms.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")

SLE_BREAKDOWN_CONSTRAINT = "sle_breakdown_matches_total"

SLE_BREAKDOWN_COLUMNS = (
    "sle_direct_operational_costs",
    "sle_technical_remediation_costs",
    "sle_data_related_costs",
    "sle_compliance_legal_costs",
    "sle_reputational_management_costs",
)

_breakdown_sum = " + ".join(f"COALESCE({c}, 0)" for c in SLE_BREAKDOWN_COLUMNS)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class ProjectRow(Base):
    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(50), default="In Progress", nullable=False)
    boundaries_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    stakeholders_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    soa_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    evidence_gaps_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    questionnaire_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    objectives_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Boundaries & Statement of Applicability
# ---------------------------------------------------------------------------


class BoundaryRow(Base):
    __tablename__ = "boundaries"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_boundary_project_name"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    included: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    asset_value_qualitative: Mapped[str | None] = mapped_column(String(50), nullable=True)
    asset_value_quantitative: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ControlRow(Base):
    """Global control catalog (e.g. ISO 27001 Annex A)."""

    __tablename__ = "controls"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    reference: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class BoundaryControlRow(Base):
    __tablename__ = "boundary_controls"
    __table_args__ = (
        UniqueConstraint("boundary_id", "control_id", name="uq_boundary_control"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    boundary_id: Mapped[UUID] = mapped_column(
        ForeignKey("boundaries.id", ondelete="CASCADE"), nullable=False, index=True)
    control_id: Mapped[UUID] = mapped_column(
        ForeignKey("controls.id"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    is_applicable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    reason_inclusion: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason_exclusion: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    compliance_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    assessment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    assessment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Evidence & Gaps
# ---------------------------------------------------------------------------


class GapRow(Base):
    __tablename__ = "gaps"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    boundary_control_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("boundary_controls.id", ondelete="CASCADE"), nullable=True, index=True)
    control_id: Mapped[UUID] = mapped_column(ForeignKey("controls.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Identified", nullable=False)
    identified_by: Mapped[UUID] = mapped_column(nullable=False)
    identified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EvidenceRow(Base):
    __tablename__ = "evidence"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    control_id: Mapped[UUID] = mapped_column(ForeignKey("controls.id"), nullable=False)
    boundary_control_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("boundary_controls.id", ondelete="CASCADE"), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    uploaded_by: Mapped[UUID] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------


class ThreatScenarioRow(Base):
    __tablename__ = "threat_scenarios"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    gap_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("gaps.id", ondelete="SET NULL"), nullable=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    threat_actor_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sle: Mapped[float | None] = mapped_column(Float, nullable=True)
    aro: Mapped[float | None] = mapped_column(Float, nullable=True)
    mitre_techniques = mapped_column(FlexJSON, nullable=False, default=list)
    relevant_iso_domains = mapped_column(FlexJSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RiskAssessmentRow(Base):
    """One asset (boundary) assessed against one threat scenario.

    The CHECK constraint mirrors the application-side breakdown validation.
    """

    __tablename__ = "risk_assessments"
    __table_args__ = (
        CheckConstraint("sle >= 0", name="ck_risk_sle_non_negative"),
        CheckConstraint("aro >= 0", name="ck_risk_aro_non_negative"),
        CheckConstraint(
            f"sle <= 0 OR ({_breakdown_sum}) = 0 "
            f"OR ABS(sle - ({_breakdown_sum})) <= 0.01",
            name=SLE_BREAKDOWN_CONSTRAINT,
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    boundary_id: Mapped[UUID] = mapped_column(
        ForeignKey("boundaries.id", ondelete="CASCADE"), nullable=False)
    threat_scenario_id: Mapped[UUID] = mapped_column(
        ForeignKey("threat_scenarios.id", ondelete="CASCADE"), nullable=False, index=True)
    gap_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("gaps.id", ondelete="SET NULL"), nullable=True)
    control_id: Mapped[UUID | None] = mapped_column(ForeignKey("controls.id"), nullable=True)
    assessor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    assessment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True)
    severity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    sle: Mapped[float] = mapped_column(Float, nullable=False)
    aro: Mapped[float] = mapped_column(Float, nullable=False)
    sle_direct_operational_costs: Mapped[float | None] = mapped_column(Float, nullable=True)
    sle_technical_remediation_costs: Mapped[float | None] = mapped_column(Float, nullable=True)
    sle_data_related_costs: Mapped[float | None] = mapped_column(Float, nullable=True)
    sle_compliance_legal_costs: Mapped[float | None] = mapped_column(Float, nullable=True)
    sle_reputational_management_costs: Mapped[float | None] = mapped_column(
        Float, nullable=True)
    assessment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Stakeholders, Objectives, Questionnaire
# ---------------------------------------------------------------------------


class StakeholderRow(Base):
    __tablename__ = "stakeholders"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    responsibilities: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ObjectiveRow(Base):
    __tablename__ = "objectives"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(50), default="Not Started", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class QuestionnaireQuestionRow(Base):
    __tablename__ = "questionnaire_questions"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    iso_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    guidance: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class QuestionnaireAnswerRow(Base):
    __tablename__ = "project_questionnaire_answers"
    __table_args__ = (
        UniqueConstraint("project_id", "question_id", name="uq_answer_project_question"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[UUID] = mapped_column(
        ForeignKey("questionnaire_questions.id"), nullable=False)
    answer_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    evidence_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    answered_by: Mapped[UUID | None] = mapped_column(nullable=True)
    answered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
