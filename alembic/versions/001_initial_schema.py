"""Initial schema: projects, scope, SOA, evidence, risk, records.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_BREAKDOWN_SUM = " + ".join(
    f"COALESCE({c}, 0)" for c in (
        "sle_direct_operational_costs",
        "sle_technical_remediation_costs",
        "sle_data_related_costs",
        "sle_compliance_legal_costs",
        "sle_reputational_management_costs",
    )
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # -- Projects --
    op.create_table(
        "projects",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="In Progress"),
        sa.Column("boundaries_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stakeholders_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("soa_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("evidence_gaps_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("questionnaire_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("objectives_completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_user_id", "projects", ["user_id"])

    # -- Catalog (global) --
    op.create_table(
        "controls",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("reference", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "questionnaire_questions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("iso_domain", sa.String(255), nullable=False),
        sa.Column("question_text", sa.Text, nullable=False),
        sa.Column("guidance", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Scope & SOA --
    op.create_table(
        "boundaries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("included", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("asset_value_qualitative", sa.String(50), nullable=True),
        sa.Column("asset_value_quantitative", sa.Float, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "name", name="uq_boundary_project_name"),
    )
    op.create_index("ix_boundaries_project_id", "boundaries", ["project_id"])

    op.create_table(
        "boundary_controls",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("boundary_id", UUID(as_uuid=True),
                  sa.ForeignKey("boundaries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("control_id", UUID(as_uuid=True),
                  sa.ForeignKey("controls.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("is_applicable", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("reason_inclusion", sa.Text, nullable=True),
        sa.Column("reason_exclusion", sa.Text, nullable=True),
        sa.Column("status", sa.String(100), nullable=True),
        sa.Column("compliance_status", sa.String(50), nullable=True),
        sa.Column("assessment_date", sa.Date, nullable=True),
        sa.Column("assessment_notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("boundary_id", "control_id", name="uq_boundary_control"),
    )
    op.create_index("ix_boundary_controls_boundary_id", "boundary_controls", ["boundary_id"])
    op.create_index("ix_boundary_controls_control_id", "boundary_controls", ["control_id"])

    # -- Evidence & Gaps --
    op.create_table(
        "gaps",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("boundary_control_id", UUID(as_uuid=True),
                  sa.ForeignKey("boundary_controls.id", ondelete="CASCADE"), nullable=True),
        sa.Column("control_id", UUID(as_uuid=True),
                  sa.ForeignKey("controls.id"), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Identified"),
        sa.Column("identified_by", UUID(as_uuid=True), nullable=False),
        sa.Column("identified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_gaps_project_id", "gaps", ["project_id"])
    op.create_index("ix_gaps_boundary_control_id", "gaps", ["boundary_control_id"])

    op.create_table(
        "evidence",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("control_id", UUID(as_uuid=True),
                  sa.ForeignKey("controls.id"), nullable=False),
        sa.Column("boundary_control_id", UUID(as_uuid=True),
                  sa.ForeignKey("boundary_controls.id", ondelete="CASCADE"), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("file_path", sa.Text, nullable=True),
        sa.Column("file_name", sa.String(500), nullable=True),
        sa.Column("file_type", sa.String(200), nullable=True),
        sa.Column("uploaded_by", UUID(as_uuid=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_evidence_project_id", "evidence", ["project_id"])
    op.create_index("ix_evidence_boundary_control_id", "evidence", ["boundary_control_id"])

    # -- Risk --
    op.create_table(
        "threat_scenarios",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("gap_id", UUID(as_uuid=True),
                  sa.ForeignKey("gaps.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("threat_actor_type", sa.String(100), nullable=True),
        sa.Column("sle", sa.Float, nullable=True),
        sa.Column("aro", sa.Float, nullable=True),
        sa.Column("mitre_techniques", JSONB, nullable=False, server_default="[]"),
        sa.Column("relevant_iso_domains", JSONB, nullable=False, server_default="[]"),
        *_timestamps(),
    )
    op.create_index("ix_threat_scenarios_project_id", "threat_scenarios", ["project_id"])

    op.create_table(
        "risk_assessments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("boundary_id", UUID(as_uuid=True),
                  sa.ForeignKey("boundaries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("threat_scenario_id", UUID(as_uuid=True),
                  sa.ForeignKey("threat_scenarios.id", ondelete="CASCADE"), nullable=False),
        sa.Column("gap_id", UUID(as_uuid=True),
                  sa.ForeignKey("gaps.id", ondelete="SET NULL"), nullable=True),
        sa.Column("control_id", UUID(as_uuid=True),
                  sa.ForeignKey("controls.id"), nullable=True),
        sa.Column("assessor_id", UUID(as_uuid=True), nullable=True),
        sa.Column("assessment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("severity", sa.String(20), nullable=True),
        sa.Column("sle", sa.Float, nullable=False),
        sa.Column("aro", sa.Float, nullable=False),
        sa.Column("sle_direct_operational_costs", sa.Float, nullable=True),
        sa.Column("sle_technical_remediation_costs", sa.Float, nullable=True),
        sa.Column("sle_data_related_costs", sa.Float, nullable=True),
        sa.Column("sle_compliance_legal_costs", sa.Float, nullable=True),
        sa.Column("sle_reputational_management_costs", sa.Float, nullable=True),
        sa.Column("assessment_notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("sle >= 0", name="ck_risk_sle_non_negative"),
        sa.CheckConstraint("aro >= 0", name="ck_risk_aro_non_negative"),
        sa.CheckConstraint(
            f"sle <= 0 OR ({_BREAKDOWN_SUM}) = 0 "
            f"OR ABS(sle - ({_BREAKDOWN_SUM})) <= 0.01",
            name="sle_breakdown_matches_total",
        ),
    )
    op.create_index("ix_risk_assessments_project_id", "risk_assessments", ["project_id"])
    op.create_index(
        "ix_risk_assessments_threat_scenario_id", "risk_assessments", ["threat_scenario_id"],
    )

    # -- Stakeholders, Objectives, Questionnaire --
    op.create_table(
        "stakeholders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(255), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("responsibilities", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_stakeholders_project_id", "stakeholders", ["project_id"])

    op.create_table(
        "objectives",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("target_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="Not Started"),
        *_timestamps(),
    )
    op.create_index("ix_objectives_project_id", "objectives", ["project_id"])

    op.create_table(
        "project_questionnaire_answers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_id", UUID(as_uuid=True),
                  sa.ForeignKey("questionnaire_questions.id"), nullable=False),
        sa.Column("answer_status", sa.String(50), nullable=True),
        sa.Column("evidence_notes", sa.Text, nullable=True),
        sa.Column("answered_by", UUID(as_uuid=True), nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "question_id", name="uq_answer_project_question"),
    )
    op.create_index(
        "ix_project_questionnaire_answers_project_id",
        "project_questionnaire_answers", ["project_id"],
    )


def downgrade() -> None:
    op.drop_table("project_questionnaire_answers")
    op.drop_table("objectives")
    op.drop_table("stakeholders")
    op.drop_table("risk_assessments")
    op.drop_table("threat_scenarios")
    op.drop_table("evidence")
    op.drop_table("gaps")
    op.drop_table("boundary_controls")
    op.drop_table("boundaries")
    op.drop_table("questionnaire_questions")
    op.drop_table("controls")
    op.drop_table("projects")
