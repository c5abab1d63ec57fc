"""Shared types, enums, and base models used across ISMS domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]
Money = Annotated[float, Field(ge=0.0, description="Non-negative currency amount.")]


# --- Workflow phases ---


class PhaseKey(StrEnum):
    """Project workflow phases, each with its own completion timestamp."""

    BOUNDARIES = "boundaries"
    STAKEHOLDERS = "stakeholders"
    SOA = "soa"
    EVIDENCE_GAPS = "evidence_gaps"
    QUESTIONNAIRE = "questionnaire"
    OBJECTIVES = "objectives"

    @property
    def column(self) -> str:
        """Name of the project column holding this phase's timestamp."""
        return f"{self.value}_completed_at"


PHASE_LABELS: dict[PhaseKey, str] = {
    PhaseKey.BOUNDARIES: "Boundaries",
    PhaseKey.STAKEHOLDERS: "Stakeholders",
    PhaseKey.SOA: "Statement of Applicability",
    PhaseKey.EVIDENCE_GAPS: "Evidence & Gaps",
    PhaseKey.QUESTIONNAIRE: "Questionnaire",
    PhaseKey.OBJECTIVES: "Objectives",
}


# --- Shared enums ---


class ProjectStatus(StrEnum):
    """Manually settable project status; also the derived display status."""

    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"


class BoundaryType(StrEnum):
    DEPARTMENT = "Department"
    SYSTEM = "System"
    LOCATION = "Location"
    OTHER = "Other"


class ComplianceStatus(StrEnum):
    COMPLIANT = "Compliant"
    PARTIALLY_COMPLIANT = "Partially Compliant"
    NON_COMPLIANT = "Non Compliant"
    NOT_ASSESSED = "Not Assessed"


class GapSeverity(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class GapStatus(StrEnum):
    IDENTIFIED = "Identified"
    IN_REVIEW = "In Review"
    CONFIRMED = "Confirmed"
    REMEDIATED = "Remediated"
    CLOSED = "Closed"


class RiskSeverity(StrEnum):
    """Severity of a risk assessment (lower-case on the wire)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ObjectiveStatus(StrEnum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    ACHIEVED = "Achieved"


class AnswerStatus(StrEnum):
    YES = "Yes"
    NO = "No"
    PARTIAL = "Partial"
    NOT_APPLICABLE = "Not Applicable"


# --- Base model ---


class ISMSBase(BaseModel):
    """Base model with common configuration for all ISMS Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }
