"""Two-step risk assessment edit.

A row is edited in two saves so a quick severity / SLE / ARO estimate can
be recorded without an itemized cost breakdown:

    Viewing --edit--> EditingCore --save_core--> EditingBreakdown
       ^                  |                          |
       +----cancel--------+----cancel / save_breakdown

EditingCore
    Every field is mutable. Core fields are validated on every change; a
    breakdown that does not add up only sets ``advisory`` and never blocks
    ``save_core``. Saving persists severity, sle, aro and notes.
EditingBreakdown
    Core fields are frozen (already saved). ``save_breakdown`` re-validates
    the core fields and the sum and is blocked on a mismatch, reporting the
    remaining amount. Success persists the five components.

The states are an explicit tagged union; each operation handles every
state and rejects the ones it is not valid in.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, assert_never
from uuid import UUID

from isms.models.risk import RiskAssessment, RiskAssessmentCore, SleBreakdown
from isms.workflow.ale import ale
from isms.workflow.errors import ValidationFailed, WorkflowError
from isms.workflow.sle_breakdown import (
    BREAKDOWN_FIELDS,
    CORE_FIELDS,
    breakdown_mismatch,
    breakdown_values,
    parse_amount,
    validate_breakdown,
    validate_core,
)

SaveCore = Callable[[UUID, RiskAssessmentCore], Awaitable[RiskAssessment]]
SaveBreakdown = Callable[[UUID, SleBreakdown], Awaitable[RiskAssessment]]


class InvalidEditTransition(WorkflowError):
    """An edit action was requested in a state that does not allow it."""


@dataclass(frozen=True)
class Viewing:
    pass


@dataclass
class EditingCore:
    draft: dict[str, Any]
    errors: dict[str, str] = field(default_factory=dict)
    warnings: dict[str, str] = field(default_factory=dict)
    advisory: str | None = None


@dataclass
class EditingBreakdown:
    saved: RiskAssessment
    draft: dict[str, Any]
    errors: dict[str, str] = field(default_factory=dict)
    warnings: dict[str, str] = field(default_factory=dict)


EditState = Viewing | EditingCore | EditingBreakdown


def _draft_from(assessment: RiskAssessment) -> dict[str, Any]:
    data = assessment.model_dump(include=set(CORE_FIELDS) | set(BREAKDOWN_FIELDS))
    if data.get("severity") is not None:
        data["severity"] = str(data["severity"])
    return data


def _number_or_none(raw: Any) -> float | None:
    try:
        return parse_amount(raw)
    except ValueError:
        return None


class RiskEditSession:
    """Edit state for one risk assessment row.

    ``save_core`` / ``save_breakdown`` are the persistence callbacks; each
    returns the assessment as stored.
    """

    def __init__(self, assessment: RiskAssessment, *,
                 save_core: SaveCore, save_breakdown: SaveBreakdown) -> None:
        self.assessment = assessment
        self.state: EditState = Viewing()
        self._save_core = save_core
        self._save_breakdown = save_breakdown

    # --- Queries ---

    @property
    def ale(self) -> float | None:
        """Canonical ALE, from persisted values."""
        return ale(self.assessment.sle, self.assessment.aro)

    @property
    def ale_preview(self) -> float | None:
        """Live ALE from the current draft (persisted values when viewing)."""
        state = self.state
        if isinstance(state, Viewing):
            return self.ale
        if isinstance(state, (EditingCore, EditingBreakdown)):
            return ale(_number_or_none(state.draft.get("sle")),
                       _number_or_none(state.draft.get("aro")))
        assert_never(state)

    # --- Transitions ---

    def edit(self) -> EditingCore:
        state = self.state
        if isinstance(state, Viewing):
            self.state = EditingCore(draft=_draft_from(self.assessment))
            self._revalidate()
            return self.state
        if isinstance(state, (EditingCore, EditingBreakdown)):
            raise InvalidEditTransition("This row is already being edited.")
        assert_never(state)

    def set_field(self, name: str, value: Any) -> None:
        state = self.state
        if isinstance(state, Viewing):
            raise InvalidEditTransition("Click Edit before changing values.")
        if isinstance(state, EditingCore):
            if name not in CORE_FIELDS and name not in BREAKDOWN_FIELDS:
                raise InvalidEditTransition(f"Unknown field: {name}")
        elif isinstance(state, EditingBreakdown):
            if name not in BREAKDOWN_FIELDS:
                raise InvalidEditTransition(
                    "Core details are already saved; only the SLE breakdown can be edited."
                )
        else:
            assert_never(state)
        state.draft[name] = value
        self._revalidate()

    async def save_core(self) -> EditingBreakdown:
        state = self.state
        if isinstance(state, (Viewing, EditingBreakdown)):
            raise InvalidEditTransition("Core details can only be saved while editing them.")
        if isinstance(state, EditingCore):
            self._revalidate()
            if state.errors:
                raise ValidationFailed(state.errors)
            core = RiskAssessmentCore(
                severity=state.draft.get("severity") or None,
                sle=parse_amount(state.draft.get("sle")),
                aro=parse_amount(state.draft.get("aro")),
                assessment_notes=state.draft.get("assessment_notes"),
            )
            saved = await self._save_core(self.assessment.id, core)
            self.assessment = saved
            breakdown_draft = {f: state.draft.get(f) for f in BREAKDOWN_FIELDS}
            draft = {**_draft_from(saved), **breakdown_draft}
            self.state = EditingBreakdown(saved=saved, draft=draft)
            self._revalidate()
            return self.state
        assert_never(state)

    async def save_breakdown(self) -> Viewing:
        state = self.state
        if isinstance(state, (Viewing, EditingCore)):
            raise InvalidEditTransition("Save the core details before the SLE breakdown.")
        if isinstance(state, EditingBreakdown):
            errors, _ = validate_core(state.draft)
            errors.update(validate_breakdown(state.saved.sle, state.draft))
            state.errors = errors
            if errors:
                raise ValidationFailed(errors, message=errors.get("sle_breakdown"))
            components = dict(zip(BREAKDOWN_FIELDS, breakdown_values(state.draft)))
            saved = await self._save_breakdown(self.assessment.id, SleBreakdown(**components))
            self.assessment = saved
            self.state = Viewing()
            return self.state
        assert_never(state)

    def cancel(self) -> Viewing:
        state = self.state
        if isinstance(state, Viewing):
            return state
        if isinstance(state, (EditingCore, EditingBreakdown)):
            self.state = Viewing()
            return self.state
        assert_never(state)

    # --- Internals ---

    def _revalidate(self) -> None:
        state = self.state
        if isinstance(state, Viewing):
            return
        if isinstance(state, EditingCore):
            state.errors, state.warnings = validate_core(state.draft)
            state.advisory = breakdown_mismatch(
                _number_or_none(state.draft.get("sle")),
                breakdown_values(state.draft),
            )
            return
        if isinstance(state, EditingBreakdown):
            state.errors, state.warnings = validate_core(state.draft)
            return
        assert_never(state)
