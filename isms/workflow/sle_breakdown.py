"""SLE breakdown reconciliation.

The five itemized cost components of a risk assessment must add up to its
SLE (within ``BREAKDOWN_TOLERANCE``) whenever SLE is positive and at least
one component has been entered. A component counts as entered when it is
present and non-zero.

These validators are shared by the edit state machine
(``isms.workflow.risk_edit``) and the two save endpoints; the database
carries the same rule as a CHECK constraint.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from isms.db.tables import SLE_BREAKDOWN_COLUMNS
from isms.models.common import RiskSeverity
from isms.workflow.ale import ARO_SOFT_LIMIT

BREAKDOWN_TOLERANCE = 0.01

CORE_FIELDS = ("severity", "sle", "aro", "assessment_notes")
BREAKDOWN_FIELDS = SLE_BREAKDOWN_COLUMNS

INVALID_NUMBER = "Must be a valid number"
NEGATIVE_NUMBER = "Cannot be negative"
ARO_TOO_HIGH = "Value seems too high"
INVALID_SEVERITY = "Invalid severity value"
REQUIRED = "Required"

_SEVERITIES = frozenset(s.value for s in RiskSeverity)


def parse_amount(raw: Any) -> float | None:
    """Coerce a form value to float; empty input is None.

    Raises ValueError for anything non-numeric.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError(raw)
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip()
    if text == "":
        return None
    return float(text)


def _check_amount(raw: Any) -> tuple[float | None, str | None]:
    try:
        value = parse_amount(raw)
    except ValueError:
        return None, INVALID_NUMBER
    if value is not None and value != value:  # NaN
        return None, INVALID_NUMBER
    if value is not None and value < 0:
        return value, NEGATIVE_NUMBER
    return value, None


def validate_core(values: Mapping[str, Any]) -> tuple[dict[str, str], dict[str, str]]:
    """Validate severity / sle / aro.

    SLE and ARO are both required. Returns ``(errors, warnings)``; warnings
    never block a save.
    """
    errors: dict[str, str] = {}
    warnings: dict[str, str] = {}

    sle, sle_error = _check_amount(values.get("sle"))
    if sle_error:
        errors["sle"] = sle_error
    elif sle is None:
        errors["sle"] = REQUIRED

    aro, aro_error = _check_amount(values.get("aro"))
    if aro_error:
        errors["aro"] = aro_error
    elif aro is None:
        errors["aro"] = REQUIRED
    elif aro > ARO_SOFT_LIMIT:
        warnings["aro"] = ARO_TOO_HIGH

    severity = values.get("severity")
    if severity not in (None, "") and str(severity) not in _SEVERITIES:
        errors["severity"] = INVALID_SEVERITY

    return errors, warnings


def breakdown_values(values: Mapping[str, Any]) -> list[float | None]:
    """The five components in column order; unparseable entries count as None."""
    parsed = []
    for field in BREAKDOWN_FIELDS:
        try:
            parsed.append(parse_amount(values.get(field)))
        except ValueError:
            parsed.append(None)
    return parsed


def has_breakdown(components: Iterable[float | None]) -> bool:
    return any(c is not None and c != 0 for c in components)


def breakdown_total(components: Iterable[float | None]) -> float:
    return sum(c for c in components if c is not None)


def breakdown_remaining(sle: float, components: Iterable[float | None]) -> float:
    """Amount still to allocate (negative when over-allocated)."""
    return round(sle - breakdown_total(components), 2)


def breakdown_mismatch(sle: float | None,
                       components: Iterable[float | None]) -> str | None:
    """Mismatch message, or None when the breakdown reconciles (or is not required).

    >>> breakdown_mismatch(10000, [4100, 2500, 1200, 800, 1000])
    'SLE breakdown total (9600.00) must equal SLE (10000.00)'
    >>> breakdown_mismatch(10000, [None] * 5) is None
    True
    """
    components = list(components)
    if sle is None or sle <= 0 or not has_breakdown(components):
        return None
    total = breakdown_total(components)
    if abs(sle - total) <= BREAKDOWN_TOLERANCE:
        return None
    return f"SLE breakdown total ({total:.2f}) must equal SLE ({sle:.2f})"


def remaining_message(sle: float, components: Iterable[float | None]) -> str:
    """
    >>> remaining_message(10000, [4100, 2500, 1200, 800, 1000])
    'Remaining: $400.00'
    """
    return f"Remaining: ${breakdown_remaining(sle, components):,.2f}"


def validate_breakdown(sle: float | None,
                       values: Mapping[str, Any]) -> dict[str, str]:
    """Blocking validation of the breakdown against ``sle``.

    Component values must be numeric and non-negative; the sum must match.
    """
    errors: dict[str, str] = {}
    for field in BREAKDOWN_FIELDS:
        _, error = _check_amount(values.get(field))
        if error:
            errors[field] = error
    if errors:
        return errors

    components = breakdown_values(values)
    mismatch = breakdown_mismatch(sle, components)
    if mismatch is not None:
        errors["sle_breakdown"] = mismatch
        errors["sle_breakdown_remaining"] = remaining_message(sle or 0.0, components)
    return errors
