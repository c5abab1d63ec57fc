"""Annualized Loss Expectancy derivation.

ALE = SLE x ARO. Used for table display, sorting and the CRQ summary.
Deterministic, no I/O.
"""

from enum import StrEnum

# CRQ badge thresholds (currency units per year)
ALE_HIGH_THRESHOLD = 50_000.0
ALE_MEDIUM_THRESHOLD = 30_000.0

# ARO above this is accepted but flagged as suspicious
ARO_SOFT_LIMIT = 365.0


class AleBand(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Badge variant rendered for each band.
BAND_BADGES: dict[AleBand, str] = {
    AleBand.HIGH: "destructive",
    AleBand.MEDIUM: "default",
    AleBand.LOW: "secondary",
}


def ale(sle: float | None, aro: float | None) -> float | None:
    """Return ``sle * aro``, or None when either input is missing."""
    if sle is None or aro is None:
        return None
    return sle * aro


def ale_sort_key(value: float | None) -> float:
    """Sort key that places missing ALE values below every real one."""
    return float("-inf") if value is None else value


def ale_band(value: float) -> AleBand:
    if value >= ALE_HIGH_THRESHOLD:
        return AleBand.HIGH
    if value >= ALE_MEDIUM_THRESHOLD:
        return AleBand.MEDIUM
    return AleBand.LOW


def _format_number(value: float) -> str:
    # 3.0 -> "3", 2.5 -> "2.5"
    return str(int(value)) if value == int(value) else str(value)


def aro_frequency_text(aro: float | None) -> str | None:
    """Human-readable label for an annualized rate of occurrence.

    >>> aro_frequency_text(0.2)
    'Once every 5 years'
    >>> aro_frequency_text(3)
    '3 times per year'
    """
    if aro is None:
        return None
    if aro == 0:
        return "Not expected to occur"
    if aro < 1:
        years = round(1 / aro, 2)
        return f"Once every {_format_number(years)} years"
    if aro == 1:
        return "Once per year"
    return f"{_format_number(aro)} times per year"
