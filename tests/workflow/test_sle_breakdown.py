"""Tests for SLE breakdown reconciliation and core field validation."""

import doctest

import pytest

import isms.workflow.sle_breakdown as sle_breakdown
from isms.workflow.sle_breakdown import (
    ARO_TOO_HIGH,
    INVALID_NUMBER,
    INVALID_SEVERITY,
    NEGATIVE_NUMBER,
    REQUIRED,
    breakdown_mismatch,
    breakdown_remaining,
    has_breakdown,
    parse_amount,
    remaining_message,
    validate_breakdown,
    validate_core,
)

SHORT_BY_400 = {
    "sle_direct_operational_costs": 4100,
    "sle_technical_remediation_costs": 2500,
    "sle_data_related_costs": 1200,
    "sle_compliance_legal_costs": 800,
    "sle_reputational_management_costs": 1000,
}


class TestParseAmount:
    def test_numbers_and_strings(self) -> None:
        assert parse_amount(12) == 12.0
        assert parse_amount(" 12.5 ") == 12.5

    def test_empty_is_none(self) -> None:
        assert parse_amount(None) is None
        assert parse_amount("") is None
        assert parse_amount("   ") is None

    def test_garbage_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_amount("ten")

    def test_bool_is_not_a_number(self) -> None:
        with pytest.raises(ValueError):
            parse_amount(True)


class TestValidateCore:
    def test_valid_values(self) -> None:
        errors, warnings = validate_core({"severity": "high", "sle": "10000", "aro": 0.5})
        assert errors == {}
        assert warnings == {}

    def test_non_numeric(self) -> None:
        errors, _ = validate_core({"sle": "abc", "aro": "x"})
        assert errors == {"sle": INVALID_NUMBER, "aro": INVALID_NUMBER}

    def test_negative(self) -> None:
        errors, _ = validate_core({"sle": -1, "aro": -0.1})
        assert errors == {"sle": NEGATIVE_NUMBER, "aro": NEGATIVE_NUMBER}

    def test_high_aro_warns_but_does_not_block(self) -> None:
        errors, warnings = validate_core({"sle": 100, "aro": 400})
        assert errors == {}
        assert warnings == {"aro": ARO_TOO_HIGH}

    def test_unknown_severity(self) -> None:
        errors, _ = validate_core({"severity": "catastrophic", "sle": 100, "aro": 1})
        assert errors == {"severity": INVALID_SEVERITY}

    def test_sle_and_aro_are_required(self) -> None:
        assert validate_core({}) == ({"sle": REQUIRED, "aro": REQUIRED}, {})

    def test_blank_strings_are_missing(self) -> None:
        errors, _ = validate_core({"severity": "high", "sle": "", "aro": "  "})
        assert errors == {"sle": REQUIRED, "aro": REQUIRED}

    def test_zero_counts_as_entered(self) -> None:
        assert validate_core({"sle": 0, "aro": 0}) == ({}, {})


class TestBreakdownRule:
    def test_zero_components_do_not_count_as_entered(self) -> None:
        assert has_breakdown([None, 0, 0.0, None, None]) is False
        assert has_breakdown([None, 0, 5.0, None, None]) is True

    def test_exact_match_reconciles(self) -> None:
        assert breakdown_mismatch(10000, [4500, 2500, 1200, 800, 1000]) is None

    def test_within_tolerance_reconciles(self) -> None:
        assert breakdown_mismatch(100.0, [99.995, None, None, None, None]) is None

    def test_outside_tolerance_mismatches(self) -> None:
        assert breakdown_mismatch(100.0, [99.98, None, None, None, None]) is not None

    def test_not_required_without_positive_sle(self) -> None:
        assert breakdown_mismatch(None, [100, None, None, None, None]) is None
        assert breakdown_mismatch(0, [100, None, None, None, None]) is None

    def test_not_required_without_components(self) -> None:
        assert breakdown_mismatch(10000, [None] * 5) is None
        assert breakdown_mismatch(10000, [0] * 5) is None

    def test_remaining_can_be_negative(self) -> None:
        assert breakdown_remaining(1000, [1200, None, None, None, None]) == -200.0


class TestValidateBreakdown:
    def test_short_breakdown_reports_total_and_remaining(self) -> None:
        errors = validate_breakdown(10000, SHORT_BY_400)
        assert errors["sle_breakdown"] == (
            "SLE breakdown total (9600.00) must equal SLE (10000.00)"
        )
        assert errors["sle_breakdown_remaining"] == "Remaining: $400.00"

    def test_corrected_breakdown_passes(self) -> None:
        fixed = {**SHORT_BY_400, "sle_direct_operational_costs": 4500}
        assert validate_breakdown(10000, fixed) == {}

    def test_component_errors_are_reported_per_field(self) -> None:
        errors = validate_breakdown(10000, {"sle_data_related_costs": -5,
                                            "sle_compliance_legal_costs": "n/a"})
        assert errors == {
            "sle_data_related_costs": NEGATIVE_NUMBER,
            "sle_compliance_legal_costs": INVALID_NUMBER,
        }

    def test_remaining_message_uses_thousands_separator(self) -> None:
        assert remaining_message(250000, [100000, None, None, None, None]) == (
            "Remaining: $150,000.00"
        )


def test_docstring_examples() -> None:
    result = doctest.testmod(sle_breakdown)
    assert result.failed == 0
