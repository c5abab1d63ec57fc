"""Tests for ALE derivation, banding and ARO labels."""

import pytest

from isms.workflow.ale import (
    AleBand,
    ale,
    ale_band,
    ale_sort_key,
    aro_frequency_text,
)


class TestAle:
    def test_product_of_sle_and_aro(self) -> None:
        assert ale(10000.0, 0.5) == 5000.0

    def test_missing_input_gives_none(self) -> None:
        assert ale(None, 0.5) is None
        assert ale(10000.0, None) is None

    def test_zero_is_a_real_value(self) -> None:
        assert ale(0.0, 3.0) == 0.0

    def test_sort_key_places_missing_last_when_descending(self) -> None:
        values = [5000.0, None, 80000.0, 0.0]
        ordered = sorted(values, key=ale_sort_key, reverse=True)
        assert ordered == [80000.0, 5000.0, 0.0, None]


class TestAleBand:
    @pytest.mark.parametrize("value,band", [
        (50_000.0, AleBand.HIGH),
        (120_000.0, AleBand.HIGH),
        (30_000.0, AleBand.MEDIUM),
        (49_999.99, AleBand.MEDIUM),
        (29_999.99, AleBand.LOW),
        (0.0, AleBand.LOW),
    ])
    def test_thresholds(self, value: float, band: AleBand) -> None:
        assert ale_band(value) == band


class TestAroFrequencyText:
    def test_fractional_rate(self) -> None:
        assert aro_frequency_text(0.2) == "Once every 5 years"

    def test_once_per_year(self) -> None:
        assert aro_frequency_text(1) == "Once per year"

    def test_several_times(self) -> None:
        assert aro_frequency_text(3) == "3 times per year"
        assert aro_frequency_text(2.5) == "2.5 times per year"

    def test_zero_and_missing(self) -> None:
        assert aro_frequency_text(0) == "Not expected to occur"
        assert aro_frequency_text(None) is None
