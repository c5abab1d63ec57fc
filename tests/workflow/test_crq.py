"""Tests for the CRQ summary."""

from isms.models.common import new_uuid7
from isms.models.risk import ThreatScenario
from isms.workflow.crq import crq_summary


def _scenario(name: str, sle: float | None, aro: float | None) -> ThreatScenario:
    return ThreatScenario(project_id=new_uuid7(), name=name, sle=sle, aro=aro)


class TestCrqSummary:
    def test_rows_sorted_and_banded(self) -> None:
        summary = crq_summary([
            _scenario("Phishing", 20000.0, 1.0),
            _scenario("Ransomware", 250000.0, 0.25),
            _scenario("Lost laptop", 5000.0, 7.0),
        ])
        assert [r.name for r in summary.rows] == ["Ransomware", "Lost laptop", "Phishing"]
        assert [r.band for r in summary.rows] == ["high", "medium", "low"]
        assert summary.rows[0].badge == "destructive"
        assert summary.total_ale == 117500.0

    def test_incomplete_scenarios_are_left_out(self) -> None:
        summary = crq_summary([_scenario("Draft", None, 1.0), _scenario("Draft 2", 100.0, None)])
        assert summary.rows == []
        assert summary.total_ale == 0.0

    def test_band_counts_include_empty_bands(self) -> None:
        summary = crq_summary([_scenario("Phishing", 20000.0, 1.0)])
        assert summary.band_counts == {"high": 0, "medium": 0, "low": 1}
