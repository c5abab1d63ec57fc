"""Tests for the risk register aggregation helpers."""

from isms.models.common import new_uuid7
from isms.models.register import RegisterAssessment, RegisterEvidence, RegisterGap, RegisterThreat
from isms.workflow.risk_register import (
    build_item,
    build_item_with_details,
    highest,
    highest_risk_value,
    resolve_evidence,
    technique_map,
)

PROJECT_ID = new_uuid7()


def _threat(**overrides) -> RegisterThreat:
    values = dict(id=new_uuid7(), project_id=PROJECT_ID, name="Ransomware")
    values.update(overrides)
    return RegisterThreat(**values)


def _assessment(threat: RegisterThreat, **overrides) -> RegisterAssessment:
    values = dict(id=new_uuid7(), threat_scenario_id=threat.id, boundary_id=new_uuid7())
    values.update(overrides)
    return RegisterAssessment(**values)


def _gap(**overrides) -> RegisterGap:
    values = dict(id=new_uuid7(), title="No backups", description="Nightly backups missing",
                  severity="High", status="Identified",
                  boundary_control_id=new_uuid7(), control_id=new_uuid7())
    values.update(overrides)
    return RegisterGap(**values)


def _evidence(control_id, boundary_control_id=None) -> RegisterEvidence:
    return RegisterEvidence(id=new_uuid7(), title="Backup log", control_id=control_id,
                            boundary_control_id=boundary_control_id)


class TestBuildItem:
    def test_highest_values_across_assessments(self) -> None:
        threat = _threat()
        assessments = [
            _assessment(threat, severity="medium", sle=20000.0, aro=0.5),
            _assessment(threat, severity="low", sle=50000.0, aro=0.1),
        ]
        item = build_item(threat, None, assessments)
        assert item.sle == 50000.0
        assert item.aro == 0.5
        assert item.ale == 25000.0
        assert item.highest_risk_value == 5
        assert item.risk_assessment_count == 2
        assert item.aro_frequency_text == "Once every 2 years"

    def test_missing_values_count_as_zero(self) -> None:
        threat = _threat()
        item = build_item(threat, None, [_assessment(threat, sle=None, aro=2.0)])
        assert item.sle == 0.0
        assert item.ale == 0.0

    def test_no_assessments(self) -> None:
        item = build_item(_threat(), None, [])
        assert item.sle is None
        assert item.aro is None
        assert item.ale is None
        assert item.highest_risk_value is None

    def test_gap_count(self) -> None:
        assert build_item(_threat(), _gap(), []).gap_count == 1
        assert build_item(_threat(), None, []).gap_count == 0


class TestHelpers:
    def test_highest(self) -> None:
        assert highest([]) is None
        assert highest([None, 3.0, 1.0]) == 3.0

    def test_highest_risk_value_buckets(self) -> None:
        assert highest_risk_value(["low", "high", None]) == 8
        assert highest_risk_value(["low", "medium"]) == 5
        assert highest_risk_value(["low"]) == 2
        assert highest_risk_value([None]) is None
        assert highest_risk_value([]) is None


class TestResolveEvidence:
    def test_boundary_control_evidence_first(self) -> None:
        gap = _gap()
        attached = _evidence(gap.control_id, gap.boundary_control_id)
        found = resolve_evidence(gap, {gap.boundary_control_id: [attached]}, {})
        assert found == [attached]

    def test_gap_on_boundary_control_does_not_fall_back(self) -> None:
        gap = _gap()
        loose = _evidence(gap.control_id)
        assert resolve_evidence(gap, {}, {gap.control_id: [loose]}) == []

    def test_gap_without_boundary_control_uses_unattached_control_evidence(self) -> None:
        gap = _gap(boundary_control_id=None)
        loose = _evidence(gap.control_id)
        attached_elsewhere = _evidence(gap.control_id, new_uuid7())
        found = resolve_evidence(gap, {}, {gap.control_id: [loose, attached_elsewhere]})
        assert found == [loose]

    def test_no_gap_no_evidence(self) -> None:
        assert resolve_evidence(None, {}, {}) == []


class TestDetails:
    def test_details_carry_gap_summary_and_counts(self) -> None:
        threat = _threat()
        gap = _gap()
        evidence = [_evidence(gap.control_id, gap.boundary_control_id)]
        item = build_item_with_details(threat, gap, [], evidence)
        assert [g.id for g in item.gaps] == [gap.id]
        assert item.evidence_count == 1

    def test_technique_map_sorted_and_deduplicated(self) -> None:
        a = _threat(name="Phishing", mitre_techniques=["T1566", "T1078", "T1566"])
        b = _threat(name="Insider", mitre_techniques=["T1078"])
        usage = technique_map([a, b])
        assert [u.technique_id for u in usage] == ["T1078", "T1566"]
        assert usage[0].scenario_names == ["Phishing", "Insider"]
        assert usage[1].scenario_ids == [a.id]
