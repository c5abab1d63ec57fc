"""Tests for the risk register workbook export."""

import io
from datetime import datetime, timezone

from openpyxl import load_workbook

from isms.export.register_workbook import REGISTER_HEADERS, RegisterWorkbookExporter
from isms.models.common import new_uuid7
from isms.models.register import (
    CrqRow,
    CrqSummary,
    RegisterAssessment,
    RiskRegisterItemWithDetails,
)

PROJECT_ID = new_uuid7()


def _item(name: str, sle: float | None, aro: float | None, **extra) -> RiskRegisterItemWithDetails:
    ale = sle * aro if sle is not None and aro is not None else None
    return RiskRegisterItemWithDetails(
        threat_scenario_id=new_uuid7(), threat_name=name, project_id=PROJECT_ID,
        sle=sle, aro=aro, ale=ale, **extra,
    )


def _load(content: bytes):
    return load_workbook(io.BytesIO(content))


class TestRegisterSheet:
    def test_sheets_in_order(self) -> None:
        wb = _load(RegisterWorkbookExporter().export([], CrqSummary()))
        assert wb.sheetnames == ["Risk Register", "Assessments", "CRQ Summary"]
        headers = [c.value for c in wb["Risk Register"][1]]
        assert headers == REGISTER_HEADERS

    def test_ale_is_a_formula(self) -> None:
        items = [_item("Phishing", 20000.0, 0.5), _item("Insider misuse", 5000.0, None)]
        ws = _load(RegisterWorkbookExporter().export(items, CrqSummary()))["Risk Register"]
        assert ws["A2"].value == "Phishing"
        assert ws["F2"].value == "=D2*E2"
        assert ws["F3"].value is None


class TestAssessmentsSheet:
    def test_one_row_per_assessment(self) -> None:
        item = _item("Phishing", 20000.0, 0.5, risk_assessments=[
            RegisterAssessment(
                id=new_uuid7(), threat_scenario_id=new_uuid7(), boundary_id=new_uuid7(),
                boundary_name="Finance", severity="high", sle=20000.0, aro=0.5,
                assessment_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
            ),
            RegisterAssessment(
                id=new_uuid7(), threat_scenario_id=new_uuid7(), boundary_id=new_uuid7(),
                boundary_name="HR",
            ),
        ])
        ws = _load(RegisterWorkbookExporter().export([item], CrqSummary()))["Assessments"]
        assert [c.value for c in ws[2]] == ["Phishing", "Finance", "high", 20000, 0.5, "2025-03-01"]
        assert ws["B3"].value == "HR"
        assert ws.max_row == 3


class TestCrqSheet:
    def test_rows_and_totals(self) -> None:
        crq = CrqSummary(
            rows=[CrqRow(threat_scenario_id=new_uuid7(), name="Ransomware", sle=250000.0,
                         aro=0.25, ale=62500.0, band="high", badge="danger")],
            total_ale=62500.0,
            band_counts={"high": 1, "medium": 0, "low": 0},
        )
        ws = _load(RegisterWorkbookExporter().export([], crq, project_name="Readiness"))[
            "CRQ Summary"
        ]
        assert ws["B1"].value == "Readiness"
        assert ws["A4"].value == "Ransomware"
        assert ws["D4"].value == 62500
        assert ws["A5"].value == "Total ALE"
        assert ws["D5"].value == 62500
        assert ws["A6"].value == "High risk scenarios"
        assert ws["B6"].value == 1
