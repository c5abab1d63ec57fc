"""Risk register Excel export.

Sheets:
- Risk Register: one row per threat scenario, ALE as a linked formula
- Assessments: per-assessment rows with boundary names
- CRQ Summary: banded ALE rows plus totals
"""

import io

from openpyxl import Workbook
from openpyxl.styles import Font

from isms.models.register import CrqSummary, RiskRegisterItemWithDetails

REGISTER_HEADERS = [
    "Threat Scenario", "Description", "Threat Actor", "SLE", "ARO", "ALE",
    "Frequency", "Risk Value", "Gaps", "Assessments", "Evidence",
]


class RegisterWorkbookExporter:
    """Render the risk register and CRQ summary as an .xlsx workbook."""

    def export(self, items: list[RiskRegisterItemWithDetails],
               crq: CrqSummary, project_name: str = "") -> bytes:
        wb = Workbook()
        wb.remove(wb.active)

        self._write_register(wb, items)
        self._write_assessments(wb, items)
        self._write_crq(wb, crq, project_name)

        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    def _write_register(self, wb: Workbook, items: list[RiskRegisterItemWithDetails]) -> None:
        ws = wb.create_sheet("Risk Register")
        for col, h in enumerate(REGISTER_HEADERS, 1):
            ws.cell(row=1, column=col, value=h).font = Font(bold=True)

        for row_idx, item in enumerate(items, 2):
            ws.cell(row=row_idx, column=1, value=item.threat_name)
            ws.cell(row=row_idx, column=2, value=item.threat_description or "")
            ws.cell(row=row_idx, column=3, value=item.threat_actor_type or "")
            ws.cell(row=row_idx, column=4, value=item.sle)
            ws.cell(row=row_idx, column=5, value=item.aro)
            # ALE = SLE x ARO, left empty when either is missing
            if item.ale is not None:
                ws.cell(row=row_idx, column=6, value=f"=D{row_idx}*E{row_idx}")
            ws.cell(row=row_idx, column=7, value=item.aro_frequency_text or "")
            ws.cell(row=row_idx, column=8, value=item.highest_risk_value)
            ws.cell(row=row_idx, column=9, value=item.gap_count)
            ws.cell(row=row_idx, column=10, value=item.risk_assessment_count)
            ws.cell(row=row_idx, column=11, value=item.evidence_count)

    def _write_assessments(self, wb: Workbook, items: list[RiskRegisterItemWithDetails]) -> None:
        ws = wb.create_sheet("Assessments")
        headers = ["Threat Scenario", "Boundary", "Severity", "SLE", "ARO", "Assessed"]
        for col, h in enumerate(headers, 1):
            ws.cell(row=1, column=col, value=h).font = Font(bold=True)

        row_idx = 2
        for item in items:
            for a in item.risk_assessments:
                ws.cell(row=row_idx, column=1, value=item.threat_name)
                ws.cell(row=row_idx, column=2, value=a.boundary_name)
                ws.cell(row=row_idx, column=3, value=a.severity or "")
                ws.cell(row=row_idx, column=4, value=a.sle)
                ws.cell(row=row_idx, column=5, value=a.aro)
                ws.cell(
                    row=row_idx, column=6,
                    value=a.assessment_date.date().isoformat() if a.assessment_date else "",
                )
                row_idx += 1

    def _write_crq(self, wb: Workbook, crq: CrqSummary, project_name: str) -> None:
        ws = wb.create_sheet("CRQ Summary")
        ws.cell(row=1, column=1, value="Project")
        ws.cell(row=1, column=2, value=project_name)
        headers = ["Threat Scenario", "SLE", "ARO", "ALE", "Band"]
        for col, h in enumerate(headers, 1):
            ws.cell(row=3, column=col, value=h).font = Font(bold=True)

        first = 4
        for row_idx, row in enumerate(crq.rows, first):
            ws.cell(row=row_idx, column=1, value=row.name)
            ws.cell(row=row_idx, column=2, value=row.sle)
            ws.cell(row=row_idx, column=3, value=row.aro)
            ws.cell(row=row_idx, column=4, value=row.ale)
            ws.cell(row=row_idx, column=5, value=row.band)

        total_row = first + len(crq.rows)
        ws.cell(row=total_row, column=1, value="Total ALE").font = Font(bold=True)
        ws.cell(row=total_row, column=4, value=crq.total_ale)
        for offset, (band, count) in enumerate(crq.band_counts.items(), 1):
            ws.cell(row=total_row + offset, column=1, value=f"{band.title()} risk scenarios")
            ws.cell(row=total_row + offset, column=2, value=count)
