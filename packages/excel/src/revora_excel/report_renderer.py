"""Tranche report renderer: one workbook per tranche, one sheet per view."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from revora_domain.blocks import (
    BlockContext,
    BlockExecutor,
    DistributionBlock,
    OwnershipBlock,
    RefundBlock,
)
from revora_domain.ledger import DistributionEngine, OwnershipLedger


# Sheet title -> (context key, column headers)
SHEETS: Dict[str, tuple] = {
    "Holders": ("ownership_by_holder", {
        "holder": "Holder",
        "units": "Units",
        "ownership_pct": "% Owned",
        "cost_basis_value": "Value at Price",
    }),
    "Distributions": ("distributions", {
        "distribution_id": "ID",
        "created_at": "Created",
        "claim_deadline": "Claim Deadline",
        "is_open": "Open",
        "effective_bps": "Secondary bps",
        "total_amount": "Total",
        "tranche_amount": "To Holders",
        "secondary_amount": "Secondary",
        "total_claimed": "Paid Out",
        "unclaimed": "Unclaimed",
        "snapshot_sequence": "Snapshot",
        "claimants": "Claimants",
    }),
    "Claims": ("claims_by_holder", {
        "distribution_id": "Distribution",
        "holder": "Holder",
        "snapshot_units": "Units at Snapshot",
        "claimable": "Claimable",
        "claimed": "Claimed",
    }),
    "Refunds": ("refunds_by_holder", {
        "holder": "Holder",
        "units": "Units",
        "refund_amount": "Refund",
        "claimed": "Claimed",
    }),
}

AMOUNT_COLUMNS = {
    "cost_basis_value", "total_amount", "tranche_amount", "secondary_amount", "total_claimed",
    "unclaimed", "claimable", "refund_amount", "funding_goal", "total_raised", "pool",
    "remaining",
}
UNIT_COLUMNS = {"units", "snapshot_units", "total_units"}
PCT_COLUMNS = {"ownership_pct", "pct_funded"}


class TrancheReportRenderer:
    """Render a tranche's read-only views to an xlsx workbook.

    Sheets: Summary (funding and refund status), Holders, Distributions,
    Claims and Refunds.

    Example:
        renderer = TrancheReportRenderer(ledger, engine)
        renderer.render("chicken_farm.xlsx")
    """

    def __init__(
        self,
        ledger: OwnershipLedger,
        engine: Optional[DistributionEngine] = None,
        title: Optional[str] = None,
    ):
        self.ledger = ledger
        self.engine = engine
        self.title = title or f"{ledger.name} ({ledger.symbol})"

        # Define styles
        self.title_font = Font(size=14, bold=True)
        self.bold_font = Font(bold=True)
        self.label_font = Font(italic=True)

        # Header styling
        self.header_font = Font(bold=True, color="FFFFFF")  # White text on dark blue
        self.header_fill = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")

        # Section header styling
        self.section_header_font = Font(italic=True, bold=True)
        self.section_header_fill = PatternFill(start_color="E7E6E6", end_color="E7E6E6", fill_type="solid")

        self.thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        self.totals_border = Border(top=Side(style='medium'), bottom=Side(style='medium'))

        self.center_align = Alignment(horizontal='center', vertical='center')

    def render(self, output_path: str) -> str:
        wb = self.build_workbook()
        wb.save(output_path)
        return output_path

    def compute(self) -> BlockContext:
        """Run the reporting blocks over the ledger (and engine, if given)."""
        context = BlockContext()
        context.set("tranche_ledger", self.ledger)
        blocks = [OwnershipBlock(), RefundBlock()]
        if self.engine is not None:
            context.set("distribution_engine", self.engine)
            blocks.append(DistributionBlock())
        return BlockExecutor(blocks).execute(context)

    def build_workbook(self) -> Workbook:
        context = self.compute()

        wb = Workbook()
        wb.remove(wb.active)

        self._render_summary(wb, context)
        for sheet_title, (key, headers) in SHEETS.items():
            if not context.has(key):
                continue
            self._render_table(wb.create_sheet(title=sheet_title), context.get(key), headers)

        return wb

    # ------------------------------------------------------------------ #
    # Sheets
    # ------------------------------------------------------------------ #

    def _render_summary(self, wb: Workbook, context: BlockContext) -> None:
        sheet = wb.create_sheet(title="Summary")
        sheet.sheet_view.showGridLines = False

        title_cell = sheet["A1"]
        title_cell.value = self.title
        title_cell.font = self.title_font

        row = 3
        for section, df in (
            ("Funding", context.get("funding_summary")),
            ("Refunds", context.get("refund_summary")),
        ):
            header = sheet.cell(row=row, column=1, value=section)
            header.font = self.section_header_font
            header.fill = self.section_header_fill
            sheet.cell(row=row, column=2).fill = self.section_header_fill
            row += 1

            # Single-row frames become label/value pairs
            record = df.iloc[0].to_dict()
            for key, value in record.items():
                label = sheet.cell(row=row, column=1, value=key.replace("_", " ").title())
                label.font = self.label_font
                cell = sheet.cell(row=row, column=2, value=self._excel_value(value))
                self._format_cell(cell, key)
                row += 1
            row += 1

        sheet.column_dimensions["A"].width = 22
        sheet.column_dimensions["B"].width = 28

    def _render_table(self, sheet: Worksheet, df: pd.DataFrame, headers: Dict[str, str]) -> None:
        columns: List[str] = [c for c in headers if c in df.columns]

        for col_idx, column in enumerate(columns, start=1):
            cell = sheet.cell(row=1, column=col_idx, value=headers[column])
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.center_align
            cell.border = Border(right=Side(style='thin', color="FFFFFF"))
            sheet.column_dimensions[get_column_letter(col_idx)].width = max(12, len(headers[column]) + 4)

        for row_idx, record in enumerate(df.to_dict("records"), start=2):
            for col_idx, column in enumerate(columns, start=1):
                cell = sheet.cell(row=row_idx, column=col_idx, value=self._excel_value(record[column]))
                cell.border = self.thin_border
                self._format_cell(cell, column)

        if not df.empty:
            self._render_totals(sheet, df, columns, len(df) + 2)

        sheet.freeze_panes = "A2"

    def _render_totals(self, sheet: Worksheet, df: pd.DataFrame, columns: List[str], row: int) -> None:
        label = sheet.cell(row=row, column=1, value="Total")
        label.font = self.bold_font
        label.border = self.totals_border

        for col_idx, column in enumerate(columns, start=1):
            if column not in AMOUNT_COLUMNS and column not in UNIT_COLUMNS:
                continue
            letter = get_column_letter(col_idx)
            cell = sheet.cell(row=row, column=col_idx, value=f"=SUM({letter}2:{letter}{row - 1})")
            cell.font = self.bold_font
            cell.border = self.totals_border
            self._format_cell(cell, column)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _excel_value(value):
        if isinstance(value, pd.Timestamp):
            value = value.to_pydatetime()
        if isinstance(value, datetime) and value.tzinfo is not None:
            # Excel has no time zones; times are written as naive UTC
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        if hasattr(value, "item"):
            # numpy scalars
            return value.item()
        return value

    @staticmethod
    def _format_cell(cell, column: str) -> None:
        if column in AMOUNT_COLUMNS:
            cell.number_format = '#,##0.00'
        elif column in UNIT_COLUMNS:
            cell.number_format = '#,##0.####'
        elif column in PCT_COLUMNS:
            cell.number_format = '0.00"%"'
        elif column in ("created_at", "claim_deadline"):
            cell.number_format = 'yyyy-mm-dd hh:mm'
