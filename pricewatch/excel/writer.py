"""
ExcelWriter — builds the styled PriceWatch workbooks: a summary sheet of
KPI cards and notes, then flat data sheets with one row per result.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from pricewatch.excel.styles import TITLE_FONT, SUBTITLE_FONT, SECTION_FONT, NOTE_FONT
from pricewatch.excel.formatters import add_kpi_card, auto_column_width, format_data_cell, format_header_row

ColSpec = tuple[str, str, str]  # (key, col_type, label)

KPI_SPACING = 2   # columns between KPI cards
KPI_HEIGHT = 3    # value row, label row, gap


class ExcelWriter:
    """Accumulates sheets in one openpyxl Workbook until ``save``."""

    def __init__(self) -> None:
        self.wb = Workbook()
        self._sheets: list[Worksheet] = []

    # ------------------------------------------------------------------
    # Sheets
    # ------------------------------------------------------------------

    def add_sheet(self, title: str, tab_color: Optional[str] = None) -> Worksheet:
        # openpyxl starts with one empty sheet; the first call takes it over
        ws = self.wb.active if not self._sheets else self.wb.create_sheet()
        ws.title = title[:31]
        if tab_color:
            ws.sheet_properties.tabColor = tab_color
        self._sheets.append(ws)
        return ws

    # ------------------------------------------------------------------
    # Summary blocks
    # ------------------------------------------------------------------

    def write_title(self, ws: Worksheet, title: str, subtitle: str, merge_cols: int = 6) -> int:
        """Title and subtitle across ``merge_cols`` columns. Returns next free row."""
        for row, text, font in ((1, title, TITLE_FONT), (2, subtitle, SUBTITLE_FONT)):
            _merged_line(ws, row, merge_cols, text, font)
        for col in range(1, merge_cols + 1):
            ws.column_dimensions[get_column_letter(col)].width = 20
        return 4

    def write_section(self, ws: Worksheet, row: int, title: str) -> int:
        ws.cell(row=row, column=1, value=title).font = SECTION_FONT
        return row + 2

    def write_note(self, ws: Worksheet, row: int, text: str) -> int:
        ws.cell(row=row, column=1, value=text).font = NOTE_FONT
        return row + 1

    def write_kpi_row(self, ws: Worksheet, row: int, kpis: Iterable[tuple]) -> int:
        """One card per (value, label, format_type[, alert]) tuple, left to right."""
        for i, (value, label, fmt, *rest) in enumerate(kpis):
            add_kpi_card(ws, row, 1 + i * KPI_SPACING, value, label, fmt, alert=bool(rest and rest[0]))
        return row + KPI_HEIGHT

    # ------------------------------------------------------------------
    # Data sheets
    # ------------------------------------------------------------------

    def write_table(
        self,
        ws: Worksheet,
        start_row: int,
        columns: list[ColSpec],
        data: list[dict] | pd.DataFrame,
        freeze: bool = True,
    ) -> int:
        """Header row from the column labels, then one row per mapping.

        Missing keys become empty cells. Returns the first row after the table.
        """
        for col_num, (_, _, label) in enumerate(columns, 1):
            ws.cell(row=start_row, column=col_num, value=label)
        format_header_row(ws, start_row, len(columns))

        records = data.to_dict("records") if isinstance(data, pd.DataFrame) else data
        row = start_row
        for row, record in enumerate(records, start_row + 1):
            for col_num, (key, col_type, _) in enumerate(columns, 1):
                format_data_cell(ws, row, col_num, _cell_value(record.get(key)), col_type)
        end_row = row + 1

        auto_column_width(ws)
        if columns and end_row > start_row + 1:
            ws.auto_filter.ref = f"A{start_row}:{get_column_letter(len(columns))}{end_row - 1}"
        if freeze:
            ws.freeze_panes = ws.cell(row=start_row + 1, column=1)
        return end_row

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.wb.save(path)
        return path


def _merged_line(ws: Worksheet, row: int, width: int, text: str, font) -> None:
    ws.cell(row=row, column=1, value=text).font = font
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)


def _cell_value(value: Any) -> Any:
    """Blank out NaN/None; openpyxl rejects numpy scalars in some versions."""
    if isinstance(value, (list, tuple)):
        return value
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value
