"""
Cell-level formatting: header rows, typed data cells, column widths, KPI cards.
"""
from __future__ import annotations

from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from pricewatch.excel.styles import (
    CENTER, LEFT, RIGHT, WRAP,
    COUNT_FORMAT, MONEY_FORMAT,
    DATA_FONT, HEADER_FONT, KPI_ALERT_FONT, KPI_LABEL_FONT, KPI_VALUE_FONT,
    HEADER_BORDER, HEADER_FILL, THIN_BORDER, ZEBRA_FILL,
)

# col_type → (alignment, number format)
CELL_STYLES = {
    "text": (LEFT, None),
    "currency": (RIGHT, MONEY_FORMAT),
    "number": (RIGHT, COUNT_FORMAT),
    "lines": (WRAP, None),     # list value, one item per line
}


def format_header_row(ws: Worksheet, row_num: int, num_cols: int) -> None:
    for cells in ws.iter_rows(min_row=row_num, max_row=row_num, max_col=num_cols):
        for cell in cells:
            cell.font, cell.fill, cell.border, cell.alignment = HEADER_FONT, HEADER_FILL, HEADER_BORDER, CENTER


def format_data_cell(ws: Worksheet, row_num: int, col_num: int, value, col_type: str = "text") -> None:
    """Write one table cell styled for its column type; even rows are striped."""
    alignment, number_format = CELL_STYLES.get(col_type, CELL_STYLES["text"])
    if isinstance(value, (list, tuple)):
        value = "\n".join(map(str, value))

    cell = ws.cell(row=row_num, column=col_num, value=value)
    cell.font = DATA_FONT
    cell.border = THIN_BORDER
    cell.alignment = alignment
    if number_format:
        cell.number_format = number_format
    if row_num % 2 == 0:
        cell.fill = ZEBRA_FILL


def auto_column_width(ws: Worksheet, min_width: int = 10, max_width: int = 60) -> None:
    """Size each column to its longest line of text."""
    for idx, cells in enumerate(ws.iter_cols(), 1):
        lengths = [
            len(line)
            for cell in cells if cell.value not in (None, "")
            for line in str(cell.value).splitlines()
        ]
        width = max(lengths, default=0) + 2
        ws.column_dimensions[get_column_letter(idx)].width = min(max(width, min_width), max_width)


def add_kpi_card(
    ws: Worksheet,
    row: int,
    col: int,
    value,
    label: str,
    format_type: str = "currency",
    alert: bool = False,
) -> None:
    """Big number on ``row``, caption underneath. ``alert`` paints the number red."""
    top = ws.cell(row=row, column=col, value=value)
    top.font = KPI_ALERT_FONT if alert else KPI_VALUE_FONT
    top.alignment = CENTER
    if format_type != "text":
        top.number_format = MONEY_FORMAT if format_type == "currency" else COUNT_FORMAT

    caption = ws.cell(row=row + 1, column=col, value=label)
    caption.font = KPI_LABEL_FONT
    caption.alignment = CENTER
