"""Styled workbook building for analysis and working-set exports."""
from .styles import MONEY_FORMAT
from .formatters import format_header_row, format_data_cell, auto_column_width, add_kpi_card
from .writer import ColSpec, ExcelWriter
