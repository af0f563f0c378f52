"""
Colors, fonts, fills, borders and number formats for the PriceWatch workbooks.
"""
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------
WATCH_BLUE = "1E40AF"
NAVY = "1E3A8A"
ZEBRA = "EEF2FF"
GRID = "CBD5E1"
ALERT_RED = "DC2626"
MUTED = "64748B"
INK = "0F172A"


def _font(size: int, color: str, bold: bool = False, italic: bool = False) -> Font:
    return Font(name="Calibri", size=size, bold=bold, italic=italic, color=color)


def _box(color: str, bottom: str = "thin") -> Border:
    edge = Side(style="thin", color=color)
    return Border(left=edge, right=edge, top=edge, bottom=Side(style=bottom, color=color))


# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------
TITLE_FONT = _font(18, NAVY, bold=True)
SUBTITLE_FONT = _font(10, MUTED, italic=True)
SECTION_FONT = _font(13, NAVY, bold=True)
HEADER_FONT = _font(11, "FFFFFF", bold=True)
DATA_FONT = _font(10, INK)
NOTE_FONT = Font(name="Consolas", size=9, color=MUTED)
KPI_VALUE_FONT = _font(22, WATCH_BLUE, bold=True)
KPI_ALERT_FONT = _font(22, ALERT_RED, bold=True)
KPI_LABEL_FONT = _font(9, MUTED)

# ---------------------------------------------------------------------------
# Fills and borders
# ---------------------------------------------------------------------------
HEADER_FILL = PatternFill(start_color=NAVY, end_color=NAVY, fill_type="solid")
ZEBRA_FILL = PatternFill(start_color=ZEBRA, end_color=ZEBRA, fill_type="solid")
THIN_BORDER = _box(GRID)
HEADER_BORDER = _box(NAVY, bottom="medium")

# ---------------------------------------------------------------------------
# Alignments and number formats
# ---------------------------------------------------------------------------
CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEFT = Alignment(horizontal="left", vertical="top")
RIGHT = Alignment(horizontal="right", vertical="top")
WRAP = Alignment(horizontal="left", vertical="top", wrap_text=True)

# Amounts are VND: thousands separator, no decimals
MONEY_FORMAT = "#,##0"
COUNT_FORMAT = "#,##0"
