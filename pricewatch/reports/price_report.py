"""
Price Watch Report — ALERT / COMPARE result sets as JSON and styled Excel,
plus a plain export of the working record set.
"""
from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from pricewatch.analytics.alert import total_excess_cost
from pricewatch.analytics.common import identity_key, sanitize_for_json
from pricewatch.analytics.orchestrator import AnalysisResultSet
from pricewatch.config import ALERT_KEY_FIELDS
from pricewatch.data.schemas import AnalysisMode, DrugBidRecord
from pricewatch.excel.writer import ExcelWriter


ALERT_COLS = [
    ("active_ingredient", "text", "Drug"),
    ("concentration", "text", "Strength"),
    ("registration_number", "text", "Reg. No"),
    ("manufacturer", "text", "Manufacturer"),
    ("facility_name", "text", "Facility (Higher Price)"),
    ("unit_price", "currency", "Facility Price"),
    ("min_price_in_group", "currency", "Min Price"),
    ("price_delta", "currency", "Difference"),
    ("quantity", "number", "Qty Bought"),
    ("excess_cost", "currency", "Total Excess"),
]

COMPARE_COLS = [
    ("active_ingredient", "text", "Drug"),
    ("concentration", "text", "Strength"),
    ("registration_number", "text", "Reg. No"),
    ("therapeutic_group", "text", "Group"),
    ("facility_count", "number", "Facilities"),
    ("min_price", "currency", "Lowest Price"),
    ("max_price", "currency", "Highest Price"),
    ("price_detail", "lines", "Price by Facility"),
]

MODE_COLUMNS = {
    AnalysisMode.ALERT: ALERT_COLS,
    AnalysisMode.COMPARE: COMPARE_COLS,
}

MODE_TITLES = {
    AnalysisMode.ALERT: "Price Alert Report",
    AnalysisMode.COMPARE: "Cross-Facility Price Comparison",
}


def summarize(result_set: AnalysisResultSet) -> dict:
    if result_set.mode == AnalysisMode.ALERT:
        return {
            "flagged_lines": len(result_set),
            "drugs_affected": len({identity_key(r.record, ALERT_KEY_FIELDS) for r in result_set.rows}),
            "facilities_affected": len({r.record.facility_name.strip().casefold() for r in result_set.rows}),
            "total_excess_cost": total_excess_cost(result_set.rows),
        }
    return {
        "drugs_compared": len(result_set),
        "widest_spread": max((r.price_spread for r in result_set.rows), default=0.0),
    }


def generate_json(result_set: AnalysisResultSet) -> dict:
    columns = MODE_COLUMNS[result_set.mode]
    return sanitize_for_json({
        "mode": result_set.mode.value,
        "generation": result_set.generation,
        "computed_at": result_set.computed_at.isoformat(),
        "query_text": result_set.query_text,
        "summary": summarize(result_set),
        "columns": [{"key": k, "type": t, "label": label} for k, t, label in columns],
        "rows": result_set.to_records(),
    })


def generate_excel(result_set: AnalysisResultSet, output_path: str | Path) -> Path:
    data = generate_json(result_set)
    s = data["summary"]
    mode = result_set.mode
    ew = ExcelWriter()

    ws = ew.add_sheet("Summary")
    ew.write_title(ws, MODE_TITLES[mode],
                   f"Data generation {result_set.generation}  |  Generated {pd.Timestamp.now():%B %d, %Y %H:%M}")
    row = ew.write_section(ws, 5, "OVERVIEW")
    if mode == AnalysisMode.ALERT:
        row = ew.write_kpi_row(ws, row, [
            (s["flagged_lines"], "OVERPRICED LINES", "number"),
            (s["drugs_affected"], "DRUGS AFFECTED", "number"),
            (s["facilities_affected"], "FACILITIES AFFECTED", "number"),
            (s["total_excess_cost"], "TOTAL EXCESS COST", "currency", True),
        ])
    else:
        row = ew.write_kpi_row(ws, row, [
            (s["drugs_compared"], "DRUGS AT 2+ FACILITIES", "number"),
            (s["widest_spread"], "WIDEST PRICE SPREAD", "currency", True),
        ])
    if result_set.query_text:
        row = ew.write_section(ws, row, "QUERY")
        for line in result_set.query_text.splitlines():
            row = ew.write_note(ws, row, line)

    ws_d = ew.add_sheet("Alerts" if mode == AnalysisMode.ALERT else "Comparison")
    ew.write_table(ws_d, 1, MODE_COLUMNS[mode], data["rows"])

    return ew.save(output_path)


def export_records_excel(records: Sequence[DrugBidRecord], output_path: str | Path) -> Path:
    """Working set as one flat sheet, under the headers it was uploaded with.

    Unrecognised columns come back unchanged, so a sheet that went through
    ingestion and editing can be re-imported.
    """
    rows = [r.to_row(source_headers=True) for r in records]
    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    ew = ExcelWriter()
    ws = ew.add_sheet("Report")
    ew.write_table(ws, 1, [(h, "text", h) for h in headers], rows)
    return ew.save(output_path)
