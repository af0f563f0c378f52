#!/usr/bin/env python3
"""
PriceWatch CLI — bid-sheet price analysis from the command line, and the API server.

USAGE:
  python -m pricewatch.cli analyze bids_2024.xlsx bids_2025.csv         # ALERT report
  python -m pricewatch.cli analyze *.xlsx --mode compare                 # COMPARE report
  python -m pricewatch.cli analyze bids.xlsx --out ./alerts.xlsx
  python -m pricewatch.cli analyze bids.xlsx --export-records ./clean.xlsx

  python -m pricewatch.cli demo                                          # sample data, ALERT
  python -m pricewatch.cli demo --mode compare --seed 7

  python -m pricewatch.cli serve                                         # Start API server
  python -m pricewatch.cli serve --port 8000
"""
from __future__ import annotations

import argparse
import logging
import os
from datetime import datetime
from pathlib import Path

from pricewatch.config import LOG_LEVEL, REPORTS_FOLDER
from pricewatch.analytics.orchestrator import AnalysisResultSet, QueryOrchestrator
from pricewatch.analytics.summary import dataset_summary
from pricewatch.data.loader import IngestReport, ingest_demo, ingest_file
from pricewatch.data.schemas import AnalysisMode
from pricewatch.data.store import RecordStore
from pricewatch.errors import EmptyInputError, UnreadableSheetError
from pricewatch.reports import price_report


def _print_ingest(report: IngestReport) -> None:
    print(f"   {report.display_name}: {report.committed:,} rows committed, {report.rejected:,} rejected")
    for rej in report.rejections[:20]:
        print(f"      row {rej.row_number}: {rej.kind} ({rej.field}) — {rej.message}")
    if report.rejected > 20:
        print(f"      ... {report.rejected - 20} more")


def _print_result(result: AnalysisResultSet) -> None:
    s = price_report.summarize(result)
    if result.mode == AnalysisMode.ALERT:
        print(f"\n  {s['flagged_lines']:,} overpriced lines across {s['drugs_affected']:,} drugs")
        print(f"  Total excess cost: {s['total_excess_cost']:,.0f}")
        for row in result.rows[:10]:
            r = row.record
            print(f"   {r.active_ingredient[:28]:<30}{r.facility_name[:28]:<30}"
                  f"{r.unit_price:>12,.0f}{row.min_price_in_group:>12,.0f}{row.excess_cost:>16,.0f}")
    else:
        print(f"\n  {s['drugs_compared']:,} drugs bought at more than one facility")
        for row in result.rows[:10]:
            print(f"   {row.active_ingredient[:28]:<30}{row.concentration[:10]:<12}"
                  f"{row.facility_count:>4}{row.min_price:>12,.0f}{row.max_price:>12,.0f}")


def _report(store: RecordStore, args) -> None:
    s = dataset_summary(store.snapshot())
    print(f"\n  Working set: {s['records']:,} records, {s['unique_drugs']:,} drugs, "
          f"{s['unique_facilities']:,} facilities, value {s['total_value']:,.0f}")

    if getattr(args, "export_records", None):
        path = price_report.export_records_excel(store.records(), args.export_records)
        print(f"  Records exported to: {path}")

    orchestrator = QueryOrchestrator(store)
    mode = AnalysisMode.parse(args.mode)
    try:
        result = orchestrator.run_current(mode)
    except EmptyInputError as e:
        print(f"\n  {e}\n")
        return
    _print_result(result)

    out = Path(args.out) if args.out else REPORTS_FOLDER / f"PriceWatch_{mode.value}_{datetime.now():%Y%m%d_%H%M%S}.xlsx"
    price_report.generate_excel(result, out)
    print(f"\n  Report saved to: {out}\n")


def cmd_analyze(args):
    """Ingest sheets as batches and write a report."""
    print("\n" + "=" * 70)
    print("  PRICEWATCH — BID PRICE ANALYSIS")
    print("=" * 70 + "\n")

    store = RecordStore()
    for name in args.files:
        try:
            _print_ingest(ingest_file(store, name))
        except (UnreadableSheetError, FileNotFoundError) as e:
            print(f"   Skipping {name}: {e}")
    _report(store, args)


def cmd_demo(args):
    """Run an analysis over the sample bid sheet."""
    print("\n" + "=" * 70)
    print("  PRICEWATCH — DEMO DATA")
    print("=" * 70 + "\n")

    store = RecordStore()
    _print_ingest(ingest_demo(store, args.seed))
    _report(store, args)


def cmd_serve(args):
    """Start the API server."""
    import uvicorn
    print(f"\nStarting PriceWatch API on port {args.port}...")
    uvicorn.run("pricewatch.main:app", host="0.0.0.0", port=args.port, reload=args.reload,
                timeout_keep_alive=65)


def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(
        description="PriceWatch — drug bid price analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    modes = [m.value.lower() for m in AnalysisMode]

    # analyze subcommand
    analyze_parser = subparsers.add_parser("analyze", help="Analyse bid sheets")
    analyze_parser.add_argument("files", nargs="+", help=".xlsx/.xls/.csv bid sheet(s)")
    analyze_parser.add_argument("--mode", choices=modes, default="alert", help="Analysis mode (default alert)")
    analyze_parser.add_argument("--out", help="Report path (default: reports folder)")
    analyze_parser.add_argument("--export-records", help="Also write the cleaned working set to this .xlsx")
    analyze_parser.set_defaults(func=cmd_analyze)

    # demo subcommand
    demo_parser = subparsers.add_parser("demo", help="Analyse the sample bid sheet")
    demo_parser.add_argument("--mode", choices=modes, default="alert", help="Analysis mode (default alert)")
    demo_parser.add_argument("--seed", type=int, default=0, help="Random seed for the sample prices")
    demo_parser.add_argument("--out", help="Report path (default: reports folder)")
    demo_parser.set_defaults(func=cmd_demo)

    # serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8000")), help="Port (default 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
