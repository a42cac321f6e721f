#!/usr/bin/env python3
"""
CLI for generating condo access report PDFs.

Usage:
    python -m reporting.cli generate <store_json> <condo_id> [--start] [--end] [--out]
    python -m reporting.cli summary <store_json> <condo_id> [--start] [--end]

Examples:
    # Last 30 days for one condo
    python -m reporting.cli generate data/store.json 4f1c0a9e2b7d4c1e8a3f

    # Explicit period, custom output directory
    python -m reporting.cli generate data/store.json 4f1c0a9e2b7d4c1e8a3f \\
        --start 2026-09-01 --end 2026-09-30 --out reports/september
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path

from core.access.report import generate_access_report, report_period
from core.access.workflow import CONDOS_COLLECTION
from core.errors import InvalidRequest
from core.store.memory import InMemoryDocumentStore
from utils.config import Config
from utils.formatting import format_percent

from .access_pdf import AccessReportPDF, ReportSuccess


def parse_day(value: str) -> date:
    """Parse YYYY-MM-DD."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


async def _load_report(store_path: Path, condo_id: str, start: datetime, end: datetime):
    store = InMemoryDocumentStore(persist_path=str(store_path))
    condo = await store.get(CONDOS_COLLECTION, condo_id)
    report = await generate_access_report(store, condo_id, start, end)
    return report, (condo or {}).get("name")


def _load(args):
    store_path = Path(args.store_file)
    if not store_path.exists():
        print(f"Error: File not found: {store_path}", file=sys.stderr)
        return None

    start, end = report_period(args.start, args.end)
    try:
        return asyncio.run(_load_report(store_path, args.condo_id, start, end))
    except InvalidRequest as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def cmd_generate(args):
    """Generate a PDF report for one condo."""
    loaded = _load(args)
    if loaded is None:
        return 1
    report, condo_name = loaded

    print(f"Generating access report for: {condo_name or args.condo_id}")
    result = AccessReportPDF(output_dir=Path(args.out)).generate_report(report, condo_name)

    if isinstance(result, ReportSuccess):
        print(f"Report generated: {result.path} ({result.total_requests} requests)")
        return 0

    print(result.message)
    return 0


def cmd_summary(args):
    """Print report statistics as JSON."""
    loaded = _load(args)
    if loaded is None:
        return 1
    report, condo_name = loaded

    data = report.to_dict()
    data["condo_name"] = condo_name
    print(json.dumps(data, indent=2))
    print(
        f"Approval {format_percent(report.approval_rate)}, "
        f"denial {format_percent(report.denial_rate)}",
        file=sys.stderr,
    )
    return 0


def _add_report_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("store_file", help="Path to persisted JSON store")
    parser.add_argument("condo_id", help="Condo identifier")
    parser.add_argument("--start", type=parse_day, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=parse_day, help="Last day, inclusive (YYYY-MM-DD)")


def main(argv=None):
    """Main CLI entry point."""
    config = Config.load()
    config.configure_logging()

    parser = argparse.ArgumentParser(
        description="Condy - Condo Access Report Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli generate data/store.json <condo_id>
    python -m reporting.cli summary data/store.json <condo_id> --start 2026-09-01

Output:
    Reports are saved to: <out>/access-<condo_id>-<start>-<end>.pdf
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    gen_parser = subparsers.add_parser("generate", help="Generate a PDF access report")
    _add_report_arguments(gen_parser)
    gen_parser.add_argument(
        "--out",
        default=str(Path(config.data_dir) / "reports"),
        help="Output directory (default: $DATA_DIR/reports)",
    )
    gen_parser.set_defaults(func=cmd_generate)

    summary_parser = subparsers.add_parser("summary", help="Print report statistics as JSON")
    _add_report_arguments(summary_parser)
    summary_parser.set_defaults(func=cmd_summary)

    args = parser.parse_args(argv)
    logging.getLogger(__name__).debug("Running %s", args.command)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
