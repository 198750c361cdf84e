#!/usr/bin/env python3
"""
Command-line access to the cooperative ledger.

Works against the persistent dataset store selected by
COOP_LEDGER_DATABASE_URL (or --db) and the rate policy selected by
COOP_LEDGER_POLICY (or --policy).

Usage:
    coop-ledger years
    coop-ledger summary --year 2024-2025
    coop-ledger members
    coop-ledger create-year 2025-2026 --from 2024-2025
    coop-ledger export -o backup.json
    coop-ledger import backup.json --year 2024-2025
"""

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path

from coop_config import get_active_policy, get_database_url
from coop_engines.accrual import FinancialSummary
from coop_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from coop_kernel.domain.clock import SystemClock
from coop_kernel.exceptions import CoopLedgerError
from coop_kernel.logging_config import configure_logging
from coop_services.dataset_store import SqlDatasetStore
from coop_services.year_service import FinancialYearService

W = 56


# =============================================================================
# Formatting
# =============================================================================

def money(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):,}"


def row(name: str, value: str) -> str:
    return f"  {name:<28}{value:>{W - 30}}"


def print_summary(label: str, summary: FinancialSummary) -> None:
    print("=" * W)
    print(f"  Financial year {label}")
    print("=" * W)
    print(row("Online balance", money(summary.online_balance)))
    print(row("Offline balance", money(summary.offline_balance)))
    print(row("Total balance", money(summary.total_balance)))
    print("-" * W)
    print(row("Contributions", money(summary.total_contributions)))
    print(row("Loan interest", money(summary.loan_interest)))
    print(row("Late fees", money(summary.late_fees)))
    print(row("FD interest", money(summary.fd_interest)))
    print(row("Net profit", money(summary.net_profit)))
    print("-" * W)
    print(row("Active loans", money(summary.active_loans_value)))
    print(row("Active fixed deposits", money(summary.active_fds_value)))


# =============================================================================
# Commands
# =============================================================================

def cmd_years(service: FinancialYearService, args: argparse.Namespace) -> int:
    for label in service.labels():
        marker = "*" if label == service.current_label else " "
        print(f"{marker} {label}")
    return 0


def cmd_summary(service: FinancialYearService, args: argparse.Namespace) -> int:
    label = args.year or service.current_label
    print_summary(label, service.summary(label))
    return 0


def cmd_members(service: FinancialYearService, args: argparse.Namespace) -> int:
    label = args.year or service.current_label
    shares = service.shares(label)
    if not shares:
        print(f"No members in {label}.")
        return 0
    print(f"{'Member':<24}{'Contributed':>12}{'Share %':>9}{'Profit':>11}")
    for share in shares:
        print(
            f"{share.name[:23]:<24}{money(share.contribution):>12}"
            f"{share.percentage.quantize(Decimal('0.01')):>9}{money(share.profit_share):>11}"
        )
    return 0


def cmd_create_year(service: FinancialYearService, args: argparse.Namespace) -> int:
    new_label = args.label or service.next_label()
    result = service.create_year(new_label, args.source)
    opening = result.dataset.opening_balances
    print(f"Created {result.new_label}")
    print(row("Members carried", str(len(result.dataset.members))))
    print(row("Active loans carried", str(len(result.dataset.loans))))
    print(row("Active FDs carried", str(len(result.dataset.fds))))
    print(row("Opening online", money(opening.online)))
    print(row("Opening offline", money(opening.offline)))
    return 0


def cmd_export(service: FinancialYearService, args: argparse.Namespace) -> int:
    document = service.export(args.year)
    if args.output:
        Path(args.output).write_text(document + "\n", encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(document)
    return 0


def cmd_import(service: FinancialYearService, args: argparse.Namespace) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    label = args.year or service.current_label
    dataset = service.restore(label, text)
    print(
        f"Restored {label}: {len(dataset.members)} members, "
        f"{len(dataset.loans)} loans, {len(dataset.fds)} FDs"
    )
    return 0


COMMANDS = {
    "years": cmd_years,
    "summary": cmd_summary,
    "members": cmd_members,
    "create-year": cmd_create_year,
    "export": cmd_export,
    "import": cmd_import,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coop-ledger",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db", help="Database URL (default: $COOP_LEDGER_DATABASE_URL)")
    parser.add_argument("--policy", help="Rate policy YAML (default: $COOP_LEDGER_POLICY)")
    parser.add_argument("--log-level", default="WARNING", help="Log level for JSON logs on stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("years", help="List stored financial years")

    p = sub.add_parser("summary", help="Balances and profit for a year")
    p.add_argument("--year", help="Financial year label, e.g. 2024-2025")

    p = sub.add_parser("members", help="Member contributions and profit shares")
    p.add_argument("--year", help="Financial year label")

    p = sub.add_parser("create-year", help="Open a new year from the previous one")
    p.add_argument("label", nargs="?", help="New year label (default: the next year)")
    p.add_argument("--from", dest="source", help="Source year (default: the newest year)")

    p = sub.add_parser("export", help="Write a year's backup document")
    p.add_argument("--year", help="Financial year label")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")

    p = sub.add_parser("import", help="Replace a year from a backup document")
    p.add_argument("file", help="Backup JSON file")
    p.add_argument("--year", help="Financial year label")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    try:
        policy = get_active_policy(args.policy)
        init_engine_from_url(args.db or get_database_url())
        create_tables()
        service = FinancialYearService(
            SqlDatasetStore(get_session_factory()),
            policy=policy,
            clock=SystemClock(),
        )
        service.bootstrap()
        return COMMANDS[args.command](service, args)
    except CoopLedgerError as exc:
        print(f"ERROR: {exc.code}: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"ERROR: IO_ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
