#!/usr/bin/env python3
"""
Generate rent invoices for landlords with auto-invoice enabled.

Usage:
    python -m scripts.generate_auto_invoices [--date YYYY-MM-DD]
        [--landlord UUID] [--database-url URL]

    rent-generate-invoices ...   (installed console script)

``--date`` is normalized to the first day of its month and defaults to the
first day of the current month.  Without ``--landlord`` only landlords whose
auto_invoice.day_of_month is today are processed; with it, the named
landlord is processed regardless of schedule.

The database URL comes from ``--database-url`` or the DATABASE_URL
environment variable.  Exit status is 1 for invalid arguments, otherwise 0;
per-landlord failures are reported in the output.
"""

import argparse
import os
import sys
from datetime import date
from uuid import UUID

from rental_kernel.db.engine import get_session_factory, init_engine_from_url
from rental_kernel.domain.calendar import first_of_month
from rental_kernel.domain.clock import Clock, SystemClock

from rental_batch.domain.types import LandlordGenerationResult, LandlordRunResult
from rental_batch.services.scheduler import AutoInvoiceScheduler

MAX_LISTED_INVOICES = 10


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rent-generate-invoices",
        description=(
            "Generate rent invoices automatically for all active lease "
            "accounts based on each landlord's configured schedule"
        ),
    )
    parser.add_argument(
        "--date",
        help="Invoice date (YYYY-MM-DD, defaults to first day of current month)",
    )
    parser.add_argument(
        "--landlord",
        help="Generate for this landlord id only",
    )
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="SQLAlchemy database URL (default: $DATABASE_URL)",
    )
    return parser.parse_args(argv)


def _print_landlord(run: LandlordRunResult, out) -> None:
    result = run.result
    print(file=out)
    print(f"Landlord: {run.landlord_name}", file=out)

    if not result.success:
        print("  Status: FAILED", file=out)
        print(f"  Message: {result.message or 'Unknown error'}", file=out)
        for error in result.errors:
            print(f"    - {error}", file=out)
        return

    print("  Status: OK", file=out)
    print(f"  Created: {result.created}", file=out)
    print(f"  Skipped: {result.skipped}", file=out)
    print(f"  Failed: {result.failed}", file=out)

    if result.invoices:
        print(file=out)
        print("  Generated invoices:", file=out)
        for invoice in result.invoices[:MAX_LISTED_INVOICES]:
            print(
                f"    - {invoice.invoice_number} for {invoice.tenant_name} "
                f"(Unit: {invoice.unit_number})",
                file=out,
            )
        if len(result.invoices) > MAX_LISTED_INVOICES:
            print(f"    ... and {len(result.invoices) - MAX_LISTED_INVOICES} more", file=out)

    if result.skipped_details:
        print(file=out)
        print("  Skipped:", file=out)
        for item in result.skipped_details:
            print(f"    - {item.tenant_name} (Unit: {item.unit_number}): {item.reason}", file=out)

    if result.failed_details:
        print(file=out)
        print("  Failed:", file=out)
        for item in result.failed_details:
            print(f"    - {item.tenant_name} (Unit: {item.unit_number}): {item.reason}", file=out)


def run(
    invoice_date: date,
    landlord_id: UUID | None,
    scheduler: AutoInvoiceScheduler,
    out=None,
) -> None:
    out = out or sys.stdout
    print("Starting automatic rent invoice generation...", file=out)

    if landlord_id is not None:
        print(f"Generating invoices for landlord ID: {landlord_id}", file=out)
        result: LandlordGenerationResult = scheduler.run_landlord(landlord_id, invoice_date)
        _print_landlord(
            LandlordRunResult(landlord_id=landlord_id, landlord_name=str(landlord_id), result=result),
            out,
        )
        return

    print("Generating invoices for all landlords with auto-invoice enabled...", file=out)
    print(f"Invoice date: {invoice_date.isoformat()}", file=out)

    summary = scheduler.generate_for_all_enabled(invoice_date)
    for landlord_run in summary.results:
        _print_landlord(landlord_run, out)

    print(file=out)
    print(summary.message, file=out)
    print("Summary:", file=out)
    print(f"  Total landlords: {summary.total_landlords}", file=out)
    print(f"  Processed: {summary.processed}", file=out)
    print(f"  Success: {summary.success}", file=out)
    print(f"  Failed: {summary.failed}", file=out)


def main(argv: list[str] | None = None, clock: Clock | None = None) -> int:
    args = _parse_args(argv)
    clock = clock or SystemClock()

    if args.date:
        try:
            invoice_date = first_of_month(date.fromisoformat(args.date))
        except ValueError:
            print("Invalid date format. Use YYYY-MM-DD (e.g., 2024-01-01)", file=sys.stderr)
            return 1
    else:
        invoice_date = first_of_month(clock.today())

    landlord_id = None
    if args.landlord:
        try:
            landlord_id = UUID(args.landlord)
        except ValueError:
            print(f"Invalid landlord id: {args.landlord}", file=sys.stderr)
            return 1

    if not args.database_url:
        print("No database URL. Pass --database-url or set DATABASE_URL.", file=sys.stderr)
        return 1

    init_engine_from_url(args.database_url)
    scheduler = AutoInvoiceScheduler(get_session_factory(), clock=clock)
    run(invoice_date, landlord_id, scheduler)
    return 0


if __name__ == "__main__":
    sys.exit(main())
