#!/usr/bin/env python3
"""
Command line entry point for price lookups.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date

import structlog
from rich import box
from rich.console import Console
from rich.table import Table

from price_inquiry.config import config
from price_inquiry.engine import Engine
from price_inquiry.models import PriceRecord, RecordStatus

logger = structlog.get_logger(__name__)

console = Console()


def suppress_all_logging():
    """Suppress all logging output for quiet and JSON modes."""
    logging.getLogger().setLevel(logging.CRITICAL)
    for name in logging.root.manager.loggerDict:
        logging.getLogger(name).setLevel(logging.CRITICAL)
        logging.getLogger(name).propagate = False

    structlog.configure(
        processors=[],
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Price and net value lookup for stocks and mutual funds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Mutual fund by 6-digit code
  python -m price_inquiry.main --code 000311

  # Several securities at once
  python -m price_inquiry.main --code sh600519 --code hk00700 --code usAAPL

  # Machine-readable output with an explicit as-of date
  python -m price_inquiry.main --code sz300750 --date 2024-01-15 --json
        """,
    )

    parser.add_argument(
        "--code",
        dest="codes",
        action="append",
        required=True,
        help="Stock ticker (sh600519, sz300750, hk00700, usAAPL) or fund code (000311); repeatable",
    )
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="As-of date hint, YYYY-MM-DD or YYYY/MM/DD (default: today)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print records as JSON instead of a table",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all logging",
    )
    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_arg_parser().parse_args(argv)


def format_price(record: PriceRecord) -> str:
    if record.price is None:
        return "-"
    if record.is_sentinel:
        return f"{int(record.price)}"
    return f"{record.price:.4f}".rstrip("0").rstrip(".")


def render_table(records: list[PriceRecord]) -> Table:
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Code")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("Date")
    table.add_column("Status")

    for record in records:
        status_style = "green" if record.status == RecordStatus.SUCCESS else "red"
        table.add_row(
            record.symbol,
            record.name,
            format_price(record),
            record.date,
            f"[{status_style}]{record.status.value}[/{status_style}]",
        )
    return table


async def run(args: argparse.Namespace) -> int:
    """Look up every requested code. Returns the process exit code."""
    as_of = args.date or date.today().isoformat()

    async with Engine(config) as engine:
        records = await engine.inquire_many(args.codes, as_of_date_hint=as_of)

    if args.json:
        print(
            json.dumps(
                [record.model_dump(mode="json") for record in records],
                ensure_ascii=False,
                indent=2,
            )
        )
    else:
        console.print(render_table(records))

    return 0 if all(r.status == RecordStatus.SUCCESS for r in records) else 1


async def main(argv=None) -> int:
    """Main entry point for the application."""
    args = None
    try:
        args = parse_arguments(argv)

        if args.quiet or args.json:
            suppress_all_logging()
        elif args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
            for name in logging.root.manager.loggerDict:
                logging.getLogger(name).setLevel(logging.DEBUG)

        return await run(args)

    except KeyboardInterrupt:
        if not (args and args.quiet):
            console.print("\n[yellow]Lookup interrupted by user.[/yellow]\n")
        return 1
    except Exception as e:
        logger.error("unexpected_error", error=str(e), exc_info=True)
        if not (args and args.quiet):
            console.print(f"\n[bold red]Unexpected error:[/bold red] {str(e)}\n")
        return 1
    finally:
        # Engines left running by an interrupted lookup still hold sessions
        from price_inquiry.cleanup import cleanup_async_resources

        await cleanup_async_resources()


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
