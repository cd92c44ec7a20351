"""Command line interface for the Zakat worksheet.

Every invocation is one session: the saved snapshot is loaded, the startup
price lookup runs (unless disabled), the command is applied and the
snapshot is written back.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from .catalog import get_group_fields
from .config import PriceSourceConfig, ZakatConfig
from .exceptions import ConfigurationError, UnknownFieldError
from .logging_config import configure_logging
from .models import FieldGroup, PriceStatus, WorksheetStep
from .report import ZakatReportGenerator, format_money
from .session import WorksheetSession

logger = structlog.get_logger()

YES_NO = {"yes": True, "no": False}
ON_OFF = {"on": True, "off": False}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zakat-worksheet",
        description="Guided Zakat worksheet with a locally saved snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  zakat-worksheet set savings 12500
  zakat-worksheet set bond_interest 40
  zakat-worksheet price 0.95
  zakat-worksheet hawl yes
  zakat-worksheet report --confirm-price
        """
    )
    parser.add_argument(
        "--storage-dir",
        type=Path,
        default=None,
        help="Directory holding the saved worksheet (default: ZAKAT_STORAGE_DIR or ./data)"
    )
    parser.add_argument(
        "--no-fetch",
        action="store_true",
        help="Skip the silver price lookup"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show calculation and lookup logs"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    fields = commands.add_parser("fields", help="List worksheet lines and their amounts")
    fields.add_argument(
        "--group",
        choices=[g.value for g in FieldGroup],
        default=None,
        help="Only list one group"
    )

    set_cmd = commands.add_parser("set", help="Set the amount of a worksheet line")
    set_cmd.add_argument("field", help="Field id (see 'fields')")
    set_cmd.add_argument("amount", help="Amount; non-numeric input counts as 0")

    price = commands.add_parser("price", help="Enter the silver price per gram manually")
    price.add_argument("amount")

    commands.add_parser("refresh-price", help="Replace the silver price with the live price")

    hawl = commands.add_parser("hawl", help="Has wealth stayed above Nisab for a lunar year?")
    hawl.add_argument("answer", choices=sorted(YES_NO))

    gregorian = commands.add_parser("gregorian", help="Apply the Gregorian calendar adjustment")
    gregorian.add_argument("setting", choices=sorted(ON_OFF))

    show = commands.add_parser("show", help="Show one step of the worksheet")
    show.add_argument("step", choices=[s.value for s in WorksheetStep.ordered()])

    report = commands.add_parser("report", help="Calculate and print the full report")
    report.add_argument(
        "--format",
        choices=["text", "markdown"],
        default="text",
        help="Output format (default: text)"
    )
    report.add_argument(
        "--audit",
        action="store_true",
        help="Append the calculation audit trail"
    )
    report.add_argument(
        "--confirm-price",
        action="store_true",
        help="Confirm the current silver price before calculating"
    )

    commands.add_parser("clear", help="Delete all saved worksheet data")
    return parser


def load_config(args: argparse.Namespace) -> ZakatConfig:
    """Settings from the environment with command line overrides.

    Raises:
        ConfigurationError: If the environment holds invalid settings.
    """
    overrides = {}
    try:
        if args.storage_dir is not None:
            overrides["storage_dir"] = args.storage_dir
        if args.no_fetch:
            overrides["price"] = PriceSourceConfig(enabled=False)
        return ZakatConfig(**overrides)
    except ValidationError as e:
        errors = e.errors()
        first = errors[0]
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            config_key=".".join(str(part) for part in first["loc"]),
            expected=first["msg"],
            actual=first.get("input"),
            details={
                "errors": [
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                    for err in errors
                ],
            },
        ) from e


def _print_fields(session: WorksheetSession, group: Optional[str]) -> None:
    groups = [FieldGroup(group)] if group else list(FieldGroup)
    for g in groups:
        print(f"[{g.value}]")
        for f in get_group_fields(g):
            print(f"  {f.id:<22} {f.label:<36} {format_money(session.state.amount(f.id)):>14}")
        print(f"  {'subtotal':<59} {format_money(session.subtotal(g)):>14}")


def _print_price(session: WorksheetSession) -> None:
    state = session.state
    if state.price_status == PriceStatus.UNAVAILABLE and state.nisab_price <= 0:
        print("Silver price: unavailable - enter manually with 'price'")
        return
    print(f"Silver price per gram: ${state.nisab_price} ({state.price_status.value})")


async def run_command(session: WorksheetSession, args: argparse.Namespace) -> int:
    """Apply one parsed command to a started session."""
    command = args.command

    if command == "fields":
        _print_fields(session, args.group)
    elif command == "set":
        try:
            session.set_field(args.field, args.amount)
        except UnknownFieldError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2
        print(f"{args.field} = {format_money(session.state.amount(args.field))}")
    elif command == "price":
        session.set_price(args.amount)
        _print_price(session)
    elif command == "refresh-price":
        await session.refresh_price()
        _print_price(session)
    elif command == "hawl":
        session.set_held_one_year(YES_NO[args.answer])
        print(f"Held above Nisab for one lunar year: {args.answer}")
    elif command == "gregorian":
        session.set_use_gregorian(ON_OFF[args.setting])
        print(f"Gregorian calendar adjustment: {args.setting}")
    elif command == "show":
        step = WorksheetStep(args.step)
        session.go_to(step)
        print(ZakatReportGenerator().generate(session.state, session.result(), steps=[step]))
    elif command == "report":
        if args.confirm_price:
            session.confirm_price()
        session.go_to(WorksheetStep.CALCULATE)
        print(ZakatReportGenerator().generate(
            session.state,
            session.result(),
            format=args.format,
            include_audit=args.audit,
        ))
    elif command == "clear":
        session.clear()
        print("All worksheet data cleared.")
    return 0


async def _run(args: argparse.Namespace, config: ZakatConfig) -> int:
    logger.debug("cli_command", command=args.command, storage_dir=str(config.storage_dir))
    session = WorksheetSession.from_config(config)
    await session.start()
    if args.command != "refresh-price":
        await session.wait_for_price()
    return await run_command(session, args)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for ``zakat-worksheet``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        for msg in e.details.get("errors", []):
            print(f"  - {msg}", file=sys.stderr)
        return 1

    configure_logging("DEBUG" if args.verbose else config.log_level, json=config.log_json)
    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    sys.exit(main())
