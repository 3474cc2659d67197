#!/usr/bin/env python3
"""Command-line interface for ledger-bridge."""

import argparse
import sys
from pathlib import Path
from typing import Any

from ledger_bridge.config import get_log_level, load_config
from ledger_bridge.converter import StatementConverter
from ledger_bridge.errors import StatementError, StatementIOError
from ledger_bridge.formats import FORMATS
from ledger_bridge.logging_setup import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledger-bridge",
        description="Convert bank statements between CSV, MT940 and CAMT.053",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ledger-bridge --in-format csv --out-format mt940 -i statement.csv -o statement.sta
  ledger-bridge --in-format auto --out-format camt053 < statement.sta > statement.xml
  ledger-bridge --list-formats

Supported formats:
  - csv      (delimited-text, delimited)
  - mt940    (tagged-block, swift)
  - camt053  (structured-markup, camt, xml)
        """,
    )

    parser.add_argument(
        "--in-format",
        help="Input format name or alias, or 'auto' to detect",
    )
    parser.add_argument(
        "--out-format",
        help="Output format name or alias",
    )
    parser.add_argument(
        "-i",
        "--input",
        type=Path,
        help="Input file (default: stdin)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file",
    )
    parser.add_argument(
        "--list-formats",
        action="store_true",
        help="List supported formats",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # List formats and exit
    if args.list_formats:
        print("Available formats:")
        for fmt in FORMATS:
            print(f"  - {fmt.name}: {fmt.description}")
            if fmt.aliases:
                print(f"    Aliases: {', '.join(fmt.aliases)}")
            print(f"    Extensions: {', '.join(fmt.file_extensions)}")
        return 0

    if not args.in_format or not args.out_format:
        parser.print_usage(sys.stderr)
        print("Error: --in-format and --out-format are required", file=sys.stderr)
        return 1

    try:
        config: dict[str, Any] | None = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: could not load config: {e}", file=sys.stderr)
        return 1

    configure_logging("INFO" if args.verbose else get_log_level(config))

    converter = StatementConverter(config)
    try:
        if args.input is not None:
            statement = converter.read_path(args.input, args.in_format)
        else:
            statement = converter.read_bytes(sys.stdin.buffer.read(), args.in_format)

        document = converter.render(statement, args.out_format)

        if args.output is not None:
            try:
                args.output.write_bytes(document)
            except OSError as e:
                raise StatementIOError(str(e)) from e
        else:
            sys.stdout.buffer.write(document)
            sys.stdout.buffer.flush()
    except StatementError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("Converted %d transactions", len(statement.transactions))
    return 0


if __name__ == "__main__":
    sys.exit(main())
