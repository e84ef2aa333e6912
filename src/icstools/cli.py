#!/usr/bin/env python3
"""
icstools command line interface.

Usage:
    icstools serve --config-file config.yaml [--address 127.0.0.1] [--port 8000]
    icstools anonymize calendar.ics --seed SECRET [-o out.ics]
    icstools filter calendar.ics --summary "Lunch" [-o out.ics]

``serve`` runs the HTTP service. ``anonymize`` and ``filter`` apply the same
transforms to a local file (``-`` reads stdin / writes stdout).
"""

import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from .config import CONFIG_FILE_ENV, reload_settings
from .core import pipeline
from .core.anonymize import AnonymizeConfig
from .core.exceptions import CalendarDataError
from .core.filtering import FilterConfig


def _read_input(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def _write_output(path: str, data: bytes) -> None:
    if path == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(path, "wb") as f:
        f.write(data)


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP service."""
    import uvicorn

    from .main import create_app

    if args.config_file:
        os.environ[CONFIG_FILE_ENV] = args.config_file
    if args.log_level:
        os.environ["ICSTOOLS_LOG_LEVEL"] = args.log_level

    settings = reload_settings()
    host = args.address or settings.host
    port = args.port or settings.port

    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_anonymize(args: argparse.Namespace) -> int:
    """Anonymize a local calendar file."""
    config = AnonymizeConfig(
        calendar_name=args.calendar_name,
        redaction_message=args.message,
        seed=args.seed,
        ignore_unknown_properties=args.ignore_unknown_properties,
    )
    _write_output(args.output, pipeline.anonymize(_read_input(args.input), config))
    return 0


def cmd_filter(args: argparse.Namespace) -> int:
    """Filter a local calendar file."""
    config = FilterConfig(match_value=args.summary)
    _write_output(args.output, pipeline.filter(_read_input(args.input), config))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="icstools",
        description="Anonymize or filter iCalendar feeds while keeping their time slots",
    )
    parser.add_argument(
        "--version", "-V", action="version", version=f"icstools {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Serve configured calendars over HTTP")
    serve_parser.add_argument(
        "--config-file", "-c",
        help="YAML configuration file with a 'calendars' section mapping paths to upstream URLs",
    )
    serve_parser.add_argument("--address", "-a", help="Address on which to listen")
    serve_parser.add_argument("--port", "-p", type=int, help="Port on which to listen")
    serve_parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    serve_parser.set_defaults(func=cmd_serve)

    # Anonymize subcommand
    anon_parser = subparsers.add_parser("anonymize", help="Anonymize a local calendar file")
    anon_parser.add_argument("input", help="Input .ics file, '-' for stdin")
    anon_parser.add_argument("--output", "-o", default="-", help="Output file, '-' for stdout")
    anon_parser.add_argument("--seed", required=True, help="Secret key for UID digests")
    anon_parser.add_argument("--message", default="Busy", help="Summary given to every event")
    anon_parser.add_argument("--calendar-name", default="Busy", help="Name of the output calendar")
    anon_parser.add_argument(
        "--ignore-unknown-properties",
        action="store_true",
        help="Drop unrecognized properties instead of failing",
    )
    anon_parser.set_defaults(func=cmd_anonymize)

    # Filter subcommand
    filter_parser = subparsers.add_parser("filter", help="Drop events by summary from a local file")
    filter_parser.add_argument("input", help="Input .ics file, '-' for stdin")
    filter_parser.add_argument("--output", "-o", default="-", help="Output file, '-' for stdout")
    filter_parser.add_argument("--summary", required=True, help="Events with exactly this summary are dropped")
    filter_parser.set_defaults(func=cmd_filter)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except CalendarDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
