"""Command-line entry for calendarparse.

Parses a calendar file and prints its metadata, capability flags, items and
recoverable errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from .exceptions import CalendarParseError, UnsupportedMimeTypeError
from .options import build_options_from_env, coerce_options
from .parse_logging import configure_logging
from .parsers import AbstractParser, get_parser, get_supported_mime_types

logger = logging.getLogger(__name__)

# CLI flag dest -> option field
_OPTION_FLAGS = {
    "extract_global_properties": "--extract-global-properties",
    "remove_rsvp_for_attendees": "--remove-rsvp",
    "include_timezones": "--include-timezones",
    "preserve_method": "--preserve-method",
    "process_free_busy": "--process-free-busy",
}


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calendarparse CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendarparse",
        description="Parse calendar data and report what it contains",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendarparse work.ics                      # Parse as text/calendar
  python -m calendarparse work.ics --include-timezones  # Also list VTIMEZONEs
        """,
    )

    parser.add_argument("path", type=Path, help="Calendar file to parse")
    parser.add_argument(
        "--mime-type",
        default="text/calendar",
        help=f"Format of the file (default: text/calendar; known: {', '.join(get_supported_mime_types())})",
    )

    for dest, flag in _OPTION_FLAGS.items():
        parser.add_argument(
            flag,
            dest=dest,
            action="store_true",
            help=f"Enable the {dest} parser option",
        )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def _print_report(parser: AbstractParser) -> None:
    metadata = parser.get_metadata()
    print(f"Name:              {metadata.name or '-'}")
    print(f"Color:             {metadata.color or '-'}")
    print(f"Timezone:          {metadata.calendar_timezone or '-'}")
    print(f"Webcal feed:       {_yes_no(metadata.offers_webcal_feed)}")
    if metadata.offers_webcal_feed:
        print(f"  Source URL:      {metadata.source_url}")
        print(f"  Refresh:         {metadata.refresh_interval or '-'}")

    print(
        "Contains:          "
        f"VEVENT={_yes_no(parser.contains_vevents())} "
        f"VJOURNAL={_yes_no(parser.contains_vjournals())} "
        f"VTODO={_yes_no(parser.contains_vtodos())} "
        f"VFREEBUSY={_yes_no(parser.contains_vfreebusy())}"
    )

    print(f"\nItems ({parser.get_item_count()}):")
    for item in parser.get_item_iterator():
        line = f"  [{item.kind.value}] {item.uid or '-'}"
        if item.summary:
            line += f"  {item.summary}"
        if item.overrides:
            line += f"  (+{len(item.overrides)} overrides)"
        print(line)

    errors = parser.get_error_list()
    print(f"\nErrors ({len(errors)}):")
    for issue in errors:
        print(f"  #{issue.index} {issue}")


def main(argv: list[str] | None = None) -> int:
    """Run the calendarparse CLI.

    Returns:
        Process exit status
    """
    args = _create_parser().parse_args(argv)
    configure_logging(debug_mode=args.debug)

    flags: dict[str, Any] = {dest: True for dest in _OPTION_FLAGS if getattr(args, dest)}
    options = coerce_options(build_options_from_env(), **flags)

    try:
        parser = get_parser(args.mime_type, options)
    except UnsupportedMimeTypeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    try:
        data = args.path.read_bytes()
    except OSError as e:
        print(f"Error: cannot read {args.path}: {e}", file=sys.stderr)
        return 1

    try:
        parser.parse(data)
    except CalendarParseError as e:
        logger.exception("Failed to parse %s", args.path)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    _print_report(parser)
    return 0


if __name__ == "__main__":
    sys.exit(main())
