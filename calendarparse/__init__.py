"""calendarparse - calendar data parsers sharing one abstract contract."""

__version__ = "1.0.0"

from .exceptions import (
    CalendarParseError,
    CalendarParserError,
    ParserStateError,
    UnsupportedMimeTypeError,
)
from .models import (
    CalendarComponent,
    CalendarMetadata,
    ComponentKind,
    ParseIssue,
    ParserState,
)
from .options import ParserOptions, build_options_from_env
from .parsers import (
    AbstractParser,
    ICalendarParser,
    get_parser,
    get_parser_class,
    get_supported_mime_types,
    register_parser,
)

__all__ = [
    "AbstractParser",
    "CalendarComponent",
    "CalendarMetadata",
    "CalendarParseError",
    "CalendarParserError",
    "ComponentKind",
    "ICalendarParser",
    "ParseIssue",
    "ParserOptions",
    "ParserState",
    "ParserStateError",
    "UnsupportedMimeTypeError",
    "build_options_from_env",
    "get_parser",
    "get_parser_class",
    "get_supported_mime_types",
    "register_parser",
]
