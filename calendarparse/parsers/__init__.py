"""Calendar data parsers."""

from .abstract_parser import AbstractParser
from .ical_parser import ICalendarParser
from .registry import (
    get_parser,
    get_parser_class,
    get_supported_mime_types,
    register_parser,
)

register_parser(ICalendarParser)

__all__ = [
    "AbstractParser",
    "ICalendarParser",
    "get_parser",
    "get_parser_class",
    "get_supported_mime_types",
    "register_parser",
]
