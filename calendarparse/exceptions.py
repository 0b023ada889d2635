"""Calendar parser exceptions for error handling."""

from typing import Optional


class CalendarParserError(Exception):
    """Base exception for calendar parser errors."""

    def __init__(self, message: str, mime_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.mime_type = mime_type


class CalendarParseError(CalendarParserError):
    """Exception raised when input cannot be interpreted as the claimed format at all.

    Raised from ``parse()`` for unrecoverable input such as data that cannot
    be tokenized or that lacks the calendar envelope. Recoverable problems
    are never raised; they are recorded in the parser's error list instead.
    """


class ParserStateError(CalendarParserError):
    """Exception raised when an item iterator outlives the parse that created it."""


class UnsupportedMimeTypeError(CalendarParserError, LookupError):
    """Exception raised when no parser is registered for a MIME type."""
