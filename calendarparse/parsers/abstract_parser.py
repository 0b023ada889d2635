"""Abstract base class shared by all calendar data parsers."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any, Optional, Union

from ..models import CalendarComponent, CalendarMetadata, ParseIssue, ParserState
from ..options import ParserOptions, coerce_options

logger = logging.getLogger(__name__)


class AbstractParser(ABC):
    """Contract implemented by every calendar format parser.

    A parser is constructed once with its options and may then be parsed any
    number of times. Each call to ``parse()`` discards the metadata, errors
    and items of the previous call before decoding the new input.

    Concrete parsers implement ``_parse()``, ``get_item_iterator()`` and
    ``get_supported_mime_types()``, and override the capability queries and
    ``get_item_count()`` to describe what they produced.

    Instances are not safe for concurrent use. Calling ``parse()`` while an
    iterator from a previous ``get_item_iterator()`` is still being drained
    is not allowed.
    """

    def __init__(
        self,
        options: Union[ParserOptions, Mapping[str, Any], None] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize parser.

        Args:
            options: Parser options, as a ParserOptions or a mapping
            **kwargs: Individual options, overriding ``options``
        """
        self._options = coerce_options(options, **kwargs)

        self._name: Optional[str] = None
        self._color: Optional[str] = None
        self._source_url: Optional[str] = None
        self._refresh_interval: Optional[str] = None
        self._calendar_timezone: Optional[str] = None

        self._errors: list[ParseIssue] = []
        self._state = ParserState.IDLE
        # Bumped on every reset so stale item iterators can detect a re-parse
        self._generation = 0

    @property
    def options(self) -> ParserOptions:
        """Get the options this parser was constructed with."""
        return self._options

    @property
    def state(self) -> ParserState:
        """Get the lifecycle state of this parser."""
        return self._state

    def get_name(self) -> Optional[str]:
        """Get the name extracted from the calendar data."""
        return self._name

    def get_color(self) -> Optional[str]:
        """Get the color extracted from the calendar data."""
        return self._color

    def offers_webcal_feed(self) -> bool:
        """Check whether this import can be turned into a webcal subscription."""
        return self._source_url is not None

    def get_source_url(self) -> Optional[str]:
        """Get the URL pointing to the webcal source."""
        return self._source_url

    def get_refresh_interval(self) -> Optional[str]:
        """Get the recommended refresh interval for the subscription."""
        return self._refresh_interval

    def get_calendar_timezone(self) -> Optional[str]:
        """Get the default timezone of the calendar."""
        return self._calendar_timezone

    def get_metadata(self) -> CalendarMetadata:
        """Get a snapshot of all metadata fields."""
        return CalendarMetadata(
            name=self._name,
            color=self._color,
            source_url=self._source_url,
            refresh_interval=self._refresh_interval,
            calendar_timezone=self._calendar_timezone,
        )

    def parse(self, data: Any) -> None:
        """Parse calendar data.

        Resets all state from a previous parse, then delegates to the
        format-specific ``_parse()``. If decoding fails the parser is left in
        its reset state and the exception propagates.

        Args:
            data: Raw calendar data in the representation the format uses

        Raises:
            NotImplementedError: If the subclass does not implement ``_parse()``
            CalendarParseError: If the data cannot be interpreted at all
        """
        self._reset()
        self._state = ParserState.PARSING
        logger.debug("%s: starting parse", type(self).__name__)

        try:
            self._parse(data)
        except Exception:
            self._reset()
            self._state = ParserState.FAILED
            raise

        self._state = ParserState.READY
        logger.debug(
            "%s: parsed %d items with %d errors",
            type(self).__name__,
            self.get_item_count(),
            len(self._errors),
        )

    @abstractmethod
    def _parse(self, data: Any) -> None:
        """Decode ``data``, populating metadata, errors and items.

        Called by ``parse()`` after the state has been reset.
        """
        raise NotImplementedError("Abstract method not implemented by subclass")

    @abstractmethod
    def get_item_iterator(self) -> Iterator[CalendarComponent]:
        """Return an iterator producing one calendar component at a time.

        Components are converted only as the iterator advances. Every call
        starts a new, independent traversal of the most recent parse.
        """
        raise NotImplementedError("Abstract method not implemented by subclass")

    def __iter__(self) -> Iterator[CalendarComponent]:
        return self.get_item_iterator()

    def get_all_items(self) -> list[CalendarComponent]:
        """Get a list of all items, in iteration order."""
        return list(self.get_item_iterator())

    def contains_vevents(self) -> bool:
        """Check whether the parsed data contains VEVENTs."""
        return False

    def contains_vjournals(self) -> bool:
        """Check whether the parsed data contains VJOURNALs."""
        return False

    def contains_vtodos(self) -> bool:
        """Check whether the parsed data contains VTODOs."""
        return False

    def contains_vfreebusy(self) -> bool:
        """Check whether the parsed data contains VFREEBUSYs."""
        return False

    def has_errors(self) -> bool:
        """Check whether any recoverable errors occurred."""
        return len(self._errors) != 0

    def get_error_list(self) -> list[ParseIssue]:
        """Get a copy of all recoverable errors, in the order they occurred."""
        return list(self._errors)

    def get_item_count(self) -> int:
        """Get the number of calendar objects produced by the last parse."""
        return 0

    def _get_option(self, name: str, default_value: Any = None) -> Any:
        """Get an option if it was provided, else ``default_value``."""
        return self._options.resolve(name, default_value)

    def _add_error(
        self,
        message: str,
        *,
        component: Optional[str] = None,
        property_name: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> ParseIssue:
        """Record a recoverable error for the current parse."""
        issue = ParseIssue(
            message=message,
            index=len(self._errors),
            component=component,
            property_name=property_name,
            uid=uid,
        )
        self._errors.append(issue)
        logger.warning("%s: %s", type(self).__name__, message)
        return issue

    def _reset(self) -> None:
        """Return metadata and errors to their initial state.

        Subclasses that keep per-parse state extend this and call super().
        """
        self._name = None
        self._color = None
        self._source_url = None
        self._refresh_interval = None
        self._calendar_timezone = None
        self._errors = []
        self._state = ParserState.IDLE
        self._generation += 1

    @classmethod
    @abstractmethod
    def get_supported_mime_types(cls) -> tuple[str, ...]:
        """Return the MIME types this parser accepts."""
        raise NotImplementedError("Abstract method not implemented by subclass")
