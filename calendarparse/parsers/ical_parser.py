"""iCalendar (RFC 5545) text parser built on the icalendar library."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional

from icalendar import Calendar, Component
from icalendar.parser import Contentline, Contentlines

from ..exceptions import CalendarParseError, ParserStateError
from ..models import CalendarComponent, ComponentKind
from .abstract_parser import AbstractParser

logger = logging.getLogger(__name__)

MIME_TYPE = "text/calendar"

# Calendar-level properties that describe the document rather than the calendar
_ENVELOPE_PROPERTIES = ("VERSION", "PRODID", "METHOD")

# Kinds grouped by UID so recurrence exceptions travel with their master
_GROUPED_KINDS = (ComponentKind.EVENT, ComponentKind.TODO, ComponentKind.JOURNAL)


@dataclass
class _Block:
    """Content lines of one top-level component, BEGIN and END included."""

    name: str
    lines: list[Contentline] = field(default_factory=list)


@dataclass
class _DroppedLine:
    """A content line left out of a component because it would not parse."""

    component: str
    property_name: Optional[str]
    message: str


@dataclass
class _ItemGroup:
    """Raw components that make up one produced item."""

    kind: ComponentKind
    master: Optional[Component] = None
    overrides: list[Component] = field(default_factory=list)

    @property
    def primary(self) -> Component:
        if self.master is not None:
            return self.master
        return self.overrides[0]


def _property_text(value: Any) -> Optional[str]:
    """Get the plain text of a property value, or None if it is empty."""
    if value is None:
        return None
    if isinstance(value, list):
        if not value:
            return None
        value = value[0]

    if isinstance(value, str):
        text = str(value)
    else:
        text = value.to_ical()
        if isinstance(text, bytes):
            text = text.decode("utf-8")

    text = text.strip()
    return text or None


def _property_values(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return [value]


def _line_parts(line: Contentline) -> tuple[str, str]:
    """Get the upper-cased name and raw value of a content line.

    Raises:
        ValueError: If the line has no name/value separator
    """
    name, _, value = line.parts()
    return name.upper(), value


def _calendar_from_lines(lines: list[str]) -> Calendar:
    # Bytes are passed on so icalendar never mistakes the data for a file path
    return Calendar.from_ical(("\r\n".join(lines) + "\r\n").encode("utf-8"))


def _parse_block(block: _Block) -> Component:
    """Parse one top-level component inside a minimal VCALENDAR."""
    calendar = _calendar_from_lines(["BEGIN:VCALENDAR", *block.lines, "END:VCALENDAR"])
    return calendar.subcomponents[0]


def _block_uid(lines: list[Contentline]) -> Optional[str]:
    """Get the UID of a top-level component from its own (not nested) lines."""
    depth = 0
    for line in lines:
        try:
            name, value = _line_parts(line)
        except ValueError:
            continue
        if name == "BEGIN":
            depth += 1
        elif name == "END":
            depth -= 1
        elif name == "UID" and depth == 1:
            return value.strip() or None
    return None


def _line_error(owner: str, line: Contentline) -> Optional[str]:
    """Check a single property line inside an empty ``owner`` component.

    Returns:
        The parse error message, or None if the line parses
    """
    if owner == "VCALENDAR":
        lines = ["BEGIN:VCALENDAR", line, "END:VCALENDAR"]
    else:
        lines = ["BEGIN:VCALENDAR", f"BEGIN:{owner}", line, f"END:{owner}", "END:VCALENDAR"]
    try:
        _calendar_from_lines(lines)
    except ValueError as e:
        return str(e)
    return None


def _salvage_lines(lines: list[Contentline]) -> tuple[list[Contentline], list[_DroppedLine]]:
    """Split component lines into those that parse and those that do not.

    Each property line is checked on its own inside its innermost component,
    so a malformed value only costs that property.
    """
    kept: list[Contentline] = []
    dropped: list[_DroppedLine] = []
    stack: list[str] = []

    for line in lines:
        owner = stack[-1] if stack else "VCALENDAR"
        try:
            name, value = _line_parts(line)
        except ValueError as e:
            dropped.append(_DroppedLine(owner, None, str(e)))
            continue

        if name == "BEGIN":
            stack.append(value.upper())
        elif name == "END":
            if stack:
                stack.pop()
        else:
            message = _line_error(owner, line)
            if message is not None:
                dropped.append(_DroppedLine(owner, name, message))
                continue
        kept.append(line)

    return kept, dropped


class ICalendarParser(AbstractParser):
    """Parser for textual iCalendar data.

    ``parse()`` tokenizes the input into content lines, checks the VCALENDAR
    envelope, and then has ``icalendar`` parse the calendar properties and
    each top-level component on its own. Conversion of each component into a
    ``CalendarComponent`` (attendee cleanup, timezone attachment, global
    properties) happens lazily as the item iterator advances.

    Only a broken envelope is fatal: data that cannot be split into content
    lines, content outside a single VCALENDAR, or unbalanced BEGIN/END.
    Everything else is recoverable and recorded in the error list:

    - A malformed property inside a VEVENT, or any malformed ``X-`` property,
      is kept by icalendar as raw text.
    - Any other malformed property or content line is left out of its
      component, and the rest of the component is produced.
    - A calendar-level property that fails leaves its metadata field unset.
    """

    def __init__(self, options: Any = None, **kwargs: Any) -> None:
        """Initialize iCalendar parser.

        Args:
            options: Parser options, as a ParserOptions or a mapping
            **kwargs: Individual options, overriding ``options``
        """
        super().__init__(options, **kwargs)
        self._groups: list[_ItemGroup] = []
        self._timezones: dict[str, Component] = {}
        self._global_properties: dict[str, Any] = {}
        self._method: Optional[str] = None
        self._kinds: set[ComponentKind] = set()
        logger.debug("iCalendar parser initialized with %s", self._options)

    @classmethod
    def get_supported_mime_types(cls) -> tuple[str, ...]:
        return (MIME_TYPE,)

    def _reset(self) -> None:
        super()._reset()
        self._groups = []
        self._timezones = {}
        self._global_properties = {}
        self._method = None
        self._kinds = set()

    def _parse(self, data: Any) -> None:
        calendar = self._load_calendar(data)

        self._extract_metadata(calendar)

        if self._get_option("preserveMethod", False):
            self._method = _property_text(calendar.get("METHOD"))

        if self._get_option("extractGlobalProperties", False):
            self._global_properties = {
                name: value
                for name, value in calendar.items()
                if name.upper() not in _ENVELOPE_PROPERTIES
            }

        self._group_components(calendar)
        self._kinds = {group.kind for group in self._groups}

    def _load_calendar(self, data: Any) -> Calendar:
        """Build an icalendar VCALENDAR from raw data, recording what had to be left out.

        Raises:
            TypeError: If data is neither str nor bytes
            CalendarParseError: If the data is not an iCalendar document
        """
        header, blocks = self._split_envelope(self._tokenize(self._decode(data)))

        calendar, dropped = self._parse_calendar_properties(header)
        self._record_errors(calendar, dropped, uid=None)

        # VTIMEZONEs first so TZID references elsewhere resolve against them
        results: dict[int, tuple[Optional[Component], list[_DroppedLine]]] = {}
        for index in sorted(range(len(blocks)), key=lambda i: blocks[i].name != "VTIMEZONE"):
            results[index] = self._parse_component(blocks[index])

        for index, block in enumerate(blocks):
            component, dropped = results[index]
            if component is not None:
                uid = _property_text(component.get("UID"))
            else:
                uid = _block_uid(block.lines)
            self._record_errors(component, dropped, uid=uid)
            if component is not None:
                calendar.add_component(component)

        return calendar

    @staticmethod
    def _decode(data: Any) -> str:
        if isinstance(data, str):
            text = data
        elif isinstance(data, (bytes, bytearray)):
            try:
                text = bytes(data).decode("utf-8")
            except UnicodeDecodeError as e:
                raise CalendarParseError(
                    f"iCalendar data is not valid UTF-8: {e}", mime_type=MIME_TYPE
                ) from e
        else:
            raise TypeError(f"iCalendar data must be str or bytes, not {type(data).__name__}")

        text = text.lstrip("\ufeff")
        if not text.strip():
            raise CalendarParseError("Empty iCalendar data", mime_type=MIME_TYPE)
        return text

    @staticmethod
    def _tokenize(text: str) -> list[Contentline]:
        try:
            lines = Contentlines.from_ical(text)
        except ValueError as e:
            raise CalendarParseError(
                f"Failed to split iCalendar data into content lines: {e}", mime_type=MIME_TYPE
            ) from e
        return [line for line in lines if line]

    @staticmethod
    def _split_envelope(lines: list[Contentline]) -> tuple[list[Contentline], list[_Block]]:
        """Check the VCALENDAR envelope and split it into calendar lines and components.

        Returns:
            The VCALENDAR's own lines (BEGIN, properties, END) and one block
            per top-level component, in source order

        Raises:
            CalendarParseError: If the lines do not form exactly one VCALENDAR
        """
        header: list[Contentline] = []
        blocks: list[_Block] = []
        stack: list[str] = []
        current: Optional[_Block] = None
        seen_calendar = False

        for line in lines:
            try:
                name, value = _line_parts(line)
            except ValueError as e:
                if not stack:
                    raise CalendarParseError(
                        f"Failed to parse iCalendar data: {e}", mime_type=MIME_TYPE
                    ) from e
                # Recorded when the enclosing component is parsed
                (current.lines if current is not None else header).append(line)
                continue

            if name == "BEGIN":
                component_name = value.strip().upper()
                if not stack:
                    if component_name != "VCALENDAR":
                        raise CalendarParseError(
                            f"Expected a VCALENDAR component, found {component_name}",
                            mime_type=MIME_TYPE,
                        )
                    if seen_calendar:
                        raise CalendarParseError(
                            "Found more than one VCALENDAR component", mime_type=MIME_TYPE
                        )
                    seen_calendar = True
                    header.append(line)
                elif current is None:
                    current = _Block(name=component_name, lines=[line])
                else:
                    current.lines.append(line)
                stack.append(component_name)

            elif name == "END":
                component_name = value.strip().upper()
                if not stack or stack[-1] != component_name:
                    expected = f"END:{stack[-1]}" if stack else "no END"
                    raise CalendarParseError(
                        f"Unexpected END:{component_name}, expected {expected}",
                        mime_type=MIME_TYPE,
                    )
                stack.pop()
                if not stack:
                    header.append(line)
                else:
                    current.lines.append(line)
                    if len(stack) == 1:
                        blocks.append(current)
                        current = None

            elif not stack:
                # icalendar tolerates trailing X-COMMENT lines
                if name != "X-COMMENT":
                    raise CalendarParseError(
                        f'Property "{name}" does not have a parent component',
                        mime_type=MIME_TYPE,
                    )

            elif current is not None:
                current.lines.append(line)
            else:
                header.append(line)

        if stack:
            raise CalendarParseError(
                f"Unterminated {stack[-1]} component", mime_type=MIME_TYPE
            )
        if not seen_calendar:
            raise CalendarParseError("No VCALENDAR component found", mime_type=MIME_TYPE)

        return header, blocks

    @staticmethod
    def _parse_calendar_properties(
        header: list[Contentline],
    ) -> tuple[Calendar, list[_DroppedLine]]:
        try:
            return _calendar_from_lines(header), []
        except ValueError as e:
            logger.debug("Salvaging calendar properties after parse failure: %s", e)

        kept, dropped = _salvage_lines(header)
        try:
            return _calendar_from_lines(kept), dropped
        except ValueError as e:
            raise CalendarParseError(
                f"Failed to parse iCalendar data: {e}", mime_type=MIME_TYPE
            ) from e

    @staticmethod
    def _parse_component(block: _Block) -> tuple[Optional[Component], list[_DroppedLine]]:
        """Parse a top-level component, leaving out the lines icalendar rejects."""
        try:
            return _parse_block(block), []
        except ValueError as e:
            logger.debug("Salvaging %s after parse failure: %s", block.name, e)

        kept, dropped = _salvage_lines(block.lines)
        try:
            return _parse_block(_Block(name=block.name, lines=kept)), dropped
        except ValueError as e:
            dropped.append(_DroppedLine(block.name, None, f"component skipped: {e}"))
            return None, dropped

    def _record_errors(
        self, component: Optional[Component], dropped: list[_DroppedLine], uid: Optional[str]
    ) -> None:
        """Turn left-out lines and errors icalendar tolerated into recorded issues."""
        for line in dropped:
            self._add_error(
                f"{line.component}: {line.message}",
                component=line.component,
                property_name=line.property_name,
                uid=uid,
            )

        if component is None:
            return
        for sub in component.walk():
            for prop_name, message in sub.errors:
                self._add_error(
                    f"{sub.name}: {message}",
                    component=sub.name,
                    property_name=prop_name,
                    uid=uid,
                )

    def _extract_metadata(self, calendar: Calendar) -> None:
        self._name = self._get_calendar_property(calendar, "X-WR-CALNAME", "NAME")
        self._color = self._get_calendar_property(calendar, "X-APPLE-CALENDAR-COLOR", "COLOR")
        self._source_url = self._get_calendar_property(calendar, "SOURCE", "X-ORIGINAL-URL")
        self._refresh_interval = self._get_calendar_property(
            calendar, "REFRESH-INTERVAL", "X-PUBLISHED-TTL"
        )
        self._calendar_timezone = self._get_calendar_property(calendar, "X-WR-TIMEZONE")

    def _get_calendar_property(self, calendar: Calendar, *names: str) -> Optional[str]:
        """Get the first non-empty calendar property among ``names``."""
        for name in names:
            try:
                text = _property_text(calendar.get(name))
            except (ValueError, TypeError) as e:
                self._add_error(
                    f"VCALENDAR: cannot read {name}: {e}",
                    component="VCALENDAR",
                    property_name=name,
                )
                continue
            if text:
                return text
        return None

    def _group_components(self, calendar: Calendar) -> None:
        include_timezones = self._get_option("includeTimezones", False)
        process_free_busy = self._get_option("processFreeBusy", False)
        groups_by_uid: dict[tuple[str, str], _ItemGroup] = {}

        for component in calendar.subcomponents:
            kind = ComponentKind.from_component_name(component.name)

            if kind == ComponentKind.TIMEZONE:
                tzid = _property_text(component.get("TZID"))
                if tzid and tzid not in self._timezones:
                    self._timezones[tzid] = component
                if include_timezones:
                    self._groups.append(_ItemGroup(kind=kind, master=component))
                continue

            if kind == ComponentKind.FREEBUSY and not process_free_busy:
                logger.debug("Skipping VFREEBUSY, processFreeBusy is disabled")
                continue

            uid = _property_text(component.get("UID"))
            if kind not in _GROUPED_KINDS or not uid:
                self._groups.append(_ItemGroup(kind=kind, master=component))
                continue

            is_override = "RECURRENCE-ID" in component
            group = groups_by_uid.get((component.name, uid))

            if group is None:
                group = _ItemGroup(kind=kind)
                groups_by_uid[(component.name, uid)] = group
                self._groups.append(group)
            elif not is_override and group.master is not None:
                logger.debug("Duplicate %s with UID %s, producing separately", component.name, uid)
                self._groups.append(_ItemGroup(kind=kind, master=component))
                continue

            if is_override:
                group.overrides.append(component)
            else:
                group.master = component

    def get_item_iterator(self) -> Iterator[CalendarComponent]:
        return self._iterate_items(self._generation, tuple(self._groups))

    def _iterate_items(
        self, generation: int, groups: tuple[_ItemGroup, ...]
    ) -> Iterator[CalendarComponent]:
        for group in groups:
            if generation != self._generation:
                raise ParserStateError("Parser was re-parsed while items were being iterated")
            yield self._build_item(group)

    def _build_item(self, group: _ItemGroup) -> CalendarComponent:
        """Convert a group of raw components into a CalendarComponent."""
        primary = group.primary
        overrides = [c for c in group.overrides if c is not primary]
        members = [primary, *overrides]

        if self._get_option("removeRSVPForAttendees", False):
            for member in members:
                self._remove_rsvp(member)

        timezones: list[Component] = []
        if group.kind != ComponentKind.TIMEZONE and self._get_option("includeTimezones", False):
            timezones = self._referenced_timezones(members)

        return CalendarComponent(
            kind=group.kind,
            name=primary.name,
            uid=_property_text(primary.get("UID")),
            summary=_property_text(primary.get("SUMMARY")),
            component=primary,
            overrides=overrides,
            timezones=timezones,
            global_properties=dict(self._global_properties),
            method=self._method,
        )

    @staticmethod
    def _remove_rsvp(component: Component) -> None:
        for sub in component.walk():
            attendees = sub.get("ATTENDEE")
            if attendees is None:
                continue
            for attendee in _property_values(attendees):
                params = getattr(attendee, "params", None)
                if params is not None and "RSVP" in params:
                    del params["RSVP"]

    def _referenced_timezones(self, members: list[Component]) -> list[Component]:
        """Get the known VTIMEZONEs referenced by TZID parameters, in first-use order."""
        referenced: dict[str, Component] = {}
        for member in members:
            for sub in member.walk():
                for value in sub.values():
                    for item in _property_values(value):
                        params = getattr(item, "params", None)
                        tzid = params.get("TZID") if params is not None else None
                        if tzid and tzid not in referenced and tzid in self._timezones:
                            referenced[tzid] = self._timezones[tzid]
        return list(referenced.values())

    def contains_vevents(self) -> bool:
        return ComponentKind.EVENT in self._kinds

    def contains_vjournals(self) -> bool:
        return ComponentKind.JOURNAL in self._kinds

    def contains_vtodos(self) -> bool:
        return ComponentKind.TODO in self._kinds

    def contains_vfreebusy(self) -> bool:
        return ComponentKind.FREEBUSY in self._kinds

    def get_item_count(self) -> int:
        return len(self._groups)
