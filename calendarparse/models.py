"""Data models for calendar parsing."""

from enum import Enum
from typing import Any, Dict, List, Optional

from icalendar import Calendar
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PRODID = "-//calendarparse//calendarparse//EN"


class ParserState(str, Enum):
    """Lifecycle state of a parser instance."""

    IDLE = "idle"
    PARSING = "parsing"
    READY = "ready"
    FAILED = "failed"


class ComponentKind(str, Enum):
    """Kind of a produced calendar component."""

    EVENT = "event"
    JOURNAL = "journal"
    TODO = "todo"
    FREEBUSY = "freebusy"
    TIMEZONE = "timezone"
    OTHER = "other"

    @classmethod
    def from_component_name(cls, name: Optional[str]) -> "ComponentKind":
        """Map an iCalendar component name (``VEVENT``, ...) to a kind."""
        return _KIND_BY_NAME.get((name or "").upper(), cls.OTHER)


_KIND_BY_NAME = {
    "VEVENT": ComponentKind.EVENT,
    "VJOURNAL": ComponentKind.JOURNAL,
    "VTODO": ComponentKind.TODO,
    "VFREEBUSY": ComponentKind.FREEBUSY,
    "VTIMEZONE": ComponentKind.TIMEZONE,
}


class ParseIssue(BaseModel):
    """A recoverable problem found while parsing.

    Issues are ordered by ``index``, the order in which the parser recorded
    them. ``str(issue)`` is the human-readable message.
    """

    message: str = Field(..., description="Human-readable description of the problem")
    index: int = Field(default=0, description="Occurrence order within the parse")
    component: Optional[str] = Field(default=None, description="Component name, e.g. VEVENT")
    property_name: Optional[str] = Field(default=None, description="Offending property name")
    uid: Optional[str] = Field(default=None, description="UID of the enclosing component")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.message

    def __lt__(self, other: "ParseIssue") -> bool:
        if not isinstance(other, ParseIssue):
            return NotImplemented
        return self.index < other.index


class CalendarMetadata(BaseModel):
    """Snapshot of the calendar-level metadata found by the most recent parse."""

    name: Optional[str] = None
    color: Optional[str] = None
    source_url: Optional[str] = None
    refresh_interval: Optional[str] = None
    calendar_timezone: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def offers_webcal_feed(self) -> bool:
        """Check if the calendar can be subscribed to."""
        return self.source_url is not None


class CalendarComponent(BaseModel):
    """A single calendar object produced by a parser.

    The raw ``icalendar`` component is kept in ``component``; the remaining
    fields are conveniences derived from it and from the parse options.
    """

    kind: ComponentKind = Field(..., description="Component kind")
    name: str = Field(..., description="iCalendar component name, e.g. VEVENT")
    uid: Optional[str] = Field(default=None, description="Component UID")
    summary: Optional[str] = Field(default=None, description="Component summary/title")

    component: Any = Field(..., description="Raw icalendar component (master if recurring)")
    overrides: List[Any] = Field(
        default_factory=list, description="Recurrence exceptions sharing the master's UID"
    )
    timezones: List[Any] = Field(
        default_factory=list, description="VTIMEZONE definitions referenced by this component"
    )
    global_properties: Dict[str, Any] = Field(
        default_factory=dict, description="Calendar-level properties carried with this item"
    )
    method: Optional[str] = Field(default=None, description="Preserved iCalendar METHOD")

    model_config = ConfigDict(frozen=True)

    @property
    def is_recurring(self) -> bool:
        """Check if the component has a recurrence rule or overrides."""
        return "RRULE" in self.component or bool(self.overrides)

    def to_ical(self) -> str:
        """Render this item as a standalone VCALENDAR document."""
        calendar = Calendar()
        calendar.add("PRODID", DEFAULT_PRODID)
        calendar.add("VERSION", "2.0")
        if self.method:
            calendar.add("METHOD", self.method)
        for prop_name, value in self.global_properties.items():
            calendar.add(prop_name, value)

        for timezone in self.timezones:
            calendar.add_component(timezone)
        calendar.add_component(self.component)
        for override in self.overrides:
            calendar.add_component(override)

        return calendar.to_ical().decode("utf-8")
