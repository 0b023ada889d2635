"""Shared test configuration and fixtures."""

from typing import Any

import pytest

from calendarparse import ICalendarParser
from tests.fixtures.mock_ics_data import ICSDataFactory


@pytest.fixture
def ics_factory() -> type[ICSDataFactory]:
    """Provide the ICS content factory."""
    return ICSDataFactory


@pytest.fixture
def ics_parser() -> ICalendarParser:
    """Create an iCalendar parser with default options."""
    return ICalendarParser()


@pytest.fixture
def sample_ics_content() -> str:
    """Provide sample ICS content with two events."""
    return ICSDataFactory.create_basic_ics(2)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove calendarparse environment variables for the duration of a test."""
    for name in (
        "CALENDARPARSE_DEBUG",
        "CALENDARPARSE_LOG_LEVEL",
        "CALENDARPARSE_EXTRACT_GLOBAL_PROPERTIES",
        "CALENDARPARSE_REMOVE_RSVP_FOR_ATTENDEES",
        "CALENDARPARSE_INCLUDE_TIMEZONES",
        "CALENDARPARSE_PRESERVE_METHOD",
        "CALENDARPARSE_PROCESS_FREE_BUSY",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")
    config.addinivalue_line("markers", "fast: Tests that run in milliseconds")
