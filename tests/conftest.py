"""
Pytest configuration and shared fixtures.

Contains sample calendar documents and the FastAPI test client wired to a
fake upstream fetcher.
"""

from typing import Callable, Dict, Generator, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from src.icstools.api.calendars import get_fetcher
from src.icstools.config import AnonymizeSettings, CalendarRoute, FetchSettings, FilterSettings, Settings
from src.icstools.core.exceptions import UpstreamFetchError
from src.icstools.main import create_app

TEST_SEED = "test_seed_0123456789"


def ics(*lines: str) -> bytes:
    """Join lines into a CRLF-terminated document."""
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")


SAMPLE_LINES: List[str] = [
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    "PRODID:-//Example Corp//Calendar//EN",
    "X-WR-CALNAME:Alice Work",
    "X-WR-CALDESC:Alice's private work calendar",
    "BEGIN:VTIMEZONE",
    "TZID:Europe/Paris",
    "BEGIN:STANDARD",
    "DTSTART:19701025T030000",
    "TZOFFSETFROM:+0200",
    "TZOFFSETTO:+0100",
    "TZNAME:CET",
    "END:STANDARD",
    "END:VTIMEZONE",
    "BEGIN:VEVENT",
    "UID:abc123",
    "DTSTAMP:20231201T120000Z",
    "DTSTART:20240101T090000Z",
    "DTEND:20240101T100000Z",
    "SUMMARY:Dentist",
    "DESCRIPTION:Root canal\\, bring insurance card",
    "LOCATION:12 Rue de la Paix\\, Paris",
    'ORGANIZER;CN="Dr. Smile":mailto:dr.smile@example.com',
    "ATTENDEE;CN=Alice;ROLE=REQ-PARTICIPANT:mailto:alice@example.com",
    "BEGIN:VALARM",
    "ACTION:DISPLAY",
    "DESCRIPTION:Dentist reminder",
    "TRIGGER:-PT15M",
    "END:VALARM",
    "END:VEVENT",
    "BEGIN:VEVENT",
    "UID:weekly-42@example.com",
    "DTSTAMP:20231201T120000Z",
    "DTSTART;TZID=Europe/Paris:20240102T120000",
    "DURATION:PT1H",
    "RRULE:FREQ=WEEKLY;BYDAY=TU,TH",
    "EXDATE;TZID=Europe/Paris:20240109T120000",
    "SUMMARY:Lunch",
    "CATEGORIES:FOOD,SOCIAL",
    "STATUS:CONFIRMED",
    "TRANSP:OPAQUE",
    "SEQUENCE:2",
    "END:VEVENT",
    "END:VCALENDAR",
]


@pytest.fixture
def make_ics() -> Callable[..., bytes]:
    """Builder for ad-hoc documents."""
    return ics


@pytest.fixture
def sample_ics() -> bytes:
    """Calendar with a timezone, an event with an alarm and a recurring event."""
    return ics(*SAMPLE_LINES)


@pytest.fixture
def dentist_ics() -> bytes:
    """Single-event calendar."""
    return ics(
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Example Corp//Calendar//EN",
        "BEGIN:VEVENT",
        "UID:abc123",
        "DTSTART:20240101T090000Z",
        "SUMMARY:Dentist",
        "DESCRIPTION:Bring insurance card",
        "LOCATION:Main street",
        "END:VEVENT",
        "END:VCALENDAR",
    )


class FakeFetcher:
    """Stands in for the upstream fetcher: serves bodies from a dict."""

    def __init__(self, documents: Dict[str, Union[bytes, Exception]]) -> None:
        self.documents = documents
        self.requested: List[str] = []

    async def fetch(self, url: str) -> bytes:
        self.requested.append(url)
        document = self.documents.get(url)
        if document is None:
            raise UpstreamFetchError(url, "upstream replied with status 404", status=404)
        if isinstance(document, Exception):
            raise document
        return document


@pytest.fixture
def test_settings() -> Settings:
    """Settings with one anonymized and one filtered calendar."""
    return Settings(
        fetch=FetchSettings(timeout_seconds=5),
        anonymize=AnonymizeSettings(
            calendar_name="Alice (busy)",
            redaction_message="busy",
            seed=TEST_SEED,
            ignore_unknown_properties=False,
        ),
        filter=FilterSettings(ignore_if_summary_is="Lunch"),
        calendars={
            "work": CalendarRoute(url="https://upstream.example.com/work.ics", mode="anonymize"),
            "team": CalendarRoute(url="https://upstream.example.com/team.ics", mode="filter"),
            "lenient": CalendarRoute(
                url="https://upstream.example.com/lenient.ics",
                mode="anonymize",
                ignore_unknown_properties=True,
            ),
        },
    )


@pytest.fixture
def make_client(test_settings: Settings) -> Generator[Callable[..., TestClient], None, None]:
    """Factory building a test client whose upstream serves the given documents."""
    clients: List[TestClient] = []

    def _make(documents: Dict[str, Union[bytes, Exception]], settings: Optional[Settings] = None) -> TestClient:
        app = create_app(settings or test_settings)
        fetcher = FakeFetcher(documents)
        app.dependency_overrides[get_fetcher] = lambda: fetcher
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
