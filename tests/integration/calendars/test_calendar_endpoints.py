"""
Integration tests for the calendar, health and metrics endpoints.

Upstream calendars are served by a fake fetcher, everything else runs the
real application.
"""

from src.icstools.core.exceptions import UpstreamFetchError
from src.icstools.core.pipeline import count_events, parse

WORK_URL = "https://upstream.example.com/work.ics"
TEAM_URL = "https://upstream.example.com/team.ics"
LENIENT_URL = "https://upstream.example.com/lenient.ics"


class TestCalendarEndpoint:
    """Test GET /{path}."""

    def test_anonymized_calendar(self, make_client, sample_ics: bytes) -> None:
        """Test an anonymize route serves a redacted calendar."""
        client = make_client({WORK_URL: sample_ics})

        response = client.get("/work")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        assert b"Dentist" not in response.content
        calendar = parse(response.content).calendars()[0]
        assert calendar.value_of("X-WR-CALNAME") == "Alice (busy)"
        assert {event.value_of("SUMMARY") for event in calendar.children[1:]} == {"busy"}

    def test_filtered_calendar(self, make_client, sample_ics: bytes) -> None:
        """Test a filter route drops the configured summary."""
        client = make_client({TEAM_URL: sample_ics})

        response = client.get("/team")

        assert response.status_code == 200
        root = parse(response.content)
        assert count_events(root) == 1
        assert b"SUMMARY:Dentist" in response.content
        assert b"SUMMARY:Lunch" not in response.content

    def test_each_request_fetches_upstream(self, make_client, sample_ics: bytes) -> None:
        """Test nothing is cached between requests."""
        client = make_client({WORK_URL: sample_ics})
        first = client.get("/work")
        second = client.get("/work")
        assert first.content == second.content

    def test_unknown_path(self, make_client) -> None:
        """Test unconfigured paths return a JSON 404."""
        client = make_client({})

        response = client.get("/nowhere")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "calendar_not_configured"
        assert body["details"] == {"path": "nowhere"}

    def test_upstream_failure(self, make_client) -> None:
        """Test upstream errors become a 502."""
        client = make_client({WORK_URL: UpstreamFetchError(WORK_URL, "timed out")})

        response = client.get("/work")

        assert response.status_code == 502
        assert response.json()["error"] == "upstream_fetch_error"

    def test_upstream_error_status_reported(self, make_client) -> None:
        """Test the upstream status is included in the error details."""
        client = make_client({})

        response = client.get("/work")

        assert response.status_code == 502
        assert response.json()["details"]["upstream_status"] == 404

    def test_malformed_upstream(self, make_client, make_ics) -> None:
        """Test unparseable documents become a 502 with the parse error code."""
        client = make_client({WORK_URL: make_ics("BEGIN:VCALENDAR", "BEGIN:VEVENT", "UID:1")})

        response = client.get("/work")

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "unterminated_block"
        assert body["details"]["kind"] == "VEVENT"

    def test_not_a_calendar(self, make_client) -> None:
        """Test documents without a calendar are rejected."""
        client = make_client({TEAM_URL: b"<html>login required</html>\r\n"})

        response = client.get("/team")

        assert response.status_code == 502
        assert response.json()["error"] in {"malformed_content_line", "no_calendar"}

    def test_unknown_property_strict_and_lenient(self, make_client, make_ics) -> None:
        """Test strict routes fail on unknown properties and lenient routes drop them."""
        document = make_ics(
            "BEGIN:VCALENDAR",
            "BEGIN:VEVENT",
            "UID:1",
            "SUMMARY:Secret",
            "X-SECRET:leak",
            "END:VEVENT",
            "END:VCALENDAR",
        )
        client = make_client({WORK_URL: document, LENIENT_URL: document})

        strict = client.get("/work")
        assert strict.status_code == 502
        assert strict.json()["error"] == "unknown_property"
        assert strict.json()["details"]["property"] == "X-SECRET"

        lenient = client.get("/lenient")
        assert lenient.status_code == 200
        assert b"X-SECRET" not in lenient.content
        assert b"leak" not in lenient.content


class TestServiceEndpoints:
    """Test health, metrics and service info."""

    def test_healthz(self, make_client) -> None:
        """Test liveness reports the configured calendars."""
        response = make_client({}).get("/healthz")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "alive"
        assert body["service"] == "icstools"
        assert body["calendars"] == 3

    def test_root_service_info(self, make_client) -> None:
        """Test the root endpoint describes the service."""
        body = make_client({}).get("/").json()
        assert body["service"] == "icstools"
        assert body["calendars"] == 3

    def test_metrics_after_requests(self, make_client, sample_ics: bytes) -> None:
        """Test successes and failures are counted."""
        client = make_client({WORK_URL: sample_ics, TEAM_URL: sample_ics})
        client.get("/work")
        client.get("/team")
        client.get("/lenient")

        response = client.get("/metrics")

        assert response.status_code == 200
        text = response.text
        assert 'calendar_requests_total{calendar="work",mode="anonymize",outcome="success"} 1.0' in text
        assert 'calendar_requests_total{calendar="lenient",mode="anonymize",outcome="error"} 1.0' in text
        assert 'calendar_errors_total{calendar="lenient",error_code="upstream_fetch_error"} 1.0' in text
        assert 'events_removed_total{calendar="team",mode="filter"} 1.0' in text
        assert "icstools_service_info" in text
