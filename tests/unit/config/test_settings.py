"""
Tests for settings loading and per-calendar policy merging.
"""

import json
import os
from pathlib import Path
from typing import Dict, Iterator
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.icstools.config import (
    AnonymizeSettings,
    CalendarRoute,
    FilterSettings,
    Settings,
    get_settings,
    load_config_file,
)

CONFIG_YAML = """
server:
  port: 9000
  log_level: DEBUG
fetch:
  timeout_seconds: 12
anonymize:
  calendar_name: Work (busy)
  seed: from-file
filter:
  ignore_if_summary_is: Standup
calendars:
  work:
    url: https://calendar.example.com/work.ics
  team:
    url: https://calendar.example.com/team.ics
    mode: filter
  personal: https://calendar.example.com/personal.ics
"""


@pytest.fixture
def clean_env() -> Iterator[Dict[str, str]]:
    """Environment without any ICSTOOLS_ variables, restored afterwards."""
    env = {key: value for key, value in os.environ.items() if not key.startswith("ICSTOOLS_")}
    with patch.dict(os.environ, env, clear=True):
        get_settings.cache_clear()
        yield env
    get_settings.cache_clear()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return path


class TestConfigFile:
    """Test YAML configuration loading."""

    def test_load_config_file(self, config_file: Path) -> None:
        """Test the YAML document is returned as a dict."""
        data = load_config_file(str(config_file))
        assert data["server"]["port"] == 9000
        assert data["calendars"]["personal"] == "https://calendar.example.com/personal.ics"

    def test_missing_file_gives_empty_config(self, tmp_path: Path) -> None:
        """Test a missing path is not an error."""
        assert load_config_file(str(tmp_path / "absent.yaml")) == {}

    def test_settings_from_file(self, clean_env: Dict[str, str], config_file: Path) -> None:
        """Test every section of the file reaches the settings."""
        os.environ["ICSTOOLS_CONFIG_FILE"] = str(config_file)
        settings = get_settings()

        assert settings.port == 9000
        assert settings.log_level == "DEBUG"
        assert settings.fetch.timeout_seconds == 12
        assert settings.anonymize.calendar_name == "Work (busy)"
        assert settings.anonymize.seed == "from-file"
        assert settings.filter.ignore_if_summary_is == "Standup"
        assert set(settings.calendars) == {"work", "team", "personal"}
        assert settings.calendars["team"].mode == "filter"
        assert settings.calendars["personal"].mode == "anonymize"

    def test_environment_overrides_file(self, clean_env: Dict[str, str], config_file: Path) -> None:
        """Test environment variables win over file values."""
        os.environ["ICSTOOLS_CONFIG_FILE"] = str(config_file)
        os.environ["ICSTOOLS_PORT"] = "9100"
        os.environ["ICSTOOLS_ANONYMIZE_SEED"] = "from-env"

        settings = get_settings()
        assert settings.port == 9100
        assert settings.anonymize.seed == "from-env"

    def test_settings_cached(self, clean_env: Dict[str, str], config_file: Path) -> None:
        """Test repeated lookups share one instance."""
        os.environ["ICSTOOLS_CONFIG_FILE"] = str(config_file)
        assert get_settings() is get_settings()


class TestSettingsValidation:
    """Test validation of calendar routes."""

    def test_defaults(self, clean_env: Dict[str, str]) -> None:
        """Test defaults without any configuration."""
        settings = Settings()
        assert settings.host == "127.0.0.1"
        assert settings.port == 8000
        assert settings.calendars == {}
        assert settings.fetch.max_bytes == 10 * 1024 * 1024

    def test_calendars_from_json_string(self, clean_env: Dict[str, str]) -> None:
        """Test calendars given as a JSON environment value."""
        os.environ["ICSTOOLS_CALENDARS"] = json.dumps(
            {"team": {"url": "https://example.com/team.ics", "mode": "filter"}}
        )
        settings = Settings()
        assert settings.calendars["team"].url == "https://example.com/team.ics"
        assert settings.calendars["team"].mode == "filter"

    def test_short_route_form(self, clean_env: Dict[str, str]) -> None:
        """Test a bare URL means an anonymized calendar."""
        settings = Settings(
            anonymize=AnonymizeSettings(seed="s"),
            calendars={"work": "https://example.com/work.ics"},
        )
        assert settings.calendars["work"] == CalendarRoute(url="https://example.com/work.ics")

    def test_anonymized_calendar_requires_seed(self, clean_env: Dict[str, str]) -> None:
        """Test an empty digest key is rejected."""
        with pytest.raises(ValidationError, match="no seed"):
            Settings(calendars={"work": "https://example.com/work.ics"})

    def test_route_seed_satisfies_check(self, clean_env: Dict[str, str]) -> None:
        """Test a seed on the route alone is enough."""
        settings = Settings(calendars={"work": {"url": "https://example.com/work.ics", "seed": "route"}})
        assert settings.calendars["work"].seed == "route"

    def test_filtered_calendar_needs_no_seed(self, clean_env: Dict[str, str]) -> None:
        """Test filter routes are accepted without a seed."""
        settings = Settings(calendars={"team": {"url": "https://example.com/team.ics", "mode": "filter"}})
        assert settings.calendars["team"].mode == "filter"

    @pytest.mark.parametrize("url", ["ftp://example.com/a.ics", "file:///etc/passwd", "example.com/a.ics"])
    def test_unsupported_url_scheme(self, url: str) -> None:
        """Test only http and https upstreams are allowed."""
        with pytest.raises(ValidationError):
            CalendarRoute(url=url)

    def test_unknown_mode_rejected(self) -> None:
        """Test the mode must be one of the two transforms."""
        with pytest.raises(ValidationError):
            CalendarRoute(url="https://example.com/a.ics", mode="encrypt")


class TestRouteOverrides:
    """Test merging route overrides with global defaults."""

    def test_anonymize_defaults_used(self) -> None:
        """Test unset route fields fall back to the defaults."""
        defaults = AnonymizeSettings(calendar_name="Busy", redaction_message="Away", seed="global")
        config = CalendarRoute(url="https://example.com/a.ics").anonymize_config(defaults)
        assert config.calendar_name == "Busy"
        assert config.redaction_message == "Away"
        assert config.seed == "global"
        assert config.ignore_unknown_properties is False

    def test_anonymize_overrides_win(self) -> None:
        """Test route fields replace the defaults, including falsy ones."""
        defaults = AnonymizeSettings(seed="global", ignore_unknown_properties=True)
        route = CalendarRoute(
            url="https://example.com/a.ics",
            calendar_name="Team",
            redaction_message="",
            seed="route",
            ignore_unknown_properties=False,
        )
        config = route.anonymize_config(defaults)
        assert config.calendar_name == "Team"
        assert config.redaction_message == ""
        assert config.seed == "route"
        assert config.ignore_unknown_properties is False

    def test_filter_override(self) -> None:
        """Test the summary to drop can be set per route."""
        defaults = FilterSettings(ignore_if_summary_is="Lunch")
        route = CalendarRoute(url="https://example.com/a.ics", mode="filter")
        assert route.filter_config(defaults).match_value == "Lunch"
        route = CalendarRoute(url="https://example.com/a.ics", mode="filter", ignore_if_summary_is="Standup")
        assert route.filter_config(defaults).match_value == "Standup"
