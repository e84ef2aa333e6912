"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
A YAML file provides defaults, environment variables override it.
"""

import json
import os
import yaml
from functools import lru_cache
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from .core.anonymize import AnonymizeConfig
from .core.filtering import FilterConfig

CONFIG_FILE_ENV = "ICSTOOLS_CONFIG_FILE"


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get(CONFIG_FILE_ENV)

    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/icstools
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class FetchSettings(BaseSettings):
    """Upstream fetch configuration."""

    timeout_seconds: int = Field(default=30, description="Upstream request timeout")
    max_bytes: int = Field(default=10485760, description="Maximum upstream document size (10MB)")
    user_agent: str = Field(default="icstools/0.1.0", description="User-Agent sent upstream")

    class Config:
        env_prefix = "ICSTOOLS_FETCH_"


class AnonymizeSettings(BaseSettings):
    """Default anonymization policy, overridable per calendar."""

    calendar_name: str = Field(default="Busy", description="Name given to anonymized calendars")
    redaction_message: str = Field(default="Busy", description="Summary of every anonymized event")
    seed: str = Field(default="", description="Secret key for UID digests")
    ignore_unknown_properties: bool = Field(
        default=False,
        description="Drop unrecognized properties instead of failing",
    )

    class Config:
        env_prefix = "ICSTOOLS_ANONYMIZE_"


class FilterSettings(BaseSettings):
    """Default filtering policy, overridable per calendar."""

    ignore_if_summary_is: str = Field(default="", description="Events with this exact summary are dropped")

    class Config:
        env_prefix = "ICSTOOLS_FILTER_"


class CalendarRoute(BaseModel):
    """One served path and the upstream calendar behind it."""

    url: str = Field(description="Upstream calendar URL")
    mode: Literal["anonymize", "filter"] = Field(default="anonymize", description="Transform to apply")

    calendar_name: Optional[str] = None
    redaction_message: Optional[str] = None
    seed: Optional[str] = None
    ignore_unknown_properties: Optional[bool] = None
    ignore_if_summary_is: Optional[str] = None

    @field_validator("url")
    def validate_url(cls, v: str) -> str:
        """Only http and https upstreams are fetched."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Unsupported calendar URL scheme: {v}")
        return v

    def anonymize_config(self, defaults: AnonymizeSettings) -> AnonymizeConfig:
        """Merge this route's overrides over the global defaults."""
        return AnonymizeConfig(
            calendar_name=self.calendar_name if self.calendar_name is not None else defaults.calendar_name,
            redaction_message=(
                self.redaction_message if self.redaction_message is not None else defaults.redaction_message
            ),
            seed=self.seed if self.seed is not None else defaults.seed,
            ignore_unknown_properties=(
                self.ignore_unknown_properties
                if self.ignore_unknown_properties is not None
                else defaults.ignore_unknown_properties
            ),
        )

    def filter_config(self, defaults: FilterSettings) -> FilterConfig:
        return FilterConfig(
            match_value=(
                self.ignore_if_summary_is
                if self.ignore_if_summary_is is not None
                else defaults.ignore_if_summary_is
            ),
        )


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Component settings
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    anonymize: AnonymizeSettings = Field(default_factory=AnonymizeSettings)
    filter: FilterSettings = Field(default_factory=FilterSettings)

    calendars: Dict[str, CalendarRoute] = Field(default_factory=dict, description="Served path -> upstream calendar")

    @field_validator("calendars", mode="before")
    def parse_calendars(cls, v: Any) -> Dict[str, Any]:
        """Accept JSON strings and the short ``path: url`` form."""
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                return {}
        if not isinstance(v, dict):
            return {}
        return {
            path: {"url": route} if isinstance(route, str) else route
            for path, route in v.items()
        }

    @model_validator(mode="after")
    def check_seeds(self) -> "Settings":
        """Anonymized calendars need a non-empty digest key."""
        for path, route in self.calendars.items():
            if route.mode == "anonymize" and not route.anonymize_config(self.anonymize).seed:
                raise ValueError(f"Calendar {path} is anonymized but has no seed configured")
        return self

    class Config:
        env_prefix = "ICSTOOLS_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "ICSTOOLS_HOST",
        ("server", "port"): "ICSTOOLS_PORT",
        ("server", "debug"): "ICSTOOLS_DEBUG",
        ("server", "log_level"): "ICSTOOLS_LOG_LEVEL",
        ("fetch", "timeout_seconds"): "ICSTOOLS_FETCH_TIMEOUT_SECONDS",
        ("fetch", "max_bytes"): "ICSTOOLS_FETCH_MAX_BYTES",
        ("fetch", "user_agent"): "ICSTOOLS_FETCH_USER_AGENT",
        ("anonymize", "calendar_name"): "ICSTOOLS_ANONYMIZE_CALENDAR_NAME",
        ("anonymize", "redaction_message"): "ICSTOOLS_ANONYMIZE_REDACTION_MESSAGE",
        ("anonymize", "seed"): "ICSTOOLS_ANONYMIZE_SEED",
        ("anonymize", "ignore_unknown_properties"): "ICSTOOLS_ANONYMIZE_IGNORE_UNKNOWN_PROPERTIES",
        ("filter", "ignore_if_summary_is"): "ICSTOOLS_FILTER_IGNORE_IF_SUMMARY_IS",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # Calendars go through as a JSON document
    if "ICSTOOLS_CALENDARS" not in os.environ:
        calendars = config_data.get("calendars")
        if calendars:
            os.environ["ICSTOOLS_CALENDARS"] = json.dumps(calendars)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
