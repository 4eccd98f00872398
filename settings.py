"""Environment-driven configuration."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass
class Settings:
    """Runtime settings for the recommender and its calendar backends."""
    mock_mode: bool = False
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    graph_authority_url: str = "https://login.microsoftonline.com"
    fetch_timeout_seconds: float = 30.0
    availability_interval_minutes: int = 30
    directory_file: Optional[str] = None
    log_level: str = "INFO"


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_number(name: str, default, cast):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        result = cast(value.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")
    if result <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return result


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from the environment, reading a .env file first if present.

    Args:
        env_file: Explicit .env path (defaults to python-dotenv's lookup)

    Returns:
        Populated Settings
    """
    load_dotenv(env_file)

    return Settings(
        mock_mode=_get_bool("MOCK_MODE", False),
        graph_base_url=os.getenv("GRAPH_BASE_URL", Settings.graph_base_url).rstrip("/"),
        graph_authority_url=os.getenv("GRAPH_AUTHORITY_URL", Settings.graph_authority_url).rstrip("/"),
        fetch_timeout_seconds=_get_number("FETCH_TIMEOUT_SECONDS", Settings.fetch_timeout_seconds, float),
        availability_interval_minutes=_get_number(
            "AVAILABILITY_INTERVAL_MINUTES", Settings.availability_interval_minutes, int
        ),
        directory_file=os.getenv("DIRECTORY_FILE") or None,
        log_level=os.getenv("LOG_LEVEL", Settings.log_level).upper(),
    )
