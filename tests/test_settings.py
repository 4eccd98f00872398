"""Tests for environment configuration."""

import pytest

from settings import Settings, load_settings

ENV_VARS = [
    "MOCK_MODE",
    "GRAPH_BASE_URL",
    "GRAPH_AUTHORITY_URL",
    "FETCH_TIMEOUT_SECONDS",
    "AVAILABILITY_INTERVAL_MINUTES",
    "DIRECTORY_FILE",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # setenv first so values written by load_dotenv are undone at teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # Keep python-dotenv from picking up a developer's .env
    monkeypatch.chdir(tmp_path)


def test_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "missing.env"))

    assert settings == Settings()


def test_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MOCK_MODE", "true")
    monkeypatch.setenv("GRAPH_BASE_URL", "https://graph.example/v1.0/")
    monkeypatch.setenv("FETCH_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("AVAILABILITY_INTERVAL_MINUTES", "15")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings(str(tmp_path / "missing.env"))

    assert settings.mock_mode is True
    assert settings.graph_base_url == "https://graph.example/v1.0"
    assert settings.fetch_timeout_seconds == 2.5
    assert settings.availability_interval_minutes == 15
    assert settings.log_level == "DEBUG"


def test_reads_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MOCK_MODE=1\nDIRECTORY_FILE=people.json\n", encoding="utf-8")

    settings = load_settings(str(env_file))

    assert settings.mock_mode is True
    assert settings.directory_file == "people.json"


@pytest.mark.parametrize("name,value", [
    ("FETCH_TIMEOUT_SECONDS", "soon"),
    ("FETCH_TIMEOUT_SECONDS", "-1"),
    ("AVAILABILITY_INTERVAL_MINUTES", "0"),
    ("AVAILABILITY_INTERVAL_MINUTES", "7.5"),
])
def test_invalid_numbers_are_rejected(monkeypatch, tmp_path, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        load_settings(str(tmp_path / "missing.env"))
