"""Tests for the environment + JSON configuration layer."""

import json

import pytest

import config as config_module
from config import ConfigManager, sanitize_postgres_url

_KEYS = (
    "DB_URL", "DATABASE_URL", "GEMINI_API_KEY", "GEMINI_MODEL",
    "LLM_TIMEOUT", "LLM_CHECK_TIMEOUT", "QUERY_TIMEOUT", "LOG_LEVEL",
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point the JSON store at a temp file and clear related env vars."""
    path = tmp_path / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_FILE", path)
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)
    return path


@pytest.fixture
def isolated_config(config_file):
    return ConfigManager()


def write_json(path, **values):
    path.write_text(json.dumps(values))


def test_defaults(isolated_config):
    assert isolated_config.GEMINI_MODEL == "gemini-2.5-flash"
    assert isolated_config.LLM_TIMEOUT == 60.0
    assert isolated_config.LLM_CHECK_TIMEOUT == 5.0
    assert isolated_config.QUERY_TIMEOUT == 30.0
    assert isolated_config.LOG_LEVEL == "INFO"
    assert isolated_config.DB_URL is None


def test_validate_reports_missing(isolated_config):
    status = isolated_config.validate_config()
    assert not status["is_valid"]
    assert status["missing"] == ["GEMINI_API_KEY", "DB_URL"]


def test_values_read_from_json(isolated_config, config_file):
    write_json(config_file, GEMINI_API_KEY="key-123", DB_URL="sqlite:///school.db", QUERY_TIMEOUT=12)

    assert isolated_config.GEMINI_API_KEY == "key-123"
    assert isolated_config.DB_URL == "sqlite:///school.db"
    assert isolated_config.QUERY_TIMEOUT == 12.0
    assert isolated_config.validate_config()["is_valid"]


def test_environment_wins(isolated_config, config_file, monkeypatch):
    write_json(config_file, GEMINI_MODEL="from-json")
    assert isolated_config.GEMINI_MODEL == "from-json"
    monkeypatch.setenv("GEMINI_MODEL", "from-env")
    assert isolated_config.GEMINI_MODEL == "from-env"


def test_database_url_alias(isolated_config, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://app:p@ss@db:5432/school")
    assert isolated_config.DB_URL == "postgresql://app:p%40ss@db:5432/school"


def test_bad_numbers_fall_back(isolated_config, monkeypatch):
    monkeypatch.setenv("QUERY_TIMEOUT", "soon")
    monkeypatch.setenv("LLM_TIMEOUT", "12.5")
    assert isolated_config.QUERY_TIMEOUT == 30.0
    assert isolated_config.LLM_TIMEOUT == 12.5


def test_corrupt_json_is_ignored(isolated_config, config_file):
    config_file.write_text("{ not json")
    assert isolated_config.GEMINI_API_KEY is None


def test_status_summary(isolated_config, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k")
    status = isolated_config.get_config_status()
    assert status["gemini_api_key_set"]
    assert not status["db_url_set"]
    assert status["gemini_model"] == "gemini-2.5-flash"


class TestSanitizePostgresUrl:

    def test_encodes_password(self):
        assert sanitize_postgres_url("postgresql://u:p@ss word@h:5432/d") == "postgresql://u:p%40ss+word@h:5432/d"

    def test_non_postgres_untouched(self):
        assert sanitize_postgres_url("sqlite:///x.db") == "sqlite:///x.db"

    def test_empty(self):
        assert sanitize_postgres_url("") is None
