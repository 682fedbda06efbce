"""
RollCall – Configuration / JSON-based loader.
Values come from the environment first, then from data/config.json.
"""

import os
import json
from pathlib import Path
from urllib.parse import urlparse, quote_plus
from typing import Optional

# Path to the config file
CONFIG_DIR = Path(__file__).parent / "data"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def sanitize_postgres_url(db_url: str) -> Optional[str]:
    """
    Encode only the password portion of a PostgreSQL URL.
    Non-PostgreSQL URLs (e.g. sqlite for local runs) are returned untouched.
    """
    if not db_url:
        return None

    if not db_url.startswith("postgresql"):
        return db_url

    parsed = urlparse(db_url)

    username = parsed.username
    password = parsed.password
    host = parsed.hostname
    port = parsed.port
    database = parsed.path.lstrip("/")

    if password:
        password = quote_plus(password)

    return f"postgresql://{username}:{password}@{host}:{port}/{database}"


def load_config() -> dict:
    """
    Load configuration from JSON file.
    Returns default empty config if file doesn't exist.
    """
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def get_config_value(key: str, default=None):
    """
    Get a configuration value. Environment variables win over JSON storage.
    """
    env_value = os.getenv(key)
    if env_value:
        return env_value
    return load_config().get(key, default)


def _as_float(raw, default: float) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


class ConfigManager:
    """
    Configuration manager that reads from the environment and JSON storage.
    """

    @property
    def DB_URL(self) -> Optional[str]:
        """Get the database URL."""
        raw_url = os.getenv("DB_URL") or os.getenv("DATABASE_URL") or load_config().get("DB_URL")
        return sanitize_postgres_url(raw_url) if raw_url else None

    @property
    def GEMINI_API_KEY(self) -> Optional[str]:
        """Get the Gemini API key."""
        return get_config_value("GEMINI_API_KEY")

    @property
    def GEMINI_MODEL(self) -> str:
        """Get the Gemini model."""
        return get_config_value("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)

    @property
    def LLM_TIMEOUT(self) -> float:
        """Seconds to wait for a completion before giving up."""
        return _as_float(get_config_value("LLM_TIMEOUT"), 60.0)

    @property
    def LLM_CHECK_TIMEOUT(self) -> float:
        """Seconds allowed for the liveness check."""
        return _as_float(get_config_value("LLM_CHECK_TIMEOUT"), 5.0)

    @property
    def QUERY_TIMEOUT(self) -> float:
        """Seconds allowed for a single database statement."""
        return _as_float(get_config_value("QUERY_TIMEOUT"), 30.0)

    @property
    def LOG_LEVEL(self) -> str:
        return str(get_config_value("LOG_LEVEL", "INFO")).upper()

    def validate_config(self) -> dict:
        """
        Check if required configuration is present.
        Returns dict with status and missing items.
        """
        missing = []

        if not self.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY")

        if not self.DB_URL:
            missing.append("DB_URL")

        return {
            "is_valid": len(missing) == 0,
            "missing": missing
        }

    def get_config_status(self) -> dict:
        """
        Get current configuration status.
        """
        return {
            "gemini_api_key_set": self.GEMINI_API_KEY is not None,
            "db_url_set": self.DB_URL is not None,
            "gemini_model": self.GEMINI_MODEL,
            "llm_timeout": self.LLM_TIMEOUT,
            "query_timeout": self.QUERY_TIMEOUT,
        }


# Create a singleton instance
config = ConfigManager()
