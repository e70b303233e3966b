"""Configuration for the trade ledger.

Settings come from an optional YAML file (project first, then user) and are
overridden by environment variables:

    DATABASE_URL          SQLAlchemy async URL (default: local SQLite file)
    SQLALCHEMY_ECHO       "1" to log SQL
    INITIAL_CASH          Starting balance for provisioned accounts
    VALUATION_PROVIDER    "alphavantage" or "static"
    ALPHA_VANTAGE_KEY     API key for the Alpha Vantage price source
    ALPHA_VANTAGE_URL     Base URL for the Alpha Vantage API
    VALUATION_TIMEOUT     Per-symbol price lookup timeout in seconds
    TRADE_MAX_ATTEMPTS    Attempts before a conflicting trade gives up
    RECONCILE_TOLERANCE   Allowed average-cost drift between replay and holdings
"""

import os
from dataclasses import dataclass, fields
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

import yaml

CONFIG_FILENAME = ".tradeledger.yaml"
USER_CONFIG_DIR = Path.home() / ".tradeledger"


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""

    database_url: str = "sqlite+aiosqlite:///./trade_ledger.db"
    sqlalchemy_echo: bool = False
    initial_cash: Decimal = Decimal("10000.00")
    valuation_provider: str = "alphavantage"
    alpha_vantage_key: str = ""
    alpha_vantage_url: str = "https://www.alphavantage.co/query"
    valuation_timeout: float = 5.0
    trade_max_attempts: int = 3
    reconcile_tolerance: Decimal = Decimal("0.0001")


# Environment variable -> settings field
_ENV_VARS = {
    "DATABASE_URL": "database_url",
    "SQLALCHEMY_ECHO": "sqlalchemy_echo",
    "INITIAL_CASH": "initial_cash",
    "VALUATION_PROVIDER": "valuation_provider",
    "ALPHA_VANTAGE_KEY": "alpha_vantage_key",
    "ALPHA_VANTAGE_URL": "alpha_vantage_url",
    "VALUATION_TIMEOUT": "valuation_timeout",
    "TRADE_MAX_ATTEMPTS": "trade_max_attempts",
    "RECONCILE_TOLERANCE": "reconcile_tolerance",
}


def find_config() -> Path | None:
    """Find config file (project first, then user).

    Returns:
        Path to config file if found, None otherwise.
    """
    project_config = Path(CONFIG_FILENAME)
    if project_config.exists():
        return project_config

    user_config = USER_CONFIG_DIR / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def load_config_file(path: Path | None = None) -> dict:
    """Load raw config values from a YAML file.

    Returns:
        Config dictionary, or empty dict if no config found.
    """
    path = path or find_config()
    if path is None:
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _coerce(name: str, value):
    """Convert a raw config value to the type of the settings field."""
    if name == "sqlalchemy_echo":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if name in ("initial_cash", "reconcile_tolerance"):
        return Decimal(str(value))
    if name == "valuation_timeout":
        return float(value)
    if name == "trade_max_attempts":
        attempts = int(value)
        if attempts < 1:
            raise ValueError("trade_max_attempts must be at least 1")
        return attempts
    return str(value)


def build_settings(file_values: dict, environ: dict) -> Settings:
    """Merge file values and environment variables into Settings.

    Environment variables win over file values. Unknown file keys are ignored.
    """
    known = {f.name for f in fields(Settings)}
    values = {
        name: _coerce(name, value)
        for name, value in file_values.items()
        if name in known and value is not None
    }
    for env_name, name in _ENV_VARS.items():
        if env_name in environ:
            values[name] = _coerce(name, environ[env_name])
    return Settings(**values)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return build_settings(load_config_file(), dict(os.environ))
