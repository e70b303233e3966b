"""Tests for settings loading."""

from decimal import Decimal

import pytest

from tradeledger import config


def test_defaults():
    """No file and no environment gives the built-in defaults."""
    settings = config.build_settings({}, {})

    assert settings.initial_cash == Decimal("10000.00")
    assert settings.valuation_provider == "alphavantage"
    assert settings.trade_max_attempts == 3
    assert settings.sqlalchemy_echo is False


def test_file_values(tmp_path):
    """Values from a YAML file are typed and unknown keys are ignored."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "initial_cash: 2500.50\n"
        "valuation_provider: static\n"
        "valuation_timeout: 2\n"
        "sqlalchemy_echo: true\n"
        "unrelated: 1\n"
    )

    settings = config.build_settings(config.load_config_file(path), {})

    assert settings.initial_cash == Decimal("2500.50")
    assert settings.valuation_provider == "static"
    assert settings.valuation_timeout == 2.0
    assert settings.sqlalchemy_echo is True


def test_environment_wins(tmp_path):
    """Environment variables override file values."""
    path = tmp_path / "config.yaml"
    path.write_text("trade_max_attempts: 7\ninitial_cash: 100\n")

    settings = config.build_settings(
        config.load_config_file(path),
        {"TRADE_MAX_ATTEMPTS": "2", "SQLALCHEMY_ECHO": "1", "UNRELATED": "x"},
    )

    assert settings.trade_max_attempts == 2
    assert settings.initial_cash == Decimal("100")
    assert settings.sqlalchemy_echo is True


def test_empty_file(tmp_path):
    """An empty YAML file behaves like no file."""
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert config.load_config_file(path) == {}


def test_invalid_attempts():
    """At least one trade attempt is required."""
    with pytest.raises(ValueError):
        config.build_settings({}, {"TRADE_MAX_ATTEMPTS": "0"})
