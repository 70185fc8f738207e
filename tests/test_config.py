"""Tests for userdata_mailer.config.load_settings."""

import logging

import pytest

from userdata_mailer.config import load_settings
from userdata_mailer.errors import ConfigurationError

REQUIRED = {
    "SQL_CONNECTION_STRING": "sqlite:///data/users.db",
    "COMMUNICATION_SERVICE_CONNECTION_STRING": "endpoint=https://x/;accesskey=y",
    "SENDER_EMAIL_ADDRESS": "DoNotReply@example.com",
}


def test_defaults():
    settings = load_settings(dict(REQUIRED))

    assert settings.sql_connection_string == "sqlite:///data/users.db"
    assert settings.sender_address == "DoNotReply@example.com"
    assert settings.port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.send_timeout == 120.0
    assert settings.poll_interval == 1.0
    assert settings.email_subject == "User Data Report"


def test_overrides():
    env = dict(REQUIRED, PORT="9000", EMAIL_SEND_TIMEOUT="30",
               EMAIL_POLL_INTERVAL="0.5", EMAIL_SUBJECT="Users")
    settings = load_settings(env)

    assert settings.port == 9000
    assert settings.send_timeout == 30.0
    assert settings.poll_interval == 0.5
    assert settings.email_subject == "Users"


@pytest.mark.parametrize("name", sorted(REQUIRED))
def test_missing_required(name):
    env = dict(REQUIRED)
    env[name] = "   "
    with pytest.raises(ConfigurationError, match=name):
        load_settings(env)


def test_all_missing_listed():
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings({})
    for name in REQUIRED:
        assert name in str(excinfo.value)


def test_invalid_port_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        settings = load_settings(dict(REQUIRED, PORT="eighty"))
    assert settings.port == 8080
    assert any("PORT" in msg for msg in caplog.messages)


@pytest.mark.parametrize("value", ["soon", "0", "-5", "900", "120.5"])
def test_invalid_timeout(value):
    with pytest.raises(ConfigurationError, match="EMAIL_SEND_TIMEOUT"):
        load_settings(dict(REQUIRED, EMAIL_SEND_TIMEOUT=value))


def test_timeout_above_two_minutes_rejected():
    with pytest.raises(ConfigurationError, match="at most 120 seconds"):
        load_settings(dict(REQUIRED, EMAIL_SEND_TIMEOUT="900"))


def test_timeout_at_two_minutes_accepted():
    settings = load_settings(dict(REQUIRED, EMAIL_SEND_TIMEOUT="120"))
    assert settings.send_timeout == 120.0


def test_reads_os_environ(monkeypatch):
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    assert load_settings().sender_address == "DoNotReply@example.com"
