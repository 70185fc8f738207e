"""Process configuration for userdata-mailer.

Settings are read once at startup from environment variables (the CLI loads
a ``.env`` file first) and passed to each component at construction:

- ``SQL_CONNECTION_STRING`` -- record store location (required)
- ``COMMUNICATION_SERVICE_CONNECTION_STRING`` -- email provider (required)
- ``SENDER_EMAIL_ADDRESS`` -- the ``From`` address (required)
- ``PORT`` / ``HOST`` -- HTTP listener (default ``0.0.0.0:8080``)
- ``EMAIL_SEND_TIMEOUT`` -- send deadline in seconds (default and maximum ``120``)
- ``EMAIL_POLL_INTERVAL`` -- seconds between polls (default ``1``)
- ``EMAIL_SUBJECT`` -- subject line (default ``User Data Report``)

A missing required value raises :class:`ConfigurationError`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from userdata_mailer import DEFAULT_PORT, DEFAULT_SUBJECT, MAX_SEND_TIMEOUT
from userdata_mailer.errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_VARIABLES = (
    "SQL_CONNECTION_STRING",
    "COMMUNICATION_SERVICE_CONNECTION_STRING",
    "SENDER_EMAIL_ADDRESS",
)


def _env_or_default(environ: Mapping[str, str], name: str, default: str) -> str:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_port(environ: Mapping[str, str]) -> int:
    raw = _env_or_default(environ, "PORT", "")
    if not raw:
        return DEFAULT_PORT
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid PORT environment variable: %s", raw)
        return DEFAULT_PORT


def _env_seconds(
    environ: Mapping[str, str], name: str, default: float, maximum: Optional[float] = None,
) -> float:
    raw = _env_or_default(environ, name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    if maximum is not None and value > maximum:
        raise ConfigurationError(f"{name} must be at most {maximum:g} seconds, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration shared by every request."""

    sql_connection_string: str
    communication_connection_string: str
    sender_address: str
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    send_timeout: float = MAX_SEND_TIMEOUT
    poll_interval: float = 1.0
    email_subject: str = DEFAULT_SUBJECT


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from *environ* (defaults to ``os.environ``).

    Raises:
        ConfigurationError: If any required variable is unset or blank,
            or a numeric setting cannot be parsed or is out of range.
    """
    if environ is None:
        environ = os.environ

    missing = [name for name in REQUIRED_VARIABLES if not environ.get(name, "").strip()]
    if missing:
        raise ConfigurationError(
            "Missing required environment variable(s): " + ", ".join(missing)
        )

    settings = Settings(
        sql_connection_string=environ["SQL_CONNECTION_STRING"].strip(),
        communication_connection_string=environ["COMMUNICATION_SERVICE_CONNECTION_STRING"].strip(),
        sender_address=environ["SENDER_EMAIL_ADDRESS"].strip(),
        host=_env_or_default(environ, "HOST", "0.0.0.0"),
        port=_env_port(environ),
        send_timeout=_env_seconds(
            environ, "EMAIL_SEND_TIMEOUT", MAX_SEND_TIMEOUT, maximum=MAX_SEND_TIMEOUT,
        ),
        poll_interval=_env_seconds(environ, "EMAIL_POLL_INTERVAL", 1.0),
        email_subject=_env_or_default(environ, "EMAIL_SUBJECT", DEFAULT_SUBJECT),
    )
    logger.info("Settings loaded; sender address %s", settings.sender_address)
    return settings
