"""Wiring of the production collaborators.

Usage:
    uvicorn userdata_mailer.server:create_app_from_env --factory --port 8080

or ``userdata-mailer serve``.  Settings are read once here; a missing
required variable stops startup with :class:`ConfigurationError`.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from userdata_mailer.api import create_app
from userdata_mailer.config import Settings, load_settings
from userdata_mailer.db.manager import SqliteRecordStore
from userdata_mailer.orchestrator import DispatchOrchestrator
from userdata_mailer.reporting.sender import MailDispatcher

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings) -> DispatchOrchestrator:
    """Create the orchestrator with the SQLite store and Azure email client."""
    from userdata_mailer.reporting.azure_client import AzureEmailClient

    store = SqliteRecordStore(settings.sql_connection_string)
    dispatcher = MailDispatcher(
        AzureEmailClient(
            settings.communication_connection_string, timeout=settings.send_timeout,
        ),
        settings.sender_address,
        timeout=settings.send_timeout,
        poll_interval=settings.poll_interval,
    )
    logger.info("Email service initialized with sender: %s", settings.sender_address)
    return DispatchOrchestrator(store, dispatcher, subject=settings.email_subject)


def create_app_from_env(settings: Optional[Settings] = None) -> FastAPI:
    """ASGI factory: load settings (unless given) and build the app."""
    if settings is None:
        settings = load_settings()
    return create_app(build_orchestrator(settings))
