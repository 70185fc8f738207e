"""Azure Communication Services implementation of the delivery client.

``EmailClient.begin_send`` returns an ``LROPoller`` that polls the service
on a background thread.  :class:`AzureSendOperation` only reads that
poller's ``done()`` / ``status()`` / ``result()``, so a poll never blocks
and the wait is bounded by :class:`~userdata_mailer.reporting.sender.MailDispatcher`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from azure.communication.email import EmailClient
from azure.core.exceptions import HttpResponseError

from userdata_mailer.reporting.sender import (
    MAX_TIMEOUT,
    EmailMessage,
    ProviderPoll,
    ProviderStatus,
)

logger = logging.getLogger(__name__)


def build_payload(message: EmailMessage) -> dict:
    """Translate *message* into the dict ``EmailClient.begin_send`` expects."""
    return {
        "senderAddress": message.sender,
        "recipients": {
            "to": [{"address": address} for address in message.recipients],
        },
        "content": {
            "subject": message.subject,
            "html": message.html_body,
        },
    }


def _error_message(error: Any) -> Optional[str]:
    if not error:
        return None
    if isinstance(error, dict):
        return error.get("message") or error.get("code")
    return getattr(error, "message", None) or str(error)


class AzureSendOperation:
    """Wraps the ``LROPoller`` of one send."""

    def __init__(self, poller) -> None:
        self._poller = poller

    def poll(self) -> ProviderPoll:
        if not self._poller.done():
            return ProviderPoll(ProviderStatus.parse(self._poller.status()))

        try:
            result = self._poller.result()
        except HttpResponseError as exc:
            # The poller raises when the operation ends Failed or Canceled.
            status = ProviderStatus.parse(self._poller.status())
            if not status.is_terminal or status is ProviderStatus.SUCCEEDED:
                status = ProviderStatus.FAILED
            return ProviderPoll(status, error=exc.message or str(exc))

        result = result or {}
        status = ProviderStatus.parse(result.get("status") or self._poller.status())
        if not status.is_terminal:
            # done() is authoritative; a finished poller without a terminal
            # status in its payload did not deliver.
            status = ProviderStatus.FAILED
        return ProviderPoll(
            status,
            message_id=result.get("id"),
            error=_error_message(result.get("error")),
        )


class AzureEmailClient:
    """Production :class:`~userdata_mailer.reporting.sender.DeliveryClient`.

    The SDK client is built with transport retries disabled and connect/read
    timeouts no longer than *timeout*, so a single submit cannot outlast the
    dispatcher's deadline.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        client: Optional[EmailClient] = None,
        timeout: float = MAX_TIMEOUT,
    ) -> None:
        if client is None:
            if not connection_string:
                raise ValueError("connection_string or client is required")
            transport_timeout = min(timeout, MAX_TIMEOUT)
            client = EmailClient.from_connection_string(
                connection_string,
                retry_total=0,
                connection_timeout=transport_timeout,
                read_timeout=transport_timeout,
            )
        self._client = client

    def begin_send(self, message: EmailMessage) -> AzureSendOperation:
        poller = self._client.begin_send(build_payload(message))
        logger.debug("Submitted email to %s", ", ".join(message.recipients))
        return AzureSendOperation(poller)
