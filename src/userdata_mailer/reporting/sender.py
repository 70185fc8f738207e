"""Dispatch HTML email through an asynchronous delivery provider.

The provider accepts a message and hands back an operation that must be
polled until it reaches a terminal status.  :class:`MailDispatcher` runs
that submit-then-poll exchange with an explicit deadline and reduces it to
exactly one :class:`~userdata_mailer.models.SendOutcome`:

- submit error -> failure carrying the error text
- ``Succeeded`` -> success carrying the provider message id
- ``Failed`` / ``Canceled`` -> failure carrying the provider message,
  or the status name when the provider gives none
- submit or polling still unfinished at the deadline -> failure ``"timeout"``
- error while polling -> failure carrying the error text

The deadline covers the submit too: ``begin_send`` runs on a worker thread
and is abandoned if it has not returned in time.  The provider client is
injected (see :class:`DeliveryClient`), as are the clock and sleep
functions, so the loop can be driven without a network.
"""

from __future__ import annotations

import enum
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from userdata_mailer import MAX_SEND_TIMEOUT
from userdata_mailer.models import SendOutcome

logger = logging.getLogger(__name__)

MAX_TIMEOUT = MAX_SEND_TIMEOUT

DEFAULT_TIMEOUT = MAX_TIMEOUT

DEFAULT_POLL_INTERVAL = 1.0

TIMEOUT_REASON = "timeout"


class ProviderStatus(enum.Enum):
    """Status of a provider-side send operation."""

    NOT_STARTED = "NotStarted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"

    @property
    def is_terminal(self) -> bool:
        return self not in (ProviderStatus.NOT_STARTED, ProviderStatus.RUNNING)

    @classmethod
    def parse(cls, value) -> "ProviderStatus":
        """Map a provider status string onto this enum.

        ``InProgress`` is treated as ``Running``.  Unrecognised values are
        treated as ``Failed`` so an unknown status can never keep a caller
        waiting.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").replace("_", "").replace(" ", "").lower()
        if text == "inprogress":
            return cls.RUNNING
        if text == "cancelled":
            return cls.CANCELED
        for status in cls:
            if status.value.lower() == text:
                return status
        logger.warning("Unrecognised provider status %r; treating as failed", value)
        return cls.FAILED


class DispatchState(enum.Enum):
    """Observable state of one dispatch; timeouts end in ``FAILED``."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @classmethod
    def from_status(cls, status: ProviderStatus) -> "DispatchState":
        if not status.is_terminal:
            return cls.PENDING
        if status is ProviderStatus.SUCCEEDED:
            return cls.SUCCEEDED
        return cls.FAILED


@dataclass(frozen=True)
class EmailMessage:
    """Provider-neutral description of one outgoing email."""

    sender: str
    recipients: tuple[str, ...]
    subject: str
    html_body: str


@dataclass(frozen=True)
class ProviderPoll:
    """One observation of a send operation."""

    status: ProviderStatus
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def state(self) -> DispatchState:
        return DispatchState.from_status(self.status)


class SendOperation(Protocol):
    """Handle to an in-flight provider operation."""

    def poll(self) -> ProviderPoll:
        """Return the current status without blocking."""
        ...


class DeliveryClient(Protocol):
    """Submits messages to the delivery provider."""

    def begin_send(self, message: EmailMessage) -> SendOperation:
        ...


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class MailDispatcher:
    """Send one email and wait, at most *timeout* seconds, for the verdict."""

    def __init__(
        self,
        client: DeliveryClient,
        sender_address: str,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not 0 < timeout <= MAX_TIMEOUT:
            raise ValueError(
                f"timeout must be in (0, {MAX_TIMEOUT:g}] seconds, got {timeout!r}"
            )
        self.client = client
        self.sender_address = sender_address
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def send(self, recipient: str, subject: str, html_body: str) -> SendOutcome:
        """Submit the message and poll it to a terminal outcome.

        Never raises and never waits past the deadline.
        """
        message = EmailMessage(
            sender=self.sender_address,
            recipients=(recipient,),
            subject=subject,
            html_body=html_body,
        )
        deadline = self._clock() + self.timeout
        logger.info("Sending email to %s with subject %r", recipient, subject)

        try:
            operation = self._submit(message, deadline)
        except FutureTimeout:
            logger.error(
                "Email submission to %s did not complete within %.1f seconds",
                recipient, self.timeout,
            )
            return SendOutcome.failure(TIMEOUT_REASON)
        except Exception as exc:
            logger.error("Email submission to %s failed: %s", recipient, exc)
            return SendOutcome.failure(_describe(exc))

        try:
            outcome = self._wait(operation, deadline)
        except Exception as exc:
            logger.error("Error while polling email status for %s: %s", recipient, exc)
            return SendOutcome.failure(_describe(exc))

        if outcome.succeeded:
            logger.info(
                "Email sent successfully to %s (message id %s)",
                recipient, outcome.provider_message_id,
            )
        else:
            logger.error(
                "Email sending to %s failed: %s", recipient, outcome.failure_reason,
            )
        return outcome

    def _submit(self, message: EmailMessage, deadline: float) -> SendOperation:
        """Run ``begin_send`` on a worker thread, waiting no later than *deadline*.

        A submit still running at the deadline is abandoned and left to
        finish on its own thread.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="email-submit")
        try:
            future = executor.submit(self.client.begin_send, message)
            return future.result(timeout=max(deadline - self._clock(), 0.0))
        finally:
            executor.shutdown(wait=False)

    def _wait(self, operation: SendOperation, deadline: float) -> SendOutcome:
        while True:
            poll = operation.poll()
            state = poll.state
            if state is DispatchState.SUCCEEDED:
                return SendOutcome.success(poll.message_id)
            if state is DispatchState.FAILED:
                logger.debug("Provider reported %s: %s", poll.status.value, poll.error)
                return SendOutcome.failure(poll.error or poll.status.value)

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    "No terminal status after %.1f seconds; giving up", self.timeout,
                )
                return SendOutcome.failure(TIMEOUT_REASON)
            self._sleep(min(self.poll_interval, remaining))
