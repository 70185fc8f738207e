"""Request handling for ``POST /api/email/send``.

:class:`DispatchOrchestrator` walks one request through
``VALIDATING -> FETCHING -> RENDERING -> SENDING -> RESPONDED``.  Any stage
may jump straight to ``RESPONDED`` with a failure.  It is the only place
where errors become status codes; nothing raised below it escapes.
"""

from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import pydantic

from userdata_mailer import DEFAULT_SUBJECT
from userdata_mailer.db.manager import RecordStore
from userdata_mailer.errors import NotFoundError, SendFailure, ValidationError
from userdata_mailer.models import ApiResponse, EmailRequest
from userdata_mailer.reporting.composer import render_report
from userdata_mailer.reporting.sender import MailDispatcher

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

MSG_EMAIL_REQUIRED = "Receiver email is required"
MSG_INVALID_BODY = "Invalid request body"
MSG_INVALID_EMAIL = "Invalid email format"
MSG_NO_DATA = "No user data found in database"
MSG_SEND_FAILED = "Failed to send email"


class DispatchStage(enum.Enum):
    VALIDATING = "validating"
    FETCHING = "fetching"
    RENDERING = "rendering"
    SENDING = "sending"
    RESPONDED = "responded"


@dataclass(frozen=True)
class DispatchResult:
    """The single response produced for one request.

    ``stage`` is the last working stage entered before responding.
    """

    status_code: int
    response: ApiResponse
    stage: DispatchStage


def is_valid_email(address: Optional[str]) -> bool:
    return bool(address) and EMAIL_PATTERN.match(address) is not None


def parse_request(body: Union[bytes, str, dict, None]) -> str:
    """Extract and validate the receiver address from a request body.

    Returns:
        The trimmed address.

    Raises:
        ValidationError: If the body is absent or unparseable, or the
            address is missing, blank or malformed.
    """
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        if not body.strip():
            raise ValidationError(MSG_EMAIL_REQUIRED)
        try:
            body = json.loads(body)
        except ValueError as exc:
            raise ValidationError(MSG_INVALID_BODY) from exc
    if body is None:
        raise ValidationError(MSG_EMAIL_REQUIRED)
    if not isinstance(body, dict):
        raise ValidationError(MSG_INVALID_BODY)

    try:
        request = EmailRequest.model_validate(body)
    except pydantic.ValidationError as exc:
        raise ValidationError(MSG_INVALID_BODY) from exc

    address = (request.receiverEmail or "").strip()
    if not address:
        raise ValidationError(MSG_EMAIL_REQUIRED)
    if not is_valid_email(address):
        raise ValidationError(MSG_INVALID_EMAIL)
    return address


class DispatchOrchestrator:
    """Validate, fetch, render and send; answer with one :class:`ApiResponse`."""

    def __init__(
        self,
        store: RecordStore,
        dispatcher: MailDispatcher,
        subject: str = DEFAULT_SUBJECT,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.subject = subject

    def handle(self, body: Any) -> DispatchResult:
        """Run the pipeline for one request body; never raises."""
        stage = DispatchStage.VALIDATING
        try:
            receiver = parse_request(body)
            logger.info("Processing email request for: %s", receiver)

            stage = DispatchStage.FETCHING
            records = self.store.fetch_all_records()
            if not records:
                raise NotFoundError(MSG_NO_DATA)
            logger.info("Retrieved %d records from database", len(records))

            stage = DispatchStage.RENDERING
            html_body = render_report(records, title=self.subject)

            stage = DispatchStage.SENDING
            outcome = self.dispatcher.send(receiver, self.subject, html_body)
            if not outcome.succeeded:
                raise SendFailure(outcome.failure_reason or MSG_SEND_FAILED)

            return self._respond(200, True, f"Email sent successfully to {receiver}", stage)

        except ValidationError as exc:
            logger.warning("Rejected email request: %s", exc)
            return self._respond(400, False, str(exc), stage)
        except NotFoundError as exc:
            logger.warning("Nothing to send: %s", exc)
            return self._respond(404, False, str(exc), stage)
        except SendFailure as exc:
            logger.error("Email dispatch failed: %s", exc)
            return self._respond(500, False, MSG_SEND_FAILED, stage)
        except Exception as exc:
            logger.exception("Error in email request during %s", stage.value)
            message = str(exc) or type(exc).__name__
            return self._respond(500, False, f"Error sending email: {message}", stage)

    @staticmethod
    def _respond(status_code: int, success: bool, message: str, stage: DispatchStage) -> DispatchResult:
        logger.debug("%s -> %s (%d)", stage.value, DispatchStage.RESPONDED.value, status_code)
        return DispatchResult(
            status_code=status_code,
            response=ApiResponse(success=success, message=message),
            stage=stage,
        )
