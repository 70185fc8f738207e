"""Data types shared across the dispatch pipeline."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MISSING_TIMESTAMP = "N/A"


@dataclass(frozen=True)
class Record:
    """One ``UserData`` row as fetched from the store.

    ``email`` is always empty: the store keeps no address per row and the
    report never shows one.
    """

    id: int
    name: str
    age: int
    created_at: Optional[datetime.datetime] = None
    email: str = ""

    @property
    def formatted_created_at(self) -> str:
        if self.created_at is None:
            return MISSING_TIMESTAMP
        return self.created_at.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class SendOutcome:
    """Terminal result of a single dispatch attempt."""

    succeeded: bool
    provider_message_id: Optional[str] = None
    failure_reason: Optional[str] = None

    @classmethod
    def success(cls, message_id: Optional[str]) -> "SendOutcome":
        return cls(succeeded=True, provider_message_id=message_id)

    @classmethod
    def failure(cls, reason: str) -> "SendOutcome":
        return cls(succeeded=False, failure_reason=reason)


class EmailRequest(BaseModel):
    """Body of ``POST /api/email/send``."""

    receiverEmail: Optional[str] = None


class ApiResponse(BaseModel):
    """Wire-level result of every endpoint."""

    success: bool
    message: str
