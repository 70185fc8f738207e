"""Shared pytest fixtures for the userdata-mailer test suite.

Provides:
    db_path        -- path to a temp-file SQLite database with the schema applied
    seeded_db_path -- the same database holding three dated rows
    sample_records -- three Record objects, newest first
    fake_clock     -- monotonic clock whose sleep() advances time
    make_dispatcher / FakeDeliveryClient -- provider stand-ins
    settings       -- Settings pointing at db_path
"""

import datetime

import pytest

from userdata_mailer.config import Settings
from userdata_mailer.db.manager import get_connection, init_db, insert_record
from userdata_mailer.models import Record
from userdata_mailer.reporting.sender import (
    MailDispatcher,
    ProviderPoll,
    ProviderStatus,
)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def db_path(tmp_path):
    """Create a SQLite file with the UserData table and return its path."""
    path = tmp_path / "users.db"
    conn = get_connection(str(path))
    init_db(conn)
    conn.close()
    return str(path)


@pytest.fixture()
def seeded_db_path(db_path):
    """Seed three rows created on consecutive days (Carol newest)."""
    conn = get_connection(db_path)
    base = datetime.datetime(2024, 3, 1, 9, 30, 0)
    insert_record(conn, "Alice", 30, base)
    insert_record(conn, "Bob", 41, base + datetime.timedelta(days=1))
    insert_record(conn, "Carol", 25, base + datetime.timedelta(days=2))
    conn.close()
    return db_path


@pytest.fixture()
def sample_records() -> list:
    """Three records in display order."""
    return [
        Record(3, "Carol", 25, datetime.datetime(2024, 3, 3, 9, 30, 0)),
        Record(2, "Bob", 41, datetime.datetime(2024, 3, 2, 9, 30, 0)),
        Record(1, "Alice", 30, None),
    ]


@pytest.fixture()
def settings(db_path) -> Settings:
    return Settings(
        sql_connection_string=db_path,
        communication_connection_string="endpoint=https://example.invalid/;accesskey=YWJjZA==",
        sender_address="DoNotReply@example.com",
    )


# ---------------------------------------------------------------------------
# Provider fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, start: float = 1000.0):
        self.start = start
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    @property
    def elapsed(self) -> float:
        return self.now - self.start


class FakeOperation:
    """Replays scripted polls; the last entry repeats forever.

    An entry that is an exception instance is raised instead of returned.
    """

    def __init__(self, polls):
        self.polls = list(polls)
        self.count = 0

    def poll(self):
        item = self.polls[min(self.count, len(self.polls) - 1)]
        self.count += 1
        if isinstance(item, Exception):
            raise item
        return item


class FakeDeliveryClient:
    """Records submitted messages and hands back a FakeOperation."""

    def __init__(self, polls=None, submit_error=None):
        if polls is None:
            polls = [ProviderPoll(ProviderStatus.SUCCEEDED, message_id="msg-1")]
        self.polls = polls
        self.submit_error = submit_error
        self.messages = []
        self.operation = None

    def begin_send(self, message):
        self.messages.append(message)
        if self.submit_error is not None:
            raise self.submit_error
        self.operation = FakeOperation(self.polls)
        return self.operation


class FakeRecordStore:
    """RecordStore returning fixed records, or raising a fixed error."""

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = 0

    def fetch_all_records(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_dispatcher(fake_clock):
    """Factory building a MailDispatcher around a FakeDeliveryClient."""

    def _make(client=None, timeout=120.0, poll_interval=1.0):
        client = client or FakeDeliveryClient()
        return MailDispatcher(
            client,
            "DoNotReply@example.com",
            timeout=timeout,
            poll_interval=poll_interval,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    return _make
