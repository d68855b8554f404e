"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from services.profile_service import ...` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add src/ to sys.path if missing (Lambda-style imports)."""
    src_root = Path(__file__).resolve().parents[1] / "src"
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Offline-friendly AWS defaults so boto3 never needs real credentials.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

boto3.setup_default_session(region_name="eu-west-2")

from models.customer import (  # noqa: E402
    Contact,
    CustomerDocument,
    CustomerMeeting,
    CustomerProfile,
    MailMessage,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_profile(email: str = "jane.doe@acme.com", name: str = "Jane Doe") -> CustomerProfile:
    return CustomerProfile(
        contact=Contact(id=f"contact-{email}", name=name, email=email, company="Acme")
    )


def make_message(
    message_id: str,
    sender: str = "jane.doe@acme.com",
    hours_ago: float = 1,
    subject: str = "Hello",
) -> MailMessage:
    return MailMessage(
        id=message_id,
        subject=subject,
        preview="Preview text",
        sender_name="Sender",
        sender_email=sender,
        recipients=["me@ourco.com"],
        received_at=NOW - timedelta(hours=hours_ago),
    )


def make_meeting(meeting_id: str, days_ago: float = 2, attendees: int = 3) -> CustomerMeeting:
    start = NOW - timedelta(days=days_ago)
    return CustomerMeeting(
        id=meeting_id,
        subject="Quarterly review",
        start=start,
        end=start + timedelta(minutes=45),
        attendees=[f"person{i}@acme.com" for i in range(attendees)],
        is_online=True,
    )


def make_document(document_id: str, days_ago: float = 5) -> CustomerDocument:
    return CustomerDocument(
        id=document_id,
        name="Proposal.pdf",
        last_modified=NOW - timedelta(days=days_ago),
        shared_by="Jane Doe",
        document_type="pdf",
        size=2048,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
