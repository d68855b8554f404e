"""
Profile aggregator tests with mocked upstream collaborators.

No network or database access required.

Run with: pytest tests/unit/test_customer_service.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from config.settings import Settings
from conftest import make_document, make_meeting, make_message
from models.customer import Contact, CustomerMeeting, Direction, DirectoryPerson, MailMessage
from repositories.memory_repo import InMemoryContactStore
from services.customer_service import ProfileAggregator, company_from_email, name_from_email
from utils.error_handling import InvalidIdentityError, ProfileNotFoundError

IDENTITY = "jane.doe@acme.com"


def _sources(messages_from=None, search=None, meetings=None, documents=None):
    messages = AsyncMock()
    messages.messages_from.return_value = messages_from or []
    messages.search_messages.return_value = search or []
    meeting_source = AsyncMock()
    meeting_source.meetings_involving.return_value = meetings or []
    document_source = AsyncMock()
    document_source.documents_shared_with.return_value = documents or []
    return messages, meeting_source, document_source


def _aggregator(contacts=None, directory=None, sources=None, settings=None):
    messages, meetings, documents = sources or _sources()
    if directory is None:
        directory = AsyncMock()
        directory.search_people.return_value = []
    return ProfileAggregator(
        contacts=contacts if contacts is not None else InMemoryContactStore(),
        directory=directory,
        messages=messages,
        meetings=meetings,
        documents=documents,
        settings=settings or Settings(source_timeout_seconds=0.05, enrichment_timeout_seconds=0.05),
    )


class TestIdentityValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", ["", "not-an-email", "AAMkAGI2TG93AAA=", "a@b", "a b@c.com"])
    async def test_rejects_malformed_identity_before_any_call(self, bad):
        sources = _sources()
        contacts = AsyncMock()
        aggregator = _aggregator(contacts=contacts, sources=sources)

        with pytest.raises(InvalidIdentityError):
            await aggregator.aggregate(bad)

        contacts.search_by_identity.assert_not_called()
        sources[0].messages_from.assert_not_called()


class TestContactResolution:
    @pytest.mark.asyncio
    async def test_existing_contact_matched_case_insensitively(self):
        existing = Contact(id="c-1", name="Jane Doe", email="Jane.Doe@Acme.com", source="crm")
        other = Contact(id="c-2", name="Janet", email="jane.doe@acme.com.au")
        contacts = AsyncMock()
        contacts.search_by_identity.return_value = [other, existing]

        profile = await _aggregator(contacts=contacts).aggregate("JANE.DOE@acme.com")

        assert profile.contact.id == "c-1"
        contacts.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_identity_synthesizes_and_persists_contact(self):
        store = InMemoryContactStore()
        profile = await _aggregator(contacts=store).aggregate(IDENTITY)

        contact = profile.contact
        assert contact.name == "Jane Doe"
        assert contact.company == "Acme"
        assert contact.status.value == "lead"
        assert contact.tags == ["from-mailbox"]
        assert await store.search_by_identity(IDENTITY) == [contact]

    @pytest.mark.asyncio
    async def test_directory_enrichment_prefers_exact_address_match(self):
        directory = AsyncMock()
        directory.search_people.return_value = [
            DirectoryPerson(display_name="Someone Else", email_addresses=["other@acme.com"]),
            DirectoryPerson(
                display_name="Jane Q. Doe",
                job_title="CTO",
                company_name="Acme Corp",
                email_addresses=["JANE.DOE@acme.com"],
            ),
        ]

        profile = await _aggregator(directory=directory).aggregate(IDENTITY)

        assert profile.contact.name == "Jane Q. Doe"
        assert profile.contact.position == "CTO"
        assert profile.contact.company == "Acme Corp"

    @pytest.mark.asyncio
    async def test_directory_failure_is_not_an_error(self):
        directory = AsyncMock()
        directory.search_people.side_effect = RuntimeError("directory down")

        profile = await _aggregator(directory=directory).aggregate(IDENTITY)

        assert profile.contact.name == "Jane Doe"
        assert profile.contact.source == "directory"

    @pytest.mark.asyncio
    async def test_store_failure_falls_back_to_unpersisted_contact(self):
        contacts = AsyncMock()
        contacts.search_by_identity.side_effect = ConnectionError("db unreachable")

        profile = await _aggregator(contacts=contacts).aggregate(IDENTITY)

        assert profile.contact.id.startswith("fallback-")
        assert profile.contact.tags == ["from-mailbox", "fallback"]
        assert profile.contact.source == "fallback"
        contacts.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_derivable_name_is_not_found(self):
        contacts = AsyncMock()
        contacts.search_by_identity.return_value = []

        with pytest.raises(ProfileNotFoundError):
            await _aggregator(contacts=contacts).aggregate("..@acme.com")

    def test_name_and_company_derivation(self):
        assert name_from_email("jane.doe@acme.com") == "Jane Doe"
        assert name_from_email("bob@acme.com") == "Bob"
        assert company_from_email("bob@globex.co.uk") == "Globex"


class TestMessages:
    @pytest.mark.asyncio
    async def test_dedupes_and_assigns_direction(self):
        sources = _sources(
            messages_from=[make_message("m1", hours_ago=3)],
            search=[
                make_message("m1", hours_ago=3),
                make_message("m2", sender="me@ourco.com", hours_ago=1),
                make_message("m3", sender="JANE.DOE@ACME.COM", hours_ago=2),
                make_message(None, hours_ago=4),
            ],
        )

        profile = await _aggregator(sources=sources).aggregate(IDENTITY)

        assert [m.id for m in profile.messages] == ["m2", "m3", "m1"]
        directions = {m.id: m.direction for m in profile.messages}
        assert directions == {
            "m1": Direction.INBOUND,
            "m2": Direction.OUTBOUND,
            "m3": Direction.INBOUND,
        }
        assert profile.stats.total_messages == 3

    @pytest.mark.asyncio
    async def test_one_message_query_failing_keeps_the_other(self):
        sources = _sources(search=[make_message("m2", sender="me@ourco.com")])
        sources[0].messages_from.side_effect = RuntimeError("sender query failed")

        profile = await _aggregator(sources=sources).aggregate(IDENTITY)

        assert [m.id for m in profile.messages] == ["m2"]


class TestPartialFailure:
    @pytest.mark.asyncio
    async def test_meeting_and_document_failures_still_return_profile(self):
        sources = _sources(messages_from=[make_message("m1")])
        sources[1].meetings_involving.side_effect = RuntimeError("calendar down")
        sources[2].documents_shared_with.side_effect = ConnectionError("drive down")

        profile = await _aggregator(sources=sources).aggregate(IDENTITY)

        assert len(profile.messages) == 1
        assert profile.stats.total_meetings == 0
        assert profile.stats.total_documents == 0
        assert profile.stats.engagement_score > 0

    @pytest.mark.asyncio
    async def test_slow_source_times_out_to_empty_list(self):
        async def never_ready(identity):
            await asyncio.sleep(10)
            return [make_meeting("late")]

        sources = _sources(documents=[make_document("d1")])
        sources[1].meetings_involving.side_effect = never_ready

        profile = await _aggregator(sources=sources).aggregate(IDENTITY)

        assert profile.meetings == []
        assert [d.id for d in profile.documents] == ["d1"]

    @pytest.mark.asyncio
    async def test_full_profile_timeline(self):
        sources = _sources(
            messages_from=[make_message("m1", hours_ago=1)],
            meetings=[make_meeting("mt1", days_ago=2)],
            documents=[make_document("d1", days_ago=5)],
        )

        profile = await _aggregator(sources=sources).aggregate(IDENTITY)

        assert [i.kind for i in profile.interactions] == ["message", "meeting", "document"]
        assert profile.stats.last_interaction == profile.interactions[0].timestamp


class TestMixedTimestamps:
    @pytest.mark.asyncio
    async def test_naive_and_aware_records_still_build_a_profile(self):
        naive_meeting = CustomerMeeting(
            id="mt-naive",
            subject="Kickoff",
            start="2026-10-10T10:00:00",
            end="2026-10-10T11:00:00Z",
        )
        naive_message = MailMessage(
            id="m-naive",
            sender_email=IDENTITY,
            received_at=datetime(2026, 10, 11, 9, 0),
        )
        aware_message = MailMessage(
            id="m-aware",
            sender_email=IDENTITY,
            received_at=datetime(2026, 10, 11, 8, 0, tzinfo=timezone.utc),
        )
        sources = _sources(messages_from=[aware_message, naive_message], meetings=[naive_meeting])

        profile = await _aggregator(sources=sources).aggregate(IDENTITY)

        assert [m.id for m in profile.messages] == ["m-naive", "m-aware"]
        assert profile.interactions[-1].duration_minutes == 60
        assert [i.id for i in profile.interactions] == [
            "message-m-naive",
            "message-m-aware",
            "meeting-mt-naive",
        ]
