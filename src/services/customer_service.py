"""
Customer profile aggregation.

Gathers a customer's contact record and communication history from
independent upstream sources, concurrently and under per-call deadlines,
and merges them into one CustomerProfile. A failing or slow source degrades
to an empty list; only a malformed identity or a contact that cannot even be
synthesized aborts the call.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from config.settings import Settings
from models.customer import (
    Contact,
    ContactStatus,
    CustomerMessage,
    CustomerProfile,
    Direction,
    DirectoryPerson,
    MailMessage,
)
from repositories.interfaces import (
    ContactStore,
    DirectoryLookup,
    DocumentSource,
    MeetingSource,
    MessageSource,
)
from services.timeline_service import TimelineBuilder, as_utc
from utils.error_handling import ProfileNotFoundError, UpstreamTimeoutError
from utils.logging_config import get_logger
from utils.timeout import guard
from utils.validators import normalize_identity, validate_identity

logger = get_logger(__name__)


def name_from_email(identity: str) -> str:
    """'jane.doe@acme.com' -> 'Jane Doe'."""
    local_part = identity.split("@")[0]
    return " ".join(part[:1].upper() + part[1:] for part in local_part.split(".") if part)


def company_from_email(identity: str) -> str:
    """'jane@acme.co.uk' -> 'Acme'."""
    _, _, domain = identity.partition("@")
    if not domain:
        return ""
    label = domain.split(".")[0]
    return label[:1].upper() + label[1:]


class ProfileAggregator:
    """Build a CustomerProfile from the configured upstream sources."""

    def __init__(
        self,
        contacts: ContactStore,
        directory: DirectoryLookup,
        messages: MessageSource,
        meetings: MeetingSource,
        documents: DocumentSource,
        settings: Optional[Settings] = None,
        timeline: Optional[TimelineBuilder] = None,
    ):
        self.contacts = contacts
        self.directory = directory
        self.messages = messages
        self.meetings = meetings
        self.documents = documents
        self.settings = settings or Settings()
        self.timeline = timeline or TimelineBuilder()

    async def aggregate(self, identity: str) -> CustomerProfile:
        """
        Aggregate a full profile for ``identity``.

        Raises InvalidIdentityError before any upstream call when the address
        is malformed, and ProfileNotFoundError when no contact can be produced.
        """
        identity = validate_identity(identity)
        start = time.perf_counter()

        contact, messages, meetings, documents = await asyncio.gather(
            self._resolve_contact(identity),
            self._fetch_messages(identity),
            self._fetch_source(
                "meetings", lambda: self.meetings.meetings_involving(identity), identity
            ),
            self._fetch_source(
                "documents", lambda: self.documents.documents_shared_with(identity), identity
            ),
            return_exceptions=True,
        )

        if isinstance(contact, BaseException) or contact is None:
            logger.error(
                "Contact resolution failed",
                extra={"identity": identity, "error": str(contact)},
            )
            raise ProfileNotFoundError(identity)

        # The fetch helpers absorb their own errors; this only catches bugs in them.
        messages = self._or_empty(messages, "messages", identity)
        meetings = self._or_empty(meetings, "meetings", identity)
        documents = self._or_empty(documents, "documents", identity)

        interactions, stats = self.timeline.build(messages, meetings, documents)
        profile = CustomerProfile(
            contact=contact,
            messages=messages,
            meetings=meetings,
            documents=documents,
            interactions=interactions,
            stats=stats,
        )

        logger.info(
            "Customer profile aggregated",
            extra={
                "identity": identity,
                "messages": len(messages),
                "meetings": len(meetings),
                "documents": len(documents),
                "engagement_score": stats.engagement_score,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return profile

    async def _resolve_contact(self, identity: str) -> Contact:
        """Find the contact by exact address, else enrich, synthesize and persist one."""
        try:
            found = await guard(
                self.contacts.search_by_identity(identity),
                self.settings.source_timeout_seconds,
                "contact search",
            )
            existing = next(
                (c for c in found if normalize_identity(c.email) == identity), None
            )
            if existing:
                logger.info(
                    "Existing contact found",
                    extra={"identity": identity, "contact_id": existing.id},
                )
                return existing

            person = await self._enrich(identity)
            created = await guard(
                self.contacts.create(self._new_contact_fields(identity, person)),
                self.settings.source_timeout_seconds,
                "contact create",
            )
            logger.info(
                "Contact created", extra={"identity": identity, "contact_id": created.id}
            )
            return created
        except Exception as exc:
            logger.warning(
                "Contact store unavailable, using fallback contact",
                extra={"identity": identity, "error": str(exc)},
            )
            return self._fallback_contact(identity)

    async def _enrich(self, identity: str) -> Optional[DirectoryPerson]:
        """Directory lookup; absence or failure just means no enrichment."""
        try:
            people = await guard(
                self.directory.search_people(identity),
                self.settings.enrichment_timeout_seconds,
                "people search",
            )
        except Exception as exc:
            logger.warning(
                "Directory lookup failed", extra={"identity": identity, "error": str(exc)}
            )
            return None

        if not people:
            return None
        exact = next(
            (
                p
                for p in people
                if any(normalize_identity(a) == identity for a in p.email_addresses)
            ),
            None,
        )
        return exact or people[0]

    def _new_contact_fields(self, identity: str, person: Optional[DirectoryPerson]) -> dict:
        person = person or DirectoryPerson()
        name = person.display_name or name_from_email(identity)
        if not name:
            raise ProfileNotFoundError(identity)
        return {
            "name": name,
            "email": identity,
            "phone": person.phone or "",
            "company": person.company_name or company_from_email(identity),
            "position": person.job_title or "",
            "location": person.office_location or "",
            "status": ContactStatus.LEAD,
            "last_contact": datetime.now(timezone.utc),
            "deal_value": 0.0,
            "tags": ["from-mailbox"],
            "source": "directory",
        }

    def _fallback_contact(self, identity: str) -> Optional[Contact]:
        """Unpersisted contact derived from the address alone."""
        name = name_from_email(identity)
        if not name:
            return None
        return Contact(
            id=f"fallback-{int(time.time() * 1000)}",
            name=name,
            email=identity,
            company=company_from_email(identity),
            status=ContactStatus.LEAD,
            last_contact=datetime.now(timezone.utc),
            tags=["from-mailbox", "fallback"],
            source="fallback",
        )

    async def _fetch_messages(self, identity: str) -> List[CustomerMessage]:
        """Merge 'sent by' and 'mentions' queries, deduplicated by message id."""
        sent, mentioned = await asyncio.gather(
            self._fetch_source(
                "sender messages", lambda: self.messages.messages_from(identity), identity
            ),
            self._fetch_source(
                "message search", lambda: self.messages.search_messages(identity), identity
            ),
        )

        merged: List[CustomerMessage] = []
        seen = set()
        for message in sent:
            if message.id and message.id not in seen:
                seen.add(message.id)
                merged.append(self._with_direction(message, Direction.INBOUND))
        for message in mentioned:
            if message.id and message.id not in seen:
                seen.add(message.id)
                direction = (
                    Direction.INBOUND
                    if normalize_identity(message.sender_email) == identity
                    else Direction.OUTBOUND
                )
                merged.append(self._with_direction(message, direction))

        return sorted(merged, key=lambda m: as_utc(m.received_at), reverse=True)

    async def _fetch_source(
        self, source: str, call: Callable[[], Awaitable[list]], identity: str
    ) -> list:
        """Guard one upstream call; any failure becomes an empty list."""
        try:
            return list(await guard(call(), self.settings.source_timeout_seconds, source))
        except UpstreamTimeoutError:
            # guard() already logged the timeout with its label.
            return []
        except Exception as exc:
            logger.warning(
                "Upstream source failed",
                extra={"identity": identity, "source": source, "error": str(exc)},
            )
            return []

    @staticmethod
    def _with_direction(message: MailMessage, direction: Direction) -> CustomerMessage:
        return CustomerMessage(**message.model_dump(), direction=direction)

    @staticmethod
    def _or_empty(result, source: str, identity: str) -> list:
        if isinstance(result, BaseException):
            logger.error(
                "Source fetch crashed",
                extra={"identity": identity, "source": source, "error": str(result)},
            )
            return []
        return result
