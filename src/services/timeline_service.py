"""
Interaction timeline builder.

Normalizes messages, meetings and documents into one newest-first timeline
and derives the engagement summary shown on dashboards.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Sequence, Tuple

from models.customer import (
    CustomerDocument,
    CustomerMeeting,
    CustomerMessage,
    CustomerStats,
    DocumentInteraction,
    Interaction,
    MeetingInteraction,
    MessageInteraction,
)

RECENT_WINDOW = timedelta(days=30)
# Placeholder until replies are correlated by thread.
PLACEHOLDER_RESPONSE_TIME = "2h 30m"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so mixed sources sort together."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TimelineBuilder:
    """Build (interactions, stats) from per-source records."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock

    def build(
        self,
        messages: Sequence[CustomerMessage],
        meetings: Sequence[CustomerMeeting],
        documents: Sequence[CustomerDocument],
    ) -> Tuple[List[Interaction], CustomerStats]:
        interactions: List[Interaction] = []
        interactions.extend(self._from_message(m) for m in messages)
        interactions.extend(self._from_meeting(m) for m in meetings)
        interactions.extend(self._from_document(d) for d in documents)

        # sorted() is stable with reverse=True: equal timestamps keep source order.
        interactions = sorted(interactions, key=lambda i: as_utc(i.timestamp), reverse=True)

        stats = CustomerStats(
            total_messages=len(messages),
            total_meetings=len(meetings),
            total_documents=len(documents),
            last_interaction=interactions[0].timestamp if interactions else None,
            response_time=self.response_time(messages),
            engagement_score=self.engagement_score(interactions),
        )
        return interactions, stats

    def engagement_score(self, interactions: Sequence[Interaction]) -> int:
        """
        Frequency plus recency heuristic, bounded to 0-100.

        10 points per interaction in the last 30 days (max 70), plus 30 if
        there is any interaction at all.
        """
        if not interactions:
            return 0
        cutoff = as_utc(self._clock()) - RECENT_WINDOW
        recent = sum(1 for i in interactions if as_utc(i.timestamp) > cutoff)
        frequency_score = min(recent * 10, 70)
        recency_score = 30
        return min(frequency_score + recency_score, 100)

    @staticmethod
    def response_time(messages: Sequence[CustomerMessage]) -> str:
        if not messages:
            return "N/A"
        return PLACEHOLDER_RESPONSE_TIME

    @staticmethod
    def _from_message(message: CustomerMessage) -> MessageInteraction:
        return MessageInteraction(
            id=f"message-{message.id}",
            title=message.subject,
            description=message.preview,
            timestamp=message.received_at,
            importance=message.importance,
            direction=message.direction,
            has_attachments=message.has_attachments,
            is_read=message.is_read,
        )

    @staticmethod
    def _from_meeting(meeting: CustomerMeeting) -> MeetingInteraction:
        duration = round((as_utc(meeting.end) - as_utc(meeting.start)).total_seconds() / 60)
        return MeetingInteraction(
            id=f"meeting-{meeting.id}",
            title=meeting.subject,
            description=f"Meeting with {len(meeting.attendees)} attendees",
            timestamp=meeting.start,
            attendee_count=len(meeting.attendees),
            duration_minutes=duration,
            is_online=meeting.is_online,
            status=meeting.status,
        )

    @staticmethod
    def _from_document(document: CustomerDocument) -> DocumentInteraction:
        return DocumentInteraction(
            id=f"document-{document.id}",
            title=document.name,
            description=f"Document shared by {document.shared_by}",
            timestamp=document.last_modified,
            document_type=document.document_type,
            size=document.size,
            is_shared=document.is_shared,
        )
