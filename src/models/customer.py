"""Customer profile models: contacts, per-source records, timeline and stats."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContactStatus(str, Enum):
    """Lifecycle stage of a contact."""

    LEAD = "lead"
    PROSPECT = "prospect"
    CUSTOMER = "customer"
    INACTIVE = "inactive"


class Importance(str, Enum):
    """Importance levels reported by the mail provider."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Direction(str, Enum):
    """Whether the customer sent (inbound) or received (outbound) the item."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contact(BaseModel):
    """A CRM contact keyed by email address."""

    id: str
    name: str
    email: str
    phone: str = ""
    company: str = ""
    position: str = ""
    location: str = ""
    status: ContactStatus = ContactStatus.LEAD
    last_contact: Optional[datetime] = None
    deal_value: float = 0.0
    tags: List[str] = Field(default_factory=list)
    source: str = "directory"

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: List[str]) -> List[str]:
        """Tags are a set; keep the first occurrence of each."""
        seen = set()
        unique = []
        for tag in value:
            cleaned = tag.strip()
            if cleaned and cleaned not in seen:
                seen.add(cleaned)
                unique.append(cleaned)
        return unique


class ContactUpdate(BaseModel):
    """Partial contact used by explicit edit operations."""

    name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    location: Optional[str] = None
    status: Optional[ContactStatus] = None
    deal_value: Optional[float] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None

    def changes(self) -> dict:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


class DirectoryPerson(BaseModel):
    """Enrichment data returned by a people/directory lookup."""

    display_name: Optional[str] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    office_location: Optional[str] = None
    email_addresses: List[str] = Field(default_factory=list)


class MailMessage(BaseModel):
    """A message as returned by the message source."""

    id: Optional[str] = None
    subject: str = ""
    preview: str = ""
    sender_name: str = ""
    sender_email: str = ""
    recipients: List[str] = Field(default_factory=list)
    received_at: datetime
    is_read: bool = False
    importance: Importance = Importance.NORMAL
    has_attachments: bool = False


class CustomerMessage(BaseModel):
    """A deduplicated message with its direction relative to the customer."""

    id: str
    subject: str
    preview: str
    sender_name: str
    sender_email: str
    recipients: List[str] = Field(default_factory=list)
    received_at: datetime
    is_read: bool = False
    importance: Importance = Importance.NORMAL
    has_attachments: bool = False
    direction: Direction


class CustomerMeeting(BaseModel):
    """A calendar event involving the customer."""

    id: str
    subject: str
    start: datetime
    end: datetime
    attendees: List[str] = Field(default_factory=list)
    is_online: bool = False
    status: str = "confirmed"


class CustomerDocument(BaseModel):
    """A document shared with the customer."""

    id: str
    name: str
    last_modified: datetime
    shared_by: str = ""
    document_type: str = ""
    size: int = 0
    is_shared: bool = True


class _InteractionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    timestamp: datetime
    importance: Importance = Importance.NORMAL


class MessageInteraction(_InteractionBase):
    kind: Literal["message"] = "message"
    direction: Direction
    has_attachments: bool = False
    is_read: bool = False


class MeetingInteraction(_InteractionBase):
    kind: Literal["meeting"] = "meeting"
    attendee_count: int = 0
    duration_minutes: int = 0
    is_online: bool = False
    status: str = "confirmed"


class DocumentInteraction(_InteractionBase):
    kind: Literal["document"] = "document"
    document_type: str = ""
    size: int = 0
    is_shared: bool = True


class CallInteraction(_InteractionBase):
    kind: Literal["call"] = "call"
    direction: Direction = Direction.OUTBOUND
    duration_minutes: int = 0


Interaction = Annotated[
    Union[MessageInteraction, MeetingInteraction, DocumentInteraction, CallInteraction],
    Field(discriminator="kind"),
]


class CustomerStats(BaseModel):
    """Derived engagement summary."""

    total_messages: int = 0
    total_meetings: int = 0
    total_documents: int = 0
    last_interaction: Optional[datetime] = None
    response_time: str = "N/A"
    engagement_score: int = Field(default=0, ge=0, le=100)


class CustomerProfile(BaseModel):
    """360-degree customer view, rebuilt whole on every aggregation."""

    contact: Contact
    messages: List[CustomerMessage] = Field(default_factory=list)
    meetings: List[CustomerMeeting] = Field(default_factory=list)
    documents: List[CustomerDocument] = Field(default_factory=list)
    interactions: List[Interaction] = Field(default_factory=list)
    stats: CustomerStats = Field(default_factory=CustomerStats)
    generated_at: datetime = Field(default_factory=_utcnow)
