"""Pydantic models for the customer profile layer."""

from models.customer import (  # noqa: F401
    CallInteraction,
    Contact,
    ContactStatus,
    ContactUpdate,
    CustomerDocument,
    CustomerMeeting,
    CustomerMessage,
    CustomerProfile,
    CustomerStats,
    Direction,
    DirectoryPerson,
    DocumentInteraction,
    Importance,
    Interaction,
    MailMessage,
    MeetingInteraction,
    MessageInteraction,
)
from models.response import ProfileResult, ProfileStatus  # noqa: F401
