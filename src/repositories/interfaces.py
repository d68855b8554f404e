"""
Boundary interfaces implemented by external collaborators.

All methods are coroutines; adapters around blocking clients push the work
onto a thread so the event loop stays free.
"""

from __future__ import annotations

from typing import List, Protocol

from models.customer import (
    Contact,
    CustomerDocument,
    CustomerMeeting,
    DirectoryPerson,
    MailMessage,
)


class ContactStore(Protocol):
    async def search_by_identity(self, identity: str) -> List[Contact]:
        ...

    async def create(self, contact: dict) -> Contact:
        ...

    async def update(self, contact_id: str, changes: dict) -> Contact:
        ...

    async def delete(self, contact_id: str) -> None:
        ...


class DirectoryLookup(Protocol):
    async def search_people(self, identity: str) -> List[DirectoryPerson]:
        ...


class MessageSource(Protocol):
    async def messages_from(self, identity: str) -> List[MailMessage]:
        ...

    async def search_messages(self, identity: str) -> List[MailMessage]:
        ...


class MeetingSource(Protocol):
    async def meetings_involving(self, identity: str) -> List[CustomerMeeting]:
        ...


class DocumentSource(Protocol):
    async def documents_shared_with(self, identity: str) -> List[CustomerDocument]:
        ...
