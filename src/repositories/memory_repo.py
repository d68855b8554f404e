"""In-process collaborators used when no database or table is configured."""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, Optional

from models.customer import (
    Contact,
    CustomerDocument,
    CustomerMeeting,
    DirectoryPerson,
    MailMessage,
)
from utils.error_handling import NotFoundError
from utils.validators import normalize_identity


class InMemoryContactStore:
    """Dict-backed contact store."""

    def __init__(self, contacts: Optional[Iterable[Contact]] = None):
        self._contacts: Dict[str, Contact] = {c.id: c for c in contacts or []}

    async def search_by_identity(self, identity: str) -> List[Contact]:
        needle = normalize_identity(identity)
        return [c for c in self._contacts.values() if needle in c.email.lower()]

    async def create(self, contact: dict) -> Contact:
        created = Contact(**{"id": str(uuid.uuid4()), **contact})
        self._contacts[created.id] = created
        return created

    async def update(self, contact_id: str, changes: dict) -> Contact:
        if contact_id not in self._contacts:
            raise NotFoundError(f"Contact not found: {contact_id}")
        updated = Contact.model_validate(
            {**self._contacts[contact_id].model_dump(), **changes}
        )
        self._contacts[contact_id] = updated
        return updated

    async def delete(self, contact_id: str) -> None:
        if self._contacts.pop(contact_id, None) is None:
            raise NotFoundError(f"Contact not found: {contact_id}")


class NullDirectory:
    """Directory lookup for deployments without a people API."""

    async def search_people(self, identity: str) -> List[DirectoryPerson]:
        return []


class NullInteractionSource:
    """Message, meeting and document source with no integration behind it."""

    async def messages_from(self, identity: str) -> List[MailMessage]:
        return []

    async def search_messages(self, identity: str) -> List[MailMessage]:
        return []

    async def meetings_involving(self, identity: str) -> List[CustomerMeeting]:
        return []

    async def documents_shared_with(self, identity: str) -> List[CustomerDocument]:
        return []
