"""
DynamoDB repository for the customer interaction log.

One table, partition key ``customer_email`` (normalized), sort key
``timestamp`` (ISO-8601), and a ``kind`` attribute of message, meeting
or document. The same table backs the message, meeting and document sources.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from models.customer import CustomerDocument, CustomerMeeting, MailMessage
from utils.error_handling import SourceUnavailableError
from utils.logging_config import get_logger
from utils.validators import normalize_identity

logger = get_logger(__name__)


class DynamoDbInteractionRepository:
    """Query helpers mapping interaction items onto source records."""

    def __init__(self, table_name: str, limit: int = 50, table: Any = None):
        self.limit = limit
        self.table = table if table is not None else boto3.resource("dynamodb").Table(table_name)

    def put(self, item: Dict[str, Any]) -> None:
        """Insert an item."""
        item = dict(item)
        item["customer_email"] = normalize_identity(item["customer_email"])
        self.table.put_item(Item=item)

    async def messages_from(self, identity: str) -> List[MailMessage]:
        identity = normalize_identity(identity)
        items = await asyncio.to_thread(
            self._query, identity, Attr("kind").eq("message") & Attr("sender_email").eq(identity)
        )
        return [self._to_message(i) for i in items]

    async def search_messages(self, identity: str) -> List[MailMessage]:
        items = await asyncio.to_thread(
            self._query, normalize_identity(identity), Attr("kind").eq("message")
        )
        return [self._to_message(i) for i in items]

    async def meetings_involving(self, identity: str) -> List[CustomerMeeting]:
        items = await asyncio.to_thread(
            self._query, normalize_identity(identity), Attr("kind").eq("meeting")
        )
        return [
            CustomerMeeting(
                id=i["item_id"],
                subject=i.get("subject", ""),
                start=i["timestamp"],
                end=i.get("end", i["timestamp"]),
                attendees=list(i.get("attendees", [])),
                is_online=bool(i.get("is_online", False)),
                status=i.get("status", "confirmed"),
            )
            for i in items
        ]

    async def documents_shared_with(self, identity: str) -> List[CustomerDocument]:
        items = await asyncio.to_thread(
            self._query, normalize_identity(identity), Attr("kind").eq("document")
        )
        return [
            CustomerDocument(
                id=i["item_id"],
                name=i.get("name", ""),
                last_modified=i["timestamp"],
                shared_by=i.get("shared_by", ""),
                document_type=i.get("document_type", ""),
                size=int(i.get("size", 0)),
                is_shared=bool(i.get("is_shared", True)),
            )
            for i in items
        ]

    def _query(self, identity: str, filter_expression) -> List[Dict[str, Any]]:
        """
        Most recent matching items first, up to ``limit``.

        DynamoDB applies ``Limit`` before the filter, so a page can come back
        short or empty while older matches remain; keep following
        ``LastEvaluatedKey`` until enough items match or the partition ends.
        """
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("customer_email").eq(identity),
            "FilterExpression": filter_expression,
            "ScanIndexForward": False,
            "Limit": self.limit,
        }
        items: List[Dict[str, Any]] = []
        pages = 0
        while True:
            try:
                resp = self.table.query(**kwargs)
            except (BotoCoreError, ClientError) as exc:
                raise SourceUnavailableError("interaction log", str(exc)) from exc
            pages += 1
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if len(items) >= self.limit or not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        logger.debug(
            "Interaction query",
            extra={"identity": identity, "count": len(items), "pages": pages},
        )
        return items[: self.limit]

    @staticmethod
    def _to_message(item: Dict[str, Any]) -> MailMessage:
        return MailMessage(
            id=item.get("item_id"),
            subject=item.get("subject", ""),
            preview=item.get("preview", ""),
            sender_name=item.get("sender_name", ""),
            sender_email=item.get("sender_email", ""),
            recipients=list(item.get("recipients", [])),
            received_at=item["timestamp"],
            is_read=bool(item.get("is_read", False)),
            importance=item.get("importance", "normal"),
            has_attachments=bool(item.get("has_attachments", False)),
        )
