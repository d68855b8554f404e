"""
Composition root.

Builds the one ProfileCache per process and hands it, by reference, to the
controller and the prefetcher. Collaborators fall back to in-memory or empty
implementations when their backing store is not configured.
"""

from __future__ import annotations

import os
from typing import Optional

from config.settings import Settings
from repositories.interfaces import (
    ContactStore,
    DirectoryLookup,
    DocumentSource,
    MeetingSource,
    MessageSource,
)
from repositories.memory_repo import InMemoryContactStore, NullDirectory, NullInteractionSource
from services.customer_service import ProfileAggregator
from services.prefetch_service import PrefetchScheduler
from services.profile_service import ProfileService
from services.timeline_service import TimelineBuilder
from utils.cache_service import ProfileCache
from utils.logging_config import get_logger

logger = get_logger(__name__)


def build_contact_store(settings: Settings) -> ContactStore:
    """SQL-backed store when a database is configured, otherwise in-memory."""
    from repositories.postgres_repo import (
        PostgresContactStore,
        create_contact_engine,
        database_url_from_secret,
    )

    db_url = settings.database_url
    if not db_url:
        secret_arn = os.environ.get("DB_SECRET_ARN")
        if secret_arn:
            db_url = database_url_from_secret(secret_arn)
    if not db_url:
        logger.warning("DATABASE_URL not set; contacts are kept in memory")
        return InMemoryContactStore()
    return PostgresContactStore(create_contact_engine(db_url))


def build_interaction_source(settings: Settings):
    """DynamoDB interaction log when a table is configured, otherwise empty sources."""
    if not settings.interactions_table:
        logger.warning("INTERACTIONS_TABLE not set; interaction history is empty")
        return NullInteractionSource()
    from repositories.dynamodb_repo import DynamoDbInteractionRepository

    return DynamoDbInteractionRepository(settings.interactions_table)


def build_profile_service(
    settings: Optional[Settings] = None,
    cache: Optional[ProfileCache] = None,
    contacts: Optional[ContactStore] = None,
    directory: Optional[DirectoryLookup] = None,
    messages: Optional[MessageSource] = None,
    meetings: Optional[MeetingSource] = None,
    documents: Optional[DocumentSource] = None,
) -> ProfileService:
    """Wire the cache, aggregator, prefetcher and controller together."""
    settings = settings or Settings.from_environment()
    if cache is None:
        cache = ProfileCache(
            max_size=settings.cache_max_size, ttl_seconds=settings.cache_ttl_seconds
        )
    if contacts is None:
        contacts = build_contact_store(settings)
    if messages is None or meetings is None or documents is None:
        interactions = build_interaction_source(settings)
        messages = interactions if messages is None else messages
        meetings = interactions if meetings is None else meetings
        documents = interactions if documents is None else documents

    aggregator = ProfileAggregator(
        contacts=contacts,
        directory=directory or NullDirectory(),
        messages=messages,
        meetings=meetings,
        documents=documents,
        settings=settings,
        timeline=TimelineBuilder(),
    )
    return ProfileService(
        cache=cache,
        aggregator=aggregator,
        contacts=contacts,
        settings=settings,
        prefetcher=PrefetchScheduler(cache, settings),
    )
