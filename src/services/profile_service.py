"""
Stale-while-revalidate front for customer profiles.

Serves cached profiles immediately, revalidates near-expiry entries in the
background (at most one refresh per identity at a time), and falls back to
expired data, flagged as stale, when the upstream refresh fails.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Set

from config.settings import Settings
from models.customer import ContactUpdate, CustomerProfile
from models.response import ProfileResult, ProfileStatus
from repositories.interfaces import ContactStore
from services.customer_service import ProfileAggregator
from services.prefetch_service import PrefetchScheduler
from utils.cache_service import CacheEntry, ProfileCache
from utils.error_handling import AppError, CacheMiss, ProfileNotFoundError
from utils.logging_config import get_logger
from utils.validators import validate_identity

logger = get_logger(__name__)


class ProfileService:
    """Coordinate the profile cache and the aggregator."""

    def __init__(
        self,
        cache: ProfileCache,
        aggregator: ProfileAggregator,
        contacts: ContactStore,
        settings: Optional[Settings] = None,
        prefetcher: Optional[PrefetchScheduler] = None,
    ):
        self.settings = settings or Settings()
        self.cache = cache
        self.aggregator = aggregator
        self.contacts = contacts
        self.prefetcher = prefetcher or PrefetchScheduler(cache, self.settings)
        self._refreshes: Dict[str, asyncio.Task] = {}
        # Every live refresh task, including ones detached from the registry.
        self._tasks: Set[asyncio.Task] = set()

    @property
    def refresh_after_seconds(self) -> float:
        """Entry age after which a hit triggers background revalidation."""
        return self.cache.ttl_seconds * self.settings.refresh_threshold

    @property
    def pending_refreshes(self) -> List[str]:
        """Identities with a background refresh still running."""
        return list(self._refreshes)

    async def get_profile(self, identity: str, force_refresh: bool = False) -> ProfileResult:
        """
        Return the customer's profile, from cache when possible.

        Raises InvalidIdentityError for malformed addresses; every other
        failure is reported in the result.
        """
        key = validate_identity(identity)
        # Held so an expired entry can still be served if the upstream fails.
        previous = self.cache.peek(key)

        if not force_refresh:
            entry = self.cache.get(key)
            if entry is not None:
                self._maybe_revalidate(key, entry)
                return ProfileResult(
                    profile=entry.profile, from_cache=True, status=ProfileStatus.FRESH
                )

        return await self._load(key, previous)

    async def refresh_profile(self, identity: str) -> ProfileResult:
        """Bypass the cache and re-aggregate now."""
        return await self.get_profile(identity, force_refresh=True)

    def invalidate(self, identity: str) -> bool:
        key = validate_identity(identity)
        self._detach_refresh(key)
        return self.cache.invalidate(key)

    async def update_contact(self, identity: str, update: ContactUpdate) -> ProfileResult:
        """
        Persist a contact edit and reflect it into the cached profile.

        The cache entry keeps its creation time, so the edit does not extend
        the entry's life. Aggregation runs only when no live entry exists.
        """
        key = validate_identity(identity)
        # Read without counting a hit or scheduling a refresh.
        entry = self.cache.peek(key) if self.cache.has(key) else None
        if entry is not None:
            current = ProfileResult(profile=entry.profile, from_cache=True)
        else:
            current = await self._load(key, None)
            if current.profile is None:
                return current

        contact = current.profile.contact
        changes = update.changes()
        updated = await self.contacts.update(contact.id, changes)
        self.cache.update(key, {"contact": updated})
        logger.info(
            "Contact updated",
            extra={"identity": key, "contact_id": contact.id, "fields": sorted(changes)},
        )
        try:
            profile = self.cache.require(key).profile
        except CacheMiss:
            # Evicted while the store write was in flight.
            profile = current.profile.model_copy(update={"contact": updated})
        return ProfileResult(profile=profile, from_cache=current.from_cache, status=current.status)

    async def delete_contact(self, identity: str) -> None:
        """Delete the stored contact and drop its cached profile."""
        key = validate_identity(identity)
        contacts = await self.contacts.search_by_identity(key)
        matches = [c for c in contacts if c.email.lower() == key]
        if not matches:
            raise ProfileNotFoundError(key)
        for contact in matches:
            await self.contacts.delete(contact.id)
        self._detach_refresh(key)
        self.cache.invalidate(key)
        logger.info("Contact deleted", extra={"identity": key, "count": len(matches)})

    async def prefetch(self, identities: Iterable[str]) -> Dict[str, int]:
        """Warm the cache for a batch of identities."""
        return await self.prefetcher.prefetch(identities, self._fetch_for_prefetch)

    def cache_stats(self) -> dict:
        return self.cache.stats().as_dict()

    def cached_identities(self) -> List[str]:
        return self.cache.keys()

    async def wait_for_refreshes(self) -> None:
        """Block until every in-flight background refresh has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _load(self, key: str, previous: Optional[CacheEntry]) -> ProfileResult:
        try:
            profile = await self.aggregator.aggregate(key)
        except AppError as exc:
            return self._degraded(key, previous, exc)
        except Exception as exc:
            logger.exception("Profile aggregation crashed", extra={"identity": key})
            return self._degraded(key, previous, exc)

        self.cache.set(key, profile)
        return ProfileResult(profile=profile, from_cache=False, status=ProfileStatus.FRESH)

    def _degraded(
        self, key: str, previous: Optional[CacheEntry], exc: Exception
    ) -> ProfileResult:
        if previous is not None:
            logger.warning(
                "Serving stale profile after refresh failure",
                extra={"identity": key, "error": str(exc)},
            )
            return ProfileResult(
                profile=previous.profile,
                from_cache=True,
                status=ProfileStatus.STALE,
                error=f"Using cached data ({exc})",
            )
        logger.error("Failed to load customer profile", extra={"identity": key, "error": str(exc)})
        return ProfileResult(status=ProfileStatus.FAILED, error=str(exc))

    def _maybe_revalidate(self, key: str, entry: CacheEntry) -> None:
        age = self.cache.peek_age(key)
        if age is None or age <= self.refresh_after_seconds:
            return
        if key in self._refreshes:
            logger.debug("Background refresh already running", extra={"identity": key})
            return

        logger.info(
            "Scheduling background refresh",
            extra={"identity": key, "age_seconds": round(age, 1)},
        )
        task = asyncio.create_task(self._revalidate(key, entry))
        self._refreshes[key] = task
        self._tasks.add(task)
        task.add_done_callback(lambda t, k=key: self._forget_refresh(k, t))

    def _forget_refresh(self, key: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._refreshes.get(key) is task:
            del self._refreshes[key]

    def _detach_refresh(self, key: str) -> None:
        """
        Release the registry slot of an in-flight refresh.

        The task keeps running (upstream calls are not cancellable) but its
        result is dropped by ``ProfileCache.replace``, because the entry it
        was scheduled against is gone.
        """
        if self._refreshes.pop(key, None) is not None:
            logger.info("Background refresh detached", extra={"identity": key})

    async def _revalidate(self, key: str, expected: CacheEntry) -> None:
        """Re-aggregate off to the side; replace the entry only on success."""
        try:
            profile = await self.aggregator.aggregate(key)
        except Exception as exc:
            logger.warning(
                "Background refresh failed", extra={"identity": key, "error": str(exc)}
            )
            return
        if not self.cache.replace(key, expected, profile):
            logger.info(
                "Background refresh discarded; entry changed meanwhile",
                extra={"identity": key},
            )
            return
        logger.info("Background refresh completed", extra={"identity": key})

    async def _fetch_for_prefetch(self, identity: str) -> Optional[CustomerProfile]:
        return await self.aggregator.aggregate(identity)
