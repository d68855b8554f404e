"""Batch cache warming for lists of customers (e.g. an inbox page)."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from config.settings import Settings
from models.customer import CustomerProfile
from utils.cache_service import ProfileCache
from utils.logging_config import get_logger
from utils.validators import normalize_identity

logger = get_logger(__name__)

FetchFn = Callable[[str], Awaitable[Optional[CustomerProfile]]]


class PrefetchScheduler:
    """Warm the profile cache with bounded concurrency."""

    def __init__(self, cache: ProfileCache, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.cache = cache
        self.batch_size = settings.prefetch_batch_size
        self.delay_seconds = settings.prefetch_delay_seconds

    async def prefetch(self, identities: Iterable[str], fetch_fn: FetchFn) -> Dict[str, int]:
        """
        Fetch and cache every identity not already resident.

        Batches run concurrently up to ``batch_size`` with a short pause
        between them. One failing identity never stops the rest.
        """
        identities = list(identities)
        rejected = [i for i in identities if not isinstance(i, str)]
        if rejected:
            logger.warning("Prefetch skipped non-string identities", extra={"count": len(rejected)})
        requested: List[str] = list(
            dict.fromkeys(normalize_identity(i) for i in identities if isinstance(i, str) and i)
        )
        pending = [i for i in requested if not self.cache.has(i)]
        summary = {
            "requested": len(requested) + len(rejected),
            "skipped": len(requested) - len(pending),
            "fetched": 0,
            "failed": len(rejected),
        }
        if not pending:
            logger.info("All profiles already cached", extra=summary)
            return summary

        logger.info("Prefetching profiles", extra={"count": len(pending)})
        for offset in range(0, len(pending), self.batch_size):
            batch = pending[offset : offset + self.batch_size]
            results = await asyncio.gather(
                *(self._fetch_one(identity, fetch_fn) for identity in batch),
                return_exceptions=True,
            )
            for ok in results:
                if ok is True:
                    summary["fetched"] += 1
                else:
                    summary["failed"] += 1

            if offset + self.batch_size < len(pending):
                await asyncio.sleep(self.delay_seconds)

        logger.info("Prefetch completed", extra=summary)
        return summary

    async def _fetch_one(self, identity: str, fetch_fn: FetchFn) -> bool:
        try:
            profile = await fetch_fn(identity)
        except Exception as exc:
            logger.warning(
                "Prefetch failed", extra={"identity": identity, "error": str(exc)}
            )
            return False
        if profile is None:
            return False
        self.cache.set(identity, profile)
        return True
