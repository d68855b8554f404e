"""
Runtime configuration for the profile aggregation and cache layer.

Defaults match a single warm Lambda container serving one mailbox.
"""

from dataclasses import dataclass
import os
from typing import Optional


@dataclass
class Settings:
    """Application settings with conservative defaults."""

    # Environment
    environment: str = "dev"

    # Profile cache
    cache_ttl_seconds: float = 300.0  # 5 minutes
    cache_max_size: int = 50
    # Revalidate in the background after ~2 minutes of a 5 minute TTL.
    refresh_threshold: float = 0.4

    # Upstream budgets
    source_timeout_seconds: float = 3.0
    enrichment_timeout_seconds: float = 2.0

    # Prefetch
    prefetch_batch_size: int = 3
    prefetch_delay_seconds: float = 0.2

    # Collaborators (unset means in-memory / empty sources)
    database_url: Optional[str] = None
    interactions_table: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0 < self.refresh_threshold < 1:
            raise ValueError("refresh_threshold must be between 0 and 1")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.cache_max_size < 1:
            raise ValueError("cache_max_size must be at least 1")
        if self.prefetch_batch_size < 1:
            raise ValueError("prefetch_batch_size must be at least 1")
        if self.source_timeout_seconds <= 0 or self.enrichment_timeout_seconds <= 0:
            raise ValueError("timeouts must be positive")
        if self.prefetch_delay_seconds < 0:
            raise ValueError("prefetch_delay_seconds must not be negative")

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        return cls(
            environment=env,
            cache_ttl_seconds=float(os.environ.get("PROFILE_CACHE_TTL_SECONDS", 300)),
            cache_max_size=int(os.environ.get("PROFILE_CACHE_MAX_SIZE", 50)),
            refresh_threshold=float(os.environ.get("PROFILE_REFRESH_THRESHOLD", 0.4)),
            source_timeout_seconds=float(os.environ.get("SOURCE_TIMEOUT_SECONDS", 3.0)),
            enrichment_timeout_seconds=float(
                os.environ.get("ENRICHMENT_TIMEOUT_SECONDS", 2.0)
            ),
            prefetch_batch_size=int(os.environ.get("PREFETCH_BATCH_SIZE", 3)),
            prefetch_delay_seconds=float(os.environ.get("PREFETCH_DELAY_SECONDS", 0.2)),
            database_url=os.environ.get("DATABASE_URL") or None,
            interactions_table=os.environ.get("INTERACTIONS_TABLE") or None,
        )
