"""Caller-facing result wrappers."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from models.customer import CustomerProfile


class ProfileStatus(str, Enum):
    """Freshness of the profile handed back to the caller."""

    FRESH = "fresh"
    STALE = "stale"
    FAILED = "failed"


class ProfileResult(BaseModel):
    """
    Outcome of a profile request.

    ``stale`` means the data outlived its TTL and was served because the
    upstream refresh failed; UIs should flag it. ``failed`` carries no profile.
    """

    profile: Optional[CustomerProfile] = None
    from_cache: bool = False
    status: ProfileStatus = ProfileStatus.FRESH
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.profile is not None
