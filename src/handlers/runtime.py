"""
Per-container state shared by the handlers.

The ProfileService (and with it the profile cache) is built lazily on first
use and reused across warm invocations. Coroutines run on one long-lived
event loop so background refreshes scheduled by one invocation keep
progressing during the next ones instead of being torn down with the loop.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

T = TypeVar("T")

# Lazy-loaded to avoid import-time DB connections
_profile_service: Optional["ProfileService"] = None
_loop: Optional[asyncio.AbstractEventLoop] = None


def get_profile_service():
    """Lazy-load the process-wide ProfileService."""
    global _profile_service
    if _profile_service is None:
        from services.container import build_profile_service

        _profile_service = build_profile_service()
    return _profile_service


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on the container's persistent event loop."""
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


def reset() -> None:
    """Drop cached state (tests and cold-start simulation)."""
    global _profile_service, _loop
    _profile_service = None
    if _loop is not None and not _loop.is_closed():
        _loop.close()
    _loop = None
