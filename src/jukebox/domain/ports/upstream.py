"""Result wrapper for calls to upstream web services.

Hey future me - background paths (now-playing, deferred scrobble) must NEVER blow up
on a flaky Last.fm. call_upstream() is the ONE place where their network errors get
caught; callers check result.success instead of wrapping every call in try/except.
"""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

import httpx

from jukebox.domain.exceptions import DomainException

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class UpstreamResult(Generic[T]):
    """Outcome of one upstream call."""

    success: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "UpstreamResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, error: str) -> "UpstreamResult[T]":
        return cls(success=False, error=error)


async def call_upstream(operation: str, call: Awaitable[T]) -> UpstreamResult[T]:
    """Await an upstream call and fold network, API and setup failures into a result.

    Setup failures include Last.fm being unlinked while a scrobble waits.

    Args:
        operation: Name used in log messages (e.g. "lastfm.scrobble")
        call: The awaitable doing the request

    Returns:
        UpstreamResult with the value on success, the error message otherwise
    """
    try:
        return UpstreamResult.ok(await call)
    except (httpx.HTTPError, DomainException) as e:
        logger.warning("Upstream call %s failed: %s", operation, e)
        return UpstreamResult.failed(str(e))
