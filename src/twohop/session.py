"""Active-document tracking with stale-result suppression.

A discovery call can take a while on a large vault. When the active
document changes before it finishes, its result must not be applied. The
session numbers every refresh: starting one cancels the call in flight, and
a refresh that is no longer the newest returns None instead of a result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .models import TwoHopLinks

log = logging.getLogger(__name__)

DiscoverFn = Callable[[str | None], Awaitable[TwoHopLinks]]


class DiscoverySession:
    """Holds the active document selection and the latest applied result."""

    def __init__(self, discover: DiscoverFn) -> None:
        self._discover = discover
        self._generation = 0
        self._task: asyncio.Task | None = None
        self.active_path: str | None = None
        self.latest: TwoHopLinks | None = None

    @property
    def generation(self) -> int:
        return self._generation

    async def refresh(self, active_path: str | None) -> TwoHopLinks | None:
        """Discover links for a new active document.

        Any in-flight refresh is cancelled first.

        Returns:
            The result, or None when a newer refresh superseded this one.
        """
        self._generation += 1
        generation = self._generation
        self.active_path = active_path

        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.ensure_future(self._discover(active_path))
        self._task = task

        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                log.debug("Discovery for %s superseded", active_path)
                return None
            raise

        if generation != self._generation:
            log.debug("Dropping stale discovery result for %s", active_path)
            return None

        self.latest = result
        return result
