"""
Debounced live hit count for the current MeSH selection.

Every change of the term selection calls schedule(). Each call bumps a
generation token and replaces the pending debounce timer; only the task that
carries the latest token may publish its count. A count request that is
already in flight when a newer change arrives is allowed to finish, but its
result is dropped.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Iterable, Optional

from evidence_miner.config import LIVE_COUNT_DEBOUNCE
from evidence_miner.models import Term

logger = logging.getLogger(__name__)


class CountState(Enum):
    IDLE = "idle"
    COUNTING = "counting"


class LiveCountController:
    """Debounced re-evaluation of the PubMed hit count.

    Args:
        gateway: anything with an async ``count(terms) -> int`` (SearchGateway)
        on_counting: called when a count request is issued
        on_idle: called when a newer selection supersedes a request in flight
        on_count: called with the published count (None = selection is empty)
        delay: debounce window in seconds
    """

    def __init__(
        self,
        gateway,
        on_count: Callable[[Optional[int]], None],
        on_counting: Optional[Callable[[], None]] = None,
        on_idle: Optional[Callable[[], None]] = None,
        delay: float = LIVE_COUNT_DEBOUNCE,
    ):
        self.gateway = gateway
        self.on_count = on_count
        self.on_counting = on_counting
        self.on_idle = on_idle
        self.delay = delay
        self.state = CountState.IDLE
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._fired = False

    @property
    def generation(self) -> int:
        return self._generation

    def schedule(self, terms: Iterable[Term]) -> None:
        """Restart the debounce window for a new term selection.

        Must be called from inside a running event loop.
        """
        self._generation += 1
        self._cancel_pending()

        selected = tuple(t for t in terms if t.selected)
        if not selected:
            self.state = CountState.IDLE
            self.on_count(None)
            return

        if self.state is CountState.COUNTING:
            # The superseded request may still be in flight but can no longer publish
            self.state = CountState.IDLE
            if self.on_idle:
                self.on_idle()

        self._fired = False
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation, selected)
        )

    def cancel(self) -> None:
        """Invalidate every scheduled or in-flight count (used on reset)."""
        self._generation += 1
        self._cancel_pending()
        self.state = CountState.IDLE

    async def drain(self) -> None:
        """Wait until the most recent count task has settled."""
        task = self._task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _cancel_pending(self) -> None:
        # Only a timer that has not fired yet is cancelled
        if self._task is not None and not self._task.done() and not self._fired:
            self._task.cancel()

    async def _run(self, generation: int, terms) -> None:
        await asyncio.sleep(self.delay)
        if generation != self._generation:
            return

        self._fired = True
        self.state = CountState.COUNTING
        if self.on_counting:
            self.on_counting()

        try:
            count = await self.gateway.count(terms)
        except Exception as e:
            logger.warning(f"Live count failed: {e}")
            count = 0

        if generation != self._generation:
            logger.debug(f"Dropping stale hit count {count} (generation {generation})")
            return
        self.state = CountState.IDLE
        self.on_count(count)
