"""Timed discovery window.

Decides *when enough is known to stop listening* to a device advertisement
feed:

- `timeout_seconds == 0`: the first advertisement wins, immediately.
- `timeout_seconds > 0`: the first advertisement before the timer still wins
  immediately; if the timer fires first the window closes, keeping whatever
  arrives during the closing tick.
- `collect_all=True` (with a timeout): no early exit, everything seen before
  the timer is kept so the user can choose.

Timer and feed both write to one resolve-once future; the first write wins
and the other producer becomes a no-op.
"""

from __future__ import annotations

import asyncio
import logging

from core.config import AIRPLAY_SERVICE_TYPE
from core.domain.errors import DiscoveryExhausted
from core.domain.models import Candidate
from core.interfaces.discovery import DiscoveryFeed

log = logging.getLogger(__name__)


class DiscoveryWindow:
    """One discovery pass over a `DiscoveryFeed`.

    A window is single use: `timed_out` and `seen` describe the last run.
    """

    def __init__(
        self,
        feed: DiscoveryFeed,
        *,
        timeout_seconds: float = 0,
        service_type: str = AIRPLAY_SERVICE_TYPE,
        dedupe: bool = False,
        collect_all: bool = False,
    ) -> None:
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")
        self._feed = feed
        self.timeout_seconds = timeout_seconds
        self.service_type = service_type
        self.dedupe = dedupe
        self.collect_all = collect_all
        self.timed_out = False
        self.seen = 0

    @property
    def bounded(self) -> bool:
        return self.timeout_seconds > 0

    async def collect(self) -> list[Candidate]:
        """Run the window and return the candidates it settled on, in arrival order.

        Raises `DiscoveryExhausted` when a bounded window closes empty.
        """

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[list[Candidate]] = loop.create_future()
        collected: list[Candidate] = []
        keys: set[tuple[str, int]] = set()
        accumulate = self.bounded and self.collect_all
        timer: asyncio.TimerHandle | None = None

        def keep(candidate: Candidate) -> bool:
            if self.dedupe:
                if candidate.key in keys:
                    log.debug("Ignoring repeated advertisement for %s", candidate.address)
                    return False
                keys.add(candidate.key)
            collected.append(candidate)
            return True

        def on_candidate(candidate: Candidate) -> None:
            if outcome.done():
                return
            self.seen += 1
            log.debug("Advertisement: %s (%s)", candidate.name or "?", candidate.address)
            if accumulate:
                keep(candidate)
                return
            if keep(candidate):
                outcome.set_result([candidate])

        def close() -> None:
            if outcome.done():
                return
            if collected:
                outcome.set_result(list(collected))
            else:
                outcome.set_exception(DiscoveryExhausted(self.timeout_seconds))

        def on_timer() -> None:
            nonlocal accumulate
            if outcome.done():
                return
            self.timed_out = True
            accumulate = True
            # Events already queued for this tick still make it in.
            loop.call_soon(close)

        self.timed_out = False
        self.seen = 0
        log.debug(
            "Browsing %s (timeout=%ss, collect_all=%s)",
            self.service_type,
            self.timeout_seconds,
            self.collect_all,
        )
        subscription = await self._feed.subscribe(self.service_type, on_candidate)
        try:
            if self.bounded:
                timer = loop.call_later(self.timeout_seconds, on_timer)
            candidates = await outcome
        finally:
            if timer is not None:
                timer.cancel()
            if not outcome.done():
                outcome.cancel()
            await subscription.cancel()

        log.debug("Discovery settled on %d candidate(s) after %d event(s)", len(candidates), self.seen)
        return candidates
