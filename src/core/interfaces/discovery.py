"""Device advertisement feed contract.

The feed pushes candidates through a callback for as long as the
subscription is alive. Arrival order is preserved; duplicates are possible.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from core.domain.models import Candidate

CandidateCallback = Callable[[Candidate], None]


@runtime_checkable
class Subscription(Protocol):
    """Handle to a live feed subscription."""

    async def cancel(self) -> None:
        """Stop delivering events. Must be idempotent."""

        ...


@runtime_checkable
class DiscoveryFeed(Protocol):
    async def subscribe(self, service_type: str, on_candidate: CandidateCallback) -> Subscription:
        """Start browsing `service_type` and call `on_candidate` for every advertisement.

        Callbacks run on the event loop thread.
        """

        ...
