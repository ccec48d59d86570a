"""Media source resolution contract.

Why Protocol:
- Structural contract (duck typing) without rigid inheritance.
- The yt-dlp adapter and test fakes are interchangeable.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import MediaSource


@runtime_checkable
class SourceResolver(Protocol):
    """Turns a user supplied identifier (page URL, video id) into a playable stream.

    Design rules:
    - `resolve` is asynchronous because it typically does network I/O.
    - One shot: raises `ResolutionError` instead of retrying.
    """

    async def resolve(self, source_id: str) -> MediaSource:
        ...
