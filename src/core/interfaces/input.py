"""Line-oriented input used by the interactive device prompt."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LineSource(Protocol):
    """Readable source of text lines.

    Used as an async context manager so the underlying stream is only held
    while a selection is pending.
    """

    async def __aenter__(self) -> "LineSource":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...

    async def readline(self) -> str | None:
        """Next line without its terminator, or ``None`` once the stream is closed."""

        ...
