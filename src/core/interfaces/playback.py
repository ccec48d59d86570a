"""Playback dispatch contract (AirPlay or anything speaking "play this URL")."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PlaybackDevice(Protocol):
    """An open session with one receiver."""

    async def play(self, url: str) -> None:
        """Ask the receiver to play `url`. Raises `PlaybackError`."""

        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class PlaybackDispatcher(Protocol):
    async def connect(self, host: str, port: int) -> PlaybackDevice:
        """Open a session with the receiver at host:port. Raises `DeviceConnectionError`."""

        ...
