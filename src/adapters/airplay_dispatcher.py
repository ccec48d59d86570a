"""AirPlay dispatcher (pyatv).

Responsibility:
- Open an AirPlay session to a host:port without a prior scan (manual config).
- Ask the receiver to play a URL.
- Map pyatv/socket failures onto `DeviceConnectionError` / `PlaybackError`.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket

import pyatv
from pyatv import conf, exceptions
from pyatv.const import Protocol
from pyatv.interface import AppleTV

from core.config import AppSettings
from core.domain.errors import DeviceConnectionError, PlaybackError
from core.interfaces.playback import PlaybackDevice, PlaybackDispatcher

log = logging.getLogger(__name__)

_CONNECT_ERRORS = (
    exceptions.ConnectionFailedError,
    exceptions.AuthenticationError,
    exceptions.NoServiceError,
    exceptions.ProtocolError,
    OSError,
    asyncio.TimeoutError,
)

_PLAYBACK_ERRORS = (
    exceptions.ConnectionLostError,
    exceptions.AuthenticationError,
    exceptions.ProtocolError,
    OSError,
    asyncio.TimeoutError,
)


class AirPlaySession(PlaybackDevice):
    def __init__(self, atv: AppleTV, address: str) -> None:
        self._atv = atv
        self.address = address
        self._closed = False

    async def play(self, url: str) -> None:
        log.debug("stream.play_url(%r) on %s", url, self.address)
        try:
            await self._atv.stream.play_url(url)
        except exceptions.NotSupportedError as exc:
            raise PlaybackError(
                "This AirPlay device does not support video streaming (play_url)."
            ) from exc
        except _PLAYBACK_ERRORS as exc:
            raise PlaybackError(f"AirPlay playback error: {exc}") from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        pending = self._atv.close()
        if pending:
            await asyncio.wait(pending)
        log.debug("AirPlay session to %s closed", self.address)


class AirPlayDispatcher(PlaybackDispatcher):
    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    async def _lookup(self, host: str, port: int) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        try:
            return ipaddress.ip_address(host)
        except ValueError:
            pass

        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except OSError as exc:
            raise DeviceConnectionError(f"Cannot resolve AirPlay host {host}: {exc}") from exc
        if not infos:
            raise DeviceConnectionError(f"Cannot resolve AirPlay host {host}.")
        return ipaddress.ip_address(infos[0][4][0])

    def build_config(
        self,
        address: ipaddress.IPv4Address | ipaddress.IPv6Address,
        name: str,
        port: int,
    ) -> conf.AppleTV:
        config = conf.AppleTV(address, name)
        service = conf.ManualService(
            f"{address}:{port}",
            Protocol.AirPlay,
            port,
            {},
            credentials=self._settings.airplay_credentials,
        )
        config.add_service(service)
        return config

    async def connect(self, host: str, port: int) -> PlaybackDevice:
        address = await self._lookup(host, port)
        config = self.build_config(address, host, port)
        log.debug("pyatv.connect(%s:%s)", address, port)
        loop = asyncio.get_running_loop()
        try:
            atv = await asyncio.wait_for(
                pyatv.connect(config, loop),
                timeout=self._settings.connect_timeout_seconds,
            )
        except _CONNECT_ERRORS as exc:
            raise DeviceConnectionError(
                f"AirPlay device connection error ({host}:{port}): {exc or exc.__class__.__name__}"
            ) from exc
        return AirPlaySession(atv, f"{host}:{port}")
