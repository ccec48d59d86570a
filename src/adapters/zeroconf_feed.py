"""mDNS/DNS-SD advertisement feed (python-zeroconf).

Why a feed instead of a blocking scan:
- The discovery window decides when to stop; the adapter only reports what
  it sees, as it sees it.
- Every `subscribe` owns its own `AsyncZeroconf`, so cancelling the
  subscription releases the multicast sockets too.
"""

from __future__ import annotations

import asyncio
import logging

import zeroconf
from zeroconf import IPVersion, ServiceStateChange, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from core.domain.errors import DeviceResolutionError
from core.domain.models import Candidate
from core.interfaces.discovery import CandidateCallback, DiscoveryFeed, Subscription

log = logging.getLogger(__name__)


def instance_name(name: str, service_type: str) -> str:
    """`Living Room._airplay._tcp.local.` -> `Living Room`."""

    suffix = "." + service_type
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return name


class ZeroconfSubscription(Subscription):
    def __init__(self, aiozc: AsyncZeroconf) -> None:
        self._aiozc = aiozc
        self._browser: AsyncServiceBrowser | None = None
        self._pending: set[asyncio.Task] = set()
        self.cancelled = False

    @property
    def zeroconf(self) -> Zeroconf:
        return self._aiozc.zeroconf

    def attach(self, browser: AsyncServiceBrowser) -> None:
        self._browser = browser

    def track(self, task: asyncio.Task) -> None:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        for task in list(self._pending):
            task.cancel()
        if self._browser is not None:
            await self._browser.async_cancel()
        await self._aiozc.async_close()
        log.debug("mDNS browser closed")


class ZeroconfFeed(DiscoveryFeed):
    """Reports every resolved advertisement of a service type as a `Candidate`."""

    def __init__(
        self,
        *,
        resolve_timeout_ms: int = 3000,
        ip_version: IPVersion = IPVersion.V4Only,
    ) -> None:
        self._resolve_timeout_ms = resolve_timeout_ms
        self._ip_version = ip_version

    async def _resolve(
        self,
        subscription: ZeroconfSubscription,
        service_type: str,
        name: str,
        on_candidate: CandidateCallback,
    ) -> None:
        info = AsyncServiceInfo(service_type, name)
        try:
            found = await info.async_request(subscription.zeroconf, self._resolve_timeout_ms)
        except (OSError, zeroconf.Error) as exc:
            log.debug("Could not resolve %s: %s", name, exc)
            return
        if not found or not info.port:
            log.debug("Advertisement %s has no usable address", name)
            return

        addresses = info.parsed_addresses(self._ip_version)
        host = addresses[0] if addresses else (info.server or "").rstrip(".")
        if not host:
            return
        if subscription.cancelled:
            return
        on_candidate(Candidate(host=host, port=info.port, name=instance_name(name, service_type)))

    async def subscribe(self, service_type: str, on_candidate: CandidateCallback) -> Subscription:
        try:
            aiozc = AsyncZeroconf(ip_version=self._ip_version)
        except OSError as exc:
            raise DeviceResolutionError(f"Cannot start mDNS discovery: {exc}") from exc

        subscription = ZeroconfSubscription(aiozc)

        def on_service_state_change(
            zeroconf: Zeroconf,
            service_type: str,
            name: str,
            state_change: ServiceStateChange,
        ) -> None:
            if state_change is not ServiceStateChange.Added or subscription.cancelled:
                return
            log.debug("mDNS %s: %s", state_change.name, name)
            subscription.track(
                asyncio.ensure_future(self._resolve(subscription, service_type, name, on_candidate))
            )

        try:
            browser = AsyncServiceBrowser(aiozc.zeroconf, [service_type], handlers=[on_service_state_change])
        except BaseException as exc:
            await aiozc.async_close()
            if isinstance(exc, (OSError, zeroconf.Error)):
                raise DeviceResolutionError(f"Cannot browse {service_type}: {exc}") from exc
            raise
        subscription.attach(browser)
        return subscription
