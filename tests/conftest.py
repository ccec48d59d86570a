"""Shared pytest fixtures and fakes for the yt-airplay test suite."""

import asyncio
import sys
from pathlib import Path

import pytest

# Ensure src/ is importable when running without an editable install.
SRC = Path(__file__).resolve().parent.parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from core.domain.errors import DeviceConnectionError, PlaybackError, ResolutionError  # noqa: E402
from core.domain.models import Candidate, MediaSource  # noqa: E402


class FakeSubscription:
    def __init__(self):
        self.cancelled = False
        self.cancel_calls = 0
        self.handles = []

    async def cancel(self):
        self.cancel_calls += 1
        self.cancelled = True
        for handle in self.handles:
            handle.cancel()


class FakeFeed:
    """Feed replaying scripted `(delay_seconds, candidate)` events after subscribe."""

    def __init__(self, events=()):
        self.events = list(events)
        self.subscriptions = []
        self.service_types = []
        self.delivered = []
        self._callbacks = []

    @property
    def subscribed(self):
        return bool(self.subscriptions)

    @property
    def last(self):
        return self.subscriptions[-1]

    async def subscribe(self, service_type, on_candidate):
        loop = asyncio.get_running_loop()
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        self.service_types.append(service_type)
        self._callbacks.append((subscription, on_candidate))
        for delay, candidate in self.events:
            subscription.handles.append(loop.call_later(delay, self._deliver, subscription, on_candidate, candidate))
        return subscription

    def _deliver(self, subscription, on_candidate, candidate):
        if subscription.cancelled:
            return
        self.delivered.append(candidate)
        on_candidate(candidate)

    def emit(self, *candidates):
        """Push candidates synchronously to every live subscriber."""

        for subscription, on_candidate in self._callbacks:
            for candidate in candidates:
                self._deliver(subscription, on_candidate, candidate)


class ScriptedLines:
    """Line source returning scripted answers, then EOF."""

    def __init__(self, lines=()):
        self.pending = list(lines)
        self.read = []
        self.entered = 0
        self.open = False

    async def __aenter__(self):
        self.entered += 1
        self.open = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.open = False

    async def readline(self):
        if not self.pending:
            return None
        line = self.pending.pop(0)
        self.read.append(line)
        return line


class FakeResolver:
    def __init__(self, media=None, error=None):
        self.media = media or MediaSource(title="T", url="u", quality_label="720p")
        self.error = error
        self.calls = []

    async def resolve(self, source_id):
        self.calls.append(source_id)
        if self.error is not None:
            raise self.error
        return self.media


class FakeSession:
    def __init__(self, error=None):
        self.error = error
        self.played = []
        self.closed = False

    async def play(self, url):
        self.played.append(url)
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


class FakeDispatcher:
    def __init__(self, connect_error=None, play_error=None):
        self.connect_error = connect_error
        self.play_error = play_error
        self.connections = []
        self.sessions = []

    async def connect(self, host, port):
        self.connections.append((host, port))
        if self.connect_error is not None:
            raise self.connect_error
        session = FakeSession(self.play_error)
        self.sessions.append(session)
        return session


@pytest.fixture
def tv():
    return Candidate(host="10.0.0.5", port=7000, name="TV")


@pytest.fixture
def bedroom():
    return Candidate(host="10.0.0.6", port=7000, name="Bedroom")


@pytest.fixture
def media():
    return MediaSource(title="T", url="u")


@pytest.fixture
def resolution_error():
    return ResolutionError("Cannot find proper source.")


@pytest.fixture
def connection_error():
    return DeviceConnectionError("AirPlay device connection error.")


@pytest.fixture
def playback_error():
    return PlaybackError("AirPlay playback error.")
