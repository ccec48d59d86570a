"""Playback pipeline orchestration.

Runs the three stages in order (resolve the source, resolve the device,
dispatch) and turns the first failure into a terminal `PipelineResult`.
Nothing is retried. Side-effects (spinners, prompts) stay in the CLI layer
through `PipelineHooks`, which keeps the flow reusable from tests or other
entry-points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from core.config import AIRPLAY_SERVICE_TYPE, DEFAULT_AIRPLAY_PORT, AppSettings
from core.domain.errors import CastError
from core.domain.models import Candidate, MediaSource, PipelineResult, PipelineStage
from core.interfaces.discovery import DiscoveryFeed
from core.interfaces.input import LineSource
from core.interfaces.playback import PlaybackDispatcher
from core.interfaces.source import SourceResolver
from core.services.device_selector import DeviceSelector, SelectionHooks
from core.services.discovery_window import DiscoveryWindow

log = logging.getLogger(__name__)


@dataclass
class PlaybackRequest:
    """Parameters that control one pipeline run."""

    source: str
    device_host: str | None = None
    device_port: int = DEFAULT_AIRPLAY_PORT
    timeout_seconds: float = 0
    service_type: str = AIRPLAY_SERVICE_TYPE
    dedupe: bool = False
    collect_all: bool = False
    max_attempts: int | None = None

    @classmethod
    def from_settings(cls, settings: AppSettings, *, source: str, **overrides: Any) -> "PlaybackRequest":
        """Build a request from settings; `None` overrides fall back to the settings value."""

        values: dict[str, Any] = {
            "device_host": settings.device_host,
            "device_port": settings.device_port,
            "timeout_seconds": settings.discovery_timeout_seconds,
            "service_type": settings.service_type,
            "dedupe": settings.dedupe_devices,
            "max_attempts": settings.selection_max_attempts,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(source=source, **values)


@dataclass(frozen=True)
class StageOutcome:
    ok: bool
    message: str


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, prompts)."""

    stage_enter: Callable[[PipelineStage], None] | None = None
    stage_result: Callable[[PipelineStage, StageOutcome], None] | None = None
    selection: SelectionHooks = field(default_factory=SelectionHooks)


def _enter(hooks: PipelineHooks, stage: PipelineStage) -> None:
    log.debug("Entering stage %s", stage.value)
    if hooks.stage_enter:
        hooks.stage_enter(stage)


def _report(hooks: PipelineHooks, stage: PipelineStage, outcome: StageOutcome) -> None:
    if hooks.stage_result:
        hooks.stage_result(stage, outcome)


def _fail(
    hooks: PipelineHooks,
    stage: PipelineStage,
    exc: CastError,
    *,
    media: MediaSource | None = None,
    device: Candidate | None = None,
) -> PipelineResult:
    result = PipelineResult.failure(stage=stage, error=exc, media=media, device=device)
    log.debug("Stage %s failed: %r", stage.value, exc)
    _report(hooks, stage, StageOutcome(ok=False, message=result.reason or ""))
    return result


async def resolve_device(
    request: PlaybackRequest,
    *,
    feed: DiscoveryFeed,
    lines: LineSource | None = None,
    selection: SelectionHooks | None = None,
) -> Candidate:
    """Pick the single playback target.

    An explicit host always wins: the feed is not even subscribed.
    """

    if request.device_host:
        log.debug("Using explicit device %s:%s", request.device_host, request.device_port)
        return Candidate(host=request.device_host, port=request.device_port, name=request.device_host)

    window = DiscoveryWindow(
        feed,
        timeout_seconds=request.timeout_seconds,
        service_type=request.service_type,
        dedupe=request.dedupe,
        collect_all=request.collect_all,
    )
    candidates = await window.collect()
    selector = DeviceSelector(lines, max_attempts=request.max_attempts, hooks=selection)
    return await selector.select(candidates)


async def dispatch(dispatcher: PlaybackDispatcher, device: Candidate, media: MediaSource) -> None:
    """Connect, play once and always release the session."""

    session = await dispatcher.connect(device.host, device.port)
    try:
        await session.play(media.url)
    finally:
        await session.close()


async def run_playback(
    *,
    request: PlaybackRequest,
    resolver: SourceResolver,
    feed: DiscoveryFeed,
    dispatcher: PlaybackDispatcher,
    lines: LineSource | None = None,
    hooks: PipelineHooks | None = None,
) -> PipelineResult:
    hooks = hooks or PipelineHooks()

    _enter(hooks, PipelineStage.SOURCE)
    try:
        media = await resolver.resolve(request.source)
    except CastError as exc:
        return _fail(hooks, PipelineStage.SOURCE, exc)
    loaded = "Video info loaded."
    if media.quality_label:
        loaded += f" Using {media.quality_label}."
    _report(hooks, PipelineStage.SOURCE, StageOutcome(ok=True, message=loaded))

    _enter(hooks, PipelineStage.DEVICE)
    try:
        device = await resolve_device(request, feed=feed, lines=lines, selection=hooks.selection)
    except CastError as exc:
        return _fail(hooks, PipelineStage.DEVICE, exc, media=media)
    found = f"Using {device.address}"
    if device.name and device.name != device.host:
        found += f" ({device.name})"
    _report(hooks, PipelineStage.DEVICE, StageOutcome(ok=True, message=found))

    _enter(hooks, PipelineStage.DISPATCH)
    try:
        await dispatch(dispatcher, device, media)
    except CastError as exc:
        return _fail(hooks, PipelineStage.DISPATCH, exc, media=media, device=device)
    played = f"Connected to {device.address}"
    if media.title:
        played += f', played "{media.title}"'
    _report(hooks, PipelineStage.DISPATCH, StageOutcome(ok=True, message=played))

    return PipelineResult.success(media=media, device=device)
