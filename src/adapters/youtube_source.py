"""YouTube source resolver (yt-dlp).

Responsibility:
- Fetch the video metadata without downloading anything.
- Choose one directly playable format (progressive audio+video by default).
- Normalize the result as a `MediaSource`.

yt-dlp is synchronous, so extraction runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from core.config import AppSettings
from core.domain.errors import ResolutionError
from core.domain.models import MediaSource
from core.interfaces.source import SourceResolver

log = logging.getLogger(__name__)

# Protocols the receiver can fetch on its own.
_PLAYABLE_PROTOCOLS = ("https", "http", "m3u8", "m3u8_native")


def _has_video(fmt: dict[str, Any]) -> bool:
    vcodec = fmt.get("vcodec")
    if vcodec:
        return vcodec != "none"
    return bool(fmt.get("height") or fmt.get("width"))


def _has_audio(fmt: dict[str, Any]) -> bool:
    acodec = fmt.get("acodec")
    return bool(acodec) and acodec != "none"


def _rank(fmt: dict[str, Any]) -> tuple[int, int, float]:
    direct = 1 if fmt.get("protocol") in ("https", "http") else 0
    return (int(fmt.get("height") or 0), direct, float(fmt.get("tbr") or 0.0))


def choose_format(formats: Iterable[dict[str, Any]], *, progressive_only: bool = True) -> dict[str, Any] | None:
    """Pick the best playable format.

    Rules:
    - Must carry video and a URL, over a protocol the receiver can fetch.
    - With `progressive_only`, audio must be muxed in too.
    - Highest resolution first, plain HTTP over HLS at equal height, then bitrate.
    """

    playable = [
        fmt
        for fmt in formats
        if isinstance(fmt, dict)
        and fmt.get("url")
        and fmt.get("protocol", "https") in _PLAYABLE_PROTOCOLS
        and _has_video(fmt)
        and (_has_audio(fmt) or not progressive_only)
    ]
    if not playable:
        return None
    return max(playable, key=_rank)


def quality_label(fmt: dict[str, Any]) -> str | None:
    note = fmt.get("format_note")
    if isinstance(note, str) and note:
        return note
    if fmt.get("height"):
        return f"{fmt['height']}p"
    return None


class YouTubeResolver(SourceResolver):
    """Resolves a YouTube URL (or anything yt-dlp understands) into a stream URL."""

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    def _options(self) -> dict[str, Any]:
        return {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "skip_download": True,
            "socket_timeout": self._settings.resolve_timeout_seconds,
            "logger": log,
        }

    def _extract(self, source_id: str) -> dict[str, Any] | None:
        with YoutubeDL(self._options()) as ydl:
            return ydl.extract_info(source_id, download=False)

    async def resolve(self, source_id: str) -> MediaSource:
        log.debug('extract_info("%s")', source_id)
        try:
            info = await asyncio.to_thread(self._extract, source_id)
        except DownloadError as exc:
            raise ResolutionError(f"Cannot get video info: {exc}") from exc

        if not info or not info.get("formats"):
            raise ResolutionError("Cannot get video info.")

        fmt = choose_format(info["formats"], progressive_only=self._settings.progressive_only)
        if not fmt or not fmt.get("url"):
            raise ResolutionError("Cannot find proper source.")

        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                "choose_format(progressive_only=%s)\n%s",
                self._settings.progressive_only,
                json.dumps(fmt, indent=4, default=str),
            )

        return MediaSource(
            title=str(info.get("title") or ""),
            url=fmt["url"],
            quality_label=quality_label(fmt),
            format_id=fmt.get("format_id"),
            source_id=source_id,
        )
