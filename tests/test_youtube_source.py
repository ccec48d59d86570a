"""Tests for the yt-dlp source resolver (no network)."""

import pytest
from yt_dlp.utils import DownloadError

from adapters.youtube_source import YouTubeResolver, choose_format, quality_label
from core.config import AppSettings
from core.domain.errors import ResolutionError

FORMATS = [
    {"format_id": "140", "url": "https://a/140", "protocol": "https", "vcodec": "none", "acodec": "mp4a"},
    {"format_id": "137", "url": "https://a/137", "protocol": "https", "vcodec": "avc1", "acodec": "none", "height": 1080},
    {"format_id": "18", "url": "https://a/18", "protocol": "https", "vcodec": "avc1", "acodec": "mp4a", "height": 360, "format_note": "360p"},
    {"format_id": "22", "url": "https://a/22", "protocol": "https", "vcodec": "avc1", "acodec": "mp4a", "height": 720, "format_note": "720p"},
    {"format_id": "sb0", "url": "https://a/sb0", "protocol": "mhtml", "vcodec": "none", "acodec": "none"},
]


class TestChooseFormat:
    def test_prefers_highest_progressive_format(self):
        assert choose_format(FORMATS)["format_id"] == "22"

    def test_video_only_formats_allowed_when_not_progressive_only(self):
        assert choose_format(FORMATS, progressive_only=False)["format_id"] == "137"

    def test_direct_http_beats_hls_at_same_height(self):
        formats = [
            {"format_id": "hls-720", "url": "https://a/hls", "protocol": "m3u8_native", "vcodec": "avc1", "acodec": "mp4a", "height": 720},
            {"format_id": "22", "url": "https://a/22", "protocol": "https", "vcodec": "avc1", "acodec": "mp4a", "height": 720},
        ]

        assert choose_format(formats)["format_id"] == "22"

    def test_formats_without_url_or_video_are_ignored(self):
        formats = [
            {"format_id": "18", "protocol": "https", "vcodec": "avc1", "acodec": "mp4a", "height": 360},
            {"format_id": "140", "url": "https://a/140", "protocol": "https", "vcodec": "none", "acodec": "mp4a"},
        ]

        assert choose_format(formats) is None

    def test_quality_label_falls_back_to_height(self):
        assert quality_label({"format_note": "720p60"}) == "720p60"
        assert quality_label({"height": 480}) == "480p"
        assert quality_label({}) is None


def _resolver(monkeypatch, *, info=None, error=None):
    resolver = YouTubeResolver(AppSettings(_env_file=None))

    def extract(source_id):
        if error is not None:
            raise error
        return info

    monkeypatch.setattr(resolver, "_extract", extract)
    return resolver


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolves_title_and_best_url(self, monkeypatch):
        resolver = _resolver(monkeypatch, info={"title": "Never Gonna", "formats": FORMATS})

        media = await resolver.resolve("https://youtu.be/dQw4w9WgXcQ")

        assert media.title == "Never Gonna"
        assert media.url == "https://a/22"
        assert media.quality_label == "720p"
        assert media.format_id == "22"
        assert media.source_id == "https://youtu.be/dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_missing_info_is_a_resolution_error(self, monkeypatch):
        resolver = _resolver(monkeypatch, info={"title": "x", "formats": []})

        with pytest.raises(ResolutionError, match="Cannot get video info"):
            await resolver.resolve("id")

    @pytest.mark.asyncio
    async def test_no_playable_format_is_a_resolution_error(self, monkeypatch):
        only_audio = [FORMATS[0]]
        resolver = _resolver(monkeypatch, info={"title": "x", "formats": only_audio})

        with pytest.raises(ResolutionError, match="Cannot find proper source"):
            await resolver.resolve("id")

    @pytest.mark.asyncio
    async def test_download_error_is_wrapped(self, monkeypatch):
        resolver = _resolver(monkeypatch, error=DownloadError("Video unavailable"))

        with pytest.raises(ResolutionError) as excinfo:
            await resolver.resolve("id")

        assert isinstance(excinfo.value.__cause__, DownloadError)
