"""CLI tests: adapters are replaced with fakes, exit codes follow the pipeline result."""

import pytest
from typer.testing import CliRunner

from cli import main as cli_main
from conftest import FakeDispatcher, FakeFeed, FakeResolver, ScriptedLines
from core import config
from core.domain.errors import ResolutionError
from core.domain.models import Candidate, MediaSource

runner = CliRunner()


@pytest.fixture
def wiring(monkeypatch, tmp_path):
    """Replace real adapters in the CLI with fakes and isolate configuration."""

    monkeypatch.chdir(tmp_path)
    for name in ("DEVICE_HOST", "DEVICE_PORT", "DISCOVERY_TIMEOUT_SECONDS"):
        monkeypatch.delenv(f"YT_AIRPLAY_{name}", raising=False)

    state = {
        "resolver": FakeResolver(MediaSource(title="T", url="u", quality_label="720p")),
        "feed": FakeFeed([(0, Candidate(host="10.0.0.5", port=7000, name="TV"))]),
        "dispatcher": FakeDispatcher(),
        "lines": ScriptedLines(),
    }
    monkeypatch.setattr(cli_main, "YouTubeResolver", lambda settings: state["resolver"])
    monkeypatch.setattr(cli_main, "ZeroconfFeed", lambda: state["feed"])
    monkeypatch.setattr(cli_main, "AirPlayDispatcher", lambda settings: state["dispatcher"])
    monkeypatch.setattr(cli_main, "StdinLineSource", lambda: state["lines"])
    return state


def test_play_success_exits_zero(wiring):
    result = runner.invoke(cli_main.app, ["play", "https://youtu.be/x"])

    assert result.exit_code == 0, result.output
    assert "Video info loaded. Using 720p." in result.output
    assert wiring["dispatcher"].connections == [("10.0.0.5", 7000)]


def test_play_with_explicit_device_skips_discovery(wiring):
    result = runner.invoke(cli_main.app, ["play", "https://youtu.be/x", "-d", "192.168.1.20", "-p", "7100"])

    assert result.exit_code == 0, result.output
    assert not wiring["feed"].subscribed
    assert wiring["dispatcher"].connections == [("192.168.1.20", 7100)]


def test_play_failure_reports_reason_once_and_exits_non_zero(wiring):
    wiring["resolver"].error = ResolutionError("Cannot find proper source.")

    result = runner.invoke(cli_main.app, ["play", "https://youtu.be/x"])

    assert result.exit_code == 1
    assert result.output.count("Cannot find proper source.") == 1
    assert "[source]" in result.output
    assert wiring["dispatcher"].connections == []


def test_play_all_prompts_for_a_device(wiring):
    wiring["feed"] = FakeFeed(
        [
            (0.01, Candidate(host="10.0.0.5", port=7000, name="TV")),
            (0.02, Candidate(host="10.0.0.6", port=7000, name="Bedroom")),
        ]
    )
    wiring["lines"] = ScriptedLines(["7", "2"])

    result = runner.invoke(cli_main.app, ["play", "https://youtu.be/x", "--all", "-t", "1"])

    assert result.exit_code == 0, result.output
    assert "Please select one AirPlay device:" in result.output
    assert "outside the range" in result.output
    assert wiring["dispatcher"].connections == [("10.0.0.6", 7000)]


def test_discover_lists_devices(wiring):
    wiring["feed"] = FakeFeed(
        [
            (0.01, Candidate(host="10.0.0.5", port=7000, name="TV")),
            (0.02, Candidate(host="10.0.0.5", port=7000, name="TV")),
        ]
    )

    result = runner.invoke(cli_main.app, ["discover", "-t", "1"])

    assert result.exit_code == 0, result.output
    assert result.output.count("10.0.0.5") == 1


def test_discover_without_devices_exits_non_zero(wiring):
    wiring["feed"] = FakeFeed()

    result = runner.invoke(cli_main.app, ["discover", "-t", "1"])

    assert result.exit_code == 1
    assert "No AirPlay device found" in result.output


def test_doctor_setup_device_saves_defaults(wiring, monkeypatch, tmp_path):
    monkeypatch.setattr(config.sys, "platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    result = runner.invoke(cli_main.app, ["doctor", "setup-device"], input="10.0.0.5\n7100\n3\n")

    assert result.exit_code == 0, result.output
    saved = (tmp_path / "yt-airplay" / ".env").read_text(encoding="utf-8")
    assert "YT_AIRPLAY_DEVICE_HOST=10.0.0.5" in saved
    assert "YT_AIRPLAY_DEVICE_PORT=7100" in saved
    assert "YT_AIRPLAY_DISCOVERY_TIMEOUT_SECONDS=3" in saved


def test_play_all_rejects_zero_timeout(wiring):
    result = runner.invoke(cli_main.app, ["play", "https://youtu.be/x", "--all", "-t", "0"])

    assert result.exit_code == 2
    assert not wiring["feed"].subscribed
    assert wiring["dispatcher"].connections == []
