"""yt-airplay command line.

Commands:
- `play URL`: resolve the video, find the device, start playback.
- `discover`: list AirPlay receivers on the network.
- `doctor ...`: diagnostics and saved defaults.

The CLI only wires adapters into the core and renders results; the exit
code follows the `PipelineResult` (0 success, 1 failure, 130 interrupt).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console

from adapters.airplay_dispatcher import AirPlayDispatcher
from adapters.console_input import StdinLineSource
from adapters.youtube_source import YouTubeResolver
from adapters.zeroconf_feed import ZeroconfFeed
from cli.doctor import app as doctor_app
from cli.ui_components import (
    StageReporter,
    build_devices_table,
    configure_logging,
    print_failure,
)
from core.config import AppSettings
from core.domain.errors import DeviceResolutionError
from core.services.discovery_window import DiscoveryWindow
from core.services.playback_pipeline import PlaybackRequest, run_playback

app = typer.Typer(
    no_args_is_help=True,
    help="Play YouTube videos on AirPlay devices found on the local network.",
)
app.add_typer(doctor_app, name="doctor")

_console = Console()
log = logging.getLogger(__name__)

INTERRUPTED_EXIT_CODE = 130
ALL_DEVICES_TIMEOUT_SECONDS = 5


@app.command()
def play(
    url: str = typer.Argument(..., help="YouTube URL (or anything yt-dlp understands)."),
    device: Optional[str] = typer.Option(None, "--device", "-d", help="Hostname or IP of the AirPlay device."),
    port: Optional[int] = typer.Option(None, "--port", "-p", min=1, max=65535, help="Port number (default 7000)."),
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout",
        "-t",
        min=0,
        help="Seconds to wait for devices (0 = first device to answer).",
    ),
    all_devices: bool = typer.Option(
        False,
        "--all",
        help="Listen for the whole timeout (5s unless set) and choose among every device found.",
    ),
    dedupe: Optional[bool] = typer.Option(
        None,
        "--dedupe/--no-dedupe",
        help="Ignore repeated advertisements of the same host:port.",
    ),
    max_attempts: Optional[int] = typer.Option(
        None,
        "--max-attempts",
        min=1,
        help="Invalid answers allowed when choosing a device (default: unlimited).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode."),
) -> None:
    """Play a video on an AirPlay device."""

    configure_logging(verbose=verbose, console=_console)
    settings = AppSettings()

    collect_all = all_devices or None
    if all_devices:
        if timeout == 0:
            raise typer.BadParameter("--all needs a timeout above 0.", param_hint="'--timeout'")
        if timeout is None and not settings.discovery_timeout_seconds:
            timeout = ALL_DEVICES_TIMEOUT_SECONDS
    request = PlaybackRequest.from_settings(
        settings,
        source=url,
        device_host=device,
        device_port=port,
        timeout_seconds=timeout,
        dedupe=dedupe,
        collect_all=collect_all,
        max_attempts=max_attempts,
    )

    reporter = StageReporter(_console)
    try:
        result = asyncio.run(
            run_playback(
                request=request,
                resolver=YouTubeResolver(settings),
                feed=ZeroconfFeed(),
                dispatcher=AirPlayDispatcher(settings),
                lines=StdinLineSource(),
                hooks=reporter.hooks(),
            )
        )
    except KeyboardInterrupt:
        _console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE)
    except Exception as exc:
        log.debug("Unexpected failure", exc_info=True)
        _console.print(f"\n[bold red]Error[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        reporter.stop()

    if not result.succeeded:
        print_failure(_console, result)
        raise typer.Exit(code=result.exit_code)


@app.command()
def discover(
    timeout: int = typer.Option(5, "--timeout", "-t", min=1, help="Seconds to listen for advertisements."),
    dedupe: bool = typer.Option(True, "--dedupe/--no-dedupe", help="Collapse repeated advertisements."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode."),
) -> None:
    """List AirPlay devices advertising on the local network."""

    configure_logging(verbose=verbose, console=_console)
    settings = AppSettings()
    window = DiscoveryWindow(
        ZeroconfFeed(),
        timeout_seconds=timeout,
        service_type=settings.service_type,
        dedupe=dedupe,
        collect_all=True,
    )

    try:
        with _console.status(f"Searching for AirPlay devices ({timeout}s)...", spinner="dots2"):
            candidates = asyncio.run(window.collect())
    except DeviceResolutionError as exc:
        _console.print(f"[yellow]{exc}[/yellow]")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        _console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE)

    _console.print(build_devices_table(candidates, title="AirPlay devices"))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
