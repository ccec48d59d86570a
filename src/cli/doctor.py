"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
from importlib.metadata import PackageNotFoundError, version

import typer
from rich.console import Console
from rich.table import Table
from zeroconf.asyncio import AsyncZeroconf

from adapters.http_client import build_async_client
from core.config import DEFAULT_AIRPLAY_PORT, AppSettings, get_user_env_file, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and saved defaults.")

_console = Console()

_PACKAGES = ("yt-dlp", "pyatv", "zeroconf")


async def _check_http(url: str) -> tuple[bool, str]:
    try:
        async with build_async_client() as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


async def _check_mdns() -> tuple[bool, str]:
    """Open and close the multicast sockets used for discovery."""

    try:
        aiozc = AsyncZeroconf()
    except OSError as exc:
        return False, str(exc)
    await aiozc.async_close()
    return True, "Multicast sockets available"


def _package_version(name: str) -> tuple[bool, str]:
    try:
        return True, version(name)
    except PackageNotFoundError:
        return False, "not installed"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show the effective configuration."""

    settings = AppSettings()

    table = Table(title="yt-airplay Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    for name in _PACKAGES:
        ok, detail = _package_version(name)
        table.add_row(name, "OK" if ok else "FAIL", detail)

    # Config
    if settings.device_host:
        table.add_row("Device", "OK", f"{settings.device_host}:{settings.device_port} (discovery skipped)")
    else:
        mode = (
            f"{settings.discovery_timeout_seconds}s window"
            if settings.discovery_timeout_seconds
            else "first device to answer"
        )
        table.add_row("Device", "AUTO", f"mDNS {settings.service_type}, {mode}")
    table.add_row(
        "AirPlay credentials",
        "OK" if settings.airplay_credentials else "OPTIONAL",
        "Set" if settings.airplay_credentials else "Only needed for receivers that require pairing",
    )

    ok_mdns, detail_mdns = asyncio.run(_check_mdns())
    table.add_row("mDNS", "OK" if ok_mdns else "FAIL", detail_mdns)

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http("https://www.youtube.com"))
    table.add_row("YouTube connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_mdns:
        _console.print(
            "\n[yellow]Note:[/yellow] Without mDNS, pass the receiver explicitly with `--device HOST`."
        )


@app.command(name="setup-device")
def setup_device() -> None:
    """Interactive default device setup (stored in the user config .env).

    An empty host clears the default and re-enables discovery.
    """

    settings = AppSettings()
    host = typer.prompt(
        "AirPlay host/IP (empty = discover)",
        default=settings.device_host or "",
        show_default=bool(settings.device_host),
    ).strip()
    port = typer.prompt("AirPlay port", default=settings.device_port or DEFAULT_AIRPLAY_PORT, type=int)
    timeout = typer.prompt(
        "Discovery timeout in seconds (0 = first device)",
        default=settings.discovery_timeout_seconds,
        type=int,
    )

    if not 1 <= port <= 65535:
        raise typer.BadParameter("port must be between 1 and 65535")
    if timeout < 0:
        raise typer.BadParameter("timeout must be >= 0")

    env_path = write_user_env_vars(
        {
            "YT_AIRPLAY_DEVICE_HOST": host or None,
            "YT_AIRPLAY_DEVICE_PORT": str(port),
            "YT_AIRPLAY_DISCOVERY_TIMEOUT_SECONDS": str(timeout),
        }
    )

    _console.print(f"[green]Saved device config to:[/green] {env_path}")


@app.command(name="config-path")
def config_path() -> None:
    """Print where the user configuration lives."""

    _console.print(str(get_user_env_file()))
